"""POST /update — Replace a session's chat data."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from .. import events
from ..dependencies import error_response, get_session_store
from ..sessions import Outcome, SessionStore

logger = logging.getLogger(__name__)

router = APIRouter()


class UpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session: str | None = None
    chat_data: Any = Field(default=None, alias="chatData")


@router.post("/update")
async def update_session(
    body: UpdateRequest | None = None,
    session: str | None = Query(default=None),
    chat_data: str | None = Query(default=None, alias="chatData"),
    store: SessionStore = Depends(get_session_store),
):
    session_id = (body.session if body is not None else None) or session
    payload = body.chat_data if body is not None and body.chat_data is not None else chat_data

    result = await store.update(session_id, payload)

    if result.outcome is Outcome.BAD_REQUEST:
        return error_response(
            400,
            error="Missing required params: { session, chatData } (prefer JSON body).",
        )
    if result.outcome is Outcome.NOT_FOUND:
        return error_response(404, error="Session does not exist")
    if result.outcome is Outcome.ENDED:
        return error_response(409, error="Session has ended")
    if not result.ok:
        logger.error("POST /update error: %s", result.error)
        events.session_event(
            activity_id=events.Activity.UPDATE,
            status_id=events.Status.FAILURE,
            severity_id=events.Severity.MEDIUM,
            session_id=session_id,
            message=f"Session update failed: {result.error}",
        )
        return error_response(503, error=result.error)

    events.session_event(
        activity_id=events.Activity.UPDATE,
        status_id=events.Status.SUCCESS,
        session_id=session_id,
        message="Chat data updated",
    )
    return {"ok": True, "statusCode": 200, "message": "Chat Data updated successfully."}
