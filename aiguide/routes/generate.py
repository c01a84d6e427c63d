"""POST /generate — Create a visitor session."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from .. import events
from ..config import get_settings
from ..dependencies import error_response, get_session_store
from ..sessions import Outcome, SessionStore

logger = logging.getLogger(__name__)

router = APIRouter()


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chat_data: Any = Field(default=None, alias="chatData")


async def _generate(store: SessionStore, chat_data: Any):
    # A session with no chat data starts as an empty transcript.
    result = await store.create([] if chat_data is None else chat_data)

    if result.outcome is Outcome.BAD_REQUEST:
        return error_response(400, error=result.error)

    if result.persisted:
        events.session_event(
            activity_id=events.Activity.CREATE,
            status_id=events.Status.SUCCESS,
            session_id=result.session_id,
            message="Session created",
        )
    else:
        logger.error("POST /generate: session not persisted: %s", result.error)
        events.session_event(
            activity_id=events.Activity.CREATE,
            status_id=events.Status.FAILURE,
            severity_id=events.Severity.MEDIUM,
            session_id=result.session_id,
            message=f"Session created but not persisted ({result.persistence.value})",
        )

    body = {
        "ok": True,
        "statusCode": 200,
        "sessionId": result.session_id,
        "chatData": result.payload,
        "store": {
            "enabled": store.has_store,
            "persisted": result.persisted,
            "persistence": result.persistence.value,
            "error": result.error,
        },
    }
    if get_settings().debug_diagnostics:
        body["diagnostics"] = {"backend": get_settings().session_backend}
    return body


@router.post("/generate")
async def generate(
    body: GenerateRequest | None = None,
    chat_data: str | None = Query(default=None, alias="chatData"),
    store: SessionStore = Depends(get_session_store),
):
    value = body.chat_data if body is not None and body.chat_data is not None else chat_data
    return await _generate(store, value)


@router.get("/generate")
async def generate_legacy(store: SessionStore = Depends(get_session_store)):
    """Legacy GET form kept for manual testing from a browser."""
    return await _generate(store, None)
