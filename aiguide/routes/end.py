"""POST /end — Finish a session, keeping its record."""

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from .. import events
from ..config import get_settings
from ..dependencies import error_response, get_session_store
from ..sessions import DEFAULT_END_REASON, Outcome, SessionStore

logger = logging.getLogger(__name__)

router = APIRouter()


class EndRequest(BaseModel):
    session: str | None = None
    reason: str | None = None


@router.post("/end")
async def end_session(
    body: EndRequest | None = None,
    session: str | None = Query(default=None),
    reason: str | None = Query(default=None),
    store: SessionStore = Depends(get_session_store),
):
    session_id = (body.session if body is not None else None) or session
    end_reason = (body.reason if body is not None else None) or reason or DEFAULT_END_REASON

    result = await store.end(session_id, end_reason)

    if result.outcome is Outcome.BAD_REQUEST:
        return error_response(400, error="Missing required param: session")
    if result.outcome is Outcome.NOT_FOUND:
        return error_response(404, error="Session does not exist")
    if not result.ok:
        logger.error("POST /end error: %s", result.error)
        events.session_event(
            activity_id=events.Activity.END,
            status_id=events.Status.FAILURE,
            severity_id=events.Severity.MEDIUM,
            session_id=session_id,
            message=f"Session end failed: {result.error}",
        )
        return error_response(503, error=result.error)

    if not result.already_ended:
        events.session_event(
            activity_id=events.Activity.END,
            status_id=events.Status.SUCCESS,
            session_id=session_id,
            message=f"Session ended ({end_reason})",
        )

    return {
        "ok": True,
        "statusCode": 200,
        "id": result.session.id,
        "alreadyEnded": result.already_ended,
        "data": result.session.to_json(get_settings().display_utc_offset_minutes),
    }
