"""GET /access — Read a session, keeping it alive or expiring it when idle."""

import logging

from fastapi import APIRouter, Depends, Query

from .. import events
from ..config import get_settings
from ..dependencies import error_response, get_session_store
from ..formatting import human_duration, strip_system_messages
from ..sessions import Outcome, SessionStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/access")
async def access_session(
    session: str | None = Query(default=None),
    hide_system: bool = Query(default=False, alias="hideSystem"),
    store: SessionStore = Depends(get_session_store),
):
    if not session:
        return error_response(400, error="Missing query param ?session=")

    result = await store.access(session)
    idle_limit = store.config.idle_ms

    if result.outcome is Outcome.NOT_FOUND:
        return error_response(404, message="Session does not exist")

    if result.outcome is Outcome.EXPIRED:
        message = (
            f"Session expired due to inactivity "
            f"({human_duration(result.idle_ms)} >= {human_duration(idle_limit)})."
        )
        events.session_event(
            activity_id=events.Activity.EXPIRE,
            status_id=events.Status.SUCCESS,
            severity_id=events.Severity.LOW,
            session_id=session,
            message=message,
            extra_metadata={"idle_ms": result.idle_ms, "idle_limit_ms": idle_limit},
        )
        return error_response(404, message=message, expired=True)

    if not result.ok:
        logger.error("GET /access error: %s", result.error)
        events.session_event(
            activity_id=events.Activity.ACCESS,
            status_id=events.Status.FAILURE,
            severity_id=events.Severity.MEDIUM,
            session_id=session,
            message=f"Session access failed: {result.error}",
        )
        return error_response(503, error=result.error)

    s = get_settings()
    data = result.session.to_json(s.display_utc_offset_minutes)
    if hide_system:
        data["chatData"] = strip_system_messages(data["chatData"])

    events.session_event(
        activity_id=events.Activity.ACCESS,
        status_id=events.Status.SUCCESS,
        session_id=session,
        message="Session accessed",
    )

    body = {"ok": True, "statusCode": 200, "id": result.session.id, "data": data}
    if s.debug_diagnostics:
        idle = result.idle_ms or 0
        body["diagnostics"] = {
            "idleMs": idle,
            "idleHuman": human_duration(idle),
            "idleLimitMs": idle_limit,
        }
    return body
