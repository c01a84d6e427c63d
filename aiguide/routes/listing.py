"""GET / — List sessions, oldest first."""

import logging

from fastapi import APIRouter, Depends, Query

from .. import events
from ..config import get_settings
from ..dependencies import error_response, get_session_store
from ..sessions import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def list_sessions(
    limit: int | None = Query(default=None),
    store: SessionStore = Depends(get_session_store),
):
    s = get_settings()
    if limit is None:
        limit = s.list_default_limit
    limit = min(max(limit, 1), s.list_max_limit)

    result = await store.list(limit)
    if not result.ok:
        logger.error("GET / error: %s", result.error)
        events.session_event(
            activity_id=events.Activity.LIST,
            status_id=events.Status.FAILURE,
            severity_id=events.Severity.MEDIUM,
            message=f"Session listing failed: {result.error}",
        )
        return error_response(503, error=result.error)

    sessions = [
        {"id": session.id, **session.to_json(s.display_utc_offset_minutes)}
        for session in result.sessions
    ]
    body = {"ok": True, "statusCode": 200, "count": len(sessions), "sessions": sessions}
    if s.debug_diagnostics:
        body["diagnostics"] = {"backend": s.session_backend, "limit": limit}
    return body
