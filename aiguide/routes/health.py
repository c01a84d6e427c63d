"""GET /healthz — Liveness check."""

from fastapi import APIRouter, Depends

from ..config import get_settings
from ..dependencies import get_session_store
from ..sessions import SessionStore

router = APIRouter()


@router.get("/healthz")
async def health(store: SessionStore = Depends(get_session_store)):
    s = get_settings()
    body = {"ok": True, "statusCode": 200}
    if s.debug_diagnostics:
        body["diagnostics"] = {
            "backend": s.session_backend,
            "hasStore": store.has_store,
            "idleLimitMs": store.config.idle_ms,
        }
    return body
