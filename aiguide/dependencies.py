"""FastAPI dependency injection: session store access, shared responses."""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from .sessions import SessionStore


def get_session_store(request: Request) -> SessionStore:
    """Get the application's SessionStore."""
    return request.app.state.session_store


def error_response(status_code: int, **fields: Any) -> JSONResponse:
    """Error envelope shared by all session endpoints."""
    return JSONResponse(
        {"ok": False, "statusCode": status_code, **fields},
        status_code=status_code,
    )
