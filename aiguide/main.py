"""FastAPI backend for the museum AI guide's visitor sessions.

Sessions live in a document store (in-memory or DynamoDB) and expire lazily
after an idle period; see aiguide/sessions.py.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .routes import access, end, generate, health, listing, update
from .sessions import SessionConfig, SessionStore
from .store import DocumentStore, InMemoryDocumentStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: check the document store is reachable (non-blocking)."""
    store: SessionStore = app.state.session_store
    if not store.has_store:
        logger.warning("Document store unavailable: no backend configured")
    elif await store.ping():
        logger.info("Document store: ready")
    else:
        logger.error("Document store: ping FAILED; session writes will degrade")
    yield


def create_app(*, document_store: DocumentStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        document_store: Custom document store (default: InMemoryDocumentStore).
    """
    s = get_settings()
    app = FastAPI(title="AI Guide Sessions", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=s.cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.session_store = SessionStore(
        document_store or InMemoryDocumentStore(),
        SessionConfig.from_settings(s),
    )

    # Routes
    app.include_router(listing.router)
    app.include_router(generate.router)
    app.include_router(access.router)
    app.include_router(update.router)
    app.include_router(end.router)
    app.include_router(health.router)

    return app
