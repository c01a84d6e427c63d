"""Shared fixtures for the AI guide session backend test suite."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from aiguide.config import Settings, override_settings
from aiguide.main import create_app
from aiguide.sessions import SessionConfig, SessionStore
from aiguide.store import InMemoryDocumentStore

START_MS = 1_700_000_000_000  # 2023-11-14T22:13:20Z
IDLE_MS = 3000

TIMESTAMP_FIELDS = ("created_at", "updated_at", "last_accessed_at")


class FakeClock:
    """Store clock in epoch milliseconds, advanced by hand."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


# ── Store & SessionStore ──────────────────────────────────────────────────

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def document_store(clock) -> InMemoryDocumentStore:
    return InMemoryDocumentStore(clock=clock)


@pytest.fixture
def session_config() -> SessionConfig:
    return SessionConfig(idle_ms=IDLE_MS, secret="test-secret", store_timeout=1.0)


@pytest.fixture
def sessions(document_store, session_config) -> SessionStore:
    return SessionStore(document_store, session_config)


@pytest.fixture
def backdate(document_store):
    """Shift a stored session's timestamps into the past, simulating idle time."""

    def _backdate(session_id: str, ms: int) -> None:
        doc = document_store._docs[session_id]
        for field in TIMESTAMP_FIELDS:
            doc[field] -= ms

    return _backdate


# ── Test Settings ─────────────────────────────────────────────────────────

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        session_idle_ms=IDLE_MS,
        session_id_secret="test-secret",
        session_backend="memory",
        store_timeout_seconds=1.0,
        display_utc_offset_minutes=480,
        debug_diagnostics=False,
    )


# ── App & Client ──────────────────────────────────────────────────────────

@pytest.fixture
def app(test_settings, document_store):
    override_settings(test_settings)
    return create_app(document_store=document_store)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def debug_settings(app, test_settings) -> Settings:
    """Enable diagnostics blocks for the current test."""
    s = test_settings.model_copy(update={"debug_diagnostics": True})
    override_settings(s)
    return s


@pytest.fixture
def created_session(client) -> str:
    """Create a session with chatData {"a": 1} and return its id."""
    resp = client.post("/generate", json={"chatData": {"a": 1}})
    assert resp.status_code == 200
    return resp.json()["sessionId"]
