"""Tests for GET / (session listing)."""

from unittest.mock import AsyncMock, patch

from aiguide.store import StoreError


def _create(client, clock, chat_data):
    session_id = client.post("/generate", json={"chatData": chat_data}).json()["sessionId"]
    clock.advance(1000)
    return session_id


def test_list_empty(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "statusCode": 200, "count": 0, "sessions": []}


def test_list_oldest_first(client, clock):
    first = _create(client, clock, {"n": 1})
    second = _create(client, clock, {"n": 2})

    data = client.get("/").json()

    assert data["count"] == 2
    assert [s["id"] for s in data["sessions"]] == [first, second]
    assert data["sessions"][0]["chatData"] == {"n": 1}
    assert data["sessions"][0]["createdAt"] == "2023-11-15T06:13:20+08:00"


def test_list_limit(client, clock):
    ids = [_create(client, clock, n) for n in range(3)]
    data = client.get("/", params={"limit": 2}).json()
    assert [s["id"] for s in data["sessions"]] == ids[:2]


def test_list_limit_is_clamped(client, clock, document_store):
    _create(client, clock, 1)
    with patch.object(document_store, "list", wraps=document_store.list) as spy:
        client.get("/", params={"limit": 10_000})
        assert spy.call_args.kwargs["limit"] == 200
        client.get("/", params={"limit": -5})
        assert spy.call_args.kwargs["limit"] == 1
        client.get("/", params={"limit": 0})
        assert spy.call_args.kwargs["limit"] == 1
        client.get("/")
        assert spy.call_args.kwargs["limit"] == 50


def test_list_does_not_touch_sessions(client, clock, created_session, document_store):
    before = dict(document_store._docs[created_session])
    clock.advance(1000)
    client.get("/")
    assert document_store._docs[created_session] == before


def test_list_store_failure(client, document_store):
    with patch.object(document_store, "list", new_callable=AsyncMock, side_effect=StoreError("scan failed")):
        resp = client.get("/")
    assert resp.status_code == 503
    assert resp.json()["error"] == "scan failed"


def test_list_diagnostics(client, debug_settings):
    assert client.get("/").json()["diagnostics"] == {"backend": "memory", "limit": 50}
