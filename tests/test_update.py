"""Tests for POST /update."""

from unittest.mock import AsyncMock, patch

from aiguide.store import StoreError

MISSING = "Missing required params: { session, chatData } (prefer JSON body)."


def test_update_with_json_body(client, created_session):
    resp = client.post("/update", json={"session": created_session, "chatData": {"b": 2}})
    assert resp.status_code == 200
    assert resp.json() == {
        "ok": True,
        "statusCode": 200,
        "message": "Chat Data updated successfully.",
    }

    data = client.get("/access", params={"session": created_session}).json()["data"]
    assert data["chatData"] == {"b": 2}


def test_update_with_query_params(client, created_session):
    resp = client.post(
        "/update", params={"session": created_session, "chatData": '[{"role": "user"}]'}
    )
    assert resp.status_code == 200
    data = client.get("/access", params={"session": created_session}).json()["data"]
    assert data["chatData"] == [{"role": "user"}]


def test_update_sets_updated_at_only(client, created_session, clock):
    clock.advance(1000)
    client.post("/update", json={"session": created_session, "chatData": []})
    clock.advance(1000)

    data = client.get("/access", params={"session": created_session}).json()["data"]
    assert data["createdAt"] == "2023-11-15T06:13:20+08:00"
    assert data["updatedAt"] == "2023-11-15T06:13:21+08:00"
    assert data["lastAccessedAt"] == "2023-11-15T06:13:22+08:00"


def test_update_missing_session(client):
    resp = client.post("/update", json={"chatData": {"a": 1}})
    assert resp.status_code == 400
    assert resp.json()["error"] == MISSING


def test_update_missing_chat_data(client, created_session):
    resp = client.post("/update", json={"session": created_session})
    assert resp.status_code == 400
    assert resp.json()["error"] == MISSING


def test_update_unknown_session(client, document_store):
    resp = client.post("/update", json={"session": "doesnotexist", "chatData": {}})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Session does not exist"
    assert "doesnotexist" not in document_store._docs


def test_update_ended_session(client, created_session):
    client.post("/end", json={"session": created_session})
    resp = client.post("/update", json={"session": created_session, "chatData": {"b": 2}})
    assert resp.status_code == 409
    assert resp.json()["error"] == "Session has ended"


def test_update_store_failure(client, created_session, document_store):
    with patch.object(document_store, "update", new_callable=AsyncMock, side_effect=StoreError("throttled")):
        resp = client.post("/update", json={"session": created_session, "chatData": {}})
    assert resp.status_code == 503
    assert resp.json()["error"] == "throttled"
