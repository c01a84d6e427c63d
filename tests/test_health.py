"""Tests for GET /healthz."""


def test_health_returns_ok(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "statusCode": 200}


def test_health_diagnostics(client, debug_settings):
    resp = client.get("/healthz")
    assert resp.json()["diagnostics"] == {
        "backend": "memory",
        "hasStore": True,
        "idleLimitMs": 3000,
    }
