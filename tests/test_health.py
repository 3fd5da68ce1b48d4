"""Health endpoint."""
from fastapi.testclient import TestClient


def test_health_returns_ok(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200
    j = r.json()
    assert j.get("status") == "ok"
    assert j.get("push_configured") is True
    assert j.get("database") == "ok"
    assert r.headers.get("X-Request-ID")


def test_request_id_from_proxy_is_kept(client: TestClient):
    r = client.get("/health", headers={"X-Request-ID": "edge-7f3a"})
    assert r.headers["X-Request-ID"] == "edge-7f3a"


def test_error_body_carries_request_id(client: TestClient):
    r = client.get("/admin/push/stats", headers={"X-Request-ID": "edge-403"})
    assert r.status_code == 403
    assert r.json() == {"error": "Yetkisiz.", "status_code": 403, "request_id": "edge-403"}
