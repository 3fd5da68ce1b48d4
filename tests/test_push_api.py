"""Push API: public key, abone olma, kendine gönderim, yetki ve hata yanıtları."""
import json
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from app.api.deps import get_store
from app.core.database import engine
from app.core.security import issue_caller_token
from app.main import app
from app.models import SecurityLog
from app.services.subscription_store import StoreUnavailableError, SubscriptionStore
from app.services.vapid import get_signer

FCM = "https://fcm.googleapis.com/fcm/send/device-a"
MOZ = "https://updates.push.services.mozilla.com/wpush/v2/device-b"


def _subscribe(client: TestClient, headers: dict, endpoint: str, keys: dict | None = None):
    body = {"endpoint": endpoint}
    if keys:
        body["keys"] = keys
    return client.post("/push/subscriptions", json=body, headers=headers)


def test_vapid_public_key(client: TestClient):
    r = client.get("/push/vapid-public-key")
    assert r.status_code == 200
    assert r.json() == {"public_key": get_signer().public_key}


def test_subscribe_requires_auth(client: TestClient):
    r = client.post("/push/subscriptions", json={"endpoint": FCM})
    assert r.status_code == 401
    assert r.json()["error"] == "Giriş yapmanız gerekiyor."


def test_subscribe_rejects_relative_endpoint(client: TestClient, auth_headers: dict):
    r = client.post("/push/subscriptions", json={"endpoint": "/fcm/send/x"}, headers=auth_headers)
    assert r.status_code == 422


@pytest.mark.parametrize("endpoint", ["https://", "https://:443/fcm/send/x", "ftp://push.example.com/x", "https://push.example.com:99999/x"])
def test_subscribe_rejects_unsignable_endpoint(client: TestClient, auth_headers: dict, endpoint: str):
    r = client.post("/push/subscriptions", json={"endpoint": endpoint}, headers=auth_headers)
    assert r.status_code == 422
    with Session(engine) as db:
        assert SubscriptionStore(db).list_all() == []


def test_subscribe_and_send_to_self(client: TestClient, auth_headers: dict, user_id: str, push_service):
    r = _subscribe(client, auth_headers, FCM)
    assert r.status_code == 201
    assert r.json()["encrypted"] is False
    _subscribe(client, auth_headers, MOZ)

    r = client.post(
        "/push/send",
        json={"user_id": user_id, "title": "Nytt PR!", "message": "Bänkpress 100 kg", "url": "/progress", "notification_id": "n-42"},
        headers=auth_headers,
    )
    assert r.status_code == 200
    assert r.json() == {"sent": 2, "failed": 0}
    assert sorted(push_service.urls()) == sorted([FCM, MOZ])
    body = json.loads(push_service.calls[0]["data"])
    assert body == {"title": "Nytt PR!", "message": "Bänkpress 100 kg", "url": "/progress", "notificationId": "n-42"}


def test_send_prunes_gone_endpoint(client: TestClient, auth_headers: dict, user_id: str, push_service):
    _subscribe(client, auth_headers, FCM)
    _subscribe(client, auth_headers, MOZ)
    push_service.responses = {MOZ: 410}

    r = client.post("/push/send", json={"user_id": user_id, "title": "Hej"}, headers=auth_headers)
    assert r.json() == {"sent": 1, "failed": 1}

    with Session(engine) as db:
        assert [s.endpoint for s in SubscriptionStore(db).list(user_id)] == [FCM]


def test_send_without_subscriptions(client: TestClient, auth_headers: dict, user_id: str, push_service):
    r = client.post("/push/send", json={"user_id": user_id, "title": "Hej"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {"sent": 0, "failed": 0}
    assert push_service.calls == []


def test_send_to_another_user_is_forbidden(client: TestClient, auth_headers: dict, user_id: str, push_service):
    with Session(engine) as db:
        SubscriptionStore(db).add("someone-else", FCM)

    r = client.post("/push/send", json={"user_id": "someone-else", "title": "Spam"}, headers=auth_headers)
    assert r.status_code == 403
    assert push_service.calls == []
    with Session(engine) as db:
        logs = db.exec(select(SecurityLog).where(SecurityLog.event == "push_forbidden")).all()
    assert len(logs) == 1
    assert logs[0].caller_id == user_id
    assert logs[0].target_user_id == "someone-else"


def test_send_requires_user_id(client: TestClient, auth_headers: dict):
    r = client.post("/push/send", json={"title": "Hej"}, headers=auth_headers)
    assert r.status_code == 422
    assert r.json()["error"] == "userId gerekli."


def test_send_with_invalid_token(client: TestClient, user_id: str):
    r = client.post(
        "/push/send",
        json={"user_id": user_id, "title": "Hej"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert r.status_code == 401


def test_expired_token_rejected(client: TestClient, user_id: str):
    token = issue_caller_token(user_id, lifetime=timedelta(minutes=-1))
    r = client.post("/push/send", json={"user_id": user_id, "title": "Hej"}, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401


def test_unsubscribe(client: TestClient, auth_headers: dict, user_id: str):
    _subscribe(client, auth_headers, FCM)
    r = client.delete("/push/subscriptions", params={"endpoint": FCM}, headers=auth_headers)
    assert r.status_code == 204
    r = client.delete("/push/subscriptions", params={"endpoint": FCM}, headers=auth_headers)
    assert r.status_code == 204
    with Session(engine) as db:
        assert SubscriptionStore(db).list(user_id) == []


class _DownStore:
    def list(self, user_id):
        raise StoreUnavailableError("connection refused")


def test_store_unreachable_returns_500_without_sends(client: TestClient, auth_headers: dict, user_id: str, push_service):
    app.dependency_overrides[get_store] = lambda: _DownStore()
    r = client.post("/push/send", json={"user_id": user_id, "title": "Hej"}, headers=auth_headers)
    assert r.status_code == 500
    assert r.json()["error"] == "Abonelikler alınamadı."
    assert push_service.calls == []
