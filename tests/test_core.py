"""Çekirdek: DB URL normalizasyonu, endpoint kısaltma, bearer token, zaman damgaları, ayar sınırları."""
import pytest
from pydantic import ValidationError

from app.core.config import MAX_PUSH_TOKEN_LIFETIME_HOURS, Settings
from app.core.database import DEFAULT_DATABASE_URL, normalize_database_url
from app.core.security import bearer_token, caller_id, issue_caller_token
from app.logging import redact_endpoint
from app.models import ErrorLog, NotificationPreference, PushSubscription, SecurityLog


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("postgres://u:p@db:5432/push", "postgresql+psycopg://u:p@db:5432/push"),
        ("postgresql://u:p@db/push", "postgresql+psycopg://u:p@db/push"),
        ("postgresql+psycopg://u:p@db/push", "postgresql+psycopg://u:p@db/push"),
        ("sqlite:///:memory:", "sqlite:///:memory:"),
        ("  ", DEFAULT_DATABASE_URL),
        (None, DEFAULT_DATABASE_URL),
    ],
)
def test_normalize_database_url(raw, expected):
    assert normalize_database_url(raw) == expected


def test_redact_endpoint_keeps_origin_only():
    redacted = redact_endpoint("https://fcm.googleapis.com/fcm/send/dQw4w9WgXcQ:APA91bHsecretTOKEN123456")
    assert redacted == "https://fcm.googleapis.com/...123456"
    assert "secret" not in redacted


def test_bearer_token_parsing():
    assert bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"
    assert bearer_token("bearer  abc ") == "abc"
    assert bearer_token("Basic dXNlcjpwYXNz") is None
    assert bearer_token("Bearer ") is None
    assert bearer_token(None) is None


def test_caller_id_roundtrip_and_garbage():
    assert caller_id(issue_caller_token("anna")) == "anna"
    assert caller_id("not-a-jwt") is None


def test_error_log_from_exception():
    try:
        raise RuntimeError("push service exploded")
    except RuntimeError as e:
        entry = ErrorLog.from_exception(e, "POST", "/push/send", request_id="rid-1")
    assert entry.error_type == "RuntimeError"
    assert entry.error_message == "push service exploded"
    assert "RuntimeError" in entry.stack_trace
    assert (entry.method, entry.path, entry.request_id) == ("POST", "/push/send", "rid-1")


def test_timestamps_are_timezone_aware():
    rows = [
        (PushSubscription(user_id="anna", endpoint="https://fcm.googleapis.com/fcm/send/a"), "created_at"),
        (NotificationPreference(user_id="anna"), "updated_at"),
        (SecurityLog(event="rate_limit"), "created_at"),
        (ErrorLog(path="/push/send"), "created_at"),
    ]
    for row, attr in rows:
        assert getattr(row, attr).utcoffset() is not None, type(row).__name__


def test_stored_subscription_and_security_event(store, db):
    sub = store.add("anna", "https://fcm.googleapis.com/fcm/send/a")
    assert sub.id is not None
    db.add(SecurityLog(event="push_forbidden", caller_id="anna", target_user_id="erik"))
    db.commit()
    assert db.get(SecurityLog, 1).target_user_id == "erik"


def test_token_lifetime_capped_at_24_hours():
    assert Settings(push_token_lifetime_hours=48).push_token_lifetime_hours == MAX_PUSH_TOKEN_LIFETIME_HOURS
    assert Settings(push_token_lifetime_hours=6).push_token_lifetime_hours == 6
    with pytest.raises(ValidationError):
        Settings(push_token_lifetime_hours=0)
