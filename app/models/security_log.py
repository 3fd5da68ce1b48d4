"""Güvenlik olayları: push rate limit aşımı ve başka kullanıcıya push denemesi."""
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel

EVENT_RATE_LIMIT = "rate_limit"
EVENT_PUSH_FORBIDDEN = "push_forbidden"


class SecurityLog(SQLModel, table=True):
    __tablename__ = "push_security_events"
    id: int | None = Field(default=None, primary_key=True)
    event: str = Field(index=True)
    caller_id: str | None = Field(default=None, index=True)  # token sahibi; IP anahtarlı limitte boş
    target_user_id: str | None = None
    ip: str | None = None
    path: str | None = None
    request_id: str | None = None
    detail: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
