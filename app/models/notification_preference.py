"""Kullanıcı bildirim tercihleri. Kaydı olmayan kullanıcı tüm kategorilere açık sayılır."""
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class NotificationPreference(SQLModel, table=True):
    __tablename__ = "notification_preferences"
    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(unique=True, index=True)
    community_challenges: bool = True
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
