"""PWA push bildirim abonelikleri (Web Push API)."""
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class PushSubscription(SQLModel, table=True):
    __tablename__ = "push_subscriptions"
    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)  # auth servisindeki kullanıcı id (UUID); bir kullanıcının birden çok cihazı olabilir
    endpoint: str = Field(unique=True, index=True)  # push servisi + istemci kaydı; 404/410 gelince silinir
    p256dh: str = ""  # client public key (base64url); boşsa payload şifrelenmeden gider
    auth: str = ""    # auth secret (base64url)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def has_keys(self) -> bool:
        return bool(self.p256dh and self.auth)

    def subscription_info(self) -> dict:
        """pywebpush'un beklediği {"endpoint", "keys": {"p256dh", "auth"}} biçimi."""
        return {"endpoint": self.endpoint, "keys": {"p256dh": self.p256dh, "auth": self.auth}}
