from pydantic import BaseModel, Field, field_validator

from app.services.vapid import audience_for


class SendPushRequest(BaseModel):
    """Kullanıcının kendi cihazlarına bildirim (örn. hatırlatma, hedef tamamlandı)."""
    user_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(default="", max_length=2000)
    url: str | None = None
    notification_id: str | None = None


class UpdateBroadcastRequest(BaseModel):
    """Yeni sürüm duyurusu (admin). Boş alanlarda varsayılan metin kullanılır."""
    version: str | None = Field(default=None, max_length=40)
    message: str | None = Field(default=None, max_length=2000)


class ChallengeBroadcastRequest(BaseModel):
    """Topluluk challenge duyurusu (admin)."""
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=2000)
    url: str | None = None


class SubscriptionKeys(BaseModel):
    p256dh: str = ""
    auth: str = ""


class SubscriptionCreate(BaseModel):
    """Tarayıcının PushSubscription.toJSON() çıktısı."""
    endpoint: str
    keys: SubscriptionKeys = SubscriptionKeys()

    @field_validator("endpoint")
    @classmethod
    def absolute_url(cls, v: str) -> str:
        """İmzalanabilir olmalı: http(s) şeması ve host; aksi halde 422 (InvalidEndpointError bir ValueError)."""
        v = (v or "").strip()
        audience_for(v)
        return v


class SubscriptionResponse(BaseModel):
    id: int
    endpoint: str
    encrypted: bool


class DeliveryResponse(BaseModel):
    sent: int
    failed: int


class BroadcastResponse(BaseModel):
    success: bool = True
    sent: int
    failed: int
    cleaned: int
