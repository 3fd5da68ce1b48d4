from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env proje kökünde: app/core/config.py -> app/core -> app -> proje kökü
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"

# Gönderim isteği başına tavan (yavaş bir push servisi diğerlerini bekletmesin)
MAX_PUSH_REQUEST_TIMEOUT = 30.0
# RFC 8292: VAPID token exp en fazla 24 saat ileride olabilir
MAX_PUSH_TOKEN_LIFETIME_HOURS = 24


class Settings(BaseSettings):
    secret_key: str = "change-me-in-production"
    database_url: str = "sqlite:///./gymdagboken_push.db"
    # CORS: virgülle ayrılmış origin listesi
    cors_origins: str = "*"
    # IP başına dakikada max istek (rate limit)
    rate_limit_per_minute: int = 60
    # /push/send için çağıran başına ayrı limit (testte yüksek tutulabilir)
    rate_limit_push_per_minute: int = 10
    # Tek instance değilse paylaşılan depo kullanın, örn. redis://localhost:6379
    rate_limit_storage_uri: str = "memory://"
    log_level: str = "INFO"
    admin_secret: str = ""             # Toplu bildirim (güncelleme / challenge) için X-Admin-Secret
    # Web Push (VAPID). Private key: base64url ham 32 bayt, base64url PKCS#8 DER veya PEM.
    vapid_public_key: str = ""         # Boşsa private key'den türetilir
    vapid_private_key: str = ""
    vapid_subject: str = "mailto:info@gymdagboken.se"
    push_ttl_seconds: int = 86400      # Push servisinin mesajı saklama süresi (TTL header)
    push_token_lifetime_hours: int = 12
    push_request_timeout: float = 10.0
    push_max_workers: int = 8          # 1 = sıralı gönderim
    update_default_title: str = "Ny version tillgänglig!"
    update_default_message: str = (
        "En ny version av appen är tillgänglig. Öppna appen för att uppdatera."
    )

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator("vapid_public_key", "vapid_private_key", "vapid_subject", mode="before")
    @classmethod
    def strip_keys(cls, v: str | None) -> str:
        """Boşluk/yanlış kopya kaynaklı hataları azaltır (PEM satır sonları korunur)."""
        return (v or "").strip()

    @field_validator("vapid_subject")
    @classmethod
    def subject_scheme(cls, v: str) -> str:
        """Çıplak e-posta adresi verilirse mailto: eklenir."""
        if v and not v.startswith(("mailto:", "https:")):
            return f"mailto:{v}"
        return v

    @field_validator("push_request_timeout")
    @classmethod
    def bounded_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("push_request_timeout must be positive")
        return min(v, MAX_PUSH_REQUEST_TIMEOUT)

    @field_validator("push_token_lifetime_hours")
    @classmethod
    def bounded_token_lifetime(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("push_token_lifetime_hours must be positive")
        return min(v, MAX_PUSH_TOKEN_LIFETIME_HOURS)

    @field_validator("push_max_workers")
    @classmethod
    def at_least_one_worker(cls, v: int) -> int:
        return max(1, v)


settings = Settings()


def is_push_configured() -> bool:
    """VAPID private key tanımlı mı? (Geçerliliği imzalayıcı oluşturulurken kontrol edilir.)"""
    return bool(settings.vapid_private_key)
