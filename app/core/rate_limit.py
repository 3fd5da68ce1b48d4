"""Rate limiting (SlowAPI): çağıran kullanıcı (bearer sub) veya proxy arkasındaki istemci IP'si bazlı."""
from fastapi import Request

from slowapi import Limiter

from .config import settings
from .security import bearer_token, caller_id


def get_client_ip(request: Request) -> str:
    """Proxy arkasında gerçek istemci IP (X-Forwarded-For ilk değer)."""
    xff = request.headers.get("x-forwarded-for")
    if xff:
        return xff.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


def caller_key(request: Request) -> str:
    """Geçerli bearer token varsa kullanıcı, yoksa IP bazlı anahtar."""
    token = bearer_token(request.headers.get("authorization"))
    uid = caller_id(token) if token else None
    if uid:
        return f"user:{uid}"
    return f"ip:{get_client_ip(request)}"


# /push/send dışındaki tüm push ve admin route'ları için IP başına genel limit
GENERAL_RATE_LIMIT = f"{settings.rate_limit_per_minute}/minute"

# memory:// sadece tek instance dağıtımda doğru sayar; çoklu instance için redis:// verin
limiter = Limiter(key_func=get_client_ip, storage_uri=settings.rate_limit_storage_uri)
