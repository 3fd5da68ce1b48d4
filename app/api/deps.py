import hmac
import logging

import requests
from fastapi import Depends, Header, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.security import caller_id
from app.services.notify import PushNotConfiguredError, get_http_session, make_dispatcher
from app.services.push_delivery import PushDispatcher
from app.services.subscription_store import StoreUnavailableError, SubscriptionStore
from app.services.vapid import SigningError

log = logging.getLogger("gymdagboken")
security = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Giriş yapmanız gerekiyor.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    uid = caller_id(credentials.credentials)
    if not uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Geçersiz veya süresi dolmuş token.",
        )
    return uid


def get_store(db: Session = Depends(get_db)) -> SubscriptionStore:
    return SubscriptionStore(db)


def get_push_http() -> requests.Session:
    """Push servislerine giden HTTP oturumu (testlerde override edilir)."""
    return get_http_session()


def _admin_secret_constant_time_compare(provided: str | None, expected: str | None) -> bool:
    """Timing-safe karşılaştırma; detay sızdırmaz."""
    p = (provided or "").encode("utf-8")
    e = (expected or "").encode("utf-8")
    return hmac.compare_digest(p, e)


def require_admin(
    x_admin_secret: str | None = Header(None, alias="X-Admin-Secret"),
    admin_secret: str | None = Query(None, description="Admin şifresi"),
) -> None:
    """Toplu bildirimler için: header veya query ile secret kontrolü."""
    expected = (settings.admin_secret or "").strip()
    if not expected:
        raise HTTPException(status_code=503, detail="Admin yapılandırılmamış (ADMIN_SECRET yok).")
    secret = (x_admin_secret or admin_secret) or ""
    if not secret or not _admin_secret_constant_time_compare(secret, expected):
        raise HTTPException(status_code=403, detail="Yetkisiz.")


def build_dispatcher(store: SubscriptionStore, http: requests.Session) -> PushDispatcher:
    """Yapılandırma hatalarını (anahtar yok / bozuk) 500 olarak döner; tekrar denenmez."""
    try:
        return make_dispatcher(store, http)
    except PushNotConfiguredError as e:
        log.error("%s", e)
        raise HTTPException(status_code=500, detail="Push bildirimleri yapılandırılmamış.") from e
    except SigningError as e:
        log.error("VAPID configuration error: %s", e)
        raise HTTPException(status_code=500, detail=f"Push yapılandırma hatası: {e}") from e


def store_unavailable(exc: StoreUnavailableError) -> HTTPException:
    log.error("Subscription store unavailable: %s", exc)
    return HTTPException(status_code=500, detail="Abonelikler alınamadı.")
