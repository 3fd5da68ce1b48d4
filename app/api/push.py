import logging

import requests
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from app.api.deps import (
    build_dispatcher,
    get_current_user_id,
    get_push_http,
    get_store,
    store_unavailable,
)
from app.core.config import is_push_configured, settings
from app.core.rate_limit import GENERAL_RATE_LIMIT, caller_key, get_client_ip, limiter
from app.models import SecurityLog
from app.models.security_log import EVENT_PUSH_FORBIDDEN
from app.schemas import DeliveryResponse, SendPushRequest, SubscriptionCreate, SubscriptionResponse
from app.services.notify import send_to_user
from app.services.subscription_store import StoreUnavailableError, SubscriptionStore
from app.services.vapid import SigningError, get_signer

log = logging.getLogger("gymdagboken.push")

router = APIRouter(prefix="/push", tags=["push"])
_PUSH_RATE_LIMIT = f"{settings.rate_limit_push_per_minute}/minute"


def _forbidden_attempt(store: SubscriptionStore, caller: str, target: str, request: Request) -> None:
    """Başka kullanıcıya gönderim denemesi güvenlik loguna yazılır; yazılamazsa 403 yine döner."""
    try:
        store.db.add(
            SecurityLog(
                event=EVENT_PUSH_FORBIDDEN,
                caller_id=caller,
                target_user_id=target,
                ip=get_client_ip(request) or None,
                path=request.url.path,
                request_id=getattr(request.state, "request_id", None),
            )
        )
        store.db.commit()
    except Exception as e:
        log.warning("SecurityLog push_forbidden write failed: %s", e)


@router.get("/vapid-public-key")
@limiter.limit(GENERAL_RATE_LIMIT)
def vapid_public_key(request: Request):
    """İstemcinin pushManager.subscribe(applicationServerKey) için kullandığı anahtar."""
    if not is_push_configured():
        raise HTTPException(status_code=503, detail="Push bildirimleri yapılandırılmamış.")
    try:
        return {"public_key": get_signer().public_key}
    except SigningError as e:
        log.error("VAPID configuration error: %s", e)
        raise HTTPException(status_code=500, detail="Push yapılandırma hatası.") from e


@router.post("/subscriptions", status_code=201, response_model=SubscriptionResponse)
@limiter.limit(GENERAL_RATE_LIMIT)
def subscribe(
    request: Request,
    data: SubscriptionCreate,
    user_id: str = Depends(get_current_user_id),
    store: SubscriptionStore = Depends(get_store),
):
    try:
        sub = store.add(user_id, data.endpoint, data.keys.p256dh, data.keys.auth)
    except StoreUnavailableError as e:
        raise store_unavailable(e) from e
    log.info("Push subscription %s registered for user %s", sub.id, user_id)
    return SubscriptionResponse(id=sub.id, endpoint=sub.endpoint, encrypted=sub.has_keys())


@router.delete("/subscriptions", status_code=204)
@limiter.limit(GENERAL_RATE_LIMIT)
def unsubscribe(
    request: Request,
    endpoint: str = Query(..., min_length=1),
    user_id: str = Depends(get_current_user_id),
    store: SubscriptionStore = Depends(get_store),
):
    """Kullanıcının kendi endpoint'ini siler; zaten yoksa da 204."""
    try:
        store.remove_for_user(user_id, endpoint)
    except StoreUnavailableError as e:
        raise store_unavailable(e) from e
    return Response(status_code=204)


@router.post("/send", response_model=DeliveryResponse)
@limiter.limit(_PUSH_RATE_LIMIT, key_func=caller_key)
def send(
    request: Request,
    data: SendPushRequest,
    user_id: str = Depends(get_current_user_id),
    store: SubscriptionStore = Depends(get_store),
    http: requests.Session = Depends(get_push_http),
):
    # Kullanıcı sadece kendi cihazlarına gönderebilir (başka kullanıcıya spam engeli)
    if data.user_id != user_id:
        log.warning("User %s attempted to send push to %s", user_id, data.user_id)
        _forbidden_attempt(store, user_id, data.user_id, request)
        raise HTTPException(status_code=403, detail="Sadece kendinize push bildirimi gönderebilirsiniz.")

    dispatcher = build_dispatcher(store, http)
    try:
        result = send_to_user(
            store,
            dispatcher,
            user_id,
            data.title,
            data.message,
            url=data.url,
            notification_id=data.notification_id,
        )
    except StoreUnavailableError as e:
        raise store_unavailable(e) from e
    return DeliveryResponse(sent=result.sent, failed=result.failed)
