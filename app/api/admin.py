"""Admin API: sadece ADMIN_SECRET ile erişilir. Toplu push duyuruları ve abonelik istatistikleri."""
import logging

import requests
from fastapi import APIRouter, Depends, Request

from app.api.deps import build_dispatcher, get_push_http, get_store, require_admin, store_unavailable
from app.core.rate_limit import GENERAL_RATE_LIMIT, limiter
from app.schemas import BroadcastResponse, ChallengeBroadcastRequest, UpdateBroadcastRequest
from app.services.notify import broadcast_challenge, broadcast_update
from app.services.subscription_store import StoreUnavailableError, SubscriptionStore

log = logging.getLogger("gymdagboken")

router = APIRouter(prefix="/admin/push", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/update", response_model=BroadcastResponse)
@limiter.limit(GENERAL_RATE_LIMIT)
def push_update(
    request: Request,
    data: UpdateBroadcastRequest,
    store: SubscriptionStore = Depends(get_store),
    http: requests.Session = Depends(get_push_http),
):
    """Yeni sürüm duyurusu: tüm abonelere."""
    dispatcher = build_dispatcher(store, http)
    try:
        result = broadcast_update(store, dispatcher, data.version, data.message)
    except StoreUnavailableError as e:
        raise store_unavailable(e) from e
    log.info("Update broadcast version=%s %s", data.version, result.as_dict())
    return BroadcastResponse(**result.as_dict())


@router.post("/challenge", response_model=BroadcastResponse)
@limiter.limit(GENERAL_RATE_LIMIT)
def push_challenge(
    request: Request,
    data: ChallengeBroadcastRequest,
    store: SubscriptionStore = Depends(get_store),
    http: requests.Session = Depends(get_push_http),
):
    """Topluluk challenge duyurusu: community_challenges tercihini kapatmamış abonelere."""
    dispatcher = build_dispatcher(store, http)
    try:
        result = broadcast_challenge(store, dispatcher, data.title, data.message, data.url)
    except StoreUnavailableError as e:
        raise store_unavailable(e) from e
    log.info("Challenge broadcast %s", result.as_dict())
    return BroadcastResponse(**result.as_dict())


@router.get("/stats")
@limiter.limit(GENERAL_RATE_LIMIT)
def push_stats(request: Request, store: SubscriptionStore = Depends(get_store)):
    try:
        total, users = store.count()
    except StoreUnavailableError as e:
        raise store_unavailable(e) from e
    return {"subscriptions": total, "users": users}
