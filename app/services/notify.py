"""Bildirim akışları: kullanıcıya push, uygulama güncelleme duyurusu, topluluk challenge duyurusu."""
import logging

import requests

from app.core.config import is_push_configured, settings
from app.services.push_delivery import DeliveryResult, PushDispatcher, build_payload
from app.services.subscription_store import SubscriptionStore
from app.services.vapid import get_signer

log = logging.getLogger("gymdagboken.push")

# Süreç boyunca tek bağlantı havuzu
_http = requests.Session()


class PushNotConfiguredError(Exception):
    """VAPID anahtarları tanımlı değil."""


def get_http_session() -> requests.Session:
    return _http


def make_dispatcher(store: SubscriptionStore, http: requests.Session | None = None) -> PushDispatcher:
    """Ayarlardaki imzalayıcı ile dağıtıcı. Anahtar yoksa PushNotConfiguredError, bozuksa SigningError."""
    if not is_push_configured():
        raise PushNotConfiguredError("Push bildirimleri yapılandırılmamış (VAPID_PRIVATE_KEY yok).")
    return PushDispatcher(
        get_signer(),
        store,
        http=http or _http,
        timeout=settings.push_request_timeout,
        max_workers=settings.push_max_workers,
    )


def send_to_user(
    store: SubscriptionStore,
    dispatcher: PushDispatcher,
    user_id: str,
    title: str,
    message: str,
    url: str | None = None,
    notification_id: str | None = None,
) -> DeliveryResult:
    """Kullanıcının tüm cihazlarına gönderir. Depo okunamazsa StoreUnavailableError (hiç gönderim yapılmaz)."""
    subscriptions = store.list(user_id)
    if not subscriptions:
        log.info("No push subscriptions found for user %s", user_id)
        return DeliveryResult()
    payload = build_payload(title, message, url, notification_id)
    return dispatcher.deliver(subscriptions, payload)


def update_payload(version: str | None, message: str | None) -> dict:
    title = f"Gymdagboken {version}" if version else settings.update_default_title
    return build_payload(title, message or settings.update_default_message, "/")


def broadcast_update(
    store: SubscriptionStore,
    dispatcher: PushDispatcher,
    version: str | None = None,
    message: str | None = None,
) -> DeliveryResult:
    """Yeni sürüm duyurusu: tüm aboneliklere."""
    subscriptions = store.list_all()
    log.info("Sending update notification to %d subscriptions", len(subscriptions))
    return dispatcher.deliver(subscriptions, update_payload(version, message))


def broadcast_challenge(
    store: SubscriptionStore,
    dispatcher: PushDispatcher,
    title: str,
    message: str,
    url: str | None = None,
) -> DeliveryResult:
    """Topluluk challenge duyurusu: bu kategoriyi kapatmamış kullanıcıların tüm cihazlarına."""
    subscriptions = store.list_all()
    opted_out = store.community_opt_outs(sub.user_id for sub in subscriptions)
    targets = [sub for sub in subscriptions if sub.user_id not in opted_out]
    log.info(
        "Sending challenge push to %d subscriptions (%d skipped by preference)",
        len(targets),
        len(subscriptions) - len(targets),
    )
    return dispatcher.deliver(targets, build_payload(title, message, url))
