"""
Push teslimatı: her aboneliğe imzalı POST, yanıt sınıflandırma, ölü endpoint temizliği.

Bir endpoint'in sonucu diğerlerini etkilemez; 404/410 dönen endpoint'ler
tur sonunda depodan tek seferde silinir. Geçici hatalar bu çağrı içinde
tekrar denenmez (bir sonraki bildirim tekrar dener).
"""
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import requests
from pywebpush import WebPusher, WebPushException

from app.logging import redact_endpoint
from app.models import PushSubscription
from app.services.subscription_store import StoreUnavailableError, SubscriptionStore
from app.services.vapid import CONTENT_TYPE_ENCRYPTED, CONTENT_TYPE_JSON, VapidSigner

log = logging.getLogger("gymdagboken.push")

SUCCESS_STATUSES = frozenset({200, 201})
GONE_STATUSES = frozenset({404, 410})
CONTENT_ENCODING = "aes128gcm"
DEFAULT_TIMEOUT = 10.0

SENT = "sent"
GONE = "gone"
FAILED = "failed"


@dataclass
class DeliveryResult:
    sent: int = 0
    failed: int = 0
    pruned_endpoints: list[str] = field(default_factory=list)

    @property
    def cleaned(self) -> int:
        return len(self.pruned_endpoints)

    def as_dict(self) -> dict:
        return {"sent": self.sent, "failed": self.failed, "cleaned": self.cleaned}


def build_payload(
    title: str,
    message: str,
    url: str | None = None,
    notification_id: str | None = None,
) -> dict:
    """Service worker'ın okuduğu payload; boş alanlar gönderilmez."""
    payload = {"title": title, "message": message}
    if url:
        payload["url"] = url
    if notification_id:
        payload["notificationId"] = notification_id
    return payload


def encode_body(subscription: PushSubscription, body: bytes) -> tuple[bytes, str, dict[str, str]]:
    """
    Anahtarları olan abonelik için RFC 8291 aes128gcm şifreleme (pywebpush);
    anahtarsız abonelikte düz JSON gider ve Content-Encoding iddia edilmez.
    Returns: (gövde, content-type, ek header'lar)
    """
    if not subscription.has_keys():
        return body, CONTENT_TYPE_JSON, {}
    encoded = WebPusher(subscription.subscription_info()).encode(body, content_encoding=CONTENT_ENCODING)
    return encoded["body"], CONTENT_TYPE_ENCRYPTED, {"Content-Encoding": CONTENT_ENCODING}


class PushDispatcher:
    def __init__(
        self,
        signer: VapidSigner,
        store: SubscriptionStore,
        http: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_workers: int = 1,
    ):
        self.signer = signer
        self.store = store
        self.http = http or requests.Session()
        self.timeout = timeout
        self.max_workers = max(1, max_workers)

    def deliver(self, targets: list[PushSubscription], payload: dict) -> DeliveryResult:
        """
        Bildirimi tüm hedeflere gönderir. Tekil endpoint hataları fırlatılmaz,
        sayılır; 404/410 endpoint'leri tur sonunda silinir.
        """
        result = DeliveryResult()
        if not targets:
            return result
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")

        workers = min(self.max_workers, len(targets))
        if workers == 1:
            outcomes = [self._send_one(sub, body) for sub in targets]
        else:
            # Sayaçlar sadece bu thread'de güncellenir; worker'lar sonucu döndürür
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="push") as pool:
                outcomes = list(pool.map(lambda sub: self._send_one(sub, body), targets))

        for sub, outcome in zip(targets, outcomes):
            if outcome == SENT:
                result.sent += 1
                continue
            result.failed += 1
            if outcome == GONE and sub.endpoint not in result.pruned_endpoints:
                result.pruned_endpoints.append(sub.endpoint)

        self._prune(result.pruned_endpoints)
        log.info(
            "Push batch done: targets=%d sent=%d failed=%d cleaned=%d",
            len(targets),
            result.sent,
            result.failed,
            result.cleaned,
        )
        return result

    def _send_one(self, sub: PushSubscription, body: bytes) -> str:
        try:
            data, content_type, extra_headers = encode_body(sub, body)
            # Token her endpoint için o anda imzalanır (exp önceki gönderimlerin süresinden bağımsız)
            headers = self.signer.sign_for(sub.endpoint, content_type=content_type)
            headers.update(extra_headers)
            response = self.http.post(sub.endpoint, data=data, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            log.warning("Push request failed for subscription %s (%s): %s", sub.id, redact_endpoint(sub.endpoint), e)
            return FAILED
        except (WebPushException, ValueError) as e:
            log.warning("Push not sent to subscription %s (%s): %s", sub.id, redact_endpoint(sub.endpoint), e)
            return FAILED

        status = response.status_code
        if status in SUCCESS_STATUSES:
            log.debug("Push sent to subscription %s", sub.id)
            return SENT
        if status in GONE_STATUSES:
            log.info("Push subscription %s gone (%s), scheduling removal", sub.id, status)
            return GONE
        log.error(
            "Push failed for subscription %s: status=%s body=%s",
            sub.id,
            status,
            (response.text or "")[:200],
        )
        return FAILED

    def _prune(self, endpoints: list[str]) -> None:
        """Ölü endpoint'leri tek seferde siler; hata teslimat sonucunu bozmaz."""
        if not endpoints:
            return
        try:
            self.store.delete(endpoints)
        except StoreUnavailableError as e:
            log.warning("Could not prune %d expired push subscription(s): %s", len(endpoints), e)
