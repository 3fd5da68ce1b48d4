"""
VAPID (RFC 8292) imzalama: push servisine sunucu kimliğini kanıtlayan kısa ömürlü ES256 JWT.

Her teslimat denemesi için token yeniden üretilir; aud push servisinin origin'idir
(şema + host), bu yüzden farklı sağlayıcılar arasında önbelleklenmez.
"""
import base64
import binascii
import logging
import time
from functools import lru_cache
from typing import Callable
from urllib.parse import urlsplit

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from jose import jwt
from jose.exceptions import JOSEError

from app.core.config import settings

log = logging.getLogger("gymdagboken.vapid")

ALGORITHM = "ES256"
DEFAULT_TTL_SECONDS = 86400
DEFAULT_LIFETIME_SECONDS = 12 * 60 * 60
CONTENT_TYPE_ENCRYPTED = "application/octet-stream"
CONTENT_TYPE_JSON = "application/json"
DEFAULT_PORTS = {"https": 443, "http": 80}


class SigningError(Exception):
    """Anahtar içe aktarılamadı / imzalanamadı. Yapılandırma hatası; tekrar denenmez."""


class InvalidEndpointError(ValueError):
    """Endpoint mutlak bir http(s) URL değil."""


def b64url_encode(data: bytes) -> str:
    """Padding'siz base64url ('+' -> '-', '/' -> '_', '=' yok)."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    """Padding'siz base64url çözer; standart base64 karakterleri de kabul edilir."""
    value = value.strip().replace("+", "-").replace("/", "_").rstrip("=")
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def _decode_public_key(value: str) -> bytes:
    try:
        return b64url_decode(value)
    except (ValueError, binascii.Error) as e:
        raise SigningError(f"VAPID public key çözülemedi: {e}") from e


def audience_for(endpoint: str) -> str:
    """Endpoint'in origin'i: şema + host[:port]; path/query atılır, varsayılan port (443/80) yazılmaz."""
    parts = urlsplit((endpoint or "").strip())
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise InvalidEndpointError(f"Push endpoint mutlak bir URL olmalı: {endpoint!r}")
    host = parts.hostname
    try:
        port = parts.port
    except ValueError as e:
        raise InvalidEndpointError(f"Geçersiz port: {endpoint!r}") from e
    if ":" in host:
        host = f"[{host}]"  # IPv6
    if port is not None and port != DEFAULT_PORTS[parts.scheme]:
        host = f"{host}:{port}"
    return f"{parts.scheme}://{host}"


def load_private_key(raw: str) -> ec.EllipticCurvePrivateKey:
    """
    VAPID private key'i içe aktarır. Kabul edilen biçimler:
    - base64url ham 32 bayt skaler (py_vapid / pywebpush)
    - base64url PKCS#8 DER
    - PEM (PKCS#8 veya SEC1)
    """
    value = (raw or "").strip()
    if not value:
        raise SigningError("VAPID private key tanımlı değil.")
    try:
        if value.startswith("-----BEGIN"):
            key = serialization.load_pem_private_key(value.encode("ascii"), password=None)
        else:
            data = b64url_decode(value)
            if len(data) == 32:
                key = ec.derive_private_key(int.from_bytes(data, "big"), ec.SECP256R1())
            else:
                key = serialization.load_der_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm, binascii.Error) as e:
        raise SigningError(f"VAPID private key içe aktarılamadı: {e}") from e
    if not isinstance(key, ec.EllipticCurvePrivateKey) or not isinstance(key.curve, ec.SECP256R1):
        raise SigningError("VAPID private key bir P-256 (prime256v1) EC anahtarı olmalı.")
    return key


def public_key_b64(private_key: ec.EllipticCurvePrivateKey) -> str:
    """İstemcinin applicationServerKey olarak kullandığı sıkıştırılmamış nokta (base64url)."""
    raw = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    return b64url_encode(raw)


def generate_vapid_keys() -> dict:
    """
    Yeni VAPID anahtar çifti üretir.

    Returns:
        {"public_key": str, "private_key": str, "private_key_pem": str}
        private_key: base64url ham skaler (VAPID_PRIVATE_KEY için),
        public_key: base64url sıkıştırılmamış nokta (VAPID_PUBLIC_KEY ve istemci için).
    """
    key = ec.generate_private_key(ec.SECP256R1())
    private_raw = key.private_numbers().private_value.to_bytes(32, byteorder="big")
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    return {
        "public_key": public_key_b64(key),
        "private_key": b64url_encode(private_raw),
        "private_key_pem": private_pem,
    }


class VapidSigner:
    """Push isteği başına Authorization/TTL/Content-Type header seti üretir."""

    def __init__(
        self,
        private_key: str,
        public_key: str | None = None,
        subject: str = "mailto:info@gymdagboken.se",
        ttl: int = DEFAULT_TTL_SECONDS,
        lifetime_seconds: int = DEFAULT_LIFETIME_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._key = load_private_key(private_key)
        derived = public_key_b64(self._key)
        if public_key and b64url_encode(_decode_public_key(public_key)) != derived:
            raise SigningError("VAPID public key, private key ile eşleşmiyor.")
        self.public_key = derived
        self.subject = subject
        self.ttl = ttl
        self.lifetime_seconds = lifetime_seconds
        self._clock = clock
        # python-jose hem cryptography hem ecdsa backend'inde PEM kabul eder
        self._pem = self._key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")

    def claims_for(self, endpoint: str) -> dict:
        now = int(self._clock())
        return {
            "aud": audience_for(endpoint),
            "exp": now + self.lifetime_seconds,
            "sub": self.subject,
        }

    def token_for(self, endpoint: str) -> str:
        claims = self.claims_for(endpoint)
        try:
            return jwt.encode(claims, self._pem, algorithm=ALGORITHM)
        except JOSEError as e:
            raise SigningError(f"VAPID token imzalanamadı: {e}") from e

    def sign_for(self, endpoint: str, content_type: str = CONTENT_TYPE_ENCRYPTED) -> dict[str, str]:
        token = self.token_for(endpoint)
        return {
            "Authorization": f"vapid t={token}, k={self.public_key}",
            "TTL": str(self.ttl),
            "Content-Type": content_type,
        }


def sign_for(
    endpoint: str,
    public_key: str | None,
    private_key: str,
    subject: str = "mailto:info@gymdagboken.se",
    content_type: str = CONTENT_TYPE_ENCRYPTED,
) -> dict[str, str]:
    """Tek seferlik imzalama; süreç içinde tekrar kullanım için get_signer() tercih edin."""
    return VapidSigner(private_key, public_key, subject=subject).sign_for(endpoint, content_type)


@lru_cache(maxsize=1)
def get_signer() -> VapidSigner:
    """Ayarlardan imzalayıcı; süreç başına bir kez yüklenir. Anahtar hatalıysa SigningError."""
    signer = VapidSigner(
        settings.vapid_private_key,
        settings.vapid_public_key or None,
        subject=settings.vapid_subject,
        ttl=settings.push_ttl_seconds,
        lifetime_seconds=settings.push_token_lifetime_hours * 3600,
    )
    log.info("VAPID signer ready (subject=%s)", signer.subject)
    return signer
