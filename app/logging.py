"""
Logging yapılandırması.
Push teslimat olayları "gymdagboken.push" altında; endpoint URL'leri istemciye ait
gizli kayıt olduğundan loglara sadece kısaltılmış hali yazılır.
"""
import logging
import sys
from urllib.parse import urlsplit

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: int | str = logging.INFO, format_string: str = LOG_FORMAT) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=format_string, stream=sys.stdout, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "gymdagboken", "app"):
        logging.getLogger(name).setLevel(level)
    # Her push isteğinde bağlantı ve şifreleme ayrıntısı basılmasın
    for noisy in ("urllib3", "pywebpush"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))


def redact_endpoint(endpoint: str) -> str:
    """https://fcm.googleapis.com/fcm/send/abc...xyz -> https://fcm.googleapis.com/...xyz12"""
    parts = urlsplit(endpoint)
    if not parts.scheme or not parts.netloc:
        return endpoint[:24] + "..." if len(endpoint) > 24 else endpoint
    return f"{parts.scheme}://{parts.netloc}/...{parts.path[-6:]}"
