"""Pytest fixtures: test client, test DB (in-memory SQLite), VAPID anahtarları, sahte push servisi."""
import base64
import os
import threading
import uuid

import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi.testclient import TestClient

# Test ortamı (app import edilmeden önce set edilmeli)
_VAPID_KEY = ec.generate_private_key(ec.SECP256R1())
os.environ["VAPID_PRIVATE_KEY"] = (
    base64.urlsafe_b64encode(_VAPID_KEY.private_numbers().private_value.to_bytes(32, "big"))
    .rstrip(b"=")
    .decode("ascii")
)
os.environ["VAPID_PUBLIC_KEY"] = ""
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ADMIN_SECRET", "test-admin-secret")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "20")
os.environ.setdefault("RATE_LIMIT_PUSH_PER_MINUTE", "5")
os.environ.setdefault("PUSH_MAX_WORKERS", "4")

from sqlmodel import Session, SQLModel  # noqa: E402

from app.api.deps import get_push_http  # noqa: E402
from app.core.database import engine, init_db  # noqa: E402
from app.core.rate_limit import limiter  # noqa: E402
from app.core.security import issue_caller_token  # noqa: E402
from app.main import app  # noqa: E402
from app.services.subscription_store import SubscriptionStore  # noqa: E402
from app.services.vapid import VapidSigner  # noqa: E402


class FakeResponse:
    def __init__(self, status_code: int, text: str = ""):
        self.status_code = status_code
        self.text = text


class FakePushService:
    """requests.Session yerine geçer: endpoint -> HTTP status (veya fırlatılacak exception)."""

    def __init__(self, default: int = 201):
        self.default = default
        self.responses: dict[str, object] = {}
        self.calls: list[dict] = []
        self._lock = threading.Lock()

    def post(self, url, data=None, headers=None, timeout=None):
        with self._lock:
            self.calls.append({"url": url, "data": data, "headers": dict(headers or {}), "timeout": timeout})
        outcome = self.responses.get(url, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome, text="push service says no" if outcome >= 300 else "")

    def urls(self) -> list[str]:
        return [c["url"] for c in self.calls]


@pytest.fixture(autouse=True)
def _fresh_db():
    """Her test boş tablolarla başlar."""
    SQLModel.metadata.drop_all(engine)
    init_db()
    yield


@pytest.fixture
def vapid_private_key() -> ec.EllipticCurvePrivateKey:
    return _VAPID_KEY


@pytest.fixture
def signer() -> VapidSigner:
    return VapidSigner(os.environ["VAPID_PRIVATE_KEY"])


@pytest.fixture
def push_service() -> FakePushService:
    return FakePushService()


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


@pytest.fixture
def store(db) -> SubscriptionStore:
    return SubscriptionStore(db)


@pytest.fixture(scope="function")
def client(push_service):
    """TestClient; lifespan ile in-memory DB ve tablolar hazır olur, push istekleri sahte servise gider."""
    # Limit sayaçları testler arasında taşınmasın
    limiter.reset()
    app.dependency_overrides[get_push_http] = lambda: push_service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def user_id() -> str:
    # Rate limit kullanıcı bazlı; her test kendi kullanıcısıyla başlar
    return str(uuid.uuid4())


@pytest.fixture
def auth_headers(user_id) -> dict:
    return {"Authorization": f"Bearer {issue_caller_token(user_id)}"}


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Secret": os.environ["ADMIN_SECRET"]}
