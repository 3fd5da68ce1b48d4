import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# .env proje kökünden yüklensin (uvicorn hangi dizinden başlatılırsa başlatılsın)
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlmodel import Session

from app.api.admin import router as admin_router
from app.api.push import router as push_router
from app.core.config import is_push_configured, settings
from app.core.database import engine, init_db, ping_db
from app.core.rate_limit import get_client_ip, limiter
from app.core.security import bearer_token, caller_id
from app.logging import setup_logging
from app.models import ErrorLog, SecurityLog
from app.models.security_log import EVENT_RATE_LIMIT
from app.services.vapid import SigningError, get_signer

setup_logging(settings.log_level)
log = logging.getLogger("gymdagboken")

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if not is_push_configured():
        log.warning("VAPID_PRIVATE_KEY not set: push endpoints will answer 503/500 until configured")
    else:
        try:
            get_signer()
        except SigningError as e:
            # Servis ayağa kalkar; gönderim istekleri 500 döner ve hata loglanır
            log.error("VAPID key could not be loaded: %s", e)
    yield


app = FastAPI(
    title="Gymdagboken Push API",
    description="Web Push bildirim teslimat servisi (VAPID imzalı, ölü abonelik temizliği)",
    lifespan=lifespan,
)
app.state.limiter = limiter


def _error_body(request: Request, status_code: int, message: str, **extra) -> dict:
    body = {"error": message, "status_code": status_code, **extra}
    rid = getattr(request.state, "request_id", None)
    if rid:
        body["request_id"] = rid
    return body


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    token = bearer_token(request.headers.get("authorization"))
    try:
        with Session(engine) as db:
            db.add(SecurityLog(
                event=EVENT_RATE_LIMIT,
                caller_id=caller_id(token) if token else None,
                ip=get_client_ip(request) or None,
                path=request.url.path,
                request_id=getattr(request.state, "request_id", None),
                detail=str(exc.detail),
            ))
            db.commit()
    except Exception as e:
        log.warning("SecurityLog rate_limit write failed: %s", e)
    return JSONResponse(
        status_code=429,
        content=_error_body(request, 429, "Çok fazla istek. Lütfen bir dakika bekleyin."),
        headers={"Retry-After": "60"},
    )


app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)


def jsonable_errors(errs) -> list[dict]:
    """Pydantic hata listesinde JSON'a çevrilemeyen ctx değerlerini string yapar."""
    out = []
    for err in errs:
        item = {k: v for k, v in err.items() if k != "ctx"}
        if "ctx" in err:
            item["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        out.append(item)
    return out


def _validation_message(errs: list[dict]) -> str:
    """İlk hatanın kullanıcıya gösterilecek metni; eksik userId özel mesajla döner."""
    if not errs:
        return "Geçersiz istek."
    first = errs[0]
    field = str(list(first.get("loc") or [""])[-1])
    if first.get("type") == "missing" and field == "user_id":
        return "userId gerekli."
    return first.get("msg") or "Geçersiz istek."


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errs = exc.errors()
    log.warning("422 on %s %s: %s", request.method, request.url.path, errs)
    return JSONResponse(
        status_code=422,
        content=_error_body(request, 422, _validation_message(errs), detail=jsonable_errors(errs)),
    )


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, message),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    rid = getattr(request.state, "request_id", None)
    log.exception("Unhandled exception request_id=%s path=%s: %s", rid, request.url.path, exc)
    try:
        with Session(engine) as db:
            db.add(ErrorLog.from_exception(exc, request.method, request.url.path, rid))
            db.commit()
    except Exception as e:
        log.warning("ErrorLog write failed: %s", e)
    return JSONResponse(status_code=500, content=_error_body(request, 500, "Beklenmeyen sunucu hatası."))


@app.middleware("http")
async def request_id_and_latency(request: Request, call_next):
    # Proxy'den gelen id korunur; yoksa yeni üretilir
    request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    started = time.perf_counter()
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request.state.request_id
    log.info(
        "%s %s -> %s (%.1f ms) request_id=%s",
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - started) * 1000,
        request.state.request_id,
    )
    return response


def _cors_origins() -> list[str]:
    raw = (settings.cors_origins or "").strip()
    if not raw or raw == "*":
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


# Kimlik bearer header ile taşınır, cookie kullanılmaz
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Admin-Secret", REQUEST_ID_HEADER],
    expose_headers=[REQUEST_ID_HEADER],
)
app.include_router(push_router)
app.include_router(admin_router)


@app.get("/health")
def health():
    database = "ok" if ping_db() else "error"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "push_configured": is_push_configured(),
        "database": database,
    }
