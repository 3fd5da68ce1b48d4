"""
Abonelik veritabanı. Üretimde Postgres (psycopg3), geliştirme ve testte SQLite.
Bağlantı kopukluğu push gönderimini başlatmadan yakalanabilsin diye Postgres'te
pool_pre_ping açıktır.
"""
import logging

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from .config import settings

log = logging.getLogger("gymdagboken")

DEFAULT_DATABASE_URL = "sqlite:///./gymdagboken_push.db"


def normalize_database_url(raw_url: str | None) -> str:
    """Supabase/Heroku tarzı postgres:// adresleri psycopg3 dialektine çevrilir."""
    url = (raw_url or "").strip() or DEFAULT_DATABASE_URL
    scheme, sep, rest = url.partition("://")
    if scheme in ("postgres", "postgresql"):
        return f"postgresql+psycopg{sep}{rest}"
    return url


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # In-memory SQLite tek bağlantı: init_db tabloları tüm isteklerde ve worker thread'lerde görünür
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if ":memory:" in url else None,
        )
    return create_engine(url, pool_pre_ping=True)


DATABASE_URL = normalize_database_url(settings.database_url)
engine = build_engine(DATABASE_URL)


def get_db():
    with Session(engine) as session:
        yield session


def init_db() -> None:
    import app.models  # noqa: F401  (tablo tanımları metadata'ya kaydolur)

    SQLModel.metadata.create_all(engine)


def ping_db() -> bool:
    """/health: abonelik deposuna ulaşılabiliyor mu?"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        log.warning("Database ping failed: %s", e)
        return False
    return True
