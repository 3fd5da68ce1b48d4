from .config import is_push_configured, settings
from .database import get_db, init_db

__all__ = ["settings", "is_push_configured", "get_db", "init_db"]
