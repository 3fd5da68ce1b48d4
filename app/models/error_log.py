"""Beklenmeyen sunucu hataları; request_id ile uygulama loguna bağlanır."""
import traceback
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class ErrorLog(SQLModel, table=True):
    __tablename__ = "push_error_events"
    id: int | None = Field(default=None, primary_key=True)
    request_id: str | None = Field(default=None, index=True)
    method: str | None = None
    path: str | None = None
    error_type: str | None = None
    error_message: str | None = None
    stack_trace: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_exception(cls, exc: Exception, method: str, path: str, request_id: str | None = None) -> "ErrorLog":
        return cls(
            request_id=request_id,
            method=method,
            path=path,
            error_type=type(exc).__name__,
            error_message=str(exc)[:2000],
            stack_trace="".join(traceback.format_exception(type(exc), exc, exc.__traceback__))[:10000],
        )
