"""
Çağıran kimliği. Bearer token'ı kullanıcı servisi (HS256, ortak SECRET_KEY) verir;
bu servis sadece doğrular ve `sub` alanını kullanıcı id olarak okur.
"""
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from .config import settings

TOKEN_ALGORITHM = "HS256"
CALLER_TOKEN_LIFETIME = timedelta(days=7)


def issue_caller_token(user_id: str, lifetime: timedelta = CALLER_TOKEN_LIFETIME) -> str:
    """Yerel geliştirme ve testler için kullanıcı servisiyle aynı biçimde token üretir."""
    claims = {"sub": str(user_id), "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.secret_key, algorithm=TOKEN_ALGORITHM)


def bearer_token(authorization: str | None) -> str | None:
    """'Bearer <token>' header değerinden token; başka şema veya boşsa None."""
    scheme, _, token = (authorization or "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def caller_id(token: str) -> str | None:
    """Geçerli ve süresi dolmamış token'ın kullanıcı id'si; aksi halde None."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[TOKEN_ALGORITHM])
    except JWTError:
        return None
    sub = claims.get("sub")
    return str(sub) if sub else None
