from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from caixa.core.config import settings


def create_token(subject: str, expires_minutes: Optional[int] = None, token_type: str = "access") -> str:
    """Tokens are issued by the identity provider; this is used by dev scripts and tests."""
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload: dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict[str, Any]]:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None
