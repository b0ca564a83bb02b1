# careerhive/token.py
from __future__ import annotations
from datetime import datetime, timedelta, timezone
import secrets
from typing import Any
import jwt
from .config import settings

def create_access_token(subject: str) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    # jti: unique even for tokens minted in the same second
    payload = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry; raises `jwt.PyJWTError` otherwise."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
