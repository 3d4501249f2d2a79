from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from .config import secret_key, session_ttl_days

ALGORITHM = "HS256"
COOKIE_NAME = "auth_token"


def session_max_age_seconds() -> int:
    return session_ttl_days() * 24 * 60 * 60


def create_session_token(user: dict[str, Any], ttl: timedelta | None = None) -> str:
    """Sign a session JWT for ``user``; defaults to the configured session TTL."""
    expire = datetime.now(UTC) + (ttl if ttl is not None else timedelta(days=session_ttl_days()))
    claims = {
        "sub": user["id"],
        "external_id": user["external_id"],
        "username": user["username"],
        "exp": expire,
    }
    return jwt.encode(claims, secret_key(), algorithm=ALGORITHM)


def decode_session_token(token: str) -> dict[str, Any] | None:
    """Return the claims of a valid, unexpired token, or None."""
    try:
        payload = jwt.decode(
            token,
            secret_key(),
            algorithms=[ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
    if not isinstance(payload.get("sub"), str):
        return None
    return payload
