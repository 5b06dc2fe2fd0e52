"""Bearer token helpers.

Tokens are minted by the identity service; the subject claim carries the
opaque user id. ``create_access_token`` exists for tooling and tests.
"""
from __future__ import annotations

from datetime import timedelta

from jose import JWTError, jwt

from taletree.core.settings import settings
from taletree.db.time import utcnow


def create_access_token(user_id: str, expires_minutes: int | None = None) -> str:
    """Return a signed JWT whose subject is ``user_id``."""
    ttl = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    payload = {
        "sub": user_id,
        "exp": utcnow() + timedelta(minutes=ttl),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_subject(token: str) -> str | None:
    """Return the token subject, or None if the token is invalid or expired."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        return None
    return subject
