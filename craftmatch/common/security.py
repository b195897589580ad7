"""Verification of access tokens issued by the managed auth provider."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from craftmatch.config import settings


class TokenExpiredError(ValueError):
    pass


def decode_token(token: str) -> dict[str, Any]:
    """Decode and verify a provider-issued JWT.

    Raises ``ValueError`` for any invalid, expired or foreign token; callers
    distinguish expiry through :class:`TokenExpiredError`.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenExpiredError("Token has expired") from e
    except jwt.PyJWTError as e:
        raise ValueError(f"Invalid token: {e}") from e


def create_access_token(
    subject: str,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Mint a token in the provider's format.

    Used by tests and local tooling; in production tokens come from the
    provider and are only verified here.
    """
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": subject,
        "aud": settings.JWT_AUDIENCE,
        "role": "authenticated",
        "iat": now,
        "exp": now + (expires_delta or timedelta(hours=1)),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
