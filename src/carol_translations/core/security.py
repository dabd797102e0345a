"""Bearer token helpers.

Tokens are minted by the external identity provider; this service only needs
to verify them and read the subject. ``create_access_token`` exists for local
tooling and tests that stand in for the provider.
"""
from __future__ import annotations

from datetime import timedelta

from jose import JWTError, jwt

from carol_translations.core.settings import settings
from carol_translations.db.time import utcnow


class InvalidTokenError(ValueError):
    """Raised when a bearer token cannot be verified or has no subject."""


def create_access_token(user_id: str, expires_minutes: int = 60) -> str:
    """Return a signed token whose subject is ``user_id``."""
    payload = {
        "sub": user_id,
        "iat": utcnow(),
        "exp": utcnow() + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_user_id(token: str) -> str:
    """Verify ``token`` and return its subject."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise InvalidTokenError("Could not validate credentials") from err
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise InvalidTokenError("Could not validate credentials")
    return subject
