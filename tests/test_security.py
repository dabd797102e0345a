# tests/test_security.py
"""Tests for bearer token helpers."""

import pytest
from jose import jwt

from carol_translations.core.security import InvalidTokenError, create_access_token, decode_user_id
from carol_translations.core.settings import settings


def test_token_round_trip() -> None:
    assert decode_user_id(create_access_token("user-123")) == "user-123"


def test_expired_token_is_rejected() -> None:
    token = create_access_token("user-123", expires_minutes=-1)

    with pytest.raises(InvalidTokenError):
        decode_user_id(token)


def test_token_signed_with_other_key_is_rejected() -> None:
    token = jwt.encode({"sub": "user-123"}, "not-the-key", algorithm=settings.jwt_algorithm)

    with pytest.raises(InvalidTokenError):
        decode_user_id(token)


def test_token_without_subject_is_rejected() -> None:
    token = jwt.encode({"scope": "read"}, settings.secret_key, algorithm=settings.jwt_algorithm)

    with pytest.raises(InvalidTokenError):
        decode_user_id(token)
