"""Unit tests for JWT handler."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from jose import jwt

from config.settings import settings
from src.bb_common.errors import InvalidCredentialsError, InvalidRefreshTokenError
from src.bb_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)


def test_access_token_carries_role() -> None:
    payload = jwt.get_unverified_claims(create_access_token("user-123", "ADMIN"))
    assert payload["sub"] == "user-123"
    assert payload["type"] == "access"
    assert payload["role"] == "ADMIN"


def test_refresh_token_has_no_role() -> None:
    payload = jwt.get_unverified_claims(create_refresh_token("user-123"))
    assert payload["type"] == "refresh"
    assert "role" not in payload


def test_decode_valid_tokens() -> None:
    assert decode_token(create_access_token("u"), expected_type="access")["sub"] == "u"
    assert decode_token(create_refresh_token("u"), expected_type="refresh")["sub"] == "u"


def test_access_token_used_as_refresh_raises_error() -> None:
    with pytest.raises(InvalidRefreshTokenError):
        decode_token(create_access_token("user-abc"), expected_type="refresh")


def test_refresh_token_used_as_access_raises_error() -> None:
    with pytest.raises(InvalidCredentialsError):
        decode_token(create_refresh_token("user-abc"), expected_type="access")


def test_expired_access_token_raises_credentials_error() -> None:
    with patch.dict(
        "src.bb_gateway.auth.jwt_handler._LIFETIMES", {"access": timedelta(seconds=-1)}
    ):
        token = create_access_token("user-abc")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token, expected_type="access")


def test_token_without_subject_rejected() -> None:
    token = jwt.encode({"type": "access"}, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(InvalidCredentialsError):
        decode_token(token, expected_type="access")


def test_tampered_token_raises_error() -> None:
    token = create_access_token("user-abc")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token[:-4] + "xxxx", expected_type="access")
