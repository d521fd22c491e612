"""Unit tests for bb_gateway Pydantic schemas."""

import pytest
from pydantic import ValidationError

from src.bb_gateway.user.schemas import RegisterRequest


def _register(**overrides: str) -> RegisterRequest:
    fields = {
        "username": "alice",
        "display_name": "Alice",
        "email": "alice@example.com",
        "password": "Biscuit42",
    }
    fields.update(overrides)
    return RegisterRequest(**fields)


class TestRegisterRequest:
    def test_valid_input(self) -> None:
        req = _register(display_name="  Alice B  ")
        assert req.username == "alice"
        assert req.display_name == "Alice B"

    def test_username_too_short(self) -> None:
        with pytest.raises(ValidationError):
            _register(username="ab")

    def test_username_invalid_chars(self) -> None:
        with pytest.raises(ValidationError):
            _register(username="alice!")

    def test_blank_display_name(self) -> None:
        with pytest.raises(ValidationError):
            _register(display_name="   ")

    def test_invalid_email(self) -> None:
        with pytest.raises(ValidationError):
            _register(email="not-an-email")

    def test_password_needs_digit(self) -> None:
        with pytest.raises(ValidationError):
            _register(password="onlyletters")

    def test_password_needs_letter(self) -> None:
        with pytest.raises(ValidationError):
            _register(password="12345678")

    def test_password_too_short(self) -> None:
        with pytest.raises(ValidationError):
            _register(password="Ab1")
