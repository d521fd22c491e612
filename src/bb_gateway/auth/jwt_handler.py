"""HS256 access/refresh tokens signed with JWT_SECRET.

The ``type`` claim keeps the two kinds from being swapped: a refresh token is
never accepted as a bearer token and vice versa.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.bb_common.errors import AppError, InvalidCredentialsError, InvalidRefreshTokenError

_ALGORITHM = settings.JWT_ALGORITHM
_LIFETIMES = {
    "access": timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
    "refresh": timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS),
}


def _encode(user_id: str, token_type: str, **claims: str) -> str:
    issued = datetime.now(UTC)
    payload: dict[str, object] = {
        "sub": user_id,
        "type": token_type,
        "iat": issued,
        "exp": issued + _LIFETIMES[token_type],
        **claims,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def create_access_token(user_id: str, role: str = "USER") -> str:
    # role is informational for clients; guards always reread the user row
    return _encode(user_id, "access", role=role)


def create_refresh_token(user_id: str) -> str:
    return _encode(user_id, "refresh")


def _rejection(expected_type: str) -> AppError:
    if expected_type == "access":
        return InvalidCredentialsError()
    return InvalidRefreshTokenError()


def decode_token(token: str, expected_type: str) -> dict[str, str]:
    """Return the claims of a valid token of ``expected_type``.

    Raises InvalidCredentialsError for a bad access token and
    InvalidRefreshTokenError for a bad refresh token.
    """
    try:
        payload: dict[str, str] = jwt.decode(token, settings.JWT_SECRET, algorithms=[_ALGORITHM])
    except JWTError:
        raise _rejection(expected_type) from None
    if payload.get("type") != expected_type or not payload.get("sub"):
        raise _rejection(expected_type)
    return payload
