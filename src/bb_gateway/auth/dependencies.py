"""Request guards for protected routes.

``get_current_user`` reloads the user row on every call, so a freeze or a role
change applies to the next request rather than at token expiry.
"""

import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_common.database import get_db_session
from src.bb_common.errors import AccountDisabledError, AdminRequiredError, AppError
from src.bb_gateway.auth.jwt_handler import decode_token
from src.bb_gateway.user.db_models import UserModel

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> UserModel:
    """401 for a bad token or a deleted user, AccountDisabledError for a frozen one."""
    try:
        user_id = uuid.UUID(decode_token(token, expected_type="access")["sub"])
    except (AppError, ValueError):
        raise _unauthenticated() from None

    user = await db.get(UserModel, user_id)
    if user is None:
        raise _unauthenticated()
    if user.is_frozen:
        raise AccountDisabledError()
    return user


async def require_admin(
    current_user: Annotated[UserModel, Depends(get_current_user)],
) -> UserModel:
    if not current_user.is_admin:
        raise AdminRequiredError()
    return current_user
