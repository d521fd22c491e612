"""User service: register, login, refresh, freeze toggle, deletion.

Transactions are managed by the caller (router layer) via ``async with db.begin()``
or an explicit commit.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_common.enums import UserRole
from src.bb_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    UserNotFoundError,
    UsernameExistsError,
)
from src.bb_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.bb_gateway.auth.password import hash_password, verify_password
from src.bb_gateway.user.db_models import UserModel
from src.bb_gateway.user.schemas import UserInfo

logger = logging.getLogger(__name__)


def to_user_info(user: UserModel) -> UserInfo:
    return UserInfo(
        user_id=str(user.id),
        username=user.username,
        display_name=user.display_name,
        email=user.email,
        role=user.role,
        is_frozen=user.is_frozen,
    )


class UserService:
    """Stateless service. Instantiate once, reuse across requests."""

    async def register(
        self,
        username: str,
        display_name: str,
        email: str,
        password: str,
        db: AsyncSession,
    ) -> UserModel:
        # DB UNIQUE constraints are the final guard
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        if result.scalar_one_or_none() is not None:
            raise UsernameExistsError()

        result = await db.execute(select(UserModel).where(UserModel.email == email))
        if result.scalar_one_or_none() is not None:
            raise EmailExistsError()

        user = UserModel(
            username=username,
            display_name=display_name,
            email=email,
            password_hash=hash_password(password),
            role=UserRole.USER.value,
            is_frozen=False,
        )
        db.add(user)
        await db.flush()
        logger.info("User registered: id=%s username=%s", user.id, username)
        return user

    async def login(
        self,
        username: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[UserModel, str, str]:
        """Return (user, access_token, refresh_token).

        Unknown user and wrong password raise the same InvalidCredentialsError.
        """
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        if user.is_frozen:
            raise AccountDisabledError()

        return (
            user,
            create_access_token(str(user.id), user.role),
            create_refresh_token(str(user.id)),
        )

    async def refresh(self, refresh_token: str, db: AsyncSession) -> str:
        """New access token for a valid refresh token of a still-active user."""
        payload = decode_token(refresh_token, expected_type="refresh")
        try:
            user_id = uuid.UUID(payload["sub"])
        except ValueError:
            raise InvalidRefreshTokenError() from None
        user = await db.get(UserModel, user_id)
        if user is None:
            raise InvalidRefreshTokenError()
        if user.is_frozen:
            raise AccountDisabledError()
        return create_access_token(str(user.id), user.role)

    async def get_user(self, user_id: str, db: AsyncSession) -> UserModel:
        try:
            key = uuid.UUID(user_id)
        except ValueError:
            raise UserNotFoundError(user_id) from None
        user = await db.get(UserModel, key)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def toggle_freeze(self, user_id: str, db: AsyncSession) -> UserModel:
        """Flip ``is_frozen``. Frozen users keep their stash but cannot sign in."""
        user = await self.get_user(user_id, db)
        user.is_frozen = not user.is_frozen
        await db.flush()
        logger.info("User %s: id=%s", "frozen" if user.is_frozen else "unfrozen", user.id)
        return user

    async def delete_user(self, user: UserModel, db: AsyncSession) -> None:
        await db.delete(user)
        await db.flush()
        logger.info("User deleted: id=%s username=%s", user.id, user.username)

    async def list_users(self, db: AsyncSession) -> list[UserModel]:
        """Every user, administrators first, then by username."""
        result = await db.execute(
            select(UserModel).order_by(
                (UserModel.role == UserRole.ADMIN.value).desc(), UserModel.username
            )
        )
        return list(result.scalars().all())
