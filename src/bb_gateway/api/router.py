"""Auth API: register, login, refresh, me."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.bb_common.database import get_db_session
from src.bb_common.response import ApiResponse, success_response
from src.bb_gateway.auth.dependencies import get_current_user
from src.bb_gateway.user.db_models import UserModel
from src.bb_gateway.user.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
)
from src.bb_gateway.user.service import UserService, to_user_info

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()

DbSession = Annotated[AsyncSession, Depends(get_db_session)]

_ACCESS_TTL_SECONDS = settings.JWT_EXPIRE_MINUTES * 60


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
async def register(body: RegisterRequest, db: DbSession, request: Request) -> ApiResponse:
    async with db.begin():
        user = await _service.register(
            body.username, body.display_name, body.email, body.password, db
        )
    return success_response(
        to_user_info(user).model_dump(), message="Welcome to the barter", request=request
    )


@router.post("/login", response_model=ApiResponse)
async def login(body: LoginRequest, db: DbSession, request: Request) -> ApiResponse:
    user, access, refresh = await _service.login(body.username, body.password, db)
    data = LoginResponse(
        access_token=access,
        refresh_token=refresh,
        token_type="Bearer",
        expires_in=_ACCESS_TTL_SECONDS,
        user=to_user_info(user),
    )
    return success_response(data.model_dump(), message="Signed in", request=request)


@router.post("/refresh", response_model=ApiResponse)
async def refresh(body: RefreshRequest, db: DbSession, request: Request) -> ApiResponse:
    access = await _service.refresh(body.refresh_token, db)
    data = RefreshResponse(access_token=access, expires_in=_ACCESS_TTL_SECONDS)
    return success_response(data.model_dump(), message="Token refreshed", request=request)


@router.get("/me", response_model=ApiResponse)
async def me(
    current_user: Annotated[UserModel, Depends(get_current_user)], request: Request
) -> ApiResponse:
    return success_response(to_user_info(current_user).model_dump(), request=request)
