"""bb_inventory REST API: all endpoints require JWT authentication."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_common.database import get_db_session
from src.bb_common.response import ApiResponse, success_response
from src.bb_gateway.auth.dependencies import get_current_user
from src.bb_gateway.user.db_models import UserModel
from src.bb_inventory.application.schemas import AdjustInventoryRequest
from src.bb_inventory.application.service import InventoryApplicationService

router = APIRouter(prefix="/inventory", tags=["inventory"])

_service = InventoryApplicationService()


@router.get("")
async def get_my_inventory(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_inventory(db, str(current_user.id))
    return success_response(data.model_dump(), request=request)


@router.get("/ledger")
async def list_ledger(
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    item_id: str | None = Query(None, description="Filter by item"),
) -> ApiResponse:
    data = await _service.list_ledger(db, str(current_user.id), cursor, limit, item_id)
    return success_response(data.model_dump(), request=request)


@router.post("/adjust")
async def adjust_inventory(
    body: AdjustInventoryRequest,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.adjust_inventory(db, str(current_user.id), body.item_id, body.delta)
    return success_response(data.model_dump(), request=request)


@router.get("/{user_id}")
async def get_user_inventory(
    user_id: str,
    _current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    """Stashes are public to every signed-in trader."""
    data = await _service.get_inventory(db, user_id)
    return success_response(data.model_dump(), request=request)


@router.get("/{user_id}/{item_id}")
async def get_balance(
    user_id: str,
    item_id: str,
    _current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, user_id, item_id)
    return success_response(data.model_dump(), request=request)
