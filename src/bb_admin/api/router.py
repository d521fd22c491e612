"""Admin REST API: every endpoint requires the ADMIN role."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_admin.application.service import AdminService
from src.bb_common.database import get_db_session
from src.bb_common.enums import TradeStatus
from src.bb_common.response import ApiResponse, success_response
from src.bb_gateway.auth.dependencies import require_admin
from src.bb_gateway.user.db_models import UserModel
from src.bb_inventory.application.schemas import SetInventoryRequest

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()

AdminUser = Annotated[UserModel, Depends(require_admin)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def _respond(request: Request, data: object) -> ApiResponse:
    return success_response(data, request=request)


@router.get("/users")
async def list_users(_admin: AdminUser, db: DbSession, request: Request) -> ApiResponse:
    return _respond(request, await _service.list_users(db))


@router.post("/users/{user_id}/freeze")
async def toggle_freeze(
    user_id: str, _admin: AdminUser, db: DbSession, request: Request
) -> ApiResponse:
    return _respond(request, await _service.toggle_freeze(user_id, db))


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str, admin: AdminUser, db: DbSession, request: Request
) -> ApiResponse:
    return _respond(request, await _service.delete_user(user_id, str(admin.id), db))


@router.put("/inventory/{user_id}/{item_id}")
async def set_inventory(
    user_id: str,
    item_id: str,
    body: SetInventoryRequest,
    admin: AdminUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await _service.set_inventory(user_id, item_id, body.quantity, str(admin.id), db)
    return _respond(request, data.model_dump())


@router.get("/trades")
async def list_all_trades(
    _admin: AdminUser,
    db: DbSession,
    request: Request,
    status: TradeStatus | None = Query(None, description="Filter by trade status"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await _service.list_all_trades(status, cursor, limit, db)
    return _respond(request, data.model_dump(mode="json"))


@router.post("/trades/{trade_id}/release-bids")
async def release_stale_bids(
    trade_id: str, _admin: AdminUser, db: DbSession, request: Request
) -> ApiResponse:
    data = await _service.release_stale_bids(trade_id, db)
    return _respond(request, data.model_dump())


@router.get("/invariants")
async def verify_invariants(_admin: AdminUser, db: DbSession, request: Request) -> ApiResponse:
    return _respond(request, await _service.verify_invariants(db))
