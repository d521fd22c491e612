"""bb_trade REST API: trades, auctions and bids. All endpoints require JWT."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_common.database import get_db_session
from src.bb_common.enums import TradeStatus, TradeType
from src.bb_common.response import ApiResponse, success_response
from src.bb_gateway.auth.dependencies import get_current_user
from src.bb_gateway.user.db_models import UserModel
from src.bb_trade.application import service as svc
from src.bb_trade.application.schemas import CreateTradeRequest, PlaceBidRequest
from src.bb_trade.domain.models import Party

router = APIRouter(prefix="/trades", tags=["trades"])

CurrentUser = Annotated[UserModel, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def _party(user: UserModel) -> Party:
    return Party(user_id=str(user.id), name=user.display_name)


def _respond(request: Request, data: object, message: str = "success") -> ApiResponse:
    return success_response(data, message=message, request=request)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
async def create_trade(
    body: CreateTradeRequest, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    data = await svc.create_trade(body, _party(current_user), db)
    return _respond(request, data.model_dump(mode="json"), "Trade created")


@router.get("", response_model=ApiResponse)
async def list_open_trades(
    _current_user: CurrentUser,
    db: DbSession,
    request: Request,
    trade_type: TradeType | None = Query(None, description="FIXED or AUCTION"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await svc.list_open_trades(trade_type, cursor, limit, db)
    return _respond(request, data.model_dump(mode="json"))


@router.get("/history", response_model=ApiResponse)
async def list_trade_history(
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await svc.list_trade_history(str(current_user.id), cursor, limit, db)
    return _respond(request, data.model_dump(mode="json"))


@router.get("/mine", response_model=ApiResponse)
async def list_my_trades(
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
    status: TradeStatus | None = Query(None, description="Defaults to OPEN and PENDING"),
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
) -> ApiResponse:
    data = await svc.list_my_trades(str(current_user.id), status, cursor, limit, db)
    return _respond(request, data.model_dump(mode="json"))


@router.get("/{trade_id}", response_model=ApiResponse)
async def get_trade(
    trade_id: str, _current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    data = await svc.get_trade(trade_id, db)
    return _respond(request, data.model_dump(mode="json"))


@router.post("/{trade_id}/accept", response_model=ApiResponse)
async def accept_trade(
    trade_id: str, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    data = await svc.accept_trade(trade_id, _party(current_user), db)
    return _respond(request, data.model_dump(mode="json"), "Trade accepted")


@router.post("/{trade_id}/confirm", response_model=ApiResponse)
async def confirm_trade(
    trade_id: str, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    data = await svc.confirm_trade(trade_id, str(current_user.id), db)
    message = "Trade completed" if data.outcome == "completed" else "Waiting for the other party"
    return _respond(request, data.model_dump(mode="json"), message)


@router.post("/{trade_id}/cancel", response_model=ApiResponse)
async def cancel_trade(
    trade_id: str, current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    data = await svc.cancel_trade(trade_id, str(current_user.id), db)
    return _respond(request, data.model_dump(mode="json"), "Trade cancelled")


@router.get("/{trade_id}/bids", response_model=ApiResponse)
async def list_bids(
    trade_id: str, _current_user: CurrentUser, db: DbSession, request: Request
) -> ApiResponse:
    bids = await svc.list_bids(trade_id, db)
    return _respond(request, [b.model_dump(mode="json") for b in bids])


@router.post("/{trade_id}/bids", status_code=status.HTTP_201_CREATED, response_model=ApiResponse)
async def place_bid(
    trade_id: str,
    body: PlaceBidRequest,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await svc.place_bid(trade_id, body, _party(current_user), db)
    return _respond(request, data.model_dump(mode="json"), "Bid placed")


@router.post("/{trade_id}/bids/{bid_id}/accept", response_model=ApiResponse)
async def accept_bid(
    trade_id: str,
    bid_id: str,
    current_user: CurrentUser,
    db: DbSession,
    request: Request,
) -> ApiResponse:
    data = await svc.accept_bid(trade_id, bid_id, str(current_user.id), db)
    return _respond(request, data.model_dump(mode="json"), "Bid accepted")
