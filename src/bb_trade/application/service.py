"""bb_trade application service: maps API payloads onto the lifecycle engine."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_common.enums import ACTIVE_TRADE_STATUSES, TradeStatus, TradeType
from src.bb_trade.application.schemas import (
    AcceptBidResponse,
    BidResponse,
    ConfirmTradeResponse,
    CreateTradeRequest,
    PlaceBidRequest,
    ReleaseBidsResponse,
    TradeListResponse,
    TradeResponse,
    cursor_decode,
    cursor_encode,
)
from src.bb_trade.domain.models import Party, Trade
from src.bb_trade.engine.lifecycle import TradeLifecycleEngine

_engine: TradeLifecycleEngine | None = None


def get_trade_engine() -> TradeLifecycleEngine:
    """Process-wide engine; its per-trade locks only work if it is shared."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = TradeLifecycleEngine()
    return _engine


def _page(trades: list[Trade], limit: int) -> TradeListResponse:
    # Callers fetch limit+1 rows to detect has_more without COUNT(*)
    has_more = len(trades) > limit
    page = trades[:limit]
    return TradeListResponse(
        items=[TradeResponse.from_domain(t) for t in page],
        next_cursor=cursor_encode(page[-1].id) if has_more and page else None,
        has_more=has_more,
    )


async def create_trade(req: CreateTradeRequest, creator: Party, db: AsyncSession) -> TradeResponse:
    offer, request = req.to_terms()
    trade = await get_trade_engine().create_trade(db, creator, offer, request, req.trade_type)
    return TradeResponse.from_domain(trade)


async def accept_trade(trade_id: str, taker: Party, db: AsyncSession) -> TradeResponse:
    trade = await get_trade_engine().accept_trade(db, trade_id, taker)
    return TradeResponse.from_domain(trade)


async def confirm_trade(trade_id: str, user_id: str, db: AsyncSession) -> ConfirmTradeResponse:
    result = await get_trade_engine().confirm_trade(db, trade_id, user_id)
    return ConfirmTradeResponse.from_domain(result)


async def cancel_trade(trade_id: str, user_id: str, db: AsyncSession) -> TradeResponse:
    trade = await get_trade_engine().cancel_trade(db, trade_id, user_id)
    return TradeResponse.from_domain(trade)


async def place_bid(
    trade_id: str, req: PlaceBidRequest, bidder: Party, db: AsyncSession
) -> BidResponse:
    bid = await get_trade_engine().place_bid(db, trade_id, bidder, req.item_id, req.qty)
    return BidResponse.from_domain(bid)


async def accept_bid(
    trade_id: str, bid_id: str, creator_id: str, db: AsyncSession
) -> AcceptBidResponse:
    result = await get_trade_engine().accept_bid(db, trade_id, bid_id, creator_id)
    return AcceptBidResponse.from_domain(result)


async def get_trade(trade_id: str, db: AsyncSession) -> TradeResponse:
    return TradeResponse.from_domain(await get_trade_engine().get_trade(db, trade_id))


async def list_open_trades(
    trade_type: TradeType | None, cursor: str | None, limit: int, db: AsyncSession
) -> TradeListResponse:
    trades = await get_trade_engine().list_open_trades(
        db, trade_type, cursor_decode(cursor), limit + 1
    )
    return _page(trades, limit)


async def list_bids(trade_id: str, db: AsyncSession) -> list[BidResponse]:
    bids = await get_trade_engine().list_bids_for_trade(db, trade_id)
    return [BidResponse.from_domain(b) for b in bids]


async def list_trade_history(
    user_id: str, cursor: str | None, limit: int, db: AsyncSession
) -> TradeListResponse:
    trades = await get_trade_engine().list_trade_history(
        db, user_id, cursor_decode(cursor), limit + 1
    )
    return _page(trades, limit)


async def list_my_trades(
    user_id: str,
    status: TradeStatus | None,
    cursor: str | None,
    limit: int,
    db: AsyncSession,
) -> TradeListResponse:
    """Without ``status``: the caller's OPEN and PENDING trades."""
    statuses = (status,) if status is not None else ACTIVE_TRADE_STATUSES
    trades = await get_trade_engine().list_party_trades(
        db, user_id, statuses, cursor_decode(cursor), limit + 1
    )
    return _page(trades, limit)


async def list_all_trades(
    status: TradeStatus | None, cursor: str | None, limit: int, db: AsyncSession
) -> TradeListResponse:
    trades = await get_trade_engine().list_all_trades(
        db, status, cursor_decode(cursor), limit + 1
    )
    return _page(trades, limit)


async def release_stale_bids(trade_id: str, db: AsyncSession) -> ReleaseBidsResponse:
    released = await get_trade_engine().release_stale_bids(db, trade_id)
    return ReleaseBidsResponse(trade_id=trade_id, released_bid_ids=released)
