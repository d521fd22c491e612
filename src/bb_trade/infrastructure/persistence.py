"""TradeRepository / BidRepository: raw SQL persistence implementation.

Status moves are single guarded UPDATE ... RETURNING statements: zero rows
back means the guard did not hold (someone else moved the trade first).
"""

import json
from collections.abc import Sequence
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_common.enums import OfferKind, TradeStatus, TradeType
from src.bb_trade.domain.models import (
    AnyRequest,
    Bid,
    BundleOffer,
    ItemStake,
    Offer,
    Party,
    Request,
    SingleOffer,
    SpecificRequest,
    Trade,
)

# ---------------------------------------------------------------------------
# SQL statements: trades
# ---------------------------------------------------------------------------

_TRADE_COLUMNS = """
    id, creator_id, creator_name, taker_id, taker_name,
    offer_kind, offer_items, request_item_id, request_qty, is_any,
    trade_type, status, creator_confirmed, taker_confirmed, version,
    created_at, updated_at, completed_at
"""

_INSERT_TRADE_SQL = text("""
    INSERT INTO trades (id, creator_id, creator_name,
        offer_kind, offer_items, request_item_id, request_qty, is_any,
        trade_type, status)
    VALUES (:id, :creator_id, :creator_name,
        :offer_kind, CAST(:offer_items AS JSONB), :request_item_id, :request_qty, :is_any,
        :trade_type, :status)
""")

_GET_TRADE_SQL = text(f"SELECT {_TRADE_COLUMNS} FROM trades WHERE id = :id")

_GET_TRADE_FOR_UPDATE_SQL = text(
    f"SELECT {_TRADE_COLUMNS} FROM trades WHERE id = :id FOR UPDATE"
)

_GET_TRADE_FOR_SHARE_SQL = text(
    f"SELECT {_TRADE_COLUMNS} FROM trades WHERE id = :id FOR SHARE"
)

_MARK_PENDING_SQL = text(f"""
    UPDATE trades
    SET status = 'PENDING', taker_id = :taker_id, taker_name = :taker_name,
        version = version + 1, updated_at = NOW()
    WHERE id = :id AND status = 'OPEN'
    RETURNING {_TRADE_COLUMNS}
""")

# Accepting a bid also rewrites the request to the winning stake
_MARK_PENDING_WITH_REQUEST_SQL = text(f"""
    UPDATE trades
    SET status = 'PENDING', taker_id = :taker_id, taker_name = :taker_name,
        request_item_id = :request_item_id, request_qty = :request_qty, is_any = FALSE,
        version = version + 1, updated_at = NOW()
    WHERE id = :id AND status = 'OPEN'
    RETURNING {_TRADE_COLUMNS}
""")

_SET_CONFIRMATION_SQL = text(f"""
    UPDATE trades
    SET creator_confirmed = creator_confirmed OR CAST(:is_creator AS BOOLEAN),
        taker_confirmed = taker_confirmed OR NOT CAST(:is_creator AS BOOLEAN),
        version = version + 1, updated_at = NOW()
    WHERE id = :id AND status = 'PENDING'
    RETURNING {_TRADE_COLUMNS}
""")

_MARK_COMPLETED_SQL = text(f"""
    UPDATE trades
    SET status = 'COMPLETED', completed_at = NOW(),
        version = version + 1, updated_at = NOW()
    WHERE id = :id AND status = 'PENDING' AND creator_confirmed AND taker_confirmed
    RETURNING {_TRADE_COLUMNS}
""")

_MARK_CANCELLED_SQL = text(f"""
    UPDATE trades
    SET status = 'CANCELLED', version = version + 1, updated_at = NOW()
    WHERE id = :id AND status = 'OPEN'
    RETURNING {_TRADE_COLUMNS}
""")

# Snowflake ids sort by creation time, so "id < cursor" pages newest-first
_LIST_OPEN_SQL = text(f"""
    SELECT {_TRADE_COLUMNS}
    FROM trades
    WHERE status = 'OPEN'
      AND (CAST(:trade_type AS TEXT) IS NULL OR trade_type = CAST(:trade_type AS TEXT))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_HISTORY_SQL = text(f"""
    SELECT {_TRADE_COLUMNS}
    FROM trades
    WHERE status = 'COMPLETED'
      AND (creator_id = :user_id OR taker_id = :user_id)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_FOR_PARTY_SQL = text(f"""
    SELECT {_TRADE_COLUMNS}
    FROM trades
    WHERE (creator_id = :user_id OR taker_id = :user_id)
      AND status = ANY(CAST(:statuses AS TEXT[]))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_ALL_SQL = text(f"""
    SELECT {_TRADE_COLUMNS}
    FROM trades
    WHERE (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# SQL statements: bids
# ---------------------------------------------------------------------------

_BID_COLUMNS = "id, trade_id, bidder_id, bidder_name, item_id, qty, created_at"

_INSERT_BID_SQL = text("""
    INSERT INTO trade_bids (id, trade_id, bidder_id, bidder_name, item_id, qty)
    VALUES (:id, :trade_id, :bidder_id, :bidder_name, :item_id, :qty)
""")

_GET_BID_SQL = text(f"SELECT {_BID_COLUMNS} FROM trade_bids WHERE id = :id")

_LIST_BIDS_SQL = text(f"""
    SELECT {_BID_COLUMNS}
    FROM trade_bids
    WHERE trade_id = :trade_id
    ORDER BY created_at ASC, id ASC
""")

_DELETE_BID_SQL = text("DELETE FROM trade_bids WHERE id = :id RETURNING id")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _load_items(raw: Any) -> list[dict[str, Any]]:
    # asyncpg hands JSONB back as text unless a codec is registered
    if isinstance(raw, str):
        return json.loads(raw)
    return list(raw)


def _row_to_offer(row: Any) -> Offer:
    stakes = [ItemStake(str(s["item_id"]), int(s["qty"])) for s in _load_items(row.offer_items)]
    if OfferKind(row.offer_kind) == OfferKind.BUNDLE:
        return BundleOffer(tuple(stakes))
    return SingleOffer(stakes[0])


def _row_to_request(row: Any) -> Request:
    if row.is_any:
        return AnyRequest()
    return SpecificRequest(ItemStake(str(row.request_item_id), row.request_qty))


def _row_to_trade(row: Any) -> Trade:
    return Trade(
        id=row.id,
        creator_id=str(row.creator_id),
        creator_name=row.creator_name,
        offer=_row_to_offer(row),
        request=_row_to_request(row),
        trade_type=TradeType(row.trade_type),
        status=TradeStatus(row.status),
        taker_id=str(row.taker_id) if row.taker_id is not None else None,
        taker_name=row.taker_name,
        creator_confirmed=row.creator_confirmed,
        taker_confirmed=row.taker_confirmed,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
        completed_at=row.completed_at,
    )


def _row_to_bid(row: Any) -> Bid:
    return Bid(
        id=row.id,
        trade_id=row.trade_id,
        bidder_id=str(row.bidder_id),
        bidder_name=row.bidder_name,
        item_id=str(row.item_id),
        qty=row.qty,
        created_at=row.created_at,
    )


def _trade_params(trade: Trade) -> dict[str, Any]:
    offer_items = [{"item_id": s.item_id, "qty": s.qty} for s in trade.offer.stakes]
    match trade.request:
        case SpecificRequest(stake=stake):
            request_item_id, request_qty = stake.item_id, stake.qty
        case AnyRequest():
            request_item_id, request_qty = None, None
    return {
        "id": trade.id,
        "creator_id": trade.creator_id,
        "creator_name": trade.creator_name,
        "offer_kind": trade.offer.kind.value,
        "offer_items": json.dumps(offer_items),
        "request_item_id": request_item_id,
        "request_qty": request_qty,
        "is_any": trade.is_any,
        "trade_type": trade.trade_type.value,
        "status": trade.status.value,
    }


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class TradeRepository:
    """Concrete implementation of TradeRepositoryProtocol using raw SQL."""

    async def insert(self, db: AsyncSession, trade: Trade) -> None:
        await db.execute(_INSERT_TRADE_SQL, _trade_params(trade))

    async def get(self, db: AsyncSession, trade_id: str) -> Trade | None:
        return await self._fetch_one(db, _GET_TRADE_SQL, {"id": trade_id})

    async def get_for_update(self, db: AsyncSession, trade_id: str) -> Trade | None:
        return await self._fetch_one(db, _GET_TRADE_FOR_UPDATE_SQL, {"id": trade_id})

    async def get_for_share(self, db: AsyncSession, trade_id: str) -> Trade | None:
        return await self._fetch_one(db, _GET_TRADE_FOR_SHARE_SQL, {"id": trade_id})

    async def mark_pending(
        self,
        db: AsyncSession,
        trade_id: str,
        taker: Party,
        request: Request | None = None,
    ) -> Trade | None:
        params: dict[str, Any] = {
            "id": trade_id,
            "taker_id": taker.user_id,
            "taker_name": taker.name,
        }
        match request:
            case None:
                return await self._fetch_one(db, _MARK_PENDING_SQL, params)
            case SpecificRequest(stake=stake):
                params["request_item_id"] = stake.item_id
                params["request_qty"] = stake.qty
                return await self._fetch_one(db, _MARK_PENDING_WITH_REQUEST_SQL, params)
            case AnyRequest():
                raise ValueError("a pending trade needs a concrete request")

    async def set_confirmation(
        self, db: AsyncSession, trade_id: str, is_creator: bool
    ) -> Trade | None:
        return await self._fetch_one(
            db, _SET_CONFIRMATION_SQL, {"id": trade_id, "is_creator": is_creator}
        )

    async def mark_completed(self, db: AsyncSession, trade_id: str) -> Trade | None:
        return await self._fetch_one(db, _MARK_COMPLETED_SQL, {"id": trade_id})

    async def mark_cancelled(self, db: AsyncSession, trade_id: str) -> Trade | None:
        return await self._fetch_one(db, _MARK_CANCELLED_SQL, {"id": trade_id})

    async def list_open(
        self,
        db: AsyncSession,
        trade_type: TradeType | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Trade]:
        return await self._fetch_all(
            db,
            _LIST_OPEN_SQL,
            {
                "trade_type": trade_type.value if trade_type else None,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )

    async def list_history(
        self, db: AsyncSession, user_id: str, cursor_id: str | None, limit: int
    ) -> list[Trade]:
        return await self._fetch_all(
            db,
            _LIST_HISTORY_SQL,
            {"user_id": user_id, "cursor_id": cursor_id, "limit": limit},
        )

    async def list_for_party(
        self,
        db: AsyncSession,
        user_id: str,
        statuses: Sequence[TradeStatus],
        cursor_id: str | None,
        limit: int,
    ) -> list[Trade]:
        return await self._fetch_all(
            db,
            _LIST_FOR_PARTY_SQL,
            {
                "user_id": user_id,
                "statuses": [s.value for s in statuses],
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )

    async def list_all(
        self,
        db: AsyncSession,
        status: TradeStatus | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Trade]:
        return await self._fetch_all(
            db,
            _LIST_ALL_SQL,
            {
                "status": status.value if status else None,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )

    @staticmethod
    async def _fetch_one(db: AsyncSession, stmt: Any, params: dict[str, Any]) -> Trade | None:
        row = (await db.execute(stmt, params)).fetchone()
        return _row_to_trade(row) if row else None

    @staticmethod
    async def _fetch_all(db: AsyncSession, stmt: Any, params: dict[str, Any]) -> list[Trade]:
        rows = (await db.execute(stmt, params)).fetchall()
        return [_row_to_trade(row) for row in rows]


class BidRepository:
    """Concrete implementation of BidRepositoryProtocol using raw SQL."""

    async def insert(self, db: AsyncSession, bid: Bid) -> None:
        await db.execute(
            _INSERT_BID_SQL,
            {
                "id": bid.id,
                "trade_id": bid.trade_id,
                "bidder_id": bid.bidder_id,
                "bidder_name": bid.bidder_name,
                "item_id": bid.item_id,
                "qty": bid.qty,
            },
        )

    async def get(self, db: AsyncSession, bid_id: str) -> Bid | None:
        row = (await db.execute(_GET_BID_SQL, {"id": bid_id})).fetchone()
        return _row_to_bid(row) if row else None

    async def list_for_trade(self, db: AsyncSession, trade_id: str) -> list[Bid]:
        rows = (await db.execute(_LIST_BIDS_SQL, {"trade_id": trade_id})).fetchall()
        return [_row_to_bid(row) for row in rows]

    async def delete(self, db: AsyncSession, bid_id: str) -> bool:
        row = (await db.execute(_DELETE_BID_SQL, {"id": bid_id})).fetchone()
        return row is not None
