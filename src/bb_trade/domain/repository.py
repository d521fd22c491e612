"""Trade and bid repository Protocols: interface contract for persistence.

Status-changing methods are compare-and-swap writes: they return the updated
Trade when the guard held and None when it did not. They never read first and
write second.
"""

from collections.abc import Sequence
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_common.enums import TradeStatus, TradeType
from src.bb_trade.domain.models import Bid, Party, Request, Trade


class TradeRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, trade: Trade) -> None: ...

    async def get(self, db: AsyncSession, trade_id: str) -> Trade | None: ...

    async def get_for_update(self, db: AsyncSession, trade_id: str) -> Trade | None: ...

    async def get_for_share(self, db: AsyncSession, trade_id: str) -> Trade | None: ...

    async def mark_pending(
        self,
        db: AsyncSession,
        trade_id: str,
        taker: Party,
        request: Request | None = None,
    ) -> Trade | None:
        """OPEN -> PENDING with taker set; ``request`` replaces the stored one when given."""
        ...

    async def set_confirmation(
        self, db: AsyncSession, trade_id: str, is_creator: bool
    ) -> Trade | None:
        """Raise the caller's flag, guarded on PENDING."""
        ...

    async def mark_completed(self, db: AsyncSession, trade_id: str) -> Trade | None:
        """PENDING -> COMPLETED, guarded on both flags being set."""
        ...

    async def mark_cancelled(self, db: AsyncSession, trade_id: str) -> Trade | None: ...

    async def list_open(
        self,
        db: AsyncSession,
        trade_type: TradeType | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Trade]: ...

    async def list_history(
        self, db: AsyncSession, user_id: str, cursor_id: str | None, limit: int
    ) -> list[Trade]: ...

    async def list_for_party(
        self,
        db: AsyncSession,
        user_id: str,
        statuses: Sequence[TradeStatus],
        cursor_id: str | None,
        limit: int,
    ) -> list[Trade]: ...

    async def list_all(
        self,
        db: AsyncSession,
        status: TradeStatus | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Trade]: ...


class BidRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, bid: Bid) -> None: ...

    async def get(self, db: AsyncSession, bid_id: str) -> Bid | None: ...

    async def list_for_trade(self, db: AsyncSession, trade_id: str) -> list[Bid]: ...

    async def delete(self, db: AsyncSession, bid_id: str) -> bool:
        """True only for the caller whose DELETE removed the row."""
        ...
