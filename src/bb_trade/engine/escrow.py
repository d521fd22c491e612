"""BidEscrow: reserves bid stakes through the inventory ledger.

A bid row is the receipt for its reservation: the stake goes back to the
bidder only by the caller whose DELETE removed that row, so two concurrent
releases of the same bid cannot both refund it.
"""

import logging
from functools import partial

from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_common.datetime_utils import utc_now
from src.bb_common.enums import InventoryEntryType
from src.bb_common.id_generator import new_bid_id
from src.bb_inventory.domain.repository import InventoryLedgerProtocol
from src.bb_trade.domain.models import Bid, ItemStake, Party
from src.bb_trade.domain.repository import BidRepositoryProtocol
from src.bb_trade.domain.saga import Saga

logger = logging.getLogger(__name__)


class BidEscrow:
    def __init__(self, ledger: InventoryLedgerProtocol, bids: BidRepositoryProtocol) -> None:
        self._ledger = ledger
        self._bids = bids

    async def reserve(
        self, db: AsyncSession, trade_id: str, bidder: Party, stake: ItemStake
    ) -> Bid:
        """Debit the bidder, then record the bid; the debit is refunded if the insert fails."""
        bid = Bid(
            id=new_bid_id(),
            trade_id=trade_id,
            bidder_id=bidder.user_id,
            bidder_name=bidder.name,
            item_id=stake.item_id,
            qty=stake.qty,
            created_at=utc_now(),
        )
        saga = Saga(f"place bid {bid.id}")
        try:
            async with db.begin_nested():
                await self._ledger.adjust(
                    db,
                    bidder.user_id,
                    stake.item_id,
                    -stake.qty,
                    InventoryEntryType.BID_RESERVE,
                    reference_type="BID",
                    reference_id=bid.id,
                    description=f"Bid on trade {trade_id}",
                )
            saga.on_rollback(
                f"refund {stake.qty} of item {stake.item_id} to {bidder.user_id}",
                partial(self._refund, db, bid, "Bid could not be recorded"),
            )
            async with db.begin_nested():
                await self._bids.insert(db, bid)
        except Exception as exc:
            await saga.compensate(exc)
            raise
        return bid

    async def release(self, db: AsyncSession, bid: Bid, reason: str) -> bool:
        """Delete the bid and refund its stake. False if it was already released."""
        async with db.begin_nested():
            if not await self._bids.delete(db, bid.id):
                return False
            await self._refund(db, bid, reason)
        return True

    async def restore(self, db: AsyncSession, bid: Bid) -> None:
        """Inverse of ``release``: take the stake again and put the row back."""
        async with db.begin_nested():
            await self._ledger.adjust(
                db,
                bid.bidder_id,
                bid.item_id,
                -bid.qty,
                InventoryEntryType.BID_RESERVE,
                reference_type="BID",
                reference_id=bid.id,
                description="Bid restored after failed cancellation",
            )
            await self._bids.insert(db, bid)

    async def release_all(
        self, db: AsyncSession, trade_id: str, reason: str, saga: Saga | None = None
    ) -> list[Bid]:
        """Release every bid on the trade; failures propagate to the caller."""
        released: list[Bid] = []
        for bid in await self._bids.list_for_trade(db, trade_id):
            if await self.release(db, bid, reason):
                released.append(bid)
                if saga is not None:
                    saga.on_rollback(f"restore bid {bid.id}", partial(self.restore, db, bid))
        return released

    async def refund_losers(
        self, db: AsyncSession, losers: list[Bid]
    ) -> tuple[list[Bid], list[str]]:
        """Release each losing bid in its own savepoint.

        A failed refund leaves that bid row in place and is reported back by id;
        the remaining bids are still attempted.
        """
        refunded: list[Bid] = []
        unrefunded: list[str] = []
        for bid in losers:
            try:
                if await self.release(db, bid, f"Outbid on trade {bid.trade_id}"):
                    refunded.append(bid)
            except Exception as exc:
                logger.error(
                    "Refund of losing bid %s on trade %s failed, bid kept for reconciliation: %s",
                    bid.id,
                    bid.trade_id,
                    exc,
                )
                unrefunded.append(bid.id)
        return refunded, unrefunded

    async def _refund(self, db: AsyncSession, bid: Bid, reason: str) -> None:
        await self._ledger.adjust(
            db,
            bid.bidder_id,
            bid.item_id,
            bid.qty,
            InventoryEntryType.BID_REFUND,
            reference_type="BID",
            reference_id=bid.id,
            description=reason,
        )
