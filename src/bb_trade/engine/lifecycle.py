"""TradeLifecycleEngine: orchestrates trades and bids over the inventory ledger.

Concurrency model:
  - one asyncio.Lock per trade id serialises engine calls on the same trade
    inside this process;
  - across processes the storage guards decide: conditional ledger debits,
    compare-and-swap status writes, FOR UPDATE / FOR SHARE row locks;
  - every public mutation is one transaction; accept_bid adds a second,
    separately committed refund phase for the losing bids.

Ledger moves inside an operation run in savepoints and register their inverse
on a Saga, so a later failure hands every reserved unit back.
"""

import asyncio
import logging
import weakref
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from functools import partial

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_catalog.domain.repository import CatalogRepositoryProtocol
from src.bb_catalog.infrastructure.persistence import CatalogRepository
from src.bb_common.database import is_storage_conflict
from src.bb_common.datetime_utils import utc_now
from src.bb_common.enums import (
    ACTIVE_TRADE_STATUSES,
    ConfirmOutcome,
    InventoryEntryType,
    TradeEvent,
    TradeStatus,
    TradeType,
)
from src.bb_common.errors import (
    AppError,
    BidNotFoundError,
    InternalError,
    InvalidTradeRequestError,
    InvalidTradeStateError,
    NotTradePartyError,
    SelfTradeRejectedError,
    StorageConflictError,
    TradeNotFoundError,
    TradeTypeMismatchError,
)
from src.bb_common.events import (
    ChangeEvent,
    ChangePublisherProtocol,
    RedisChangePublisher,
    bid_changed,
    inventory_changed,
    trade_changed,
)
from src.bb_common.id_generator import new_trade_id
from src.bb_common.quantity import MAX_QUANTITY, exceeds_column
from src.bb_inventory.domain.repository import InventoryLedgerProtocol
from src.bb_inventory.infrastructure.persistence import InventoryRepository
from src.bb_trade.domain.models import (
    AcceptBidResult,
    AnyRequest,
    Bid,
    ConfirmResult,
    ItemStake,
    Offer,
    Party,
    Request,
    SpecificRequest,
    Trade,
    referenced_item_ids,
    validate_terms,
)
from src.bb_trade.domain.repository import BidRepositoryProtocol, TradeRepositoryProtocol
from src.bb_trade.domain.saga import Saga
from src.bb_trade.domain.state_machine import next_status
from src.bb_trade.engine.escrow import BidEscrow
from src.bb_trade.infrastructure.persistence import BidRepository, TradeRepository

logger = logging.getLogger(__name__)


class TradeLifecycleEngine:
    def __init__(
        self,
        trades: TradeRepositoryProtocol | None = None,
        bids: BidRepositoryProtocol | None = None,
        ledger: InventoryLedgerProtocol | None = None,
        catalog: CatalogRepositoryProtocol | None = None,
        publisher: ChangePublisherProtocol | None = None,
    ) -> None:
        self._trades: TradeRepositoryProtocol = trades or TradeRepository()
        self._bids: BidRepositoryProtocol = bids or BidRepository()
        self._ledger: InventoryLedgerProtocol = ledger or InventoryRepository()
        self._catalog: CatalogRepositoryProtocol = catalog or CatalogRepository()
        self._publisher: ChangePublisherProtocol = publisher or RedisChangePublisher()
        self._escrow = BidEscrow(self._ledger, self._bids)
        # Held only while a call on that trade is running or waiting
        self._trade_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    # ------------------------------------------------------------------
    # Trade operations
    # ------------------------------------------------------------------

    async def create_trade(
        self,
        db: AsyncSession,
        creator: Party,
        offer: Offer,
        request: Request,
        trade_type: TradeType,
    ) -> Trade:
        """Reserve every offered stake and list the trade as OPEN.

        A bundle is all-or-nothing: if any stake cannot be debited the ones
        already taken are handed back before the error surfaces.
        """
        validate_terms(offer, request, trade_type)
        now = utc_now()
        trade = Trade(
            id=new_trade_id(),
            creator_id=creator.user_id,
            creator_name=creator.name,
            offer=offer,
            request=request,
            trade_type=trade_type,
            status=TradeStatus.OPEN,
            created_at=now,
            updated_at=now,
        )
        async with self._transaction(db, "create", trade.id):
            await self._catalog.require_items(db, referenced_item_ids(offer, request))
            saga = Saga(f"create trade {trade.id}")
            try:
                for stake in offer.stakes:
                    await self._move(
                        db, creator.user_id, stake, -1,
                        InventoryEntryType.TRADE_RESERVE, trade.id, "Offered in trade",
                    )
                    saga.on_rollback(
                        f"release {stake.qty} of item {stake.item_id} to {creator.user_id}",
                        partial(
                            self._move, db, creator.user_id, stake, 1,
                            InventoryEntryType.TRADE_RELEASE, trade.id, "Trade creation failed",
                        ),
                    )
                async with db.begin_nested():
                    await self._trades.insert(db, trade)
            except Exception as exc:
                await saga.compensate(exc)
                raise

        logger.info(
            "Trade created: id=%s type=%s creator=%s offer=%s",
            trade.id,
            trade.trade_type.value,
            creator.user_id,
            _describe(offer.stakes),
        )
        await self._publish(
            trade_changed(trade.id, "TRADE_CREATED"),
            *(inventory_changed(creator.user_id, s.item_id) for s in offer.stakes),
        )
        return trade

    async def accept_trade(self, db: AsyncSession, trade_id: str, taker: Party) -> Trade:
        """Reserve the taker's counter-stake and move a FIXED trade OPEN -> PENDING."""
        async with self._lock(trade_id), self._transaction(db, "accept", trade_id):
            trade = await self._require_trade(db, trade_id)
            if trade.trade_type != TradeType.FIXED:
                raise TradeTypeMismatchError(trade_id, trade.trade_type.value, "accept")
            next_status(trade_id, trade.status, TradeEvent.ACCEPT)
            if taker.user_id == trade.creator_id:
                raise SelfTradeRejectedError()
            stake = _request_stake(trade)

            saga = Saga(f"accept trade {trade_id}")
            try:
                await self._move(
                    db, taker.user_id, stake, -1,
                    InventoryEntryType.TAKER_RESERVE, trade_id, "Committed to trade",
                )
                saga.on_rollback(
                    f"release {stake.qty} of item {stake.item_id} to {taker.user_id}",
                    partial(
                        self._move, db, taker.user_id, stake, 1,
                        InventoryEntryType.TAKER_RELEASE, trade_id, "Accept rejected",
                    ),
                )
                async with db.begin_nested():
                    updated = await self._trades.mark_pending(db, trade_id, taker)
                if updated is None:
                    raise await self._guard_failure(db, trade_id, TradeStatus.OPEN, "accept")
            except Exception as exc:
                await saga.compensate(exc)
                raise

        logger.info("Trade accepted: id=%s taker=%s -> PENDING", trade_id, taker.user_id)
        await self._publish(
            trade_changed(trade_id, "TRADE_ACCEPTED"),
            inventory_changed(taker.user_id, stake.item_id),
        )
        return updated

    async def confirm_trade(self, db: AsyncSession, trade_id: str, user_id: str) -> ConfirmResult:
        """Record the caller's confirmation; the second one completes the swap exactly once."""
        swapped = False
        async with self._lock(trade_id), self._transaction(db, "confirm", trade_id):
            trade = await self._require_trade(db, trade_id)
            next_status(trade_id, trade.status, TradeEvent.CONFIRM_ONE)
            if not trade.is_party(user_id):
                raise NotTradePartyError(trade_id, "confirm")

            flagged = await self._trades.set_confirmation(
                db, trade_id, is_creator=user_id == trade.creator_id
            )
            if flagged is None:
                raise await self._guard_failure(db, trade_id, TradeStatus.PENDING, "confirm")

            if not flagged.both_confirmed:
                result = ConfirmResult(ConfirmOutcome.WAITING, flagged)
            else:
                next_status(trade_id, flagged.status, TradeEvent.CONFIRM_BOTH)
                completed = await self._trades.mark_completed(db, trade_id)
                if completed is None:
                    # The other party's transition won and performed the swap
                    current = await self._require_trade(db, trade_id)
                    if current.status != TradeStatus.COMPLETED:
                        raise StorageConflictError(f"confirm trade {trade_id}")
                    result = ConfirmResult(ConfirmOutcome.COMPLETED, current)
                else:
                    await self._settle(db, completed)
                    swapped = True
                    result = ConfirmResult(ConfirmOutcome.COMPLETED, completed)

        if not swapped:
            logger.info(
                "Trade confirmed: id=%s by=%s -> %s", trade_id, user_id, result.outcome.value
            )
            await self._publish(trade_changed(trade_id, "TRADE_CONFIRMED"))
            return result

        done = result.trade
        logger.info(
            "Trade completed: id=%s creator=%s taker=%s", trade_id, done.creator_id, done.taker_id
        )
        events = [trade_changed(trade_id, "TRADE_COMPLETED")]
        events.append(inventory_changed(done.creator_id, _request_stake(done).item_id))
        events.extend(inventory_changed(str(done.taker_id), s.item_id) for s in done.offer.stakes)
        await self._publish(*events)
        return result

    async def cancel_trade(self, db: AsyncSession, trade_id: str, user_id: str) -> Trade:
        """Creator withdraws an OPEN trade: offer and every outstanding bid are refunded."""
        async with self._lock(trade_id), self._transaction(db, "cancel", trade_id):
            trade = await self._trades.get_for_update(db, trade_id)
            if trade is None:
                raise TradeNotFoundError(trade_id)
            if user_id != trade.creator_id:
                raise NotTradePartyError(trade_id, "cancel")
            next_status(trade_id, trade.status, TradeEvent.CANCEL)

            cancelled = await self._trades.mark_cancelled(db, trade_id)
            if cancelled is None:
                raise await self._guard_failure(db, trade_id, TradeStatus.OPEN, "cancel")

            saga = Saga(f"cancel trade {trade_id}")
            try:
                for stake in trade.offer.stakes:
                    await self._move(
                        db, trade.creator_id, stake, 1,
                        InventoryEntryType.TRADE_RELEASE, trade_id, "Trade cancelled",
                    )
                    saga.on_rollback(
                        f"re-reserve {stake.qty} of item {stake.item_id} from {trade.creator_id}",
                        partial(
                            self._move, db, trade.creator_id, stake, -1,
                            InventoryEntryType.TRADE_RESERVE, trade_id, "Cancellation reversed",
                        ),
                    )
                released = await self._escrow.release_all(
                    db, trade_id, f"Trade {trade_id} cancelled", saga
                )
            except Exception as exc:
                await saga.compensate(exc)
                raise

        logger.info("Trade cancelled: id=%s bids_refunded=%d", trade_id, len(released))
        await self._publish(
            trade_changed(trade_id, "TRADE_CANCELLED"),
            *(inventory_changed(trade.creator_id, s.item_id) for s in trade.offer.stakes),
            *_bid_events(released, "BID_REFUNDED"),
        )
        return cancelled

    # ------------------------------------------------------------------
    # Auction operations
    # ------------------------------------------------------------------

    async def place_bid(
        self, db: AsyncSession, trade_id: str, bidder: Party, item_id: str, qty: int
    ) -> Bid:
        if qty <= 0:
            raise InvalidTradeRequestError("bid quantity must be positive")
        if exceeds_column(qty):
            raise InvalidTradeRequestError(f"bid quantity exceeds {MAX_QUANTITY}")
        async with self._lock(trade_id), self._transaction(db, "bid on", trade_id):
            # Share lock: a concurrent cancel / accept-bid waits for this bid
            trade = await self._trades.get_for_share(db, trade_id)
            if trade is None:
                raise TradeNotFoundError(trade_id)
            if trade.trade_type != TradeType.AUCTION:
                raise TradeTypeMismatchError(trade_id, trade.trade_type.value, "bid on")
            if trade.status != TradeStatus.OPEN:
                raise InvalidTradeStateError(trade_id, trade.status.value, "bid on")
            if bidder.user_id == trade.creator_id:
                raise SelfTradeRejectedError()
            await self._catalog.require_items(db, [item_id])
            bid = await self._escrow.reserve(db, trade_id, bidder, ItemStake(item_id, qty))

        logger.info(
            "Bid placed: id=%s trade=%s bidder=%s stake=%dx%s",
            bid.id,
            trade_id,
            bidder.user_id,
            qty,
            item_id,
        )
        await self._publish(
            bid_changed(trade_id, bid.id, "BID_PLACED"),
            inventory_changed(bidder.user_id, item_id),
        )
        return bid

    async def accept_bid(
        self, db: AsyncSession, trade_id: str, bid_id: str, creator_id: str
    ) -> AcceptBidResult:
        """Pick the winning bid, then refund the losers.

        Phase 1 commits the trade as PENDING with the winner as taker; the
        winner's reservation becomes the taker reservation. Phase 2 refunds
        each losing bid on its own; a refund failure never undoes phase 1.
        """
        async with self._lock(trade_id):
            async with self._transaction(db, "accept a bid on", trade_id):
                trade = await self._trades.get_for_update(db, trade_id)
                if trade is None:
                    raise TradeNotFoundError(trade_id)
                if creator_id != trade.creator_id:
                    raise NotTradePartyError(trade_id, "accept a bid on")
                if trade.trade_type != TradeType.AUCTION:
                    raise TradeTypeMismatchError(
                        trade_id, trade.trade_type.value, "accept a bid on"
                    )
                next_status(trade_id, trade.status, TradeEvent.ACCEPT_BID)

                bid = await self._bids.get(db, bid_id)
                if bid is None or bid.trade_id != trade_id:
                    raise BidNotFoundError(bid_id)

                updated = await self._trades.mark_pending(
                    db,
                    trade_id,
                    Party(bid.bidder_id, bid.bidder_name),
                    request=SpecificRequest(bid.stake),
                )
                if updated is None:
                    raise await self._guard_failure(
                        db, trade_id, TradeStatus.OPEN, "accept a bid on"
                    )
                if not await self._bids.delete(db, bid.id):
                    raise StorageConflictError(f"bid {bid_id} was released concurrently")
                losers = await self._bids.list_for_trade(db, trade_id)

            logger.info(
                "Bid accepted: trade=%s bid=%s taker=%s -> PENDING, %d losing bid(s)",
                trade_id,
                bid_id,
                bid.bidder_id,
                len(losers),
            )
            refunded, unrefunded = await self._refund_losers(db, trade_id, losers)

        await self._publish(
            trade_changed(trade_id, "TRADE_ACCEPTED"),
            bid_changed(trade_id, bid.id, "BID_ACCEPTED"),
            *_bid_events(refunded, "BID_REFUNDED"),
        )
        return AcceptBidResult(
            trade=updated,
            accepted_bid_id=bid.id,
            refunded_bid_ids=[b.id for b in refunded],
            unrefunded_bid_ids=unrefunded,
        )

    async def release_stale_bids(self, db: AsyncSession, trade_id: str) -> list[str]:
        """Refund bids left behind on a trade that is no longer OPEN."""
        async with self._lock(trade_id), self._transaction(db, "release bids of", trade_id):
            trade = await self._trades.get_for_update(db, trade_id)
            if trade is None:
                raise TradeNotFoundError(trade_id)
            if trade.status == TradeStatus.OPEN:
                raise InvalidTradeStateError(trade_id, trade.status.value, "release bids of")
            released = await self._escrow.release_all(
                db, trade_id, f"Released from {trade.status.value.lower()} trade {trade_id}"
            )

        if released:
            logger.warning(
                "Released %d stranded bid(s) on trade %s", len(released), trade_id
            )
        await self._publish(*_bid_events(released, "BID_REFUNDED"))
        return [b.id for b in released]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_trade(self, db: AsyncSession, trade_id: str) -> Trade:
        return await self._require_trade(db, trade_id)

    async def list_open_trades(
        self,
        db: AsyncSession,
        trade_type: TradeType | None = None,
        cursor_id: str | None = None,
        limit: int = 20,
    ) -> list[Trade]:
        return await self._trades.list_open(db, trade_type, cursor_id, limit)

    async def list_bids_for_trade(self, db: AsyncSession, trade_id: str) -> list[Bid]:
        await self._require_trade(db, trade_id)
        return await self._bids.list_for_trade(db, trade_id)

    async def list_trade_history(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: str | None = None,
        limit: int = 20,
    ) -> list[Trade]:
        return await self._trades.list_history(db, user_id, cursor_id, limit)

    async def list_party_trades(
        self,
        db: AsyncSession,
        user_id: str,
        statuses: Sequence[TradeStatus] = ACTIVE_TRADE_STATUSES,
        cursor_id: str | None = None,
        limit: int = 20,
    ) -> list[Trade]:
        """Trades the user created or took, newest first, limited to ``statuses``."""
        return await self._trades.list_for_party(db, user_id, statuses, cursor_id, limit)

    async def list_all_trades(
        self,
        db: AsyncSession,
        status: TradeStatus | None = None,
        cursor_id: str | None = None,
        limit: int = 20,
    ) -> list[Trade]:
        return await self._trades.list_all(db, status, cursor_id, limit)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock(self, trade_id: str) -> asyncio.Lock:
        lock = self._trade_locks.get(trade_id)
        if lock is None:
            lock = asyncio.Lock()
            self._trade_locks[trade_id] = lock
        return lock

    @asynccontextmanager
    async def _transaction(
        self, db: AsyncSession, action: str, trade_id: str
    ) -> AsyncIterator[None]:
        try:
            yield
            await db.commit()
        except DBAPIError as exc:
            await db.rollback()
            if is_storage_conflict(exc):
                logger.warning("Storage conflict on %s trade %s: %s", action, trade_id, exc)
                raise StorageConflictError(f"{action} trade {trade_id}") from exc
            raise
        except Exception:
            await db.rollback()
            raise

    async def _require_trade(self, db: AsyncSession, trade_id: str) -> Trade:
        trade = await self._trades.get(db, trade_id)
        if trade is None:
            raise TradeNotFoundError(trade_id)
        return trade

    async def _guard_failure(
        self, db: AsyncSession, trade_id: str, expected: TradeStatus, action: str
    ) -> AppError:
        """Explain why a compare-and-swap matched no row."""
        current = await self._trades.get(db, trade_id)
        if current is None:
            return TradeNotFoundError(trade_id)
        if current.status != expected:
            return InvalidTradeStateError(trade_id, current.status.value, action)
        return StorageConflictError(f"{action} trade {trade_id}")

    async def _move(
        self,
        db: AsyncSession,
        user_id: str,
        stake: ItemStake,
        sign: int,
        entry_type: InventoryEntryType,
        trade_id: str,
        description: str,
    ) -> None:
        async with db.begin_nested():
            await self._ledger.adjust(
                db,
                user_id,
                stake.item_id,
                sign * stake.qty,
                entry_type,
                reference_type="TRADE",
                reference_id=trade_id,
                description=description,
            )

    async def _settle(self, db: AsyncSession, trade: Trade) -> None:
        """Credit creator <- request stake and taker <- every offer stake."""
        if trade.taker_id is None:
            raise InternalError(f"Completed trade {trade.id} has no taker")
        legs = [(trade.creator_id, _request_stake(trade))]
        legs.extend((trade.taker_id, stake) for stake in trade.offer.stakes)

        saga = Saga(f"settle trade {trade.id}")
        try:
            for user_id, stake in legs:
                await self._move(
                    db, user_id, stake, 1,
                    InventoryEntryType.TRADE_SETTLE, trade.id, "Received in trade",
                )
                saga.on_rollback(
                    f"take back {stake.qty} of item {stake.item_id} from {user_id}",
                    partial(
                        self._move, db, user_id, stake, -1,
                        InventoryEntryType.TRADE_SETTLE, trade.id, "Settlement reversed",
                    ),
                )
        except Exception as exc:
            await saga.compensate(exc)
            raise

    async def _refund_losers(
        self, db: AsyncSession, trade_id: str, losers: list[Bid]
    ) -> tuple[list[Bid], list[str]]:
        if not losers:
            return [], []
        try:
            refunded, unrefunded = await self._escrow.refund_losers(db, losers)
            await db.commit()
        except Exception as exc:
            await db.rollback()
            logger.error(
                "Refund phase for trade %s failed, %d losing bid(s) kept: %s",
                trade_id,
                len(losers),
                exc,
            )
            return [], [b.id for b in losers]
        return refunded, unrefunded

    async def _publish(self, *events: ChangeEvent) -> None:
        await self._publisher.publish(list(events))


def _request_stake(trade: Trade) -> ItemStake:
    match trade.request:
        case SpecificRequest(stake=stake):
            return stake
        case AnyRequest():
            raise InternalError(f"Trade {trade.id} has no concrete request stake")


def _bid_events(bids: list[Bid], action: str) -> list[ChangeEvent]:
    events: list[ChangeEvent] = []
    for bid in bids:
        events.append(bid_changed(bid.trade_id, bid.id, action))
        events.append(inventory_changed(bid.bidder_id, bid.item_id))
    return events


def _describe(stakes: tuple[ItemStake, ...]) -> str:
    return ", ".join(f"{s.qty}x{s.item_id}" for s in stakes)
