"""InventoryApplicationService: thin composition layer over the ledger.

Mutations commit their own transaction and publish a change event after the
commit. Reads run without an explicit transaction.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_catalog.domain.repository import CatalogRepositoryProtocol
from src.bb_catalog.infrastructure.persistence import CatalogRepository
from src.bb_common.enums import InventoryEntryType
from src.bb_common.events import (
    ChangePublisherProtocol,
    RedisChangePublisher,
    inventory_changed,
)
from src.bb_inventory.application.schemas import (
    BalanceResponse,
    InventoryLedgerItem,
    InventoryLedgerResponse,
    InventoryResponse,
    cursor_decode,
    cursor_encode,
)
from src.bb_inventory.domain.repository import InventoryLedgerProtocol
from src.bb_inventory.infrastructure.persistence import InventoryRepository

logger = logging.getLogger(__name__)


class InventoryApplicationService:
    def __init__(
        self,
        repo: InventoryLedgerProtocol | None = None,
        catalog: CatalogRepositoryProtocol | None = None,
        publisher: ChangePublisherProtocol | None = None,
    ) -> None:
        self._repo: InventoryLedgerProtocol = repo or InventoryRepository()
        self._catalog: CatalogRepositoryProtocol = catalog or CatalogRepository()
        self._publisher: ChangePublisherProtocol = publisher or RedisChangePublisher()

    async def get_inventory(self, db: AsyncSession, user_id: str) -> InventoryResponse:
        balances = await self._repo.read_all(db, user_id)
        return InventoryResponse.from_mapping(user_id, balances)

    async def get_balance(self, db: AsyncSession, user_id: str, item_id: str) -> BalanceResponse:
        await self._catalog.require_items(db, [item_id])
        quantity = await self._repo.read(db, user_id, item_id)
        return BalanceResponse(user_id=user_id, item_id=item_id, quantity=quantity)

    async def adjust_inventory(
        self, db: AsyncSession, user_id: str, item_id: str, delta: int
    ) -> BalanceResponse:
        """Restock or discard from outside the trade engine."""
        try:
            await self._catalog.require_items(db, [item_id])
            balance = await self._repo.adjust(
                db,
                user_id,
                item_id,
                delta,
                InventoryEntryType.ADJUST,
                reference_type="USER",
                reference_id=user_id,
                description="Restock" if delta > 0 else "Discard",
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Inventory adjusted: user=%s item=%s delta=%+d", user_id, item_id, delta)
        await self._publisher.publish([inventory_changed(user_id, item_id)])
        return BalanceResponse(user_id=user_id, item_id=item_id, quantity=balance.quantity)

    async def set_inventory(
        self, db: AsyncSession, user_id: str, item_id: str, quantity: int, admin_id: str
    ) -> BalanceResponse:
        try:
            await self._catalog.require_items(db, [item_id])
            balance = await self._repo.set_quantity(
                db, user_id, item_id, quantity, description=f"Set by admin {admin_id}"
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Inventory set by admin: admin=%s user=%s item=%s quantity=%d",
            admin_id,
            user_id,
            item_id,
            quantity,
        )
        await self._publisher.publish([inventory_changed(user_id, item_id)])
        return BalanceResponse(user_id=user_id, item_id=item_id, quantity=balance.quantity)

    async def list_ledger(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        item_id: str | None,
    ) -> InventoryLedgerResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_entries(db, user_id, cursor_id, limit + 1, item_id)
        has_more = len(entries) > limit
        page = entries[:limit]

        items = [
            InventoryLedgerItem(
                id=e.id,
                item_id=e.item_id,
                entry_type=e.entry_type,
                amount=e.amount,
                balance_after=e.balance_after,
                reference_type=e.reference_type,
                reference_id=e.reference_id,
                description=e.description,
                created_at=e.created_at.isoformat() if e.created_at else "",
            )
            for e in page
        ]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return InventoryLedgerResponse(items=items, next_cursor=next_cursor, has_more=has_more)
