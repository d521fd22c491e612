"""Inventory ledger Protocol: dependency inversion for testability.

Contract every implementation must honour: ``adjust`` is a single indivisible
check-and-write per (user, item). Two concurrent debits whose sum exceeds the
balance must not both succeed. Callers never read-then-write balances.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_inventory.domain.models import InventoryBalance, InventoryLedgerEntry


class InventoryLedgerProtocol(Protocol):
    async def adjust(
        self,
        db: AsyncSession,
        user_id: str,
        item_id: str,
        delta: int,
        entry_type: str,
        reference_type: str | None = None,
        reference_id: str | None = None,
        description: str | None = None,
    ) -> InventoryBalance: ...

    async def read(self, db: AsyncSession, user_id: str, item_id: str) -> int: ...

    async def read_all(self, db: AsyncSession, user_id: str) -> dict[str, int]: ...

    async def set_quantity(
        self,
        db: AsyncSession,
        user_id: str,
        item_id: str,
        quantity: int,
        description: str | None = None,
    ) -> InventoryBalance: ...

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        item_id: str | None,
    ) -> list[InventoryLedgerEntry]: ...
