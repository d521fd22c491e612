"""InventoryRepository: concrete implementation of InventoryLedgerProtocol.

Every balance mutation is one atomic PostgreSQL statement:
  - debit:  UPDATE ... WHERE quantity >= :amount RETURNING
  - credit: INSERT ... ON CONFLICT DO UPDATE WHERE <fits INTEGER> RETURNING
A debit returning 0 rows means the balance is insufficient, a credit returning
0 rows means the balance would overflow. The row lock taken by the UPDATE
serialises concurrent writers on the same (user, item).

Transaction ownership: the CALLER commits or rolls back.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_common.enums import InventoryEntryType
from src.bb_common.errors import InsufficientStockError, InternalError, InvalidAdjustmentError
from src.bb_common.quantity import MAX_QUANTITY, exceeds_column
from src.bb_inventory.domain.models import InventoryBalance, InventoryLedgerEntry

# ---------------------------------------------------------------------------
# SQL: inventory mutations
# ---------------------------------------------------------------------------

_CREDIT_SQL = text("""
    INSERT INTO inventory (user_id, item_id, quantity)
    VALUES (:user_id, :item_id, :amount)
    ON CONFLICT (user_id, item_id) DO UPDATE
        SET quantity = inventory.quantity + EXCLUDED.quantity,
            version = inventory.version + 1,
            updated_at = NOW()
        WHERE inventory.quantity <= :ceiling - EXCLUDED.quantity
    RETURNING user_id, item_id, quantity, updated_at
""")

_DEBIT_SQL = text("""
    UPDATE inventory
    SET quantity = quantity - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND item_id = :item_id AND quantity >= :amount
    RETURNING user_id, item_id, quantity, updated_at
""")

_LOCK_BALANCE_SQL = text("""
    SELECT quantity FROM inventory
    WHERE user_id = :user_id AND item_id = :item_id
    FOR UPDATE
""")

_ENSURE_ROW_SQL = text("""
    INSERT INTO inventory (user_id, item_id, quantity)
    VALUES (:user_id, :item_id, 0)
    ON CONFLICT (user_id, item_id) DO NOTHING
""")

_SET_SQL = text("""
    UPDATE inventory
    SET quantity = :quantity,
        version = version + 1,
        updated_at = NOW()
    WHERE user_id = :user_id AND item_id = :item_id
    RETURNING user_id, item_id, quantity, updated_at
""")

_INSERT_LEDGER_SQL = text("""
    INSERT INTO inventory_ledger_entries
        (user_id, item_id, entry_type, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:user_id, :item_id, :entry_type, :amount, :balance_after,
         :reference_type, :reference_id, :description)
    RETURNING id
""")

# ---------------------------------------------------------------------------
# SQL: reads
# ---------------------------------------------------------------------------

_GET_BALANCE_SQL = text("""
    SELECT quantity FROM inventory
    WHERE user_id = :user_id AND item_id = :item_id
""")

# Catalog-driven: every item appears, rows for deleted items drop out
_READ_ALL_SQL = text("""
    SELECT it.id AS item_id, COALESCE(inv.quantity, 0) AS quantity
    FROM items it
    LEFT JOIN inventory inv
        ON inv.item_id = it.id AND inv.user_id = :user_id
    ORDER BY it.created_at ASC, it.id ASC
""")

_LIST_LEDGER_SQL = text("""
    SELECT id, user_id, item_id, entry_type, amount, balance_after,
           reference_type, reference_id, description, created_at
    FROM inventory_ledger_entries
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
      AND (CAST(:item_id AS TEXT) IS NULL OR item_id = CAST(:item_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_balance(row: Any) -> InventoryBalance:
    return InventoryBalance(
        user_id=row.user_id,
        item_id=row.item_id,
        quantity=row.quantity,
        updated_at=row.updated_at,
    )


def _row_to_entry(row: Any) -> InventoryLedgerEntry:
    return InventoryLedgerEntry(
        id=row.id,
        user_id=row.user_id,
        item_id=row.item_id,
        entry_type=row.entry_type,
        amount=row.amount,
        balance_after=row.balance_after,
        reference_type=row.reference_type,
        reference_id=row.reference_id,
        description=row.description,
        created_at=row.created_at,
    )


class InventoryRepository:
    """Concrete ledger; all operations atomic at the SQL level."""

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
    ) -> InventoryBalance:
        if delta == 0:
            raise InvalidAdjustmentError("delta must be non-zero")
        if exceeds_column(delta):
            raise InvalidAdjustmentError(f"|delta| must not exceed {MAX_QUANTITY}")

        params = {"user_id": user_id, "item_id": item_id, "amount": abs(delta)}
        if delta > 0:
            row = (
                await db.execute(_CREDIT_SQL, {**params, "ceiling": MAX_QUANTITY})
            ).fetchone()
            if row is None:
                raise InvalidAdjustmentError(
                    f"balance of item {item_id} for {user_id} would exceed {MAX_QUANTITY}"
                )
        else:
            row = (await db.execute(_DEBIT_SQL, params)).fetchone()
            if row is None:
                available = await self.read(db, user_id, item_id)
                raise InsufficientStockError(item_id, abs(delta), available)

        balance = _row_to_balance(row)
        await self._append_entry(
            db,
            balance,
            entry_type=entry_type,
            amount=delta,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
        )
        return balance

    async def read(self, db: AsyncSession, user_id: str, item_id: str) -> int:
        row = (
            await db.execute(_GET_BALANCE_SQL, {"user_id": user_id, "item_id": item_id})
        ).fetchone()
        return row.quantity if row else 0

    async def read_all(self, db: AsyncSession, user_id: str) -> dict[str, int]:
        rows = (await db.execute(_READ_ALL_SQL, {"user_id": user_id})).fetchall()
        return {str(row.item_id): row.quantity for row in rows}

    async def set_quantity(
        self,
        db: AsyncSession,
        user_id: str,
        item_id: str,
        quantity: int,
        description: str | None = None,
    ) -> InventoryBalance:
        """Admin override. The audit row carries the signed difference.

        The row is created (at 0) before it is locked, so the difference is
        taken against the same row version the write replaces.
        """
        if quantity < 0:
            raise InvalidAdjustmentError("quantity must be >= 0")
        if exceeds_column(quantity):
            raise InvalidAdjustmentError(f"quantity must not exceed {MAX_QUANTITY}")
        params = {"user_id": user_id, "item_id": item_id}
        await db.execute(_ENSURE_ROW_SQL, params)
        prev_row = (await db.execute(_LOCK_BALANCE_SQL, params)).fetchone()
        if prev_row is None:
            raise InternalError("Inventory row vanished under lock")
        previous = prev_row.quantity

        row = (await db.execute(_SET_SQL, {**params, "quantity": quantity})).fetchone()
        if row is None:
            raise InternalError("Inventory update returned no rows")
        balance = _row_to_balance(row)
        if quantity != previous:
            await self._append_entry(
                db,
                balance,
                entry_type=InventoryEntryType.ADMIN_SET,
                amount=quantity - previous,
                reference_type="ADMIN",
                reference_id=None,
                description=description,
            )
        return balance

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        item_id: str | None,
    ) -> list[InventoryLedgerEntry]:
        rows = (
            await db.execute(
                _LIST_LEDGER_SQL,
                {
                    "user_id": user_id,
                    "cursor_id": cursor_id,
                    "item_id": item_id,
                    "limit": limit,
                },
            )
        ).fetchall()
        return [_row_to_entry(row) for row in rows]

    async def _append_entry(
        self,
        db: AsyncSession,
        balance: InventoryBalance,
        entry_type: str,
        amount: int,
        reference_type: str | None,
        reference_id: str | None,
        description: str | None,
    ) -> None:
        await db.execute(
            _INSERT_LEDGER_SQL,
            {
                "user_id": balance.user_id,
                "item_id": balance.item_id,
                "entry_type": entry_type,
                "amount": amount,
                "balance_after": balance.quantity,
                "reference_type": reference_type,
                "reference_id": reference_id,
                "description": description,
            },
        )
