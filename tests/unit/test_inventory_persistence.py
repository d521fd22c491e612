"""Unit tests for InventoryRepository using MagicMock AsyncSession."""

from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.bb_common.enums import InventoryEntryType
from src.bb_common.errors import InsufficientStockError, InvalidAdjustmentError
from src.bb_common.quantity import MAX_QUANTITY
from src.bb_inventory.infrastructure.persistence import InventoryRepository


def _balance_row(quantity: int, user_id: str = "alice", item_id: str = "X") -> MagicMock:
    row = MagicMock()
    row.user_id = user_id
    row.item_id = item_id
    row.quantity = quantity
    row.updated_at = datetime.now(UTC)
    return row


def _result(row: Any = None, rows: list[Any] | None = None) -> MagicMock:
    result = MagicMock()
    result.fetchone.return_value = row
    result.fetchall.return_value = rows or []
    return result


@pytest.fixture
def repo() -> InventoryRepository:
    return InventoryRepository()


class TestAdjust:
    async def test_credit_upserts_and_audits(self, repo: InventoryRepository) -> None:
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_result(_balance_row(8)), _result()])

        balance = await repo.adjust(
            db, "alice", "X", 3, InventoryEntryType.ADJUST, reference_type="USER"
        )

        assert balance.quantity == 8
        assert db.execute.await_count == 2
        ledger_params = db.execute.await_args_list[1].args[1]
        assert ledger_params["amount"] == 3
        assert ledger_params["balance_after"] == 8
        assert ledger_params["entry_type"] == InventoryEntryType.ADJUST
        assert ledger_params["reference_type"] == "USER"

    async def test_debit_passes_absolute_amount(self, repo: InventoryRepository) -> None:
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_result(_balance_row(2)), _result()])

        await repo.adjust(db, "alice", "X", -3, InventoryEntryType.TRADE_RESERVE)

        debit_sql, debit_params = db.execute.await_args_list[0].args
        assert "quantity >= :amount" in str(debit_sql)
        assert debit_params["amount"] == 3
        assert db.execute.await_args_list[1].args[1]["amount"] == -3

    async def test_debit_guard_miss_raises_insufficient(self, repo: InventoryRepository) -> None:
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_result(None), _result(_balance_row(1))])

        with pytest.raises(InsufficientStockError) as exc_info:
            await repo.adjust(db, "alice", "X", -3, InventoryEntryType.TRADE_RESERVE)

        assert exc_info.value.available == 1
        assert exc_info.value.required == 3
        # No audit row for a rejected debit
        assert db.execute.await_count == 2

    async def test_zero_delta_rejected(self, repo: InventoryRepository) -> None:
        db = MagicMock()
        db.execute = AsyncMock()
        with pytest.raises(InvalidAdjustmentError):
            await repo.adjust(db, "alice", "X", 0, InventoryEntryType.ADJUST)
        db.execute.assert_not_awaited()

    async def test_delta_beyond_column_range_rejected(self, repo: InventoryRepository) -> None:
        db = MagicMock()
        db.execute = AsyncMock()
        with pytest.raises(InvalidAdjustmentError):
            await repo.adjust(db, "alice", "X", 2**31, InventoryEntryType.ADJUST)
        db.execute.assert_not_awaited()

    async def test_credit_that_would_overflow_is_typed(self, repo: InventoryRepository) -> None:
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_result(None)])

        with pytest.raises(InvalidAdjustmentError) as exc_info:
            await repo.adjust(db, "alice", "X", 5, InventoryEntryType.TRADE_SETTLE)

        credit_sql, credit_params = db.execute.await_args_list[0].args
        assert "<= :ceiling - EXCLUDED.quantity" in str(credit_sql)
        assert credit_params["ceiling"] == MAX_QUANTITY
        assert exc_info.value.kind == "Validation"
        assert db.execute.await_count == 1



class TestSetQuantity:
    async def test_records_signed_difference(self, repo: InventoryRepository) -> None:
        db = MagicMock()
        db.execute = AsyncMock(
            side_effect=[
                _result(),
                _result(_balance_row(4)),
                _result(_balance_row(7)),
                _result(),
            ]
        )

        balance = await repo.set_quantity(db, "alice", "X", 7, description="Set by admin")

        assert balance.quantity == 7
        ledger_params = db.execute.await_args_list[3].args[1]
        assert ledger_params["entry_type"] == InventoryEntryType.ADMIN_SET
        assert ledger_params["amount"] == 3

    async def test_row_is_created_before_it_is_locked(self, repo: InventoryRepository) -> None:
        """A credit committed between the create and the lock is part of the difference."""
        db = MagicMock()
        db.execute = AsyncMock(
            side_effect=[
                _result(),
                _result(_balance_row(3)),
                _result(_balance_row(5)),
                _result(),
            ]
        )

        await repo.set_quantity(db, "alice", "X", 5)

        statements = [str(call.args[0]) for call in db.execute.await_args_list]
        assert "ON CONFLICT (user_id, item_id) DO NOTHING" in statements[0]
        assert "FOR UPDATE" in statements[1]
        assert statements[2].lstrip().startswith("UPDATE inventory")
        assert "ON CONFLICT" not in statements[2]
        assert db.execute.await_args_list[3].args[1]["amount"] == 2

    async def test_first_set_counts_from_zero(self, repo: InventoryRepository) -> None:
        db = MagicMock()
        db.execute = AsyncMock(
            side_effect=[
                _result(),
                _result(_balance_row(0)),
                _result(_balance_row(5)),
                _result(),
            ]
        )
        await repo.set_quantity(db, "alice", "X", 5)
        assert db.execute.await_args_list[3].args[1]["amount"] == 5

    async def test_unchanged_quantity_writes_no_audit_row(
        self, repo: InventoryRepository
    ) -> None:
        db = MagicMock()
        db.execute = AsyncMock(
            side_effect=[_result(), _result(_balance_row(4)), _result(_balance_row(4))]
        )
        await repo.set_quantity(db, "alice", "X", 4)
        assert db.execute.await_count == 3

    async def test_negative_rejected(self, repo: InventoryRepository) -> None:
        with pytest.raises(InvalidAdjustmentError):
            await repo.set_quantity(MagicMock(), "alice", "X", -1)

    async def test_above_column_range_rejected(self, repo: InventoryRepository) -> None:
        db = MagicMock()
        db.execute = AsyncMock()
        with pytest.raises(InvalidAdjustmentError):
            await repo.set_quantity(db, "alice", "X", MAX_QUANTITY + 1)
        db.execute.assert_not_awaited()


class TestReads:
    async def test_missing_row_reads_zero(self, repo: InventoryRepository) -> None:
        db = MagicMock()
        db.execute = AsyncMock(return_value=_result(None))
        assert await repo.read(db, "alice", "X") == 0

    async def test_read_all_maps_items(self, repo: InventoryRepository) -> None:
        db = MagicMock()
        db.execute = AsyncMock(
            return_value=_result(rows=[_balance_row(3, item_id="X"), _balance_row(0, item_id="Y")])
        )
        assert await repo.read_all(db, "alice") == {"X": 3, "Y": 0}

    async def test_list_entries_passes_filters(self, repo: InventoryRepository) -> None:
        row = MagicMock()
        row.id = 10
        row.user_id = "alice"
        row.item_id = "X"
        row.entry_type = "ADJUST"
        row.amount = 5
        row.balance_after = 5
        row.reference_type = "USER"
        row.reference_id = "alice"
        row.description = "Restock"
        row.created_at = datetime.now(UTC)
        db = MagicMock()
        db.execute = AsyncMock(return_value=_result(rows=[row]))

        entries = await repo.list_entries(db, "alice", 42, 21, "X")

        assert entries[0].id == 10
        params = db.execute.await_args.args[1]
        assert params == {"user_id": "alice", "cursor_id": 42, "item_id": "X", "limit": 21}
