"""Unit tests for CatalogRepository."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.bb_catalog.infrastructure.persistence import CatalogRepository
from src.bb_common.errors import ItemNotFoundError


def _id_row(item_id: str) -> MagicMock:
    row = MagicMock()
    row.id = item_id
    return row


def _db_returning(rows: list[MagicMock]) -> MagicMock:
    result = MagicMock()
    result.fetchall.return_value = rows
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    return db


class TestRequireItems:
    async def test_all_present(self) -> None:
        db = _db_returning([_id_row("X"), _id_row("Y")])
        await CatalogRepository().require_items(db, ["X", "Y", "X"])
        # Duplicates collapse before querying
        assert db.execute.await_args.args[1] == {"item_ids": ["X", "Y"]}

    async def test_first_missing_item_reported(self) -> None:
        db = _db_returning([_id_row("X")])
        with pytest.raises(ItemNotFoundError) as exc_info:
            await CatalogRepository().require_items(db, ["X", "Q", "R"])
        assert exc_info.value.item_id == "Q"

    async def test_nothing_to_check(self) -> None:
        db = _db_returning([])
        await CatalogRepository().require_items(db, [])
        db.execute.assert_not_awaited()


class TestListItems:
    async def test_maps_rows(self) -> None:
        row = MagicMock()
        row.id = "X"
        row.name = "Choco Pie"
        row.brand = "Orion"
        row.icon = "🍪"
        row.color = "amber"
        row.created_at = None
        items = await CatalogRepository().list_items(_db_returning([row]))
        assert items[0].name == "Choco Pie"
        assert items[0].brand == "Orion"
