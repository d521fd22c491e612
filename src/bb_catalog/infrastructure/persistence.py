"""CatalogRepository: read-only queries over the items table.

Item CRUD and image hosting live outside this service; rows are only read.
"""

from collections.abc import Iterable
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_catalog.domain.models import Item
from src.bb_common.errors import ItemNotFoundError

_LIST_ITEMS_SQL = text("""
    SELECT id, name, brand, icon, color, created_at
    FROM items
    ORDER BY created_at ASC, id ASC
""")

_EXISTING_IDS_SQL = text("""
    SELECT id FROM items WHERE id IN :item_ids
""").bindparams(bindparam("item_ids", expanding=True))


def _row_to_item(row: Any) -> Item:
    return Item(
        id=str(row.id),
        name=row.name,
        brand=row.brand,
        icon=row.icon,
        color=row.color,
        created_at=row.created_at,
    )


class CatalogRepository:
    async def list_items(self, db: AsyncSession) -> list[Item]:
        rows = (await db.execute(_LIST_ITEMS_SQL)).fetchall()
        return [_row_to_item(row) for row in rows]

    async def require_items(self, db: AsyncSession, item_ids: Iterable[str]) -> None:
        """Raise ItemNotFoundError for the first referenced item missing from the catalog."""
        wanted = list(dict.fromkeys(item_ids))
        if not wanted:
            return
        rows = (await db.execute(_EXISTING_IDS_SQL, {"item_ids": wanted})).fetchall()
        found = {str(row.id) for row in rows}
        for item_id in wanted:
            if item_id not in found:
                raise ItemNotFoundError(item_id)
