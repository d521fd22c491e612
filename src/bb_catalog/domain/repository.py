"""Catalog Protocol: the engine only needs existence checks and listings."""

from collections.abc import Iterable
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_catalog.domain.models import Item


class CatalogRepositoryProtocol(Protocol):
    async def list_items(self, db: AsyncSession) -> list[Item]: ...

    async def require_items(self, db: AsyncSession, item_ids: Iterable[str]) -> None: ...
