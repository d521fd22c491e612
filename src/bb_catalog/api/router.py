"""Catalog REST API: read-only item listing."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.bb_catalog.infrastructure.persistence import CatalogRepository
from src.bb_common.database import get_db_session
from src.bb_common.response import ApiResponse, success_response

router = APIRouter(prefix="/items", tags=["catalog"])

_repo = CatalogRepository()


@router.get("")
async def list_items(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    items = await _repo.list_items(db)
    data = [
        {"id": i.id, "name": i.name, "brand": i.brand, "icon": i.icon, "color": i.color}
        for i in items
    ]
    return success_response(data, request=request)
