"""Catalog item model: read-only view of the items table."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Item:
    id: str
    name: str
    brand: str
    icon: str        # emoji or image URL
    color: str       # accent colour token for the dashboard
    created_at: datetime | None = None
