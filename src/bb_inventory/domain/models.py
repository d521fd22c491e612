"""Domain models for bb_inventory: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class InventoryBalance:
    user_id: str
    item_id: str
    quantity: int            # units owned and not reserved by any trade or bid
    updated_at: datetime | None = None


@dataclass
class InventoryLedgerEntry:
    id: int                          # BIGSERIAL
    user_id: str
    item_id: str
    entry_type: str                  # InventoryEntryType value
    amount: int                      # units, positive=credit negative=debit
    balance_after: int               # quantity snapshot after the adjustment
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None
