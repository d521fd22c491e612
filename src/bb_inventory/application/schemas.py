"""Pydantic schemas and cursor utilities for bb_inventory API."""

import base64
import json

from pydantic import BaseModel, Field, field_validator

from src.bb_common.quantity import MAX_QUANTITY

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class AdjustInventoryRequest(BaseModel):
    item_id: str
    delta: int = Field(
        ...,
        ge=-MAX_QUANTITY,
        le=MAX_QUANTITY,
        description="Positive to restock, negative to discard",
    )

    @field_validator("delta")
    @classmethod
    def non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("delta must be non-zero")
        return v


class SetInventoryRequest(BaseModel):
    quantity: int = Field(..., ge=0, le=MAX_QUANTITY)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class InventoryItemBalance(BaseModel):
    item_id: str
    quantity: int


class InventoryResponse(BaseModel):
    user_id: str
    items: list[InventoryItemBalance]

    @classmethod
    def from_mapping(cls, user_id: str, balances: dict[str, int]) -> "InventoryResponse":
        return cls(
            user_id=user_id,
            items=[
                InventoryItemBalance(item_id=item_id, quantity=qty)
                for item_id, qty in balances.items()
            ],
        )


class BalanceResponse(BaseModel):
    user_id: str
    item_id: str
    quantity: int


class InventoryLedgerItem(BaseModel):
    id: int
    item_id: str
    entry_type: str
    amount: int
    balance_after: int
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string


class InventoryLedgerResponse(BaseModel):
    items: list[InventoryLedgerItem]
    next_cursor: str | None
    has_more: bool
