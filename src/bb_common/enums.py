"""Global enums: must match DB CHECK constraints exactly.

See alembic/versions/005_create_inventory_ledger_entries.py and 006_create_trades.py.
"""

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class TradeType(str, Enum):
    FIXED = "FIXED"
    AUCTION = "AUCTION"


class TradeStatus(str, Enum):
    OPEN = "OPEN"
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (TradeStatus.COMPLETED, TradeStatus.CANCELLED)


class OfferKind(str, Enum):
    """How the creator's stake is shaped: one item, or several as one unit."""
    SINGLE = "SINGLE"
    BUNDLE = "BUNDLE"


class TradeEvent(str, Enum):
    ACCEPT = "ACCEPT"
    ACCEPT_BID = "ACCEPT_BID"
    CONFIRM_ONE = "CONFIRM_ONE"
    CONFIRM_BOTH = "CONFIRM_BOTH"
    CANCEL = "CANCEL"


class ConfirmOutcome(str, Enum):
    WAITING = "waiting"
    COMPLETED = "completed"


class InventoryEntryType(str, Enum):
    # External (the only entries that change total holdings)
    ADJUST = "ADJUST"
    ADMIN_SET = "ADMIN_SET"
    # Creator stake
    TRADE_RESERVE = "TRADE_RESERVE"
    TRADE_RELEASE = "TRADE_RELEASE"
    # Taker stake
    TAKER_RESERVE = "TAKER_RESERVE"
    TAKER_RELEASE = "TAKER_RELEASE"
    # Swap on completion
    TRADE_SETTLE = "TRADE_SETTLE"
    # Auction bids
    BID_RESERVE = "BID_RESERVE"
    BID_REFUND = "BID_REFUND"


EXTERNAL_ENTRY_TYPES: frozenset[str] = frozenset(
    {InventoryEntryType.ADJUST.value, InventoryEntryType.ADMIN_SET.value}
)

# Statuses in which a trade still needs something from one of its parties
ACTIVE_TRADE_STATUSES: tuple[TradeStatus, ...] = (TradeStatus.OPEN, TradeStatus.PENDING)


class ChangeKind(str, Enum):
    INVENTORY = "INVENTORY"
    TRADE = "TRADE"
    BID = "BID"
