"""Trade lifecycle state machine.

    OPEN --accept / accept-bid--> PENDING --confirm (both)--> COMPLETED
    OPEN --cancel--> CANCELLED

Every status write in the engine asks ``next_status`` first; the storage
layer then applies the same move as a compare-and-swap on the old status.
"""

from src.bb_common.enums import TradeEvent, TradeStatus
from src.bb_common.errors import InvalidTradeStateError

TRANSITIONS: dict[tuple[TradeStatus, TradeEvent], TradeStatus] = {
    (TradeStatus.OPEN, TradeEvent.ACCEPT): TradeStatus.PENDING,
    (TradeStatus.OPEN, TradeEvent.ACCEPT_BID): TradeStatus.PENDING,
    (TradeStatus.OPEN, TradeEvent.CANCEL): TradeStatus.CANCELLED,
    (TradeStatus.PENDING, TradeEvent.CONFIRM_ONE): TradeStatus.PENDING,
    (TradeStatus.PENDING, TradeEvent.CONFIRM_BOTH): TradeStatus.COMPLETED,
}

_ACTION_NAMES: dict[TradeEvent, str] = {
    TradeEvent.ACCEPT: "accept",
    TradeEvent.ACCEPT_BID: "accept a bid on",
    TradeEvent.CONFIRM_ONE: "confirm",
    TradeEvent.CONFIRM_BOTH: "confirm",
    TradeEvent.CANCEL: "cancel",
}


def can_transition(current: TradeStatus, event: TradeEvent) -> bool:
    return (current, event) in TRANSITIONS


def next_status(trade_id: str, current: TradeStatus, event: TradeEvent) -> TradeStatus:
    """Target status of ``event`` from ``current``; raises InvalidTradeStateError if illegal."""
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTradeStateError(trade_id, current.value, _ACTION_NAMES[event]) from None
