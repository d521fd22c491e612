"""Trade domain models: pure dataclasses, no SQLAlchemy dependency.

The creator's stake and the requested counter-stake are tagged unions:

    Offer   = SingleOffer | BundleOffer
    Request = SpecificRequest | AnyRequest

Consumers dispatch on the concrete class (``match``/``isinstance``); no
optional-field probing.
"""

from dataclasses import dataclass, field
from datetime import datetime

from src.bb_common.enums import ConfirmOutcome, OfferKind, TradeStatus, TradeType
from src.bb_common.errors import InvalidTradeRequestError
from src.bb_common.quantity import MAX_QUANTITY, exceeds_column


@dataclass(frozen=True)
class ItemStake:
    item_id: str
    qty: int  # whole units, > 0


@dataclass(frozen=True)
class Party:
    user_id: str
    name: str


@dataclass(frozen=True)
class SingleOffer:
    stake: ItemStake

    @property
    def kind(self) -> OfferKind:
        return OfferKind.SINGLE

    @property
    def stakes(self) -> tuple[ItemStake, ...]:
        return (self.stake,)


@dataclass(frozen=True)
class BundleOffer:
    """Several distinct items staked as one indivisible unit."""

    stakes: tuple[ItemStake, ...]

    @property
    def kind(self) -> OfferKind:
        return OfferKind.BUNDLE


Offer = SingleOffer | BundleOffer


@dataclass(frozen=True)
class SpecificRequest:
    stake: ItemStake


@dataclass(frozen=True)
class AnyRequest:
    """Auction creator accepts any item; the winning bid decides the stake."""


Request = SpecificRequest | AnyRequest


@dataclass
class Trade:
    id: str
    creator_id: str
    creator_name: str
    offer: Offer
    request: Request
    trade_type: TradeType
    status: TradeStatus = TradeStatus.OPEN
    taker_id: str | None = None
    taker_name: str | None = None
    creator_confirmed: bool = False
    taker_confirmed: bool = False
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_any(self) -> bool:
        return isinstance(self.request, AnyRequest)

    @property
    def both_confirmed(self) -> bool:
        return self.creator_confirmed and self.taker_confirmed

    def is_party(self, user_id: str) -> bool:
        return user_id == self.creator_id or (
            self.taker_id is not None and user_id == self.taker_id
        )


@dataclass
class Bid:
    id: str
    trade_id: str
    bidder_id: str
    bidder_name: str
    item_id: str
    qty: int
    created_at: datetime | None = None

    @property
    def stake(self) -> ItemStake:
        return ItemStake(self.item_id, self.qty)


# ---------------------------------------------------------------------------
# Builders: the only way API input becomes an Offer / Request
# ---------------------------------------------------------------------------


def build_offer(stakes: list[ItemStake]) -> Offer:
    """One stake gives a SingleOffer, two or more distinct items a BundleOffer."""
    if not stakes:
        raise InvalidTradeRequestError("offer must contain at least one item")
    for stake in stakes:
        if stake.qty <= 0:
            raise InvalidTradeRequestError(
                f"offer quantity for item {stake.item_id} must be positive"
            )
        if exceeds_column(stake.qty):
            raise InvalidTradeRequestError(
                f"offer quantity for item {stake.item_id} exceeds {MAX_QUANTITY}"
            )
    if len(stakes) == 1:
        return SingleOffer(stakes[0])
    seen: set[str] = set()
    for stake in stakes:
        if stake.item_id in seen:
            raise InvalidTradeRequestError(f"bundle lists item {stake.item_id} more than once")
        seen.add(stake.item_id)
    return BundleOffer(tuple(stakes))


def build_request(
    item_id: str | None, qty: int | None, is_any: bool, trade_type: TradeType
) -> Request:
    if is_any:
        if trade_type != TradeType.AUCTION:
            raise InvalidTradeRequestError("'any item' requests are only allowed for auctions")
        return AnyRequest()
    if item_id is None or qty is None:
        raise InvalidTradeRequestError("request item and quantity are required")
    if qty <= 0:
        raise InvalidTradeRequestError("request quantity must be positive")
    if exceeds_column(qty):
        raise InvalidTradeRequestError(f"request quantity exceeds {MAX_QUANTITY}")
    return SpecificRequest(ItemStake(item_id, qty))


def validate_terms(offer: Offer, request: Request, trade_type: TradeType) -> None:
    """Re-check invariants on already-built values (callers may build them directly)."""
    match offer:
        case SingleOffer(stake=stake):
            build_offer([stake])
        case BundleOffer(stakes=stakes):
            if len(stakes) < 2:
                raise InvalidTradeRequestError("a bundle needs at least two items")
            build_offer(list(stakes))
    match request:
        case AnyRequest():
            build_request(None, None, True, trade_type)
        case SpecificRequest(stake=stake):
            build_request(stake.item_id, stake.qty, False, trade_type)


def referenced_item_ids(offer: Offer, request: Request) -> list[str]:
    ids = [stake.item_id for stake in offer.stakes]
    if isinstance(request, SpecificRequest):
        ids.append(request.stake.item_id)
    return ids


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


@dataclass
class ConfirmResult:
    outcome: ConfirmOutcome
    trade: Trade


@dataclass
class AcceptBidResult:
    trade: Trade
    accepted_bid_id: str
    refunded_bid_ids: list[str] = field(default_factory=list)
    # Losing bids whose refund failed; their rows stay until released by an admin
    unrefunded_bid_ids: list[str] = field(default_factory=list)
