"""Pydantic schemas and cursor utilities for bb_trade API."""

import base64
import json
from datetime import datetime

from pydantic import BaseModel, Field

from src.bb_common.enums import TradeType
from src.bb_common.quantity import MAX_QUANTITY
from src.bb_trade.domain.models import (
    AcceptBidResult,
    Bid,
    ConfirmResult,
    ItemStake,
    Offer,
    Request,
    SpecificRequest,
    Trade,
    build_offer,
    build_request,
)

# ---------------------------------------------------------------------------
# Cursor utilities (trade ids are time-ordered strings)
# ---------------------------------------------------------------------------


def cursor_encode(last_id: str) -> str:
    return base64.b64encode(json.dumps({"id": last_id}).encode()).decode()


def cursor_decode(cursor: str | None) -> str | None:
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return str(payload["id"])
    except (ValueError, KeyError, TypeError):
        return None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class StakeIn(BaseModel):
    item_id: str
    qty: int = Field(..., le=MAX_QUANTITY)


class CreateTradeRequest(BaseModel):
    trade_type: TradeType
    offer_items: list[StakeIn] = Field(..., min_length=1, description="One item, or a bundle")
    request_item_id: str | None = None
    request_qty: int | None = Field(None, le=MAX_QUANTITY)
    is_any: bool = False

    def to_terms(self) -> tuple[Offer, Request]:
        """Build the domain offer/request; raises InvalidTradeRequestError on bad terms."""
        offer = build_offer([ItemStake(s.item_id, s.qty) for s in self.offer_items])
        request = build_request(
            self.request_item_id, self.request_qty, self.is_any, self.trade_type
        )
        return offer, request


class PlaceBidRequest(BaseModel):
    item_id: str
    qty: int = Field(..., le=MAX_QUANTITY)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class StakeOut(BaseModel):
    item_id: str
    qty: int


class TradeResponse(BaseModel):
    id: str
    creator_id: str
    creator_name: str
    taker_id: str | None
    taker_name: str | None
    offer_kind: str
    offer_items: list[StakeOut]
    request_item_id: str | None
    request_qty: int | None
    is_any: bool
    trade_type: str
    status: str
    creator_confirmed: bool
    taker_confirmed: bool
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_domain(cls, trade: Trade) -> "TradeResponse":
        request_item_id: str | None = None
        request_qty: int | None = None
        if isinstance(trade.request, SpecificRequest):
            request_item_id = trade.request.stake.item_id
            request_qty = trade.request.stake.qty
        return cls(
            id=trade.id,
            creator_id=trade.creator_id,
            creator_name=trade.creator_name,
            taker_id=trade.taker_id,
            taker_name=trade.taker_name,
            offer_kind=trade.offer.kind.value,
            offer_items=[StakeOut(item_id=s.item_id, qty=s.qty) for s in trade.offer.stakes],
            request_item_id=request_item_id,
            request_qty=request_qty,
            is_any=trade.is_any,
            trade_type=trade.trade_type.value,
            status=trade.status.value,
            creator_confirmed=trade.creator_confirmed,
            taker_confirmed=trade.taker_confirmed,
            version=trade.version,
            created_at=trade.created_at,
            updated_at=trade.updated_at,
            completed_at=trade.completed_at,
        )


class TradeListResponse(BaseModel):
    items: list[TradeResponse]
    next_cursor: str | None
    has_more: bool


class BidResponse(BaseModel):
    id: str
    trade_id: str
    bidder_id: str
    bidder_name: str
    item_id: str
    qty: int
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, bid: Bid) -> "BidResponse":
        return cls(
            id=bid.id,
            trade_id=bid.trade_id,
            bidder_id=bid.bidder_id,
            bidder_name=bid.bidder_name,
            item_id=bid.item_id,
            qty=bid.qty,
            created_at=bid.created_at,
        )


class ConfirmTradeResponse(BaseModel):
    outcome: str  # "waiting" | "completed"
    trade: TradeResponse

    @classmethod
    def from_domain(cls, result: ConfirmResult) -> "ConfirmTradeResponse":
        return cls(outcome=result.outcome.value, trade=TradeResponse.from_domain(result.trade))


class AcceptBidResponse(BaseModel):
    trade: TradeResponse
    accepted_bid_id: str
    refunded_bid_ids: list[str]
    unrefunded_bid_ids: list[str]

    @classmethod
    def from_domain(cls, result: AcceptBidResult) -> "AcceptBidResponse":
        return cls(
            trade=TradeResponse.from_domain(result.trade),
            accepted_bid_id=result.accepted_bid_id,
            refunded_bid_ids=result.refunded_bid_ids,
            unrefunded_bid_ids=result.unrefunded_bid_ids,
        )


class ReleaseBidsResponse(BaseModel):
    trade_id: str
    released_bid_ids: list[str]
