"""Unit tests for bb_trade request schemas, cursor helpers and enums."""

import pytest
from pydantic import ValidationError

from src.bb_common.enums import EXTERNAL_ENTRY_TYPES, InventoryEntryType, TradeStatus, TradeType
from src.bb_common.errors import InvalidTradeRequestError
from src.bb_common.quantity import MAX_QUANTITY
from src.bb_trade.application.schemas import (
    CreateTradeRequest,
    PlaceBidRequest,
    cursor_decode,
    cursor_encode,
)
from src.bb_trade.domain.models import (
    AnyRequest,
    BundleOffer,
    ItemStake,
    SingleOffer,
    SpecificRequest,
    build_offer,
    build_request,
)


class TestCreateTradeRequest:
    def test_single_offer_for_specific_item(self) -> None:
        req = CreateTradeRequest(
            trade_type=TradeType.FIXED,
            offer_items=[{"item_id": "X", "qty": 3}],
            request_item_id="Y",
            request_qty=2,
        )
        offer, request = req.to_terms()
        assert isinstance(offer, SingleOffer)
        assert isinstance(request, SpecificRequest)
        assert request.stake.qty == 2

    def test_bundle_auction_for_any_item(self) -> None:
        req = CreateTradeRequest(
            trade_type=TradeType.AUCTION,
            offer_items=[{"item_id": "X", "qty": 1}, {"item_id": "Z", "qty": 4}],
            is_any=True,
        )
        offer, request = req.to_terms()
        assert isinstance(offer, BundleOffer)
        assert [s.item_id for s in offer.stakes] == ["X", "Z"]
        assert isinstance(request, AnyRequest)

    def test_any_item_needs_auction(self) -> None:
        req = CreateTradeRequest(
            trade_type=TradeType.FIXED, offer_items=[{"item_id": "X", "qty": 1}], is_any=True
        )
        with pytest.raises(InvalidTradeRequestError):
            req.to_terms()

    def test_duplicate_bundle_item(self) -> None:
        req = CreateTradeRequest(
            trade_type=TradeType.FIXED,
            offer_items=[{"item_id": "X", "qty": 1}, {"item_id": "X", "qty": 2}],
            request_item_id="Y",
            request_qty=1,
        )
        with pytest.raises(InvalidTradeRequestError, match="more than once"):
            req.to_terms()

    def test_missing_request_item(self) -> None:
        req = CreateTradeRequest(
            trade_type=TradeType.FIXED, offer_items=[{"item_id": "X", "qty": 1}]
        )
        with pytest.raises(InvalidTradeRequestError):
            req.to_terms()

    @pytest.mark.parametrize(
        ("offer_qty", "request_qty"), [(2**40, 1), (1, 2**40), (MAX_QUANTITY + 1, 1)]
    )
    def test_quantities_beyond_column_range_fail_validation(
        self, offer_qty: int, request_qty: int
    ) -> None:
        with pytest.raises(ValidationError):
            CreateTradeRequest(
                trade_type=TradeType.FIXED,
                offer_items=[{"item_id": "X", "qty": offer_qty}],
                request_item_id="Y",
                request_qty=request_qty,
            )

    def test_largest_storable_quantity_accepted(self) -> None:
        offer, _ = CreateTradeRequest(
            trade_type=TradeType.FIXED,
            offer_items=[{"item_id": "X", "qty": MAX_QUANTITY}],
            request_item_id="Y",
            request_qty=1,
        ).to_terms()
        assert offer.stakes[0].qty == MAX_QUANTITY

    def test_builders_reject_oversized_stakes(self) -> None:
        with pytest.raises(InvalidTradeRequestError, match="exceeds"):
            build_offer([ItemStake("X", MAX_QUANTITY + 1)])
        with pytest.raises(InvalidTradeRequestError, match="exceeds"):
            build_request("Y", MAX_QUANTITY + 1, False, TradeType.FIXED)


class TestPlaceBidRequest:
    def test_oversized_bid_fails_validation(self) -> None:
        with pytest.raises(ValidationError):
            PlaceBidRequest(item_id="Y", qty=2**63)


class TestCursor:
    def test_encode_decode(self) -> None:
        assert cursor_decode(cursor_encode("trd_42")) == "trd_42"

    def test_none_and_garbage(self) -> None:
        assert cursor_decode(None) is None
        assert cursor_decode("not-base64!!") is None


class TestEnums:
    def test_terminal_statuses(self) -> None:
        assert TradeStatus.COMPLETED.is_terminal
        assert TradeStatus.CANCELLED.is_terminal
        assert not TradeStatus.OPEN.is_terminal
        assert not TradeStatus.PENDING.is_terminal

    def test_only_external_entries_change_holdings(self) -> None:
        assert EXTERNAL_ENTRY_TYPES == {"ADJUST", "ADMIN_SET"}
        assert InventoryEntryType.TRADE_SETTLE.value not in EXTERNAL_ENTRY_TYPES
