"""Unit tests for trade domain models and the offer/request builders."""

import pytest

from src.bb_common.enums import OfferKind, TradeStatus, TradeType
from src.bb_common.errors import InvalidTradeRequestError
from src.bb_trade.domain.models import (
    AnyRequest,
    Bid,
    BundleOffer,
    ItemStake,
    SingleOffer,
    SpecificRequest,
    Trade,
    build_offer,
    build_request,
    referenced_item_ids,
    validate_terms,
)


def _make_trade(**kwargs: object) -> Trade:
    defaults: dict[str, object] = {
        "id": "trd_1",
        "creator_id": "alice",
        "creator_name": "Alice",
        "offer": SingleOffer(ItemStake("X", 3)),
        "request": SpecificRequest(ItemStake("Y", 2)),
        "trade_type": TradeType.FIXED,
    }
    defaults.update(kwargs)
    return Trade(**defaults)  # type: ignore[arg-type]


class TestBuildOffer:
    def test_single_stake(self) -> None:
        offer = build_offer([ItemStake("X", 3)])
        assert isinstance(offer, SingleOffer)
        assert offer.kind == OfferKind.SINGLE
        assert offer.stakes == (ItemStake("X", 3),)

    def test_bundle(self) -> None:
        offer = build_offer([ItemStake("X", 1), ItemStake("Y", 2)])
        assert isinstance(offer, BundleOffer)
        assert offer.kind == OfferKind.BUNDLE
        assert [s.item_id for s in offer.stakes] == ["X", "Y"]

    def test_empty_rejected(self) -> None:
        with pytest.raises(InvalidTradeRequestError, match="at least one item"):
            build_offer([])

    @pytest.mark.parametrize("qty", [0, -1])
    def test_non_positive_qty_rejected(self, qty: int) -> None:
        with pytest.raises(InvalidTradeRequestError, match="must be positive"):
            build_offer([ItemStake("X", qty)])

    def test_duplicate_bundle_item_rejected(self) -> None:
        with pytest.raises(InvalidTradeRequestError, match="more than once"):
            build_offer([ItemStake("X", 1), ItemStake("X", 2)])


class TestBuildRequest:
    def test_specific(self) -> None:
        req = build_request("Y", 2, False, TradeType.FIXED)
        assert req == SpecificRequest(ItemStake("Y", 2))

    def test_any_allowed_for_auction(self) -> None:
        assert isinstance(build_request(None, None, True, TradeType.AUCTION), AnyRequest)

    def test_any_rejected_for_fixed(self) -> None:
        with pytest.raises(InvalidTradeRequestError, match="only allowed for auctions"):
            build_request(None, None, True, TradeType.FIXED)

    def test_missing_item_rejected(self) -> None:
        with pytest.raises(InvalidTradeRequestError, match="required"):
            build_request(None, 2, False, TradeType.FIXED)

    def test_zero_qty_rejected(self) -> None:
        with pytest.raises(InvalidTradeRequestError):
            build_request("Y", 0, False, TradeType.AUCTION)


class TestValidateTerms:
    def test_one_item_bundle_rejected(self) -> None:
        with pytest.raises(InvalidTradeRequestError, match="at least two"):
            validate_terms(
                BundleOffer((ItemStake("X", 1),)),
                SpecificRequest(ItemStake("Y", 1)),
                TradeType.FIXED,
            )

    def test_any_request_on_fixed_rejected(self) -> None:
        with pytest.raises(InvalidTradeRequestError):
            validate_terms(SingleOffer(ItemStake("X", 1)), AnyRequest(), TradeType.FIXED)

    def test_valid_auction_terms(self) -> None:
        validate_terms(SingleOffer(ItemStake("X", 2)), AnyRequest(), TradeType.AUCTION)


class TestTrade:
    def test_defaults(self) -> None:
        trade = _make_trade()
        assert trade.status == TradeStatus.OPEN
        assert trade.taker_id is None
        assert not trade.is_any
        assert not trade.both_confirmed

    def test_is_party(self) -> None:
        trade = _make_trade(taker_id="bob")
        assert trade.is_party("alice")
        assert trade.is_party("bob")
        assert not trade.is_party("carol")

    def test_open_trade_has_only_creator_party(self) -> None:
        assert not _make_trade().is_party("bob")

    def test_referenced_item_ids(self) -> None:
        offer = BundleOffer((ItemStake("X", 1), ItemStake("Z", 1)))
        assert referenced_item_ids(offer, SpecificRequest(ItemStake("Y", 1))) == ["X", "Z", "Y"]
        assert referenced_item_ids(offer, AnyRequest()) == ["X", "Z"]

    def test_bid_stake(self) -> None:
        bid = Bid(
            id="bid_1", trade_id="trd_1", bidder_id="bob", bidder_name="Bob", item_id="Y", qty=5
        )
        assert bid.stake == ItemStake("Y", 5)
