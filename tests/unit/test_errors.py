"""Tests for bb_common.errors and bb_common.response."""

from src.bb_common.errors import (
    AppError,
    BidNotFoundError,
    CompensationFailedError,
    InsufficientStockError,
    InvalidTradeStateError,
    ItemNotFoundError,
    NotTradePartyError,
    SelfTradeRejectedError,
    StorageConflictError,
    TradeNotFoundError,
)
from src.bb_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500
        assert err.kind == "Internal"

    def test_custom_http_status(self) -> None:
        err = AppError(code=1001, message="Username taken", http_status=409)
        assert err.http_status == 409

    def test_is_exception(self) -> None:
        err = AppError(code=1001, message="test")
        assert isinstance(err, Exception)


class TestErrorFamilies:
    def test_insufficient_stock_reports_shortfall(self) -> None:
        err = InsufficientStockError("X", required=5, available=2)
        assert err.kind == "InsufficientStock"
        assert err.code == 2001
        assert err.http_status == 422
        assert "need 3 more" in err.message
        assert err.item_id == "X"

    def test_not_found_family(self) -> None:
        for err in (TradeNotFoundError("t1"), BidNotFoundError("b1"), ItemNotFoundError("i1")):
            assert err.kind == "NotFound"
            assert err.http_status == 404

    def test_invalid_state_names_action_and_status(self) -> None:
        err = InvalidTradeStateError("trd_1", "PENDING", "cancel")
        assert err.kind == "InvalidState"
        assert err.status == "PENDING"
        assert err.message == "Cannot cancel trade trd_1: trade is PENDING"

    def test_not_party_is_unauthorized(self) -> None:
        err = NotTradePartyError("trd_1", "confirm")
        assert err.kind == "Unauthorized"
        assert err.http_status == 403

    def test_self_trade(self) -> None:
        assert SelfTradeRejectedError().kind == "SelfTradeRejected"

    def test_storage_conflict_is_retryable_409(self) -> None:
        err = StorageConflictError("accept trade trd_1")
        assert err.kind == "StorageConflict"
        assert err.http_status == 409

    def test_compensation_failure_is_server_error(self) -> None:
        err = CompensationFailedError("x")
        assert err.kind == "LedgerDrift"
        assert err.http_status == 500


class TestApiResponse:
    def test_success_response(self) -> None:
        resp = success_response({"id": 1})
        assert isinstance(resp, ApiResponse)
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"id": 1}
        assert resp.request_id.startswith("req_")

    def test_error_response_carries_kind(self) -> None:
        resp = error_response(4001, "Trade not found: t1", "NotFound")
        assert resp.code == 4001
        assert resp.data == {"kind": "NotFound"}

    def test_error_response_without_kind(self) -> None:
        assert error_response(9002, "boom").data is None
