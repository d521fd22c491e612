"""Unified error codes and custom exceptions.

Every expected failure of an engine operation is an AppError subclass. The
``kind`` attribute names its family (NotFound, InvalidState, ...) so callers
can branch on the family without enumerating codes.

Error code ranges:
  1xxx: Auth/User
  2xxx: Inventory
  3xxx: Catalog
  4xxx: Trade/Bid
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    kind: str = "Internal"

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


class NotFoundError(AppError):
    kind = "NotFound"


class InvalidStateError(AppError):
    kind = "InvalidState"


class UnauthorizedError(AppError):
    kind = "Unauthorized"


class ValidationError(AppError):
    kind = "Validation"


# --- 1xxx: Auth/User ---

class UsernameExistsError(AppError):
    kind = "Conflict"

    def __init__(self) -> None:
        super().__init__(1001, "Username already exists", 409)


class EmailExistsError(AppError):
    kind = "Conflict"

    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(UnauthorizedError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password", 401)


class AccountDisabledError(UnauthorizedError):
    def __init__(self) -> None:
        super().__init__(1004, "Your account has been frozen by an administrator", 403)


class InvalidRefreshTokenError(UnauthorizedError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1006, f"User not found: {user_id}", 404)


class AdminRequiredError(UnauthorizedError):
    def __init__(self) -> None:
        super().__init__(1007, "Administrator role required", 403)


class UserDeletionRefusedError(InvalidStateError):
    def __init__(self, user_id: str, reason: str) -> None:
        super().__init__(1008, f"Cannot delete user {user_id}: {reason}", 409)


# --- 2xxx: Inventory ---

class InsufficientStockError(AppError):
    kind = "InsufficientStock"

    def __init__(self, item_id: str, required: int, available: int) -> None:
        self.item_id = item_id
        self.required = required
        self.available = available
        super().__init__(
            2001,
            f"Insufficient stock of item {item_id}: need {required - available} more "
            f"(required {required}, available {available})",
            422,
        )


class InvalidAdjustmentError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(2002, f"Invalid inventory adjustment: {detail}", 422)


# --- 3xxx: Catalog ---

class ItemNotFoundError(NotFoundError):
    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(3001, f"Item not found: {item_id}", 404)


# --- 4xxx: Trade/Bid ---

class TradeNotFoundError(NotFoundError):
    def __init__(self, trade_id: str) -> None:
        super().__init__(4001, f"Trade not found: {trade_id}", 404)


class InvalidTradeStateError(InvalidStateError):
    def __init__(self, trade_id: str, status: str, action: str) -> None:
        self.status = status
        super().__init__(
            4002, f"Cannot {action} trade {trade_id}: trade is {status}", 409
        )


class SelfTradeRejectedError(AppError):
    kind = "SelfTradeRejected"

    def __init__(self) -> None:
        super().__init__(4003, "You cannot trade with yourself", 422)


class NotTradePartyError(UnauthorizedError):
    def __init__(self, trade_id: str, action: str) -> None:
        super().__init__(4004, f"Not authorized to {action} trade {trade_id}", 403)


class BidNotFoundError(NotFoundError):
    def __init__(self, bid_id: str) -> None:
        super().__init__(4005, f"Bid not found: {bid_id}", 404)


class TradeTypeMismatchError(InvalidStateError):
    def __init__(self, trade_id: str, trade_type: str, action: str) -> None:
        super().__init__(
            4006, f"Cannot {action} trade {trade_id}: trade type is {trade_type}", 409
        )


class InvalidTradeRequestError(ValidationError):
    def __init__(self, detail: str) -> None:
        super().__init__(4007, f"Invalid trade: {detail}", 422)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class StorageConflictError(AppError):
    kind = "StorageConflict"

    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Concurrent update rejected, please retry: {detail}", 409)


class CompensationFailedError(AppError):
    """A compensating refund failed: the ledger needs reconciliation."""

    kind = "LedgerDrift"

    def __init__(self, detail: str) -> None:
        super().__init__(9004, f"Compensation failed, reconciliation required: {detail}", 500)
