"""Domain error codes for the settlement pipeline.

Every error carries a stable machine-readable code, a user-safe message and
the HTTP status the API answers with.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    REFERENCE_NOT_FOUND = "REFERENCE_NOT_FOUND"
    REFERENCE_MISMATCH = "REFERENCE_MISMATCH"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    TICKET_TYPE_NOT_FOUND = "TICKET_TYPE_NOT_FOUND"
    TICKET_NOT_FOUND = "TICKET_NOT_FOUND"
    PRICE_MISMATCH = "PRICE_MISMATCH"
    AMOUNT_MISMATCH = "AMOUNT_MISMATCH"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INVENTORY_EXHAUSTED = "INVENTORY_EXHAUSTED"
    STORAGE_CONFLICT = "STORAGE_CONFLICT"
    UNSUPPORTED_PURPOSE = "UNSUPPORTED_PURPOSE"
    UNSUPPORTED_PAYMENT_METHOD = "UNSUPPORTED_PAYMENT_METHOD"
    DISCOUNT_INVALID = "DISCOUNT_INVALID"
    REFERRAL_INVALID = "REFERRAL_INVALID"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    GATEWAY_ERROR = "GATEWAY_ERROR"
    GATEWAY_TIMEOUT = "GATEWAY_TIMEOUT"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str
    status_code: int = 400

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ValidationError(DomainError):
    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.VALIDATION_ERROR, message=message)


class Unauthorized(DomainError):
    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(code=ErrorCode.UNAUTHORIZED, message=message, status_code=401)


class Forbidden(DomainError):
    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(code=ErrorCode.FORBIDDEN, message=message, status_code=403)


class ReferenceNotFound(DomainError):
    """Raised when a payment reference does not exist."""

    def __init__(self, reference: str) -> None:
        super().__init__(
            code=ErrorCode.REFERENCE_NOT_FOUND,
            message="Payment reference not found",
            status_code=404,
        )
        self.reference = reference


class ReferenceMismatch(DomainError):
    """Raised when a settlement request does not match the stored reference."""

    def __init__(self, field: str) -> None:
        super().__init__(
            code=ErrorCode.REFERENCE_MISMATCH,
            message=f"Payment reference does not match request ({field})",
            status_code=403,
        )


class UserNotFound(DomainError):
    def __init__(self, user_id: str) -> None:
        super().__init__(code=ErrorCode.USER_NOT_FOUND, message="User not found", status_code=404)
        self.user_id = user_id


class EventNotFound(DomainError):
    def __init__(self, event_id: str) -> None:
        super().__init__(code=ErrorCode.EVENT_NOT_FOUND, message="Event not found", status_code=404)
        self.event_id = event_id


class TicketTypeNotFound(DomainError):
    def __init__(self, ticket_type: str) -> None:
        super().__init__(
            code=ErrorCode.TICKET_TYPE_NOT_FOUND,
            message=f"Ticket type '{ticket_type}' is not offered for this event",
            status_code=404,
        )


class TicketNotFound(DomainError):
    def __init__(self) -> None:
        super().__init__(code=ErrorCode.TICKET_NOT_FOUND, message="Ticket not found", status_code=404)


class PriceMismatch(DomainError):
    def __init__(self, claimed: int, listed: int) -> None:
        super().__init__(
            code=ErrorCode.PRICE_MISMATCH,
            message=f"Ticket price {claimed} does not match listed price {listed}",
        )


class AmountMismatch(DomainError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            code=ErrorCode.AMOUNT_MISMATCH,
            message=f"Payment amount {actual} does not match expected total {expected}",
        )


class InsufficientFunds(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_FUNDS,
            message="Insufficient wallet balance",
            status_code=402,
        )


class InventoryExhausted(DomainError):
    def __init__(self, ticket_type: str) -> None:
        super().__init__(
            code=ErrorCode.INVENTORY_EXHAUSTED,
            message=f"No '{ticket_type}' tickets left",
            status_code=409,
        )


class StorageConflict(DomainError):
    """Transaction contention; the whole settle call may be retried."""

    def __init__(self, reference: str) -> None:
        super().__init__(
            code=ErrorCode.STORAGE_CONFLICT,
            message="Settlement conflicted with a concurrent write, please retry",
            status_code=409,
        )
        self.reference = reference


class UnsupportedPurpose(DomainError):
    def __init__(self, purpose: str) -> None:
        super().__init__(
            code=ErrorCode.UNSUPPORTED_PURPOSE,
            message=f"Settlement of '{purpose}' payments is not supported",
        )


class UnsupportedPaymentMethod(DomainError):
    def __init__(self, method: str) -> None:
        super().__init__(
            code=ErrorCode.UNSUPPORTED_PAYMENT_METHOD,
            message=f"Payment method '{method}' cannot be used here",
        )


class DiscountInvalid(DomainError):
    """Raised when a discount code fails validation."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(code=ErrorCode.DISCOUNT_INVALID, message=message)
        self.reason = reason


class DiscountNotFound(DiscountInvalid):
    def __init__(self, code: str) -> None:
        super().__init__("NOT_FOUND", "Invalid discount code")
        self.status_code = 404
        self.discount_code = code


class ReferralInvalid(DomainError):
    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.REFERRAL_INVALID, message=message)


class PaymentPending(DomainError):
    def __init__(self, reference: str) -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_PENDING,
            message=f"Payment {reference} is not confirmed yet",
            status_code=409,
        )


class PaymentFailed(DomainError):
    def __init__(self, reference: str, reason: str = "") -> None:
        super().__init__(
            code=ErrorCode.PAYMENT_FAILED,
            message=f"Payment {reference} did not go through" + (f": {reason}" if reason else ""),
            status_code=402,
        )


class GatewayError(DomainError):
    """Non-2xx answer from a payment provider, with the provider's message."""

    def __init__(self, message: str, status_code: int = 502) -> None:
        super().__init__(code=ErrorCode.GATEWAY_ERROR, message=message, status_code=status_code)


class GatewayTimeout(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.GATEWAY_TIMEOUT,
            message="Payment service timeout - please try again",
            status_code=408,
        )
