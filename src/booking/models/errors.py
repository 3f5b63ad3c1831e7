"""Standard error codes and exceptions for the booking core.

Every failure a booking operation can produce is a BookingError carrying an
ErrorCode. Callers decide what to do from the code alone: retry on BUSY,
pick other dates on CAPACITY_EXCEEDED, fix the request on validation codes.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Error codes for booking operations."""

    # Validation errors, detected before any slot is taken
    INVALID_DATE_RANGE = "ERR_001"
    GUEST_COUNT_EXCEEDED = "ERR_002"
    INVALID_GUEST_COUNT = "ERR_003"
    ROOM_NOT_FOUND = "ERR_004"
    RESERVATION_NOT_FOUND = "ERR_005"

    # Inventory and coordination
    CAPACITY_EXCEEDED = "ERR_006"
    BUSY = "ERR_007"

    # Lifecycle
    INVALID_STATUS_TRANSITION = "ERR_008"
    UNAUTHORIZED = "ERR_009"

    # Settlement bridge
    REFUND_FAILED = "ERR_PAY_001"
    PAYMENT_FAILED = "ERR_PAY_002"
    SETTLEMENT_AMOUNT_MISMATCH = "ERR_PAY_003"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_DATE_RANGE: "Check-out must be after check-in and check-in cannot be in the past",
    ErrorCode.GUEST_COUNT_EXCEEDED: "Number of guests exceeds the room type capacity",
    ErrorCode.INVALID_GUEST_COUNT: "At least one guest is required",
    ErrorCode.ROOM_NOT_FOUND: "Room type not found",
    ErrorCode.RESERVATION_NOT_FOUND: "Reservation not found",
    ErrorCode.CAPACITY_EXCEEDED: "No units of this room type are free for the requested dates",
    ErrorCode.BUSY: "Room type is busy processing other bookings",
    ErrorCode.INVALID_STATUS_TRANSITION: "Reservation cannot move to the requested status",
    ErrorCode.UNAUTHORIZED: "Caller not authorized for this reservation",
    ErrorCode.REFUND_FAILED: "Refund could not be processed",
    ErrorCode.PAYMENT_FAILED: "Payment processing failed",
    ErrorCode.SETTLEMENT_AMOUNT_MISMATCH: "Settled amount does not match the reservation total",
}

# Recovery suggestions for clients
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.INVALID_DATE_RANGE: "Choose a check-in date from today onward and a later check-out date",
    ErrorCode.GUEST_COUNT_EXCEEDED: "Reduce the party size or choose a larger room type",
    ErrorCode.INVALID_GUEST_COUNT: "Provide the number of guests staying",
    ErrorCode.ROOM_NOT_FOUND: "Verify the room type ID",
    ErrorCode.RESERVATION_NOT_FOUND: "Verify the reservation ID",
    ErrorCode.CAPACITY_EXCEEDED: "Choose different dates or another room type",
    ErrorCode.BUSY: "Retry the request shortly",
    ErrorCode.INVALID_STATUS_TRANSITION: "Reload the reservation to see its current status",
    ErrorCode.UNAUTHORIZED: "Only the reservation owner or staff may do this",
    ErrorCode.REFUND_FAILED: "Retry the cancellation or contact support",
    ErrorCode.PAYMENT_FAILED: "Start a new booking and try again",
    ErrorCode.SETTLEMENT_AMOUNT_MISMATCH: "Contact support to reconcile the payment",
}

RETRYABLE_CODES: frozenset[ErrorCode] = frozenset({ErrorCode.BUSY, ErrorCode.REFUND_FAILED})


class ErrorResponse(BaseModel):
    """Serialized form of a BookingError."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    retryable: bool = False
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            An ErrorResponse with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            retryable=code in RETRYABLE_CODES,
            details=details,
        )


class BookingError(Exception):
    """Exception raised by booking operations.

    Subclasses fix the code; the base class may be raised with any code.
    """

    code: ErrorCode = ErrorCode.PAYMENT_FAILED

    def __init__(
        self,
        code: Optional[ErrorCode] = None,
        details: Optional[dict[str, str]] = None,
    ):
        if code is not None:
            self.code = code
        self.message = ERROR_MESSAGES[self.code]
        self.recovery = ERROR_RECOVERY[self.code]
        self.details = details
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return self.code in RETRYABLE_CODES

    def to_error_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse body."""
        return ErrorResponse.from_code(self.code, self.details)


class InvalidDateRange(BookingError):
    code = ErrorCode.INVALID_DATE_RANGE


class GuestCountExceeded(BookingError):
    code = ErrorCode.GUEST_COUNT_EXCEEDED


class InvalidGuestCount(BookingError):
    code = ErrorCode.INVALID_GUEST_COUNT


class RoomNotFound(BookingError):
    code = ErrorCode.ROOM_NOT_FOUND


class ReservationNotFound(BookingError):
    code = ErrorCode.RESERVATION_NOT_FOUND


class CapacityExceeded(BookingError):
    code = ErrorCode.CAPACITY_EXCEEDED


class Busy(BookingError):
    """The room type's coordination slot could not be acquired in time."""

    code = ErrorCode.BUSY


class InvalidStatusTransition(BookingError):
    code = ErrorCode.INVALID_STATUS_TRANSITION


class Unauthorized(BookingError):
    code = ErrorCode.UNAUTHORIZED


class RefundFailed(BookingError):
    code = ErrorCode.REFUND_FAILED


class PaymentFailed(BookingError):
    code = ErrorCode.PAYMENT_FAILED


class SettlementAmountMismatch(BookingError):
    code = ErrorCode.SETTLEMENT_AMOUNT_MISMATCH


class SettlementBridgeError(Exception):
    """Raised by a payment settlement bridge when a provider call fails."""

    def __init__(self, message: str, provider_error_code: str | None = None) -> None:
        """Initialize with message and optional provider error code.

        Args:
            message: Human-readable error message.
            provider_error_code: Provider-specific error code if available.
        """
        super().__init__(message)
        self.provider_error_code = provider_error_code
