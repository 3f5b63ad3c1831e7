"""Pydantic models for booking data entities."""

from .availability import (
    AvailabilityResponse,
    NightAvailability,
    RoomStatistics,
    RoomTypeStatistics,
)
from .caller import Caller
from .enums import (
    ACTIVE_STATUSES,
    OCCUPYING_STATUSES,
    PRIVILEGED_ROLES,
    TERMINAL_STATUSES,
    CallerRole,
    PaymentStatus,
    ReservationEvent,
    ReservationStatus,
    SettlementOutcome,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    BookingError,
    Busy,
    CapacityExceeded,
    ErrorCode,
    ErrorResponse,
    GuestCountExceeded,
    InvalidDateRange,
    InvalidGuestCount,
    InvalidStatusTransition,
    PaymentFailed,
    RefundFailed,
    ReservationNotFound,
    RoomNotFound,
    SettlementAmountMismatch,
    SettlementBridgeError,
    Unauthorized,
)
from .payment import Payment, PaymentIntent, RefundReceipt
from .reservation import Reservation
from .room_type import RoomType
from .webhook import StripeWebhookEvent

__all__ = [
    # Enums
    "ACTIVE_STATUSES",
    "OCCUPYING_STATUSES",
    "PRIVILEGED_ROLES",
    "TERMINAL_STATUSES",
    "CallerRole",
    "PaymentStatus",
    "ReservationEvent",
    "ReservationStatus",
    "SettlementOutcome",
    # Entities
    "Caller",
    "Payment",
    "PaymentIntent",
    "RefundReceipt",
    "Reservation",
    "RoomType",
    "StripeWebhookEvent",
    # Availability
    "AvailabilityResponse",
    "NightAvailability",
    "RoomStatistics",
    "RoomTypeStatistics",
    # Errors
    "BookingError",
    "Busy",
    "CapacityExceeded",
    "ErrorCode",
    "ErrorResponse",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "GuestCountExceeded",
    "InvalidDateRange",
    "InvalidGuestCount",
    "InvalidStatusTransition",
    "PaymentFailed",
    "RefundFailed",
    "ReservationNotFound",
    "RoomNotFound",
    "SettlementAmountMismatch",
    "SettlementBridgeError",
    "Unauthorized",
]
