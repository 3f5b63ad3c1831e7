"""Enumeration types for booking data models."""

from enum import Enum


class ReservationStatus(str, Enum):
    """Lifecycle status of a reservation."""

    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"


# Statuses that hold an inventory unit for the nights they cover
ACTIVE_STATUSES: frozenset[ReservationStatus] = frozenset(
    {
        ReservationStatus.PENDING_PAYMENT,
        ReservationStatus.CONFIRMED,
        ReservationStatus.CHECKED_IN,
    }
)

# Statuses counted as occupying a room on a given night (statistics only)
OCCUPYING_STATUSES: frozenset[ReservationStatus] = frozenset(
    {ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_IN}
)

TERMINAL_STATUSES: frozenset[ReservationStatus] = frozenset(
    {ReservationStatus.CHECKED_OUT, ReservationStatus.CANCELLED}
)


class ReservationEvent(str, Enum):
    """Events that drive reservation status transitions."""

    PAYMENT_SUCCEEDED = "payment_succeeded"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_TIMEOUT = "payment_timeout"
    CANCEL = "cancel"
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"


class PaymentStatus(str, Enum):
    """Settlement status of a payment."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"


class SettlementOutcome(str, Enum):
    """Outcome reported by the payment settlement bridge."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class CallerRole(str, Enum):
    """Role of the caller performing an operation."""

    GUEST = "guest"
    MANAGER = "manager"
    ADMIN = "admin"


PRIVILEGED_ROLES: frozenset[CallerRole] = frozenset(
    {CallerRole.MANAGER, CallerRole.ADMIN}
)
