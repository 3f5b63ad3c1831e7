"""API models for reservation endpoints."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from booking.models import Payment, Reservation, ReservationEvent


class ReservationCreateRequest(BaseModel):
    """Request to book one unit of a room type.

    The user ID is not included; it comes from the gateway identity.
    """

    model_config = ConfigDict(
        # strict=False allows string-to-date coercion from JSON
        strict=False,
        json_schema_extra={
            "examples": [
                {
                    "room_type_id": "deluxe-double",
                    "check_in": "2026-07-15",
                    "check_out": "2026-07-18",
                    "guests": 2,
                    "notes": "Late arrival around 10pm",
                }
            ]
        },
    )

    room_type_id: str = Field(..., min_length=1, description="Room type to book")
    check_in: date = Field(..., description="Check-in date (YYYY-MM-DD)")
    check_out: date = Field(..., description="Check-out date (YYYY-MM-DD), exclusive")
    guests: int = Field(..., description="Number of guests staying")
    notes: str | None = Field(
        default=None,
        max_length=500,
        description="Special requests or notes",
    )


class ReservationCreatedResponse(BaseModel):
    """A new reservation with what the client needs to pay for it."""

    reservation: Reservation
    payment_intent_id: str | None = Field(
        default=None, description="Provider payment intent ID"
    )
    client_secret: str | None = Field(
        default=None, description="Secret for completing the payment client-side"
    )


class ReservationListResponse(BaseModel):
    reservations: list[Reservation]
    total_count: int


class CancellationRequest(BaseModel):
    reason: str | None = Field(
        default=None, max_length=500, description="Why the stay is cancelled"
    )


class CancellationResponse(BaseModel):
    """Result of a cancellation, including the refund issued."""

    reservation: Reservation
    refund_amount: int = Field(..., ge=0, description="Refunded amount in cents")
    message: str


class TransitionRequest(BaseModel):
    """Lifecycle event to apply (check_in and check_out are staff-only)."""

    event: ReservationEvent


class PaymentListResponse(BaseModel):
    payments: list[Payment]
    total_count: int
