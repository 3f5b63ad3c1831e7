"""Reservation model for room bookings."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import ACTIVE_STATUSES, ReservationStatus


class Reservation(BaseModel):
    """A booking of one unit of a room type for a half-open date range.

    The stay covers the nights check_in .. check_out - 1. Reservations are
    never deleted; cancellation is a terminal status. The room type and the
    owning user are referenced by opaque IDs only.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    reservation_id: str = Field(..., description="Unique reservation ID")
    user_id: str = Field(..., description="Owning user ID")
    room_type_id: str = Field(..., description="Booked room type ID")
    check_in: dt.date = Field(..., description="First night of the stay")
    check_out: dt.date = Field(..., description="Departure date (exclusive)")
    number_of_guests: int = Field(..., ge=1, description="Guests staying")
    status: ReservationStatus = Field(..., description="Lifecycle status")
    total_amount: int = Field(..., ge=0, description="Total price in cents")
    created_at: dt.datetime = Field(..., description="Creation timestamp")
    updated_at: dt.datetime = Field(..., description="Last status change")
    notes: str | None = Field(default=None, description="Special requests")
    cancellation_reason: str | None = Field(default=None)
    cancelled_at: dt.datetime | None = Field(default=None)
    refund_amount: int | None = Field(
        default=None, ge=0, description="Amount refunded on cancellation, in cents"
    )

    @model_validator(mode="after")
    def _check_dates(self) -> "Reservation":
        if self.check_out <= self.check_in:
            raise ValueError("check_out must be after check_in")
        return self

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days

    @property
    def is_active(self) -> bool:
        """Whether this reservation currently holds inventory."""
        return self.status in ACTIVE_STATUSES

    def covers(self, night: dt.date) -> bool:
        return self.check_in <= night < self.check_out
