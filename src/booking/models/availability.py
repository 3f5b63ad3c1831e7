"""Availability models for room-type inventory queries."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


class NightAvailability(BaseModel):
    """Inventory usage for a single night."""

    model_config = ConfigDict(strict=True, frozen=True)

    date: dt.date = Field(..., description="The night (YYYY-MM-DD)")
    booked: int = Field(..., ge=0, description="Units held by active reservations")
    available: int = Field(..., ge=0, description="Units still free")


class AvailabilityResponse(BaseModel):
    """Free units of a room type for a date range, with pricing.

    Advisory only: the authoritative check happens inside reserve().
    """

    model_config = ConfigDict(strict=True)

    room_type_id: str
    check_in: dt.date
    check_out: dt.date
    guests: int = Field(..., ge=1)
    available_units: int = Field(..., ge=0, description="Free units on the tightest night")
    is_available: bool
    total_nights: int = Field(..., ge=1)
    nightly_rate: int = Field(..., ge=0, description="Nightly rate in cents")
    total_amount: int = Field(..., ge=0, description="Total for the stay in cents")
    per_night: list[NightAvailability] | None = Field(
        default=None, description="Per-night breakdown when requested"
    )


class RoomTypeStatistics(BaseModel):
    """Occupancy counts for one room type on a night."""

    model_config = ConfigDict(strict=True)

    room_type_id: str
    total_rooms: int = Field(..., ge=0)
    occupied_rooms: int = Field(..., ge=0)
    available_rooms: int = Field(..., ge=0)


class RoomStatistics(BaseModel):
    """Occupancy summary across the catalog for a night."""

    model_config = ConfigDict(strict=True)

    date: dt.date
    total_rooms: int = Field(..., ge=0)
    occupied_rooms: int = Field(..., ge=0)
    available_rooms: int = Field(..., ge=0)
    occupancy_rate: float = Field(..., ge=0, le=100, description="Percent occupied")
    rooms_by_type: list[RoomTypeStatistics]
