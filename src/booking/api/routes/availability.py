"""Availability endpoint.

Counts free units of a room type for a date range and prices the stay.
All dates are YYYY-MM-DD; check_out is exclusive. Amounts are in cents.
"""

import datetime as dt

from fastapi import APIRouter, Depends, Query

from booking.api.dependencies import get_booking_service
from booking.models import AvailabilityResponse
from booking.services.booking import BookingService

router = APIRouter(tags=["availability"])


@router.get(
    "/availability",
    summary="Check room type availability",
    description="""
Count the free units of a room type for every night of a date range.

**Notes:**
- Advisory only: another booking may take the last unit before you reserve
- check_out is exclusive (last night is check_out - 1 day)
- Set breakdown=true for per-night usage
""",
    response_model=AvailabilityResponse,
    responses={
        400: {"description": "Invalid date range or guest count"},
        404: {"description": "Room type not found"},
    },
)
def check_availability(
    room_type_id: str = Query(..., description="Room type ID"),
    check_in: dt.date = Query(..., description="Check-in date (YYYY-MM-DD)"),
    check_out: dt.date = Query(..., description="Check-out date (YYYY-MM-DD)"),
    guests: int = Query(default=1, description="Number of guests"),
    breakdown: bool = Query(default=False, description="Include per-night usage"),
    service: BookingService = Depends(get_booking_service),
) -> AvailabilityResponse:
    return service.availability.check_availability(
        room_type_id, check_in, check_out, guests=guests, include_breakdown=breakdown
    )
