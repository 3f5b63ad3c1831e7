"""Availability service for room-type inventory."""

import datetime as dt
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from booking.models import (
    AvailabilityResponse,
    GuestCountExceeded,
    InvalidDateRange,
    InvalidGuestCount,
    NightAvailability,
    RoomNotFound,
    RoomType,
)
from booking.services.overlap import Interval, nightly_usage, peak_overlap

if TYPE_CHECKING:
    from .store import ReservationStore, RoomCatalog


Clock = Callable[[], dt.datetime]


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class AvailabilityService:
    """Answers how many units of a room type are free for a date range.

    Reads are lock-free and therefore advisory when called directly. The
    booking service instead counts free units from the store's inventory
    snapshot under the room type's slot, and the store rejects the insert
    if that snapshot went stale, which makes that check authoritative.
    """

    def __init__(
        self,
        catalog: "RoomCatalog",
        store: "ReservationStore",
        clock: Clock = utc_now,
    ) -> None:
        """Initialize availability service.

        Args:
            catalog: Room type catalog
            store: Reservation store holding the active-interval index
            clock: Returns the current UTC instant
        """
        self.catalog = catalog
        self.store = store
        self.clock = clock

    def get_room_type(self, room_type_id: str) -> RoomType:
        """Look up a room type.

        Raises:
            RoomNotFound: If no such room type exists
        """
        room_type = self.catalog.get(room_type_id)
        if room_type is None:
            raise RoomNotFound(details={"room_type_id": room_type_id})
        return room_type

    def validate_range(
        self,
        check_in: dt.date,
        check_out: dt.date,
        now: dt.datetime | None = None,
    ) -> None:
        """Reject empty/inverted ranges and check-ins before today.

        Raises:
            InvalidDateRange: If check_out <= check_in or check_in is in the past
        """
        today = (now or self.clock()).date()
        if check_out <= check_in or check_in < today:
            raise InvalidDateRange(
                details={
                    "check_in": check_in.isoformat(),
                    "check_out": check_out.isoformat(),
                    "today": today.isoformat(),
                }
            )

    def validate_guests(self, room_type: RoomType, guests: int) -> None:
        """Check the party fits in one unit of the room type.

        Raises:
            InvalidGuestCount: If guests < 1
            GuestCountExceeded: If guests > room_type.capacity
        """
        if guests < 1:
            raise InvalidGuestCount(details={"requested": str(guests)})
        if guests > room_type.capacity:
            raise GuestCountExceeded(
                details={"requested": str(guests), "maximum": str(room_type.capacity)}
            )

    @staticmethod
    def free_units(
        room_type: RoomType,
        check_in: dt.date,
        check_out: dt.date,
        intervals: Iterable[Interval],
    ) -> int:
        """total_rooms minus peak concurrent usage over the range, never below zero."""
        used = peak_overlap(check_in, check_out, intervals)
        return max(0, room_type.total_rooms - used)

    def available_units(
        self,
        room_type: RoomType,
        check_in: dt.date,
        check_out: dt.date,
        now: dt.datetime | None = None,
    ) -> int:
        """Units of room_type free on every night of [check_in, check_out).

        Args:
            room_type: Room type to check
            check_in: First night
            check_out: Departure date (exclusive)
            now: Booking instant; defaults to the service clock

        Returns:
            total_rooms minus peak concurrent usage, never below zero

        Raises:
            InvalidDateRange: If the range is empty, inverted, or starts in the past
        """
        self.validate_range(check_in, check_out, now)
        intervals = self.store.active_intervals(room_type.room_type_id)
        return self.free_units(room_type, check_in, check_out, intervals)

    def nightly_breakdown(
        self,
        room_type: RoomType,
        check_in: dt.date,
        check_out: dt.date,
        intervals: Iterable[Interval] | None = None,
    ) -> list[NightAvailability]:
        """Booked and free units for each night of the range."""
        if intervals is None:
            intervals = self.store.active_intervals(room_type.room_type_id)
        return [
            NightAvailability(
                date=night,
                booked=booked,
                available=max(0, room_type.total_rooms - booked),
            )
            for night, booked in nightly_usage(check_in, check_out, intervals)
        ]

    def check_availability(
        self,
        room_type_id: str,
        check_in: dt.date,
        check_out: dt.date,
        guests: int = 1,
        include_breakdown: bool = False,
    ) -> AvailabilityResponse:
        """Check free units and price a stay for display.

        Args:
            room_type_id: Room type to check
            check_in: Check-in date
            check_out: Check-out date
            guests: Party size
            include_breakdown: Add per-night usage to the response

        Returns:
            AvailabilityResponse with count and pricing
        """
        room_type = self.get_room_type(room_type_id)
        self.validate_range(check_in, check_out)
        self.validate_guests(room_type, guests)

        # One read serves both the count and the breakdown
        intervals = self.store.active_intervals(room_type_id)
        count = self.free_units(room_type, check_in, check_out, intervals)
        nights = (check_out - check_in).days

        return AvailabilityResponse(
            room_type_id=room_type_id,
            check_in=check_in,
            check_out=check_out,
            guests=guests,
            available_units=count,
            is_available=count > 0,
            total_nights=nights,
            nightly_rate=room_type.price_per_night,
            total_amount=room_type.price_per_night * nights,
            per_night=(
                self.nightly_breakdown(room_type, check_in, check_out, intervals)
                if include_breakdown
                else None
            ),
        )
