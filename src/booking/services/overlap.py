"""Interval overlap engine for room-night accounting.

Pure functions over half-open date intervals [start, end). A reservation
ending on day D and one starting on day D never share a night.
"""

import datetime as dt
from collections.abc import Iterable

from booking.models.errors import InvalidDateRange

Interval = tuple[dt.date, dt.date]


def _clipped_events(
    check_in: dt.date,
    check_out: dt.date,
    intervals: Iterable[Interval],
) -> list[tuple[dt.date, int]]:
    """Build sweep events for the intervals clipped to [check_in, check_out).

    Each interval contributes +1 at its start and -1 at its end. Sorting the
    (date, delta) tuples puts -1 before +1 on the same date, so a checkout
    frees its unit before a same-day checkin claims one.
    """
    events: list[tuple[dt.date, int]] = []
    for start, end in intervals:
        lo = max(start, check_in)
        hi = min(end, check_out)
        if lo < hi:
            events.append((lo, 1))
            events.append((hi, -1))
    events.sort()
    return events


def peak_overlap(
    check_in: dt.date,
    check_out: dt.date,
    intervals: Iterable[Interval],
) -> int:
    """Maximum number of intervals covering any single night in [check_in, check_out).

    This is the worst night, not the number of intervals touching the
    window: two bookings may each overlap the window without ever sharing
    a night with each other.

    Args:
        check_in: First night of the query window
        check_out: End of the query window (exclusive)
        intervals: Existing [start, end) intervals for one room type

    Returns:
        Peak concurrent usage, >= 0

    Raises:
        InvalidDateRange: If check_out <= check_in
    """
    if check_out <= check_in:
        raise InvalidDateRange(
            details={"check_in": check_in.isoformat(), "check_out": check_out.isoformat()}
        )

    running = 0
    peak = 0
    for _, delta in _clipped_events(check_in, check_out, intervals):
        running += delta
        if running > peak:
            peak = running
    return peak


def nightly_usage(
    check_in: dt.date,
    check_out: dt.date,
    intervals: Iterable[Interval],
) -> list[tuple[dt.date, int]]:
    """Number of intervals covering each night in [check_in, check_out).

    Returns:
        One (night, count) pair per night, in date order
    """
    if check_out <= check_in:
        raise InvalidDateRange(
            details={"check_in": check_in.isoformat(), "check_out": check_out.isoformat()}
        )

    deltas: dict[dt.date, int] = {}
    for day, delta in _clipped_events(check_in, check_out, intervals):
        deltas[day] = deltas.get(day, 0) + delta

    usage: list[tuple[dt.date, int]] = []
    running = 0
    night = check_in
    while night < check_out:
        running += deltas.get(night, 0)
        usage.append((night, running))
        night += dt.timedelta(days=1)
    return usage
