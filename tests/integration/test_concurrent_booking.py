"""Concurrency tests: many threads booking the same room type.

Overlap checks and inserts for one room type are serialized by the booking
slot, so whatever the interleaving, no night ever holds more active
reservations than the room type has units.
"""

import datetime as dt
import random
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any

import pytest

from conftest import FakeClock

from booking.models import (
    BookingError,
    Caller,
    CapacityExceeded,
    InvalidStatusTransition,
    Reservation,
    ReservationStatus,
    RoomType,
    SettlementOutcome,
)
from booking.services.booking import BookingService
from booking.services.locks import RoomTypeLocks
from booking.services.overlap import nightly_usage
from booking.services.payment_bridge import MockSettlementBridge
from booking.services.store import InMemoryReservationStore, RoomCatalog

pytestmark = pytest.mark.integration

WORKERS = 16


@pytest.fixture
def concurrent_service(
    catalog: RoomCatalog,
    store: InMemoryReservationStore,
    bridge: MockSettlementBridge,
    clock: FakeClock,
) -> BookingService:
    # Generous timeout: these tests are about contention, not Busy
    return BookingService(
        catalog, store, bridge, locks=RoomTypeLocks(timeout_seconds=30), clock=clock
    )


def _run_together(*calls: Callable[[], Any]) -> list[tuple[Any, BookingError | None]]:
    """Run callables on separate threads released at the same moment.

    Returns one (result, exception) pair per call, in call order.
    """
    barrier = threading.Barrier(len(calls))

    def run(call: Callable[[], Any]) -> tuple[Any, BookingError | None]:
        barrier.wait()
        try:
            return call(), None
        except BookingError as e:
            return None, e

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        futures = [pool.submit(run, call) for call in calls]
        return [f.result() for f in futures]


def _max_usage(store: InMemoryReservationStore, room_type_id: str) -> int:
    intervals = store.active_intervals(room_type_id)
    usage = nightly_usage(dt.date(2026, 4, 1), dt.date(2026, 5, 1), intervals)
    return max(count for _, count in usage)


class TestOverlappingRequests:
    def test_last_unit_goes_to_exactly_one(
        self, concurrent_service: BookingService, store: InMemoryReservationStore
    ) -> None:
        """Two overlapping stays for the single remaining unit."""
        results = _run_together(
            lambda: concurrent_service.reserve(
                "user-guest-1", "single", dt.date(2026, 4, 10), dt.date(2026, 4, 12), 1
            ),
            lambda: concurrent_service.reserve(
                "user-guest-2", "single", dt.date(2026, 4, 11), dt.date(2026, 4, 13), 1
            ),
        )

        winners = [r for r, e in results if e is None]
        losers = [e for r, e in results if e is not None]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], CapacityExceeded)
        assert len(store.active_intervals("single")) == 1

    def test_back_to_back_stays_both_succeed(
        self, concurrent_service: BookingService, store: InMemoryReservationStore
    ) -> None:
        results = _run_together(
            lambda: concurrent_service.reserve(
                "user-guest-1", "single", dt.date(2026, 4, 10), dt.date(2026, 4, 12), 1
            ),
            lambda: concurrent_service.reserve(
                "user-guest-2", "single", dt.date(2026, 4, 12), dt.date(2026, 4, 14), 1
            ),
        )
        assert all(e is None for _, e in results)
        assert _max_usage(store, "single") == 1

    def test_many_threads_never_overbook(
        self,
        concurrent_service: BookingService,
        store: InMemoryReservationStore,
        deluxe: RoomType,
    ) -> None:
        rng = random.Random(42)
        requests = []
        for i in range(WORKERS * 4):
            start = dt.date(2026, 4, 1) + dt.timedelta(days=rng.randrange(20))
            end = start + dt.timedelta(days=rng.randrange(1, 6))
            requests.append((f"user-{i}", start, end))

        def book(user_id: str, start: dt.date, end: dt.date) -> Reservation | None:
            try:
                return concurrent_service.reserve(user_id, "deluxe", start, end, 1)
            except CapacityExceeded:
                return None

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            booked = [r for r in pool.map(lambda req: book(*req), requests) if r is not None]

        assert booked
        assert _max_usage(store, "deluxe") <= deluxe.total_rooms
        assert len(store.active_intervals("deluxe")) == len(booked)

    def test_other_room_types_not_blocked(
        self, concurrent_service: BookingService, store: InMemoryReservationStore
    ) -> None:
        night = (dt.date(2026, 4, 10), dt.date(2026, 4, 11))
        calls = [
            partial(concurrent_service.reserve, f"user-{i}", room_type_id, *night, 1)
            for i, room_type_id in enumerate(["deluxe", "single", "deluxe", "single"])
        ]
        results = _run_together(*calls)
        succeeded = [r for r, e in results if e is None]
        # Two deluxe units and one single unit for the same night
        assert len(succeeded) == 3
        assert _max_usage(store, "deluxe") == 2
        assert _max_usage(store, "single") == 1


class TestCancelAgainstSettlement:
    def test_cancel_racing_payment_success(
        self,
        concurrent_service: BookingService,
        bridge: MockSettlementBridge,
        guest: Caller,
    ) -> None:
        for _ in range(10):
            reservation = concurrent_service.reserve(
                guest.user_id, "deluxe", dt.date(2026, 4, 10), dt.date(2026, 4, 12), 2
            )
            refunds_before = len(bridge.refunds)

            (_, cancel_error), (_, settle_error) = _run_together(
                partial(concurrent_service.cancel, reservation.reservation_id, guest),
                partial(
                    concurrent_service.handle_settlement,
                    reservation.reservation_id,
                    SettlementOutcome.SUCCEEDED,
                    settled_amount=reservation.total_amount,
                ),
            )

            assert cancel_error is None
            assert settle_error is None
            final = concurrent_service.store.get(reservation.reservation_id)
            assert final is not None
            # Whichever lands first, the money goes back exactly once
            assert final.status == ReservationStatus.CANCELLED
            assert final.refund_amount == reservation.total_amount
            assert len(bridge.refunds) == refunds_before + 1

    def test_concurrent_cancels_refund_once(
        self,
        concurrent_service: BookingService,
        bridge: MockSettlementBridge,
        guest: Caller,
        manager: Caller,
    ) -> None:
        reservation = concurrent_service.reserve(
            guest.user_id, "deluxe", dt.date(2026, 4, 10), dt.date(2026, 4, 12), 2
        )
        concurrent_service.handle_settlement(
            reservation.reservation_id,
            SettlementOutcome.SUCCEEDED,
            settled_amount=reservation.total_amount,
        )

        results = _run_together(
            lambda: concurrent_service.cancel(reservation.reservation_id, guest),
            lambda: concurrent_service.cancel(reservation.reservation_id, manager),
        )

        errors = [e for _, e in results if e is not None]
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidStatusTransition)
        assert len(bridge.refunds) == 1
