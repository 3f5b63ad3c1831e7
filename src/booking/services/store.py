"""Reservation arena and room-type catalog.

The store keeps reservation records keyed by ID plus an index by
(room_type_id, status) so the active-interval set of a room type is
rebuilt without scanning every reservation ever made. Status changes go
through commit(), a compare-and-set against the status the caller last saw.

Each room type also carries an inventory version, bumped by every add().
A booking reads an InventorySnapshot and passes its version back to add(),
which refuses the insert with InventoryChanged if another booking of the
same room type landed in between. This holds across processes sharing one
durable store, where the in-process booking slot cannot.
"""

import abc
import threading
from collections import defaultdict
from collections.abc import Iterable
from typing import NamedTuple

from booking.models import (
    ACTIVE_STATUSES,
    Payment,
    Reservation,
    ReservationStatus,
    RoomType,
)
from booking.services.overlap import Interval


class InventoryChanged(Exception):
    """A booking of the room type was recorded after the snapshot was read."""


class InventorySnapshot(NamedTuple):
    intervals: list[Interval]
    version: int


class ReservationStore(abc.ABC):
    """Storage contract for reservations and their payments."""

    @abc.abstractmethod
    def add(
        self,
        reservation: Reservation,
        payment: Payment | None = None,
        *,
        expected_version: int | None = None,
    ) -> None:
        """Insert a new reservation (and optionally its payment).

        Args:
            reservation: New reservation
            payment: Its payment record
            expected_version: Inventory version the caller's availability
                check was based on; None skips the check

        Raises:
            ValueError: If the reservation ID already exists
            InventoryChanged: If the room type's version is no longer expected_version
        """

    @abc.abstractmethod
    def inventory(self, room_type_id: str) -> InventorySnapshot:
        """Active intervals of a room type and the version they were read at.

        Unlike the index queries this read is authoritative: it reflects
        every add() and commit() that has returned.
        """

    @abc.abstractmethod
    def get(self, reservation_id: str) -> Reservation | None:
        """Get a reservation by ID."""

    @abc.abstractmethod
    def list_by_room_type_and_status(
        self, room_type_id: str, status: ReservationStatus
    ) -> list[Reservation]:
        """Reservations of one room type in one status (the (room type, status) index)."""

    @abc.abstractmethod
    def list_by_status(self, status: ReservationStatus) -> list[Reservation]:
        """Reservations in one status across all room types."""

    @abc.abstractmethod
    def list_by_user(self, user_id: str) -> list[Reservation]:
        """Reservations owned by a user, newest first."""

    @abc.abstractmethod
    def list_all(self) -> list[Reservation]:
        """Every reservation, newest first."""

    @abc.abstractmethod
    def commit(
        self,
        reservation: Reservation,
        expected_status: ReservationStatus,
        payment: Payment | None = None,
    ) -> bool:
        """Replace a reservation if its stored status still equals expected_status.

        The payment, when given, is written in the same step.

        Returns:
            True if written, False if the stored status had moved on
        """

    @abc.abstractmethod
    def get_payment(self, reservation_id: str) -> Payment | None:
        """Get the current payment for a reservation."""

    @abc.abstractmethod
    def save_payment(self, payment: Payment) -> None:
        """Insert or replace the payment for its reservation."""

    @abc.abstractmethod
    def list_payments_by_user(self, user_id: str) -> list[Payment]:
        """Payments made by a user, newest first."""

    def active_intervals(self, room_type_id: str) -> list[Interval]:
        """[check_in, check_out) of every reservation holding inventory of a room type."""
        intervals: list[Interval] = []
        for status in ACTIVE_STATUSES:
            intervals.extend(
                (r.check_in, r.check_out)
                for r in self.list_by_room_type_and_status(room_type_id, status)
            )
        return intervals


class InMemoryReservationStore(ReservationStore):
    """Thread-safe in-process reservation arena."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._reservations: dict[str, Reservation] = {}
        self._by_room_status: defaultdict[tuple[str, ReservationStatus], set[str]] = (
            defaultdict(set)
        )
        self._by_user: defaultdict[str, set[str]] = defaultdict(set)
        self._payments: dict[str, Payment] = {}
        self._versions: defaultdict[str, int] = defaultdict(int)

    def add(
        self,
        reservation: Reservation,
        payment: Payment | None = None,
        *,
        expected_version: int | None = None,
    ) -> None:
        with self._lock:
            if reservation.reservation_id in self._reservations:
                raise ValueError(f"Reservation {reservation.reservation_id} already exists")
            room_type_id = reservation.room_type_id
            if expected_version is not None and self._versions[room_type_id] != expected_version:
                raise InventoryChanged(room_type_id)
            self._versions[room_type_id] += 1
            self._reservations[reservation.reservation_id] = reservation
            self._by_room_status[(reservation.room_type_id, reservation.status)].add(
                reservation.reservation_id
            )
            self._by_user[reservation.user_id].add(reservation.reservation_id)
            if payment is not None:
                self._payments[reservation.reservation_id] = payment

    def get(self, reservation_id: str) -> Reservation | None:
        with self._lock:
            return self._reservations.get(reservation_id)

    def inventory(self, room_type_id: str) -> InventorySnapshot:
        with self._lock:
            return InventorySnapshot(
                self.active_intervals(room_type_id), self._versions[room_type_id]
            )

    def list_by_room_type_and_status(
        self, room_type_id: str, status: ReservationStatus
    ) -> list[Reservation]:
        with self._lock:
            ids = self._by_room_status.get((room_type_id, status), ())
            return [self._reservations[rid] for rid in ids]

    def list_by_status(self, status: ReservationStatus) -> list[Reservation]:
        with self._lock:
            return [r for r in self._reservations.values() if r.status == status]

    def list_by_user(self, user_id: str) -> list[Reservation]:
        with self._lock:
            found = [self._reservations[rid] for rid in self._by_user.get(user_id, ())]
        return _newest_first(found)

    def list_all(self) -> list[Reservation]:
        with self._lock:
            found = list(self._reservations.values())
        return _newest_first(found)

    def commit(
        self,
        reservation: Reservation,
        expected_status: ReservationStatus,
        payment: Payment | None = None,
    ) -> bool:
        with self._lock:
            current = self._reservations.get(reservation.reservation_id)
            if current is None or current.status != expected_status:
                return False
            self._by_room_status[(current.room_type_id, current.status)].discard(
                current.reservation_id
            )
            self._reservations[reservation.reservation_id] = reservation
            self._by_room_status[(reservation.room_type_id, reservation.status)].add(
                reservation.reservation_id
            )
            if payment is not None:
                self._payments[payment.reservation_id] = payment
            return True

    def get_payment(self, reservation_id: str) -> Payment | None:
        with self._lock:
            return self._payments.get(reservation_id)

    def save_payment(self, payment: Payment) -> None:
        with self._lock:
            self._payments[payment.reservation_id] = payment

    def list_payments_by_user(self, user_id: str) -> list[Payment]:
        with self._lock:
            found = [p for p in self._payments.values() if p.user_id == user_id]
        return sorted(found, key=lambda p: p.created_at, reverse=True)


def _newest_first(reservations: Iterable[Reservation]) -> list[Reservation]:
    return sorted(reservations, key=lambda r: r.created_at, reverse=True)


class RoomCatalog:
    """Read-mostly registry of room types."""

    def __init__(self, room_types: Iterable[RoomType] = ()) -> None:
        self._lock = threading.Lock()
        self._room_types: dict[str, RoomType] = {rt.room_type_id: rt for rt in room_types}

    def get(self, room_type_id: str) -> RoomType | None:
        return self._room_types.get(room_type_id)

    def list_room_types(self) -> list[RoomType]:
        return sorted(self._room_types.values(), key=lambda rt: rt.room_type_id)

    def upsert(self, room_type: RoomType) -> None:
        with self._lock:
            self._room_types = {**self._room_types, room_type.room_type_id: room_type}
