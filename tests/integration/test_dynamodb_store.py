"""Integration tests for the DynamoDB-backed store, catalog and event log.

Runs against moto; the tables mirror the deployed schema (see create_tables
in conftest).
"""

import datetime as dt
from collections.abc import Callable

import pytest

from conftest import DELUXE_PRICE, NOW, FakeClock

from booking.models import (
    Caller,
    CapacityExceeded,
    Payment,
    PaymentStatus,
    Reservation,
    ReservationStatus,
    RoomType,
    SettlementOutcome,
    StripeWebhookEvent,
)
from booking.services.booking import BookingService
from booking.services.dynamodb import (
    DynamoDBReservationStore,
    DynamoDBRoomCatalog,
    DynamoDBService,
)
from booking.services.locks import RoomTypeLocks
from booking.services.payment_bridge import MockSettlementBridge
from booking.services.store import InventoryChanged, InventorySnapshot
from booking.services.webhook_handler import DynamoDBWebhookEventLog, WebhookHandler

pytestmark = pytest.mark.integration


@pytest.fixture
def db(create_tables: None) -> DynamoDBService:
    return DynamoDBService(environment="test", name_prefix="test-booking")


@pytest.fixture
def dynamo_store(db: DynamoDBService) -> DynamoDBReservationStore:
    return DynamoDBReservationStore(db)


def _reservation(
    reservation_id: str = "RES-2026-000001",
    user_id: str = "user-guest-1",
    room_type_id: str = "deluxe",
    status: ReservationStatus = ReservationStatus.PENDING_PAYMENT,
    check_in: dt.date = dt.date(2026, 4, 10),
    check_out: dt.date = dt.date(2026, 4, 12),
    created_at: dt.datetime = NOW,
) -> Reservation:
    return Reservation(
        reservation_id=reservation_id,
        user_id=user_id,
        room_type_id=room_type_id,
        check_in=check_in,
        check_out=check_out,
        number_of_guests=2,
        status=status,
        total_amount=2 * DELUXE_PRICE,
        created_at=created_at,
        updated_at=created_at,
    )


def _payment(reservation: Reservation, status: PaymentStatus = PaymentStatus.PENDING) -> Payment:
    return Payment(
        payment_id=f"PAY-{reservation.reservation_id}",
        reservation_id=reservation.reservation_id,
        user_id=reservation.user_id,
        amount=reservation.total_amount,
        status=status,
        created_at=reservation.created_at,
    )


class TestReservationStore:
    def test_add_and_get_round_trip(self, dynamo_store: DynamoDBReservationStore) -> None:
        reservation = _reservation()
        dynamo_store.add(reservation, _payment(reservation))

        assert dynamo_store.get(reservation.reservation_id) == reservation
        payment = dynamo_store.get_payment(reservation.reservation_id)
        assert payment is not None
        assert payment.amount == 2 * DELUXE_PRICE
        assert payment.status == PaymentStatus.PENDING

    def test_get_missing(self, dynamo_store: DynamoDBReservationStore) -> None:
        assert dynamo_store.get("RES-2026-NOPE") is None
        assert dynamo_store.get_payment("RES-2026-NOPE") is None

    def test_add_duplicate_rejected(self, dynamo_store: DynamoDBReservationStore) -> None:
        reservation = _reservation()
        dynamo_store.add(reservation)
        with pytest.raises(ValueError, match="already exists"):
            dynamo_store.add(reservation)

    def test_commit_checks_expected_status(
        self, dynamo_store: DynamoDBReservationStore
    ) -> None:
        reservation = _reservation()
        dynamo_store.add(reservation, _payment(reservation))
        confirmed = reservation.model_copy(update={"status": ReservationStatus.CONFIRMED})
        settled = _payment(reservation, PaymentStatus.SUCCEEDED)

        assert dynamo_store.commit(confirmed, ReservationStatus.PENDING_PAYMENT, settled)
        # Second writer still expects pending_payment and loses
        cancelled = reservation.model_copy(update={"status": ReservationStatus.CANCELLED})
        assert not dynamo_store.commit(cancelled, ReservationStatus.PENDING_PAYMENT)

        stored = dynamo_store.get(reservation.reservation_id)
        assert stored is not None
        assert stored.status == ReservationStatus.CONFIRMED
        payment = dynamo_store.get_payment(reservation.reservation_id)
        assert payment is not None
        assert payment.status == PaymentStatus.SUCCEEDED

    def test_failed_commit_leaves_payment(self, dynamo_store: DynamoDBReservationStore) -> None:
        reservation = _reservation()
        dynamo_store.add(reservation, _payment(reservation))
        cancelled = reservation.model_copy(update={"status": ReservationStatus.CANCELLED})

        assert not dynamo_store.commit(
            cancelled, ReservationStatus.CONFIRMED, _payment(reservation, PaymentStatus.FAILED)
        )
        payment = dynamo_store.get_payment(reservation.reservation_id)
        assert payment is not None
        assert payment.status == PaymentStatus.PENDING

    def test_queries(self, dynamo_store: DynamoDBReservationStore) -> None:
        first = _reservation("RES-2026-000001")
        second = _reservation(
            "RES-2026-000002",
            status=ReservationStatus.CONFIRMED,
            created_at=NOW + dt.timedelta(hours=1),
        )
        other = _reservation("RES-2026-000003", user_id="user-guest-2", room_type_id="single")
        for reservation in (first, second, other):
            dynamo_store.add(reservation, _payment(reservation))

        pending_deluxe = dynamo_store.list_by_room_type_and_status(
            "deluxe", ReservationStatus.PENDING_PAYMENT
        )
        assert [r.reservation_id for r in pending_deluxe] == ["RES-2026-000001"]
        assert {
            r.reservation_id for r in dynamo_store.list_by_status(ReservationStatus.PENDING_PAYMENT)
        } == {"RES-2026-000001", "RES-2026-000003"}
        # Newest first
        assert [r.reservation_id for r in dynamo_store.list_by_user("user-guest-1")] == [
            "RES-2026-000002",
            "RES-2026-000001",
        ]
        assert len(dynamo_store.list_all()) == 3
        assert len(dynamo_store.list_payments_by_user("user-guest-2")) == 1

    def test_status_index_follows_commit(self, dynamo_store: DynamoDBReservationStore) -> None:
        reservation = _reservation()
        dynamo_store.add(reservation)
        cancelled = reservation.model_copy(update={"status": ReservationStatus.CANCELLED})
        dynamo_store.commit(cancelled, ReservationStatus.PENDING_PAYMENT)

        assert dynamo_store.list_by_room_type_and_status(
            "deluxe", ReservationStatus.PENDING_PAYMENT
        ) == []
        assert dynamo_store.active_intervals("deluxe") == []

    def test_stale_inventory_version_rejected(
        self, dynamo_store: DynamoDBReservationStore
    ) -> None:
        seen = dynamo_store.inventory("deluxe")
        assert seen == ([], 0)
        dynamo_store.add(_reservation("RES-2026-000001"), expected_version=seen.version)

        late = _reservation("RES-2026-000002")
        with pytest.raises(InventoryChanged):
            dynamo_store.add(late, _payment(late), expected_version=seen.version)

        # Nothing of the refused booking was written
        assert dynamo_store.get(late.reservation_id) is None
        assert dynamo_store.get_payment(late.reservation_id) is None
        snapshot = dynamo_store.inventory("deluxe")
        assert snapshot.version == 1
        assert len(snapshot.intervals) == 1

    def test_hold_dropped_when_reservation_leaves_active(
        self, dynamo_store: DynamoDBReservationStore
    ) -> None:
        reservation = _reservation()
        dynamo_store.add(reservation)
        confirmed = reservation.model_copy(update={"status": ReservationStatus.CONFIRMED})
        dynamo_store.commit(confirmed, ReservationStatus.PENDING_PAYMENT)
        assert dynamo_store.inventory("deluxe").intervals == [
            (dt.date(2026, 4, 10), dt.date(2026, 4, 12))
        ]

        cancelled = reservation.model_copy(update={"status": ReservationStatus.CANCELLED})
        dynamo_store.commit(cancelled, ReservationStatus.CONFIRMED)
        snapshot = dynamo_store.inventory("deluxe")
        assert snapshot.intervals == []
        # Releasing a unit never invalidates a concurrent booking's snapshot
        assert snapshot.version == 1


class TestRoomCatalog:
    def test_upsert_writes_through(self, db: DynamoDBService, deluxe: RoomType) -> None:
        catalog = DynamoDBRoomCatalog(db)
        assert catalog.list_room_types() == []

        catalog.upsert(deluxe)
        assert catalog.get("deluxe") == deluxe

        reloaded = DynamoDBRoomCatalog(db)
        assert reloaded.get("deluxe") == deluxe

    def test_reads_through_to_table(self, db: DynamoDBService, deluxe: RoomType) -> None:
        first = DynamoDBRoomCatalog(db)
        other_process = DynamoDBService(environment="test", name_prefix="test-booking")
        second = DynamoDBRoomCatalog(other_process)
        first.upsert(deluxe)
        assert second.get("deluxe") == deluxe

        first.upsert(deluxe.model_copy(update={"total_rooms": 1}))
        assert second.get("deluxe").total_rooms == 1  # type: ignore[union-attr]
        assert [rt.total_rooms for rt in second.list_room_types()] == [1]


class TestWebhookEventLog:
    def test_record_and_lookup(self, db: DynamoDBService) -> None:
        log = DynamoDBWebhookEventLog(db)
        assert not log.is_processed("evt_1")

        event = StripeWebhookEvent(
            event_id="evt_1",
            event_type="payment_intent.succeeded",
            processed_at=NOW,
            payload_hash="abc",
            reservation_id="RES-2026-000001",
        )
        log.record(event)
        log.record(event.model_copy(update={"processing_result": "error"}))

        assert log.is_processed("evt_1")
        item = db.get_item(DynamoDBWebhookEventLog.TABLE, {"event_id": "evt_1"})
        assert item is not None
        assert item["processing_result"] == "success"


class TestBookingOnDynamoDB:
    """End-to-end booking flow with every piece of state in DynamoDB."""

    @pytest.fixture
    def service(
        self, db: DynamoDBService, deluxe: RoomType, single: RoomType, clock: FakeClock
    ) -> BookingService:
        catalog = DynamoDBRoomCatalog(db)
        catalog.upsert(deluxe)
        catalog.upsert(single)
        return BookingService(
            catalog,
            DynamoDBReservationStore(db),
            MockSettlementBridge(),
            locks=RoomTypeLocks(timeout_seconds=2),
            clock=clock,
        )

    def test_reserve_settle_cancel(self, service: BookingService, guest: Caller) -> None:
        reservation = service.reserve(
            user_id=guest.user_id,
            room_type_id="deluxe",
            check_in=dt.date(2026, 4, 10),
            check_out=dt.date(2026, 4, 12),
            guests=2,
        )
        assert reservation.status == ReservationStatus.PENDING_PAYMENT

        confirmed = service.handle_settlement(
            reservation.reservation_id,
            SettlementOutcome.SUCCEEDED,
            settled_amount=reservation.total_amount,
        )
        assert confirmed.status == ReservationStatus.CONFIRMED

        cancelled = service.cancel(reservation.reservation_id, guest)
        assert cancelled.status == ReservationStatus.CANCELLED
        assert cancelled.refund_amount == reservation.total_amount

        payment = service.store.get_payment(reservation.reservation_id)
        assert payment is not None
        assert payment.status == PaymentStatus.REFUNDED

    def test_capacity_enforced(
        self, service: BookingService, guest: Caller, other_guest: Caller
    ) -> None:
        service.reserve(
            user_id=guest.user_id,
            room_type_id="single",
            check_in=dt.date(2026, 4, 10),
            check_out=dt.date(2026, 4, 12),
            guests=1,
        )
        with pytest.raises(CapacityExceeded):
            service.reserve(
                user_id=other_guest.user_id,
                room_type_id="single",
                check_in=dt.date(2026, 4, 11),
                check_out=dt.date(2026, 4, 13),
                guests=1,
            )

    def test_webhook_with_dynamodb_event_log(
        self, service: BookingService, db: DynamoDBService, guest: Caller
    ) -> None:
        reservation = service.reserve(
            user_id=guest.user_id,
            room_type_id="deluxe",
            check_in=dt.date(2026, 4, 10),
            check_out=dt.date(2026, 4, 11),
            guests=1,
        )
        handler = WebhookHandler(service, DynamoDBWebhookEventLog(db))
        event = {
            "id": "evt_dyn_1",
            "type": "payment_intent.succeeded",
            "data": {
                "object": {
                    "id": "pi_1",
                    "amount_received": reservation.total_amount,
                    "metadata": {"reservation_id": reservation.reservation_id},
                }
            },
        }

        assert handler.handle(event).result == "success"
        assert handler.handle(event).result == "duplicate"


class HookedDynamoDBStore(DynamoDBReservationStore):
    """DynamoDB store that runs a one-shot callback right after reading inventory."""

    def __init__(self, db: DynamoDBService) -> None:
        super().__init__(db)
        self.after_inventory: Callable[[], object] | None = None

    def inventory(self, room_type_id: str) -> InventorySnapshot:
        snapshot = super().inventory(room_type_id)
        hook, self.after_inventory = self.after_inventory, None
        if hook is not None:
            hook()
        return snapshot


class TestTwoProcesses:
    """Two services sharing the tables but not the in-process booking slot."""

    @pytest.fixture
    def first_store(self, db: DynamoDBService) -> HookedDynamoDBStore:
        return HookedDynamoDBStore(db)

    @pytest.fixture
    def first(
        self,
        db: DynamoDBService,
        first_store: HookedDynamoDBStore,
        deluxe: RoomType,
        single: RoomType,
        clock: FakeClock,
    ) -> BookingService:
        catalog = DynamoDBRoomCatalog(db)
        catalog.upsert(deluxe)
        catalog.upsert(single)
        return BookingService(
            catalog,
            first_store,
            MockSettlementBridge(),
            locks=RoomTypeLocks(timeout_seconds=2),
            clock=clock,
        )

    @pytest.fixture
    def second(self, create_tables: None, clock: FakeClock) -> BookingService:
        db = DynamoDBService(environment="test", name_prefix="test-booking")
        return BookingService(
            DynamoDBRoomCatalog(db),
            DynamoDBReservationStore(db),
            MockSettlementBridge(),
            locks=RoomTypeLocks(timeout_seconds=2),
            clock=clock,
        )

    def test_last_unit_not_sold_twice(
        self,
        first: BookingService,
        first_store: HookedDynamoDBStore,
        second: BookingService,
        guest: Caller,
        other_guest: Caller,
    ) -> None:
        booked: list[Reservation] = []
        # The other process books the only unit after this one counted it free
        first_store.after_inventory = lambda: booked.append(
            second.reserve(
                other_guest.user_id, "single", dt.date(2026, 4, 11), dt.date(2026, 4, 13), 1
            )
        )

        with pytest.raises(CapacityExceeded):
            first.reserve(guest.user_id, "single", dt.date(2026, 4, 10), dt.date(2026, 4, 12), 1)

        assert len(booked) == 1
        assert first_store.inventory("single").intervals == [
            (dt.date(2026, 4, 11), dt.date(2026, 4, 13))
        ]
        assert first_store.list_by_user(guest.user_id) == []

    def test_non_overlapping_booking_retried(
        self,
        first: BookingService,
        first_store: HookedDynamoDBStore,
        second: BookingService,
        guest: Caller,
        other_guest: Caller,
    ) -> None:
        first_store.after_inventory = lambda: second.reserve(
            other_guest.user_id, "single", dt.date(2026, 4, 20), dt.date(2026, 4, 22), 1
        )

        reservation = first.reserve(
            guest.user_id, "single", dt.date(2026, 4, 10), dt.date(2026, 4, 12), 1
        )

        assert reservation.status == ReservationStatus.PENDING_PAYMENT
        snapshot = first_store.inventory("single")
        assert len(snapshot.intervals) == 2
        assert snapshot.version == 2

    def test_capacity_lowered_elsewhere_is_seen(
        self,
        first: BookingService,
        second: BookingService,
        deluxe: RoomType,
        guest: Caller,
        other_guest: Caller,
    ) -> None:
        stay = (dt.date(2026, 4, 10), dt.date(2026, 4, 12))
        first.reserve(guest.user_id, "deluxe", *stay, 2)

        # An admin on the other process takes one deluxe unit out of service
        second.catalog.upsert(deluxe.model_copy(update={"total_rooms": 1}))

        with pytest.raises(CapacityExceeded):
            first.reserve(other_guest.user_id, "deluxe", *stay, 2)
