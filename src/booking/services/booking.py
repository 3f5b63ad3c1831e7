"""Booking service: race-free reserve, cancel and lifecycle transitions.

Every operation that changes a room type's active-reservation set
(reserve, cancel, payment failure or timeout, check-in/check-out) runs
inside that room type's slot, so bookings in one process queue up instead
of racing. The slot does not reach other processes sharing the store, so
reserve also hands the store the inventory version its availability count
was read at; the store refuses the insert if another booking landed since.
The slot is released as soon as the reservation is recorded; payment
confirmation arrives later as an independent event and only needs the
state machine.

A refund is recorded on the payment before and after the bridge call. If
the cancellation commit is then lost, complete_interrupted_cancellations()
finishes it from that record without refunding twice.
"""

import datetime as dt
import uuid
from typing import TYPE_CHECKING

from booking.models import (
    OCCUPYING_STATUSES,
    Busy,
    Caller,
    CapacityExceeded,
    InvalidDateRange,
    InvalidStatusTransition,
    Payment,
    PaymentFailed,
    PaymentIntent,
    PaymentStatus,
    RefundFailed,
    Reservation,
    ReservationEvent,
    ReservationNotFound,
    ReservationStatus,
    RoomStatistics,
    RoomTypeStatistics,
    SettlementAmountMismatch,
    SettlementBridgeError,
    SettlementOutcome,
    Unauthorized,
)
from booking.services.availability import AvailabilityService, Clock, utc_now
from booking.services.cancellation import (
    DEFAULT_CANCELLATION_REASON,
    CancellationPlan,
    CancellationRefundFlow,
    CancellationResult,
)
from booking.services.locks import RoomTypeLocks
from booking.services.refund_policy import RefundPolicy, TieredRefundPolicy
from booking.services.state_machine import (
    SETTLEMENT_EVENTS,
    STAFF_EVENTS,
    ReservationStateMachine,
)
from booking.services.store import InventoryChanged
from booking.utils.logging import get_logger, log_booking_operation

if TYPE_CHECKING:
    from .payment_bridge import PaymentSettlementBridge
    from .store import ReservationStore, RoomCatalog

logger = get_logger(__name__)

# Snapshot-and-insert tries before a contended room type reports Busy
INVENTORY_ATTEMPTS = 3

LATE_SETTLEMENT_REASON = "Payment received after cancellation"


def _generate_reservation_id(now: dt.datetime) -> str:
    return f"RES-{now.year}-{uuid.uuid4().hex[:8].upper()}"


def _generate_payment_id() -> str:
    return f"PAY-{uuid.uuid4().hex[:12].upper()}"


class BookingService:
    """Coordinates bookings against finite room-type inventory."""

    def __init__(
        self,
        catalog: "RoomCatalog",
        store: "ReservationStore",
        bridge: "PaymentSettlementBridge",
        *,
        locks: RoomTypeLocks | None = None,
        state_machine: ReservationStateMachine | None = None,
        refund_policy: RefundPolicy | None = None,
        clock: Clock = utc_now,
        payment_timeout: dt.timedelta = dt.timedelta(minutes=15),
        default_cancellation_reason: str = DEFAULT_CANCELLATION_REASON,
        currency: str = "EUR",
    ) -> None:
        """Initialize booking service.

        Args:
            catalog: Room type catalog
            store: Reservation store
            bridge: Payment settlement bridge
            locks: Per-room-type slots (default: 5 second acquire timeout)
            state_machine: Reservation transition rules
            refund_policy: Callable (lead_time, settled_amount) -> refund cents
            clock: Returns the current UTC instant
            payment_timeout: How long a reservation may wait for settlement
            default_cancellation_reason: Reason recorded when none is given
            currency: Currency for new payments
        """
        self.catalog = catalog
        self.store = store
        self.bridge = bridge
        self.locks = locks or RoomTypeLocks()
        self.state_machine = state_machine or ReservationStateMachine()
        self.clock = clock
        self.payment_timeout = payment_timeout
        self.currency = currency
        self.availability = AvailabilityService(catalog, store, clock)
        self.cancellation = CancellationRefundFlow(
            bridge,
            refund_policy or TieredRefundPolicy.standard(),
            self.state_machine,
            default_reason=default_cancellation_reason,
        )

    # =========================================================================
    # Booking
    # =========================================================================

    def reserve(
        self,
        user_id: str,
        room_type_id: str,
        check_in: dt.date,
        check_out: dt.date,
        guests: int,
        notes: str | None = None,
    ) -> Reservation:
        """Book one unit of a room type, holding it until payment settles.

        See reserve_with_intent() for arguments and errors.

        Returns:
            The new reservation in PENDING_PAYMENT
        """
        reservation, _ = self.reserve_with_intent(
            user_id, room_type_id, check_in, check_out, guests, notes
        )
        return reservation

    def reserve_with_intent(
        self,
        user_id: str,
        room_type_id: str,
        check_in: dt.date,
        check_out: dt.date,
        guests: int,
        notes: str | None = None,
    ) -> tuple[Reservation, PaymentIntent]:
        """Book one unit of a room type and open its payment intent.

        Args:
            user_id: Owning user ID
            room_type_id: Room type to book
            check_in: First night
            check_out: Departure date (exclusive)
            guests: Party size
            notes: Special requests

        Returns:
            (the new reservation in PENDING_PAYMENT, its payment intent)

        Raises:
            RoomNotFound: Unknown room type
            InvalidDateRange: Empty/inverted range or check-in in the past
            InvalidGuestCount / GuestCountExceeded: Party does not fit
            Busy: Room type slot not acquired in time, or the room type kept
                changing under concurrent bookings (retryable)
            CapacityExceeded: No unit free on some night of the range
            PaymentFailed: The bridge could not open a payment intent
        """
        room_type = self.availability.get_room_type(room_type_id)
        now = self.clock()
        self.availability.validate_range(check_in, check_out, now)
        self.availability.validate_guests(room_type, guests)

        with self.locks.slot(room_type_id):
            for _ in range(INVENTORY_ATTEMPTS):
                snapshot = self.store.inventory(room_type_id)
                free = self.availability.free_units(
                    room_type, check_in, check_out, snapshot.intervals
                )
                if free <= 0:
                    log_booking_operation(
                        logger,
                        "reserve",
                        room_type_id=room_type_id,
                        user_id=user_id,
                        error="capacity_exceeded",
                    )
                    raise CapacityExceeded(
                        details={
                            "room_type_id": room_type_id,
                            "check_in": check_in.isoformat(),
                            "check_out": check_out.isoformat(),
                        }
                    )

                nights = (check_out - check_in).days
                reservation = Reservation(
                    reservation_id=_generate_reservation_id(now),
                    user_id=user_id,
                    room_type_id=room_type_id,
                    check_in=check_in,
                    check_out=check_out,
                    number_of_guests=guests,
                    status=ReservationStatus.PENDING_PAYMENT,
                    total_amount=room_type.price_per_night * nights,
                    created_at=now,
                    updated_at=now,
                    notes=notes,
                )
                payment = Payment(
                    payment_id=_generate_payment_id(),
                    reservation_id=reservation.reservation_id,
                    user_id=user_id,
                    amount=reservation.total_amount,
                    currency=self.currency,
                    status=PaymentStatus.PENDING,
                    created_at=now,
                )
                try:
                    self.store.add(reservation, payment, expected_version=snapshot.version)
                    break
                except InventoryChanged:
                    # Another process booked this room type; count again
                    continue
            else:
                log_booking_operation(
                    logger,
                    "reserve",
                    room_type_id=room_type_id,
                    user_id=user_id,
                    error="inventory_contention",
                )
                raise Busy(details={"room_type_id": room_type_id, "reason": "inventory_contention"})

        log_booking_operation(
            logger,
            "reserve",
            reservation_id=reservation.reservation_id,
            room_type_id=room_type_id,
            user_id=user_id,
            status=reservation.status.value,
            amount_cents=reservation.total_amount,
        )

        try:
            intent = self.bridge.create_intent(reservation, self.currency)
        except SettlementBridgeError as e:
            self._release_pending(
                reservation.reservation_id,
                ReservationEvent.PAYMENT_FAILED,
                f"Payment intent could not be created: {e}",
            )
            raise PaymentFailed(
                details={
                    "reservation_id": reservation.reservation_id,
                    "provider_error_code": e.provider_error_code or "unknown",
                }
            ) from e

        current_payment = self.store.get_payment(reservation.reservation_id)
        if current_payment is not None and current_payment.provider_intent_id is None:
            self.store.save_payment(
                current_payment.model_copy(update={"provider_intent_id": intent.intent_id})
            )
        return reservation, intent

    def cancel(
        self,
        reservation_id: str,
        caller: Caller,
        reason: str | None = None,
    ) -> Reservation:
        """Cancel a reservation, release its unit and refund per policy.

        A refund is never issued twice. If the cancellation cannot be
        recorded after the refund went out, the error propagates and the
        payment keeps the refund receipt; calling cancel() again (or the
        expiry sweep) completes it.

        Raises:
            ReservationNotFound: Unknown reservation
            Unauthorized: Caller is neither owner nor staff
            Busy: Room type slot not acquired in time
            InvalidStatusTransition: Reservation already terminal
            RefundFailed: The bridge rejected the refund
        """
        reservation = self._load(reservation_id)
        self._authorize(caller, reservation)
        return self._cancel(reservation_id, reason, caller.user_id)

    def _cancel(self, reservation_id: str, reason: str | None, actor: str) -> Reservation:
        reservation = self._load(reservation_id)
        with self.locks.slot(reservation.room_type_id):
            # A payment success may land between reading and committing; it
            # only moves PENDING_PAYMENT forward, so one re-read settles it.
            for _ in range(2):
                current = self._load(reservation_id)
                payment = self.store.get_payment(reservation_id)
                plan = self.cancellation.plan(current, payment, self.clock(), reason)
                if plan.refund_amount > 0 and payment is not None:
                    return self._cancel_with_refund(current, payment, plan, actor)
                result = self.cancellation.complete(current, payment, self.clock(), plan)
                if self.store.commit(result.reservation, current.status, result.payment):
                    break
            else:
                raise InvalidStatusTransition(
                    details={
                        "reservation_id": reservation_id,
                        "event": ReservationEvent.CANCEL.value,
                    }
                )

        self._log_cancel(current, result, actor)
        if current.status == ReservationStatus.PENDING_PAYMENT:
            self._void_intent(payment)
        return result.reservation

    def _cancel_with_refund(
        self,
        reservation: Reservation,
        payment: Payment,
        plan: CancellationPlan,
        actor: str,
    ) -> Reservation:
        """Refund, then commit the cancellation. Runs inside the room type's slot.

        The payment carries the planned refund_amount while the bridge call
        is in flight and the provider refund ID once it returns.
        """
        marked = payment
        if payment.refund_amount is None:
            marked = payment.model_copy(update={"refund_amount": plan.refund_amount})
            self.store.save_payment(marked)
        try:
            refunded = self.cancellation.issue_refund(reservation, marked, plan)
        except RefundFailed:
            if marked is not payment:
                self.store.save_payment(payment)
            raise
        if refunded is not marked:
            self.store.save_payment(refunded)

        current = reservation
        for _ in range(3):
            result = self.cancellation.complete(current, refunded, self.clock(), plan)
            try:
                committed = self.store.commit(result.reservation, current.status, result.payment)
            except Exception:
                log_booking_operation(
                    logger,
                    "cancel",
                    reservation_id=reservation.reservation_id,
                    amount_cents=result.refund_amount,
                    refund_id=refunded.provider_refund_id,
                    error="refunded_not_committed",
                )
                raise
            if committed:
                self._log_cancel(current, result, actor)
                return result.reservation
            # Status moved on (e.g. checked in); cancel from there, same refund
            current = self._load(reservation.reservation_id)

        raise InvalidStatusTransition(
            details={
                "reservation_id": reservation.reservation_id,
                "event": ReservationEvent.CANCEL.value,
            }
        )

    def _log_cancel(self, previous: Reservation, result: CancellationResult, actor: str) -> None:
        log_booking_operation(
            logger,
            "cancel",
            reservation_id=previous.reservation_id,
            room_type_id=previous.room_type_id,
            user_id=actor,
            status=result.reservation.status.value,
            amount_cents=result.refund_amount,
            previous_status=previous.status.value,
        )

    def complete_interrupted_cancellations(self) -> list[Reservation]:
        """Finish cancellations whose refund started but whose commit was lost.

        Such a reservation is still CONFIRMED or CHECKED_IN while its payment
        carries a refund_amount. The original reason is not kept, so the
        default reason is recorded. Reservations that fail again are left
        for the next call.

        Returns:
            The reservations cancelled by this call
        """
        completed: list[Reservation] = []
        for status in (ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_IN):
            for reservation in self.store.list_by_status(status):
                payment = self.store.get_payment(reservation.reservation_id)
                if (
                    payment is None
                    or payment.status != PaymentStatus.SUCCEEDED
                    or payment.refund_amount is None
                ):
                    continue
                try:
                    completed.append(self._cancel(reservation.reservation_id, None, "system"))
                except (Busy, InvalidStatusTransition, RefundFailed) as e:
                    log_booking_operation(
                        logger,
                        "cancel",
                        reservation_id=reservation.reservation_id,
                        error=e.code.value,
                    )
        return completed

    def transition(
        self,
        reservation_id: str,
        event: ReservationEvent,
        caller: Caller,
    ) -> Reservation:
        """Apply a lifecycle event requested by a caller.

        Check-in and check-out are staff-only. Cancel is routed through
        cancel() so the refund flow runs. Settlement events only arrive
        through handle_settlement().

        Raises:
            Unauthorized: Caller may not trigger this event
            InvalidStatusTransition: Event not allowed from the current status
        """
        if event == ReservationEvent.CANCEL:
            return self.cancel(reservation_id, caller)
        if event in SETTLEMENT_EVENTS:
            raise Unauthorized(details={"event": event.value, "reason": "settlement_only"})
        if event in STAFF_EVENTS and not caller.is_privileged:
            raise Unauthorized(details={"event": event.value, "role": caller.role.value})

        reservation = self._load(reservation_id)
        with self.locks.slot(reservation.room_type_id):
            current = self._load(reservation_id)
            updated, _ = self.state_machine.apply(current, event, self.clock())
            if not self.store.commit(updated, current.status):
                raise InvalidStatusTransition(
                    details={"reservation_id": reservation_id, "event": event.value}
                )

        log_booking_operation(
            logger,
            "transition",
            reservation_id=reservation_id,
            user_id=caller.user_id,
            status=updated.status.value,
            event=event.value,
        )
        return updated

    # =========================================================================
    # Settlement events
    # =========================================================================

    def handle_settlement(
        self,
        reservation_id: str,
        outcome: SettlementOutcome,
        settled_amount: int | None = None,
        provider_intent_id: str | None = None,
    ) -> Reservation:
        """Apply a settlement outcome reported by the payment provider.

        Success confirms the reservation without taking the booking slot.
        Success for a reservation that was cancelled while the payment was
        open refunds the whole settled amount. Failure cancels the
        reservation and releases its unit under the slot.

        Returns:
            The confirmed reservation, or the cancelled one after a refund

        Raises:
            ReservationNotFound: Unknown reservation
            InvalidStatusTransition: Reservation no longer awaiting payment
                and nothing left to refund
            SettlementAmountMismatch: Settled amount differs from the total
            RefundFailed: A late payment could not be refunded (retryable)
        """
        reservation = self._load(reservation_id)

        if outcome == SettlementOutcome.FAILED:
            return self._release_pending(
                reservation_id, ReservationEvent.PAYMENT_FAILED, "Payment failed"
            )

        # A cancel or expiry may win the race against this commit; the
        # re-read then takes the late-payment path.
        for _ in range(2):
            if reservation.status == ReservationStatus.CANCELLED:
                return self._refund_late_settlement(
                    reservation, settled_amount, provider_intent_id
                )

            self.state_machine.resolve(reservation.status, ReservationEvent.PAYMENT_SUCCEEDED)
            if settled_amount is not None and settled_amount != reservation.total_amount:
                log_booking_operation(
                    logger,
                    "settlement",
                    reservation_id=reservation_id,
                    amount_cents=settled_amount,
                    error="amount_mismatch",
                )
                raise SettlementAmountMismatch(
                    details={
                        "reservation_id": reservation_id,
                        "expected": str(reservation.total_amount),
                        "settled": str(settled_amount),
                    }
                )

            now = self.clock()
            confirmed, _ = self.state_machine.apply(
                reservation, ReservationEvent.PAYMENT_SUCCEEDED, now
            )
            payment = self.store.get_payment(reservation_id) or Payment(
                payment_id=_generate_payment_id(),
                reservation_id=reservation_id,
                user_id=reservation.user_id,
                amount=reservation.total_amount,
                currency=self.currency,
                status=PaymentStatus.PENDING,
                created_at=now,
            )
            settled = payment.model_copy(
                update={
                    "status": PaymentStatus.SUCCEEDED,
                    "settled_at": now,
                    "provider_intent_id": provider_intent_id or payment.provider_intent_id,
                }
            )
            if self.store.commit(confirmed, reservation.status, settled):
                log_booking_operation(
                    logger,
                    "settlement",
                    reservation_id=reservation_id,
                    status=confirmed.status.value,
                    amount_cents=settled.amount,
                )
                return confirmed
            reservation = self._load(reservation_id)

        raise InvalidStatusTransition(
            details={
                "reservation_id": reservation_id,
                "event": ReservationEvent.PAYMENT_SUCCEEDED.value,
            }
        )

    def _refund_late_settlement(
        self,
        reservation: Reservation,
        settled_amount: int | None,
        provider_intent_id: str | None,
    ) -> Reservation:
        """Refund a payment that settled after its reservation was cancelled.

        Only a payment that never settled before (PENDING or FAILED), or one
        captured by an earlier attempt whose refund did not go through, is
        refunded. Anything else is a redelivery.
        """
        reservation_id = reservation.reservation_id
        payment = self.store.get_payment(reservation_id)
        interrupted = (
            payment is not None
            and payment.status == PaymentStatus.SUCCEEDED
            and payment.refund_amount is not None
        )
        if payment is None or not (
            payment.status in (PaymentStatus.PENDING, PaymentStatus.FAILED) or interrupted
        ):
            raise InvalidStatusTransition(
                details={
                    "reservation_id": reservation_id,
                    "event": ReservationEvent.PAYMENT_SUCCEEDED.value,
                }
            )

        now = self.clock()
        captured = payment
        if not interrupted:
            amount = settled_amount or payment.amount
            captured = payment.model_copy(
                update={
                    "status": PaymentStatus.SUCCEEDED,
                    "amount": amount,
                    "settled_at": now,
                    "provider_intent_id": provider_intent_id or payment.provider_intent_id,
                    "error_message": None,
                    "refund_amount": amount,
                }
            )
            self.store.save_payment(captured)

        plan = CancellationPlan(LATE_SETTLEMENT_REASON, captured.refund_amount or captured.amount)
        refunded = self.cancellation.issue_refund(reservation, captured, plan)
        updated = reservation.model_copy(
            update={"refund_amount": refunded.refund_amount, "updated_at": now}
        )
        final_payment = refunded.model_copy(
            update={"status": PaymentStatus.REFUNDED, "refunded_at": now}
        )
        if not self.store.commit(updated, ReservationStatus.CANCELLED, final_payment):
            raise InvalidStatusTransition(
                details={
                    "reservation_id": reservation_id,
                    "event": ReservationEvent.PAYMENT_SUCCEEDED.value,
                }
            )

        log_booking_operation(
            logger,
            "settlement",
            reservation_id=reservation_id,
            status=updated.status.value,
            amount_cents=refunded.refund_amount,
            refund_id=refunded.provider_refund_id,
            error="settled_after_cancellation",
        )
        return updated

    def payment_intent(self, reservation_id: str, caller: Caller) -> PaymentIntent:
        """Return the payment intent of a reservation still awaiting payment.

        Bridges key intents by reservation, so this hands back the intent
        opened by reserve() rather than a new charge.

        Raises:
            ReservationNotFound / Unauthorized: As for get_reservation
            InvalidStatusTransition: Reservation no longer awaiting payment
            PaymentFailed: The bridge could not return the intent
        """
        reservation = self.get_reservation(reservation_id, caller)
        self.state_machine.resolve(reservation.status, ReservationEvent.PAYMENT_SUCCEEDED)
        try:
            return self.bridge.create_intent(reservation, self.currency)
        except SettlementBridgeError as e:
            raise PaymentFailed(
                details={
                    "reservation_id": reservation_id,
                    "provider_error_code": e.provider_error_code or "unknown",
                }
            ) from e

    def expire_pending_payments(self, now: dt.datetime | None = None) -> list[Reservation]:
        """Cancel reservations whose payment did not settle in time.

        A reservation whose slot is busy or whose status moved on meanwhile
        is skipped; the next sweep picks it up if it is still pending.

        Returns:
            The reservations cancelled by this sweep
        """
        now = now or self.clock()
        cutoff = now - self.payment_timeout
        expired: list[Reservation] = []
        for reservation in self.store.list_by_status(ReservationStatus.PENDING_PAYMENT):
            if reservation.created_at > cutoff:
                continue
            try:
                expired.append(
                    self._release_pending(
                        reservation.reservation_id,
                        ReservationEvent.PAYMENT_TIMEOUT,
                        "Payment not received in time",
                    )
                )
            except (Busy, InvalidStatusTransition) as e:
                log_booking_operation(
                    logger,
                    "expire",
                    reservation_id=reservation.reservation_id,
                    error=e.code.value,
                )
        return expired

    def _release_pending(
        self,
        reservation_id: str,
        event: ReservationEvent,
        reason: str,
    ) -> Reservation:
        """Cancel a PENDING_PAYMENT reservation after a failed or missing settlement."""
        reservation = self._load(reservation_id)
        with self.locks.slot(reservation.room_type_id):
            current = self._load(reservation_id)
            now = self.clock()
            cancelled, _ = self.state_machine.apply(current, event, now, reason=reason)
            payment = self.store.get_payment(reservation_id)
            failed_payment = (
                payment.model_copy(update={"status": PaymentStatus.FAILED, "error_message": reason})
                if payment is not None
                else None
            )
            if not self.store.commit(cancelled, current.status, failed_payment):
                raise InvalidStatusTransition(
                    details={"reservation_id": reservation_id, "event": event.value}
                )

        log_booking_operation(
            logger,
            "expire" if event == ReservationEvent.PAYMENT_TIMEOUT else "settlement",
            reservation_id=reservation_id,
            room_type_id=cancelled.room_type_id,
            status=cancelled.status.value,
            event=event.value,
        )
        self._void_intent(payment)
        return cancelled

    def _void_intent(self, payment: Payment | None) -> None:
        """Close the provider intent of a reservation that will not be paid.

        Failure is logged, not raised: an intent that settles anyway is
        refunded when its success event arrives.
        """
        if payment is None or payment.provider_intent_id is None:
            return
        try:
            self.bridge.cancel_intent(payment)
        except SettlementBridgeError as e:
            log_booking_operation(
                logger,
                "cancel_intent",
                reservation_id=payment.reservation_id,
                error=str(e),
            )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_reservation(self, reservation_id: str, caller: Caller) -> Reservation:
        """Get a reservation visible to the caller."""
        reservation = self._load(reservation_id)
        self._authorize(caller, reservation)
        return reservation

    def get_payment(self, reservation_id: str, caller: Caller) -> Payment | None:
        """Get the payment of a reservation visible to the caller."""
        self.get_reservation(reservation_id, caller)
        return self.store.get_payment(reservation_id)

    def list_user_reservations(self, user_id: str) -> list[Reservation]:
        return self.store.list_by_user(user_id)

    def list_user_payments(self, user_id: str) -> list[Payment]:
        return self.store.list_payments_by_user(user_id)

    def list_reservations(self, caller: Caller) -> list[Reservation]:
        """Every reservation (staff only)."""
        self._require_staff(caller)
        return self.store.list_all()

    def reservations_checking_in_between(
        self,
        start: dt.date,
        end: dt.date,
        caller: Caller,
    ) -> list[Reservation]:
        """Reservations whose check-in falls in [start, end] (staff only)."""
        self._require_staff(caller)
        if end < start:
            raise InvalidDateRange(details={"start": start.isoformat(), "end": end.isoformat()})
        found = [r for r in self.store.list_all() if start <= r.check_in <= end]
        return sorted(found, key=lambda r: (r.check_in, r.reservation_id))

    def room_statistics(self, on_date: dt.date | None = None) -> RoomStatistics:
        """Occupancy across the catalog for one night (default: today)."""
        night = on_date or self.clock().date()
        by_type: list[RoomTypeStatistics] = []
        for room_type in self.catalog.list_room_types():
            occupied = sum(
                1
                for status in OCCUPYING_STATUSES
                for r in self.store.list_by_room_type_and_status(room_type.room_type_id, status)
                if r.covers(night)
            )
            by_type.append(
                RoomTypeStatistics(
                    room_type_id=room_type.room_type_id,
                    total_rooms=room_type.total_rooms,
                    occupied_rooms=occupied,
                    available_rooms=max(0, room_type.total_rooms - occupied),
                )
            )

        total = sum(s.total_rooms for s in by_type)
        occupied_total = sum(s.occupied_rooms for s in by_type)
        return RoomStatistics(
            date=night,
            total_rooms=total,
            occupied_rooms=occupied_total,
            available_rooms=sum(s.available_rooms for s in by_type),
            occupancy_rate=round(min(occupied_total / total, 1.0) * 100, 2) if total else 0.0,
            rooms_by_type=by_type,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _load(self, reservation_id: str) -> Reservation:
        reservation = self.store.get(reservation_id)
        if reservation is None:
            raise ReservationNotFound(details={"reservation_id": reservation_id})
        return reservation

    @staticmethod
    def _authorize(caller: Caller, reservation: Reservation) -> None:
        if not caller.can_act_on(reservation.user_id):
            raise Unauthorized(
                details={"reservation_id": reservation.reservation_id, "user_id": caller.user_id}
            )

    @staticmethod
    def _require_staff(caller: Caller) -> None:
        if not caller.is_privileged:
            raise Unauthorized(details={"user_id": caller.user_id, "role": caller.role.value})
