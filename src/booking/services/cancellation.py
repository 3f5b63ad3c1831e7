"""Cancellation and refund flow.

Cancelling runs in three steps so the caller can persist progress between
them: plan() decides the reason and the refund owed, issue_refund() executes
the refund through the settlement bridge, and complete() produces the
cancelled reservation and final payment. Nothing is persisted here.
"""

import datetime as dt
from typing import NamedTuple

from booking.models import (
    Payment,
    PaymentStatus,
    RefundFailed,
    Reservation,
    ReservationEvent,
    SettlementBridgeError,
)
from booking.services.payment_bridge import PaymentSettlementBridge
from booking.services.refund_policy import RefundPolicy
from booking.services.state_machine import ReservationStateMachine, TransitionEffect
from booking.utils.logging import get_logger, log_booking_operation

logger = get_logger(__name__)

DEFAULT_CANCELLATION_REASON = "User requested cancellation"


class CancellationPlan(NamedTuple):
    reason: str
    refund_amount: int


class CancellationResult(NamedTuple):
    reservation: Reservation
    payment: Payment | None
    refund_amount: int


def check_in_instant(check_in: dt.date) -> dt.datetime:
    """Midnight UTC at the start of the check-in date."""
    return dt.datetime.combine(check_in, dt.time.min, tzinfo=dt.UTC)


class CancellationRefundFlow:
    """Drives a reservation to CANCELLED together with its refund."""

    def __init__(
        self,
        bridge: PaymentSettlementBridge,
        policy: RefundPolicy,
        state_machine: ReservationStateMachine | None = None,
        default_reason: str = DEFAULT_CANCELLATION_REASON,
    ) -> None:
        """Initialize the flow.

        Args:
            bridge: Settlement bridge used to execute refunds
            policy: Callable (lead_time, settled_amount) -> refund cents
            state_machine: Transition rules
            default_reason: Reason recorded when the caller gives none
        """
        self.bridge = bridge
        self.policy = policy
        self.state_machine = state_machine or ReservationStateMachine()
        self.default_reason = default_reason

    def refund_amount(self, reservation: Reservation, payment: Payment, at: dt.datetime) -> int:
        """Refund owed for a settled payment if cancelled at the given instant."""
        lead_time = check_in_instant(reservation.check_in) - at
        amount = self.policy(lead_time, payment.amount)
        return min(max(amount, 0), payment.amount)

    def plan(
        self,
        reservation: Reservation,
        payment: Payment | None,
        at: dt.datetime,
        reason: str | None = None,
    ) -> CancellationPlan:
        """Decide the reason and refund for cancelling at the given instant.

        A payment already marked with a refund amount keeps that amount, so a
        resumed cancellation refunds what the first attempt promised.

        Raises:
            InvalidStatusTransition: If the reservation cannot be cancelled
        """
        reason = reason or self.default_reason
        effect = self.state_machine.resolve(reservation.status, ReservationEvent.CANCEL).effect
        if (
            effect != TransitionEffect.RELEASE_AND_REFUND
            or payment is None
            or payment.status != PaymentStatus.SUCCEEDED
        ):
            return CancellationPlan(reason, 0)
        if payment.refund_amount is not None:
            return CancellationPlan(reason, payment.refund_amount)
        return CancellationPlan(reason, self.refund_amount(reservation, payment, at))

    def issue_refund(
        self,
        reservation: Reservation,
        payment: Payment,
        plan: CancellationPlan,
    ) -> Payment:
        """Execute the planned refund through the bridge.

        A payment that already carries a provider refund ID is returned as is.

        Returns:
            The payment with refund_amount and provider_refund_id set

        Raises:
            RefundFailed: If the bridge rejects the refund
        """
        if payment.provider_refund_id is not None:
            return payment
        try:
            receipt = self.bridge.refund(payment, plan.refund_amount, plan.reason)
        except SettlementBridgeError as e:
            log_booking_operation(
                logger,
                "refund",
                reservation_id=reservation.reservation_id,
                amount_cents=plan.refund_amount,
                error=str(e),
            )
            raise RefundFailed(
                details={
                    "reservation_id": reservation.reservation_id,
                    "provider_error_code": e.provider_error_code or "unknown",
                }
            ) from e

        log_booking_operation(
            logger,
            "refund",
            reservation_id=reservation.reservation_id,
            amount_cents=receipt.amount,
            refund_id=receipt.refund_id,
        )
        return payment.model_copy(
            update={"refund_amount": receipt.amount, "provider_refund_id": receipt.refund_id}
        )

    def complete(
        self,
        reservation: Reservation,
        payment: Payment | None,
        at: dt.datetime,
        plan: CancellationPlan,
    ) -> CancellationResult:
        """Produce the cancelled reservation and its final payment.

        A pending payment is failed. A payment returned by issue_refund()
        becomes REFUNDED; any other payment is left untouched.

        Raises:
            InvalidStatusTransition: If the reservation cannot be cancelled
        """
        refund = 0
        updated_payment = payment
        if payment is not None and payment.status == PaymentStatus.PENDING:
            updated_payment = payment.model_copy(
                update={
                    "status": PaymentStatus.FAILED,
                    "error_message": "Reservation cancelled before settlement",
                }
            )
        elif (
            payment is not None
            and payment.status == PaymentStatus.SUCCEEDED
            and payment.provider_refund_id is not None
        ):
            refund = payment.refund_amount or 0
            updated_payment = payment.model_copy(
                update={"status": PaymentStatus.REFUNDED, "refunded_at": at}
            )

        cancelled, _ = self.state_machine.apply(
            reservation,
            ReservationEvent.CANCEL,
            at,
            reason=plan.reason,
            refund_amount=refund,
        )
        return CancellationResult(cancelled, updated_payment, refund)
