"""Reservation lifecycle state machine.

PENDING_PAYMENT -> CONFIRMED -> CHECKED_IN -> CHECKED_OUT, with CANCELLED
reachable from the three non-terminal states. Any other (status, event)
pair fails with InvalidStatusTransition and changes nothing.
"""

import datetime as dt
from enum import Enum
from typing import NamedTuple

from booking.models import (
    InvalidStatusTransition,
    Reservation,
    ReservationEvent,
    ReservationStatus,
)


class TransitionEffect(str, Enum):
    """Side effect that accompanies a transition."""

    NONE = "none"
    RELEASE_INVENTORY = "release_inventory"
    RELEASE_AND_REFUND = "release_and_refund"


class Transition(NamedTuple):
    target: ReservationStatus
    effect: TransitionEffect


_S = ReservationStatus
_E = ReservationEvent

TRANSITIONS: dict[tuple[ReservationStatus, ReservationEvent], Transition] = {
    (_S.PENDING_PAYMENT, _E.PAYMENT_SUCCEEDED): Transition(_S.CONFIRMED, TransitionEffect.NONE),
    (_S.PENDING_PAYMENT, _E.PAYMENT_FAILED): Transition(
        _S.CANCELLED, TransitionEffect.RELEASE_INVENTORY
    ),
    (_S.PENDING_PAYMENT, _E.PAYMENT_TIMEOUT): Transition(
        _S.CANCELLED, TransitionEffect.RELEASE_INVENTORY
    ),
    # Nothing has settled yet, so there is nothing to refund
    (_S.PENDING_PAYMENT, _E.CANCEL): Transition(_S.CANCELLED, TransitionEffect.RELEASE_INVENTORY),
    (_S.CONFIRMED, _E.CANCEL): Transition(_S.CANCELLED, TransitionEffect.RELEASE_AND_REFUND),
    (_S.CHECKED_IN, _E.CANCEL): Transition(_S.CANCELLED, TransitionEffect.RELEASE_AND_REFUND),
    (_S.CONFIRMED, _E.CHECK_IN): Transition(_S.CHECKED_IN, TransitionEffect.NONE),
    (_S.CHECKED_IN, _E.CHECK_OUT): Transition(_S.CHECKED_OUT, TransitionEffect.NONE),
}

# Events only staff may trigger through the transition surface
STAFF_EVENTS: frozenset[ReservationEvent] = frozenset({_E.CHECK_IN, _E.CHECK_OUT})

# Events that arrive from the settlement bridge, never from users
SETTLEMENT_EVENTS: frozenset[ReservationEvent] = frozenset(
    {_E.PAYMENT_SUCCEEDED, _E.PAYMENT_FAILED, _E.PAYMENT_TIMEOUT}
)


class ReservationStateMachine:
    """Validates and applies reservation status transitions."""

    def __init__(
        self,
        transitions: dict[tuple[ReservationStatus, ReservationEvent], Transition] | None = None,
    ) -> None:
        self.transitions = transitions if transitions is not None else TRANSITIONS

    def resolve(self, status: ReservationStatus, event: ReservationEvent) -> Transition:
        """Find the transition for an event from a status.

        Raises:
            InvalidStatusTransition: If the event is not allowed from status
        """
        transition = self.transitions.get((status, event))
        if transition is None:
            raise InvalidStatusTransition(
                details={"from_status": status.value, "event": event.value}
            )
        return transition

    def can_apply(self, status: ReservationStatus, event: ReservationEvent) -> bool:
        return (status, event) in self.transitions

    def allowed_events(self, status: ReservationStatus) -> list[ReservationEvent]:
        return [event for (source, event) in self.transitions if source == status]

    def apply(
        self,
        reservation: Reservation,
        event: ReservationEvent,
        at: dt.datetime,
        *,
        reason: str | None = None,
        refund_amount: int | None = None,
    ) -> tuple[Reservation, TransitionEffect]:
        """Compute the reservation after an event, without persisting it.

        Args:
            reservation: Current reservation
            event: Event to apply
            at: Instant of the transition
            reason: Cancellation reason, recorded when the target is CANCELLED
            refund_amount: Refund recorded on cancellation

        Returns:
            (updated reservation, side effect the caller must carry out)

        Raises:
            InvalidStatusTransition: If the event is not allowed
        """
        transition = self.resolve(reservation.status, event)
        update: dict[str, object] = {"status": transition.target, "updated_at": at}
        if transition.target == ReservationStatus.CANCELLED:
            update["cancelled_at"] = at
            update["cancellation_reason"] = reason
            update["refund_amount"] = refund_amount
        return reservation.model_copy(update=update), transition.effect
