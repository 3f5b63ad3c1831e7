"""Reservation endpoints for booking management.

Provides REST endpoints for:
- Creating reservations (holds one unit until payment settles)
- Retrieving and listing the caller's reservations
- Resuming payment of a pending reservation
- Cancelling reservations (owner or staff)
- Applying lifecycle events (check-in/check-out are staff only)

All endpoints require the gateway identity headers (see booking.api.security).
"""

from fastapi import APIRouter, Depends
from starlette.status import HTTP_201_CREATED

from booking.api.dependencies import get_booking_service
from booking.api.models.reservations import (
    CancellationRequest,
    CancellationResponse,
    PaymentListResponse,
    ReservationCreatedResponse,
    ReservationCreateRequest,
    ReservationListResponse,
    TransitionRequest,
)
from booking.api.security import get_caller
from booking.models import Caller, PaymentIntent, Reservation
from booking.services.booking import BookingService

router = APIRouter(tags=["reservations"])


@router.post(
    "/reservations",
    summary="Create reservation",
    description="""
Book one unit of a room type for a date range.

The reservation starts in **pending_payment** and holds its unit until the
payment settles or the payment window closes. Pay with the returned
client_secret.

**Retry on 503**: the room type was busy; the response carries Retry-After.
""",
    response_model=ReservationCreatedResponse,
    status_code=HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid date range or guest count"},
        404: {"description": "Room type not found"},
        409: {"description": "No unit free for the requested dates"},
        502: {"description": "Payment provider could not open a payment"},
        503: {"description": "Room type busy, retry shortly"},
    },
)
def create_reservation(
    body: ReservationCreateRequest,
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_booking_service),
) -> ReservationCreatedResponse:
    reservation, intent = service.reserve_with_intent(
        user_id=caller.user_id,
        room_type_id=body.room_type_id,
        check_in=body.check_in,
        check_out=body.check_out,
        guests=body.guests,
        notes=body.notes,
    )
    return ReservationCreatedResponse(
        reservation=reservation,
        payment_intent_id=intent.intent_id,
        client_secret=intent.client_secret,
    )


@router.get(
    "/reservations",
    summary="List my reservations",
    response_model=ReservationListResponse,
)
def list_my_reservations(
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_booking_service),
) -> ReservationListResponse:
    reservations = service.list_user_reservations(caller.user_id)
    return ReservationListResponse(reservations=reservations, total_count=len(reservations))


@router.get(
    "/reservations/{reservation_id}",
    summary="Get reservation",
    response_model=Reservation,
    responses={
        403: {"description": "Not the owner"},
        404: {"description": "Reservation not found"},
    },
)
def get_reservation(
    reservation_id: str,
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_booking_service),
) -> Reservation:
    return service.get_reservation(reservation_id, caller)


@router.get(
    "/reservations/{reservation_id}/payment-intent",
    summary="Resume payment",
    description="Return the payment intent of a reservation still awaiting payment.",
    response_model=PaymentIntent,
    responses={409: {"description": "Reservation no longer awaiting payment"}},
)
def get_payment_intent(
    reservation_id: str,
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_booking_service),
) -> PaymentIntent:
    return service.payment_intent(reservation_id, caller)


@router.post(
    "/reservations/{reservation_id}/cancel",
    summary="Cancel reservation",
    description="""
Cancel a reservation and release its unit.

Refund follows the cancellation policy (by default: 100% 14+ days before
check-in, 50% 7-13 days, nothing later). Unpaid reservations are
cancelled without refund.
""",
    response_model=CancellationResponse,
    responses={
        403: {"description": "Not the owner"},
        404: {"description": "Reservation not found"},
        409: {"description": "Reservation already cancelled or completed"},
        502: {"description": "Refund failed; nothing was changed"},
        503: {"description": "Room type busy, retry shortly"},
    },
)
def cancel_reservation(
    reservation_id: str,
    body: CancellationRequest | None = None,
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_booking_service),
) -> CancellationResponse:
    reason = body.reason if body else None
    reservation = service.cancel(reservation_id, caller, reason)
    refund = reservation.refund_amount or 0
    message = (
        f"Reservation cancelled, {refund} cents refunded"
        if refund
        else "Reservation cancelled, no refund due"
    )
    return CancellationResponse(reservation=reservation, refund_amount=refund, message=message)


@router.post(
    "/reservations/{reservation_id}/transitions",
    summary="Apply lifecycle event",
    response_model=Reservation,
    responses={
        403: {"description": "Event not permitted for this caller"},
        409: {"description": "Event not allowed from the current status"},
    },
)
def transition_reservation(
    reservation_id: str,
    body: TransitionRequest,
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_booking_service),
) -> Reservation:
    return service.transition(reservation_id, body.event, caller)


@router.get(
    "/payments",
    summary="List my payments",
    response_model=PaymentListResponse,
)
def list_my_payments(
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_booking_service),
) -> PaymentListResponse:
    payments = service.list_user_payments(caller.user_id)
    return PaymentListResponse(payments=payments, total_count=len(payments))
