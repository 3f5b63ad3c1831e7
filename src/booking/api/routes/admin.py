"""Staff-only endpoints: reservation overview, occupancy, payment-timeout sweep."""

import datetime as dt

from fastapi import APIRouter, Depends, Query

from booking.api.dependencies import get_booking_service
from booking.api.models.admin import ExpirySweepResponse
from booking.api.models.reservations import ReservationListResponse
from booking.api.security import require_staff
from booking.models import Caller, RoomStatistics
from booking.services.booking import BookingService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/reservations",
    summary="List reservations",
    description="All reservations, or those checking in within [check_in_from, check_in_to].",
    response_model=ReservationListResponse,
)
def list_reservations(
    check_in_from: dt.date | None = Query(default=None),
    check_in_to: dt.date | None = Query(default=None),
    caller: Caller = Depends(require_staff),
    service: BookingService = Depends(get_booking_service),
) -> ReservationListResponse:
    if check_in_from is None and check_in_to is None:
        reservations = service.list_reservations(caller)
    else:
        start = check_in_from or dt.date.min
        end = check_in_to or dt.date.max
        reservations = service.reservations_checking_in_between(start, end, caller)
    return ReservationListResponse(reservations=reservations, total_count=len(reservations))


@router.get(
    "/statistics",
    summary="Occupancy for a night",
    response_model=RoomStatistics,
    dependencies=[Depends(require_staff)],
)
def room_statistics(
    date: dt.date | None = Query(default=None, description="Night to report (default today)"),
    service: BookingService = Depends(get_booking_service),
) -> RoomStatistics:
    return service.room_statistics(date)


@router.post(
    "/expire-pending",
    summary="Expire unpaid reservations",
    description=(
        "Cancel reservations whose payment window has closed and finish "
        "interrupted refund cancellations. Safe to call on a schedule."
    ),
    response_model=ExpirySweepResponse,
    dependencies=[Depends(require_staff)],
)
def expire_pending(
    service: BookingService = Depends(get_booking_service),
) -> ExpirySweepResponse:
    expired = service.expire_pending_payments()
    completed = service.complete_interrupted_cancellations()
    ids = [r.reservation_id for r in expired]
    return ExpirySweepResponse(
        expired_reservation_ids=ids,
        count=len(ids),
        completed_cancellation_ids=[r.reservation_id for r in completed],
    )
