"""Room type catalog endpoints."""

from fastapi import APIRouter, Depends

from booking.api.dependencies import get_booking_service
from booking.api.models.room_types import RoomTypeUpsertRequest
from booking.api.security import require_staff
from booking.models import Caller, RoomType
from booking.services.booking import BookingService
from booking.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["room-types"])


@router.get("/room-types", summary="List room types", response_model=list[RoomType])
def list_room_types(
    service: BookingService = Depends(get_booking_service),
) -> list[RoomType]:
    return service.catalog.list_room_types()


@router.get(
    "/room-types/{room_type_id}",
    summary="Get room type",
    response_model=RoomType,
    responses={404: {"description": "Room type not found"}},
)
def get_room_type(
    room_type_id: str,
    service: BookingService = Depends(get_booking_service),
) -> RoomType:
    return service.availability.get_room_type(room_type_id)


@router.put(
    "/room-types/{room_type_id}",
    summary="Create or replace room type",
    description="""
Create or replace a room type. **Staff only.**

Lowering total_rooms below current bookings does not cancel anything;
it only stops new bookings until usage falls below the new total.
""",
    response_model=RoomType,
    responses={403: {"description": "Caller is not staff"}},
)
def upsert_room_type(
    room_type_id: str,
    body: RoomTypeUpsertRequest,
    caller: Caller = Depends(require_staff),
    service: BookingService = Depends(get_booking_service),
) -> RoomType:
    room_type = RoomType(room_type_id=room_type_id, **body.model_dump())
    service.catalog.upsert(room_type)
    logger.info(
        "Room type %s saved",
        room_type_id,
        extra={"user_id": caller.user_id, "total_rooms": room_type.total_rooms},
    )
    return room_type
