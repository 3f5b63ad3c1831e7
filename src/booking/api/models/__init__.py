"""API-specific request/response models.

Domain models (Reservation, Payment, RoomType, ...) live in booking.models
and are reused here as response bodies.

Modules:
- reservations: reservation, cancellation and transition bodies
- room_types: room type upsert body
- admin: staff-only responses
"""

__all__: list[str] = []
