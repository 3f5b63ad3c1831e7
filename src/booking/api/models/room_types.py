"""API models for room type endpoints."""

from pydantic import BaseModel, Field


class RoomTypeUpsertRequest(BaseModel):
    """Create or replace a room type (staff only). Prices in cents."""

    name: str = Field(..., min_length=1)
    price_per_night: int = Field(..., ge=0, description="Nightly price in cents")
    total_rooms: int = Field(..., ge=0, description="Inventory units")
    capacity: int = Field(..., ge=1, description="Maximum occupants per unit")
    description: str | None = None
    amenities: list[str] = Field(default_factory=list)
