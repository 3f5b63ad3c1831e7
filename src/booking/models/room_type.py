"""Room type model for the bookable catalog."""

from pydantic import BaseModel, ConfigDict, Field


class RoomType(BaseModel):
    """A bookable category of interchangeable units.

    Units are counted abstractly via total_rooms; no physical room number
    is ever assigned by the booking core. Prices are in minor units (cents).
    """

    model_config = ConfigDict(strict=True, frozen=True)

    room_type_id: str = Field(..., description="Unique room type ID")
    name: str = Field(..., description="Display name", examples=["Deluxe Double"])
    price_per_night: int = Field(..., ge=0, description="Nightly price in cents")
    total_rooms: int = Field(..., ge=0, description="Inventory units of this type")
    capacity: int = Field(..., ge=1, description="Maximum occupants per unit")
    description: str | None = Field(default=None, description="Marketing description")
    amenities: list[str] = Field(default_factory=list, description="Amenity labels")
