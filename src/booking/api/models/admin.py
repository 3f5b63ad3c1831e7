"""API models for staff endpoints."""

from pydantic import BaseModel, Field


class ExpirySweepResponse(BaseModel):
    """Reservations cancelled by a payment-timeout sweep."""

    expired_reservation_ids: list[str]
    count: int
    completed_cancellation_ids: list[str] = Field(
        default_factory=list,
        description="Cancellations whose refund had gone out but whose commit was lost",
    )
