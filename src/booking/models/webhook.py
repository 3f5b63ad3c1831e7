"""Webhook event log model for idempotency and auditing."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class StripeWebhookEvent(BaseModel):
    """Record of a processed Stripe webhook delivery.

    Stripe retries deliveries, so the same event ID can arrive several
    times; the record makes the second and later deliveries no-ops.
    """

    model_config = ConfigDict(strict=True)

    event_id: str = Field(
        ...,
        description="Stripe event ID (evt_xxx)",
        examples=["evt_1ABC123DEF456"],
    )
    event_type: str = Field(
        ...,
        description="Stripe event type",
        examples=["payment_intent.succeeded", "payment_intent.payment_failed"],
    )
    processed_at: datetime = Field(..., description="When the event was processed")
    payload_hash: str = Field(..., description="SHA-256 hash of the event payload")
    reservation_id: str | None = Field(
        default=None,
        description="Associated reservation ID from metadata",
    )
    processing_result: str = Field(
        default="success",
        description="Result of processing: success, skipped, ignored, error",
    )
    error_message: str | None = Field(default=None)
