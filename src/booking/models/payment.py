"""Payment model for reservation settlement."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from .enums import PaymentStatus


class Payment(BaseModel):
    """One settlement attempt for a reservation.

    Amounts are stored in cents. While the payment is not REFUNDED its
    amount equals the reservation total.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    payment_id: str = Field(..., description="Unique payment ID")
    reservation_id: str = Field(..., description="Reference to Reservation")
    user_id: str = Field(..., description="Paying user ID")
    amount: int = Field(..., ge=0, description="Amount in cents")
    currency: str = Field(default="EUR", description="Currency code")
    status: PaymentStatus = Field(..., description="Settlement status")
    provider_intent_id: str | None = Field(
        default=None,
        description="Provider payment intent ID (pi_xxx for Stripe)",
        examples=["pi_3ABC123DEF456"],
    )
    created_at: dt.datetime = Field(..., description="Creation timestamp")
    settled_at: dt.datetime | None = Field(default=None)
    error_message: str | None = Field(default=None, description="Failure details")
    refund_amount: int | None = Field(
        default=None, ge=0, description="Refunded amount in cents"
    )
    provider_refund_id: str | None = Field(
        default=None,
        description="Provider refund ID (re_xxx for Stripe)",
        examples=["re_3ABC123DEF456"],
    )
    refunded_at: dt.datetime | None = Field(default=None)


class PaymentIntent(BaseModel):
    """Result of asking the settlement bridge to start collecting a payment."""

    model_config = ConfigDict(strict=True, frozen=True)

    intent_id: str
    client_secret: str | None = None


class RefundReceipt(BaseModel):
    """Result of a successful refund through the settlement bridge."""

    model_config = ConfigDict(strict=True, frozen=True)

    refund_id: str
    amount: int = Field(..., ge=0)
