"""Stripe-backed payment settlement bridge.

Uses the v8+ StripeClient. The secret key and webhook signing secret come
from SSM Parameter Store. Settlement outcomes are not polled: Stripe
reports them through webhooks (see webhook_handler).
"""

import logging
from typing import Any

import stripe
from stripe import StripeClient

from booking.models import (
    Payment,
    PaymentIntent,
    RefundReceipt,
    Reservation,
    SettlementBridgeError,
)

from .ssm_service import SSMService, SSMServiceError, booking_secret_path, get_ssm_service

logger = logging.getLogger(__name__)


class StripeSettlementBridge:
    """Payment intents and refunds through Stripe.

    Usage:
        bridge = StripeSettlementBridge(environment="dev")
        intent = bridge.create_intent(reservation, "EUR")
    """

    def __init__(
        self,
        environment: str = "dev",
        *,
        ssm: SSMService | None = None,
        client: StripeClient | None = None,
    ) -> None:
        """Initialize the bridge.

        Args:
            environment: Environment name selecting the SSM parameter path
            ssm: Secret source (default: shared SSMService)
            client: Preconfigured StripeClient; built lazily from SSM if omitted
        """
        self._environment = environment
        self._ssm = ssm or get_ssm_service()
        self._client = client
        self._webhook_secret: str | None = None

    def _parameter(self, name: str) -> str:
        try:
            return self._ssm.get_parameter(booking_secret_path(self._environment, "stripe", name))
        except SSMServiceError as e:
            raise SettlementBridgeError(f"Stripe credentials unavailable: {e}") from e

    def _get_client(self) -> StripeClient:
        if self._client is None:
            self._client = StripeClient(self._parameter("secret_key"))
            logger.info("Stripe client initialized for environment: %s", self._environment)
        return self._client

    def create_intent(self, reservation: Reservation, currency: str) -> PaymentIntent:
        """Create a PaymentIntent for the reservation total.

        The reservation ID is the idempotency key, so a retried call returns
        the same intent instead of charging twice.

        Raises:
            SettlementBridgeError: If Stripe rejects the request
        """
        client = self._get_client()
        try:
            intent = client.payment_intents.create(
                params={
                    "amount": reservation.total_amount,
                    "currency": currency.lower(),
                    "metadata": {
                        "reservation_id": reservation.reservation_id,
                        "user_id": reservation.user_id,
                    },
                },
                options={"idempotency_key": f"intent_{reservation.reservation_id}"},
            )
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error("Stripe intent creation failed: %s (code: %s)", str(e), error_code)
            raise SettlementBridgeError(
                f"Failed to create payment intent: {e}", provider_error_code=error_code
            ) from e

        logger.info(
            "PaymentIntent %s created for reservation %s", intent.id, reservation.reservation_id
        )
        return PaymentIntent(intent_id=intent.id, client_secret=intent.client_secret)

    def cancel_intent(self, payment: Payment) -> None:
        """Cancel the PaymentIntent of a reservation that will not be paid.

        Raises:
            SettlementBridgeError: If Stripe refuses (e.g. the intent already succeeded)
        """
        if not payment.provider_intent_id:
            return

        client = self._get_client()
        try:
            client.payment_intents.cancel(
                payment.provider_intent_id, params={"cancellation_reason": "abandoned"}
            )
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.warning("Stripe intent cancel failed: %s (code: %s)", str(e), error_code)
            raise SettlementBridgeError(
                f"Failed to cancel payment intent: {e}", provider_error_code=error_code
            ) from e

        logger.info("PaymentIntent %s cancelled", payment.provider_intent_id)

    def refund(self, payment: Payment, amount: int, reason: str) -> RefundReceipt:
        """Refund part or all of a settled PaymentIntent.

        Raises:
            SettlementBridgeError: If the payment has no intent or Stripe rejects the refund
        """
        if not payment.provider_intent_id:
            raise SettlementBridgeError(
                f"Payment {payment.payment_id} has no provider intent",
                provider_error_code="missing_intent",
            )

        client = self._get_client()
        try:
            refund = client.refunds.create(
                params={
                    "payment_intent": payment.provider_intent_id,
                    "amount": amount,
                    "metadata": {"reason": reason, "reservation_id": payment.reservation_id},
                },
                options={"idempotency_key": f"refund_{payment.payment_id}"},
            )
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error("Stripe refund failed: %s (code: %s)", str(e), error_code)
            raise SettlementBridgeError(
                f"Failed to create refund: {e}", provider_error_code=error_code
            ) from e

        logger.info("Refund %s created for PaymentIntent %s", refund.id, payment.provider_intent_id)
        return RefundReceipt(refund_id=refund.id, amount=refund.amount)

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify a webhook signature and parse the event.

        Args:
            payload: Raw request body bytes
            signature: Stripe-Signature header value

        Returns:
            Parsed Stripe event dictionary

        Raises:
            SettlementBridgeError: If the signature is invalid
        """
        if self._webhook_secret is None:
            self._webhook_secret = self._parameter("webhook_secret")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise SettlementBridgeError(
                "Invalid webhook signature", provider_error_code="invalid_signature"
            ) from e
        except ValueError as e:
            raise SettlementBridgeError(
                "Malformed webhook payload", provider_error_code="invalid_payload"
            ) from e
        return dict(event)
