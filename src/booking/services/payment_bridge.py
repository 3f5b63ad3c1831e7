"""Payment settlement bridge contract and mock provider.

The bridge is the boundary to the payment provider. The booking core asks
it to open a payment intent for a new reservation, to void intents that
will no longer be paid, and to execute refunds; the provider later reports
settlement outcomes as independent events (see
BookingService.handle_settlement). Bridges raise SettlementBridgeError on
any provider failure.
"""

import threading
import uuid
from typing import Protocol

from booking.models import (
    Payment,
    PaymentIntent,
    RefundReceipt,
    Reservation,
    SettlementBridgeError,
)
from booking.utils.logging import get_logger, log_booking_operation

logger = get_logger(__name__)


class PaymentSettlementBridge(Protocol):
    """What the booking core needs from a payment provider."""

    def create_intent(self, reservation: Reservation, currency: str) -> PaymentIntent:
        """Open a payment intent for the reservation total.

        Raises:
            SettlementBridgeError: If the provider rejects the request
        """
        ...

    def cancel_intent(self, payment: Payment) -> None:
        """Void the open intent of a payment that will no longer be collected.

        Raises:
            SettlementBridgeError: If the provider refuses, for example
                because the intent already succeeded
        """
        ...

    def refund(self, payment: Payment, amount: int, reason: str) -> RefundReceipt:
        """Refund part or all of a settled payment.

        Repeating the call for the same payment returns the original refund
        instead of paying out again.

        Raises:
            SettlementBridgeError: If the provider rejects the refund
        """
        ...


class MockSettlementBridge:
    """In-process provider for local runs and tests.

    Intents always open. Refunds succeed unless fail_refunds is set, are
    rejected when they exceed the settled amount, and are keyed by payment
    like a provider idempotency key. ``refunds`` lists money actually paid
    out; ``refund_calls`` counts every request.
    """

    def __init__(self, *, fail_intents: bool = False, fail_refunds: bool = False) -> None:
        self.fail_intents = fail_intents
        self.fail_refunds = fail_refunds
        self._lock = threading.Lock()
        self.intents: dict[str, PaymentIntent] = {}
        self.cancelled_intents: list[str] = []
        self.refunds: list[tuple[str, int, str]] = []
        self.refund_calls = 0
        self._receipts: dict[str, RefundReceipt] = {}

    def create_intent(self, reservation: Reservation, currency: str) -> PaymentIntent:
        if self.fail_intents:
            raise SettlementBridgeError("Mock provider rejected intent", "mock_intent_declined")
        with self._lock:
            # Idempotent per reservation, like a provider idempotency key
            existing = self.intents.get(reservation.reservation_id)
            if existing is not None:
                return existing
            intent = PaymentIntent(
                intent_id=f"MOCK-PI-{uuid.uuid4().hex[:12]}",
                client_secret=f"MOCK-SECRET-{uuid.uuid4().hex[:12]}",
            )
            self.intents[reservation.reservation_id] = intent
        log_booking_operation(
            logger,
            "create_intent",
            reservation_id=reservation.reservation_id,
            amount_cents=reservation.total_amount,
            currency=currency,
        )
        return intent

    def cancel_intent(self, payment: Payment) -> None:
        if payment.provider_intent_id is None:
            return
        with self._lock:
            self.cancelled_intents.append(payment.provider_intent_id)

    def refund(self, payment: Payment, amount: int, reason: str) -> RefundReceipt:
        with self._lock:
            self.refund_calls += 1
        if self.fail_refunds:
            raise SettlementBridgeError("Mock provider refund failed", "mock_refund_failed")
        if amount > payment.amount:
            raise SettlementBridgeError(
                f"Refund amount ({amount}) exceeds payment ({payment.amount})",
                "amount_too_large",
            )
        with self._lock:
            receipt = self._receipts.get(payment.payment_id)
            if receipt is None:
                receipt = RefundReceipt(
                    refund_id=f"MOCK-RE-{uuid.uuid4().hex[:12]}", amount=amount
                )
                self._receipts[payment.payment_id] = receipt
                self.refunds.append((payment.payment_id, amount, reason))
        return receipt
