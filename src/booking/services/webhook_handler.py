"""Webhook handler turning Stripe events into settlement outcomes.

Business logic only; HTTP routing and signature checks live in the API.
Handled event types:
- payment_intent.succeeded -> settlement SUCCEEDED with amount_received
- payment_intent.payment_failed -> settlement FAILED

A success for a reservation already cancelled (expired or cancelled while
the payment was open) is refunded in full and answered "refunded".

Every processed event is recorded by ID. A redelivered event is answered
"duplicate" without touching the reservation. Events that failed with a
retryable error are not recorded, so the provider's retry gets a second
chance.
"""

import datetime as dt
import hashlib
import json
import threading
from typing import TYPE_CHECKING, Any, NamedTuple, Protocol

from booking.models import (
    BookingError,
    ErrorCode,
    ReservationStatus,
    SettlementOutcome,
    StripeWebhookEvent,
)
from booking.utils.logging import get_logger, log_webhook_event

if TYPE_CHECKING:
    from .booking import BookingService
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)

HANDLED_EVENTS: dict[str, SettlementOutcome] = {
    "payment_intent.succeeded": SettlementOutcome.SUCCEEDED,
    "payment_intent.payment_failed": SettlementOutcome.FAILED,
}


class WebhookResult(NamedTuple):
    result: str  # success, refunded, duplicate, skipped, ignored, error, retry
    error_message: str | None = None


class WebhookEventLog(Protocol):
    def is_processed(self, event_id: str) -> bool: ...

    def record(self, event: StripeWebhookEvent) -> None: ...


class InMemoryWebhookEventLog:
    """Process-local event log."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.events: dict[str, StripeWebhookEvent] = {}

    def is_processed(self, event_id: str) -> bool:
        with self._lock:
            return event_id in self.events

    def record(self, event: StripeWebhookEvent) -> None:
        with self._lock:
            self.events.setdefault(event.event_id, event)


class DynamoDBWebhookEventLog:
    """Event log in the stripe-webhook-events table (PK event_id)."""

    TABLE = "stripe-webhook-events"

    def __init__(self, db: "DynamoDBService") -> None:
        self._db = db

    def is_processed(self, event_id: str) -> bool:
        return self._db.get_item(self.TABLE, {"event_id": event_id}) is not None

    def record(self, event: StripeWebhookEvent) -> None:
        item = {k: v for k, v in event.model_dump(mode="json").items() if v is not None}
        # First writer wins; a concurrent duplicate leaves the original record
        self._db.put_item(self.TABLE, item, condition_expression="attribute_not_exists(event_id)")


def payload_hash(event: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON event payload."""
    return hashlib.sha256(json.dumps(event, sort_keys=True, default=str).encode()).hexdigest()


class WebhookHandler:
    """Applies Stripe payment events to reservations."""

    def __init__(
        self,
        booking: "BookingService",
        event_log: WebhookEventLog | None = None,
    ) -> None:
        self.booking = booking
        self.event_log = event_log or InMemoryWebhookEventLog()

    def handle(self, event: dict[str, Any]) -> WebhookResult:
        """Process one verified Stripe event.

        Args:
            event: Parsed Stripe event (id, type, data.object)

        Returns:
            WebhookResult describing what happened
        """
        event_id = event.get("id", "")
        event_type = event.get("type", "")

        outcome = HANDLED_EVENTS.get(event_type)
        if outcome is None:
            log_webhook_event(logger, event_type, event_id, result="ignored")
            return WebhookResult("ignored")

        if self.event_log.is_processed(event_id):
            log_webhook_event(logger, event_type, event_id, result="duplicate")
            return WebhookResult("duplicate")

        intent = event.get("data", {}).get("object", {})
        reservation_id = intent.get("metadata", {}).get("reservation_id")
        if not reservation_id:
            return self._finish(event, None, WebhookResult("error", "Missing reservation_id"))

        settled_amount = None
        if outcome == SettlementOutcome.SUCCEEDED:
            settled_amount = intent.get("amount_received")
        try:
            reservation = self.booking.handle_settlement(
                reservation_id,
                outcome,
                settled_amount=settled_amount,
                provider_intent_id=intent.get("id"),
            )
        except BookingError as e:
            if e.retryable:
                log_webhook_event(
                    logger,
                    event_type,
                    event_id,
                    reservation_id=reservation_id,
                    result="retry",
                    error=e.code.value,
                )
                return WebhookResult("retry", e.code.value)
            # Already settled, cancelled or expired: the reservation moved on
            result = "skipped" if e.code == ErrorCode.INVALID_STATUS_TRANSITION else "error"
            return self._finish(event, reservation_id, WebhookResult(result, e.code.value))

        if reservation.status == ReservationStatus.CANCELLED:
            # Paid after the reservation was gone; handle_settlement refunded it
            if outcome == SettlementOutcome.SUCCEEDED:
                return self._finish(event, reservation_id, WebhookResult("refunded"))
        return self._finish(event, reservation_id, WebhookResult("success"))

    def _finish(
        self,
        event: dict[str, Any],
        reservation_id: str | None,
        outcome: WebhookResult,
    ) -> WebhookResult:
        record = StripeWebhookEvent(
            event_id=event.get("id", ""),
            event_type=event.get("type", ""),
            processed_at=dt.datetime.now(dt.UTC),
            payload_hash=payload_hash(event),
            reservation_id=reservation_id,
            processing_result=outcome.result,
            error_message=outcome.error_message,
        )
        self.event_log.record(record)
        log_webhook_event(
            logger,
            record.event_type,
            record.event_id,
            reservation_id=reservation_id,
            result=outcome.result,
            error=outcome.error_message,
        )
        return outcome
