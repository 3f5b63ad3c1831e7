"""FastAPI dependency providers for the booking core.

Services are built once per process from BookingSettings and cached with
@lru_cache. Routes depend on these functions; tests replace them through
app.dependency_overrides or clear them with reset_services().

Service Dependency Graph:
    BookingSettings (get_settings)
        ├── RoomCatalog         (DynamoDB room-types table or empty)
        ├── ReservationStore    (in-memory or DynamoDB)
        ├── settlement bridge   (mock or Stripe)
        └── BookingService
                └── WebhookHandler
"""

import datetime as dt
from functools import lru_cache

from booking.config import get_settings
from booking.services.booking import BookingService
from booking.services.dynamodb import (
    DynamoDBReservationStore,
    DynamoDBRoomCatalog,
    DynamoDBService,
    get_dynamodb_service,
    reset_dynamodb_service,
)
from booking.services.locks import RoomTypeLocks
from booking.services.payment_bridge import MockSettlementBridge, PaymentSettlementBridge
from booking.services.refund_policy import TieredRefundPolicy
from booking.services.store import InMemoryReservationStore, ReservationStore, RoomCatalog
from booking.services.stripe_bridge import StripeSettlementBridge
from booking.services.webhook_handler import (
    DynamoDBWebhookEventLog,
    InMemoryWebhookEventLog,
    WebhookEventLog,
    WebhookHandler,
)


def _dynamodb() -> DynamoDBService:
    settings = get_settings()
    return get_dynamodb_service(settings.environment, settings.dynamodb_table_prefix)


@lru_cache
def get_catalog() -> RoomCatalog:
    """Room type catalog, loaded from DynamoDB when that store is configured."""
    if get_settings().store_backend == "dynamodb":
        return DynamoDBRoomCatalog(_dynamodb())
    return RoomCatalog()


@lru_cache
def get_store() -> ReservationStore:
    if get_settings().store_backend == "dynamodb":
        return DynamoDBReservationStore(_dynamodb())
    return InMemoryReservationStore()


@lru_cache
def get_bridge() -> PaymentSettlementBridge:
    settings = get_settings()
    if settings.payment_bridge == "stripe":
        return StripeSettlementBridge(settings.environment)
    return MockSettlementBridge()


@lru_cache
def get_booking_service() -> BookingService:
    """Get cached BookingService wired from settings."""
    settings = get_settings()
    return BookingService(
        catalog=get_catalog(),
        store=get_store(),
        bridge=get_bridge(),
        locks=RoomTypeLocks(settings.lock_timeout_seconds),
        refund_policy=TieredRefundPolicy.standard(
            full_refund_days=settings.full_refund_days,
            partial_refund_days=settings.partial_refund_days,
            partial_refund_percent=settings.partial_refund_percent,
        ),
        payment_timeout=dt.timedelta(minutes=settings.payment_timeout_minutes),
        default_cancellation_reason=settings.default_cancellation_reason,
        currency=settings.currency,
    )


@lru_cache
def get_webhook_handler() -> WebhookHandler:
    event_log: WebhookEventLog
    if get_settings().store_backend == "dynamodb":
        event_log = DynamoDBWebhookEventLog(_dynamodb())
    else:
        event_log = InMemoryWebhookEventLog()
    return WebhookHandler(get_booking_service(), event_log)


def reset_services() -> None:
    """Clear all cached service instances and settings.

    Call this in test fixtures to ensure clean state between tests.
    """
    get_catalog.cache_clear()
    get_store.cache_clear()
    get_bridge.cache_clear()
    get_booking_service.cache_clear()
    get_webhook_handler.cache_clear()
    get_settings.cache_clear()
    reset_dynamodb_service()
