"""Booking core services."""

from .availability import AvailabilityService
from .booking import BookingService
from .cancellation import CancellationPlan, CancellationRefundFlow, CancellationResult
from .dynamodb import (
    DynamoDBReservationStore,
    DynamoDBRoomCatalog,
    DynamoDBService,
    get_dynamodb_service,
)
from .expiry import PendingPaymentReaper
from .locks import RoomTypeLocks
from .overlap import nightly_usage, peak_overlap
from .payment_bridge import MockSettlementBridge, PaymentSettlementBridge
from .refund_policy import RefundPolicy, RefundTier, TieredRefundPolicy, no_refund_policy
from .ssm_service import SSMService, SSMServiceError, get_ssm_service
from .state_machine import ReservationStateMachine, TransitionEffect
from .store import InMemoryReservationStore, ReservationStore, RoomCatalog
from .stripe_bridge import StripeSettlementBridge
from .webhook_handler import (
    DynamoDBWebhookEventLog,
    InMemoryWebhookEventLog,
    WebhookHandler,
    WebhookResult,
)

__all__ = [
    "AvailabilityService",
    "BookingService",
    "CancellationPlan",
    "CancellationRefundFlow",
    "CancellationResult",
    "DynamoDBReservationStore",
    "DynamoDBRoomCatalog",
    "DynamoDBService",
    "get_dynamodb_service",
    "PendingPaymentReaper",
    "RoomTypeLocks",
    "nightly_usage",
    "peak_overlap",
    "MockSettlementBridge",
    "PaymentSettlementBridge",
    "RefundPolicy",
    "RefundTier",
    "TieredRefundPolicy",
    "no_refund_policy",
    "SSMService",
    "SSMServiceError",
    "get_ssm_service",
    "ReservationStateMachine",
    "TransitionEffect",
    "InMemoryReservationStore",
    "ReservationStore",
    "RoomCatalog",
    "StripeSettlementBridge",
    "DynamoDBWebhookEventLog",
    "InMemoryWebhookEventLog",
    "WebhookHandler",
    "WebhookResult",
]
