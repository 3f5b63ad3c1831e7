"""Pytest configuration and fixtures for booking core tests.

This module provides reusable fixtures for testing:
- A controllable clock
- Sample room types, catalog and in-memory store
- A BookingService wired to the mock settlement bridge
- Guest and staff callers
- DynamoDB mocking with moto
"""

import datetime as dt
import os
from collections.abc import Generator
from typing import Any

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-booking")

if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from booking.models import Caller, CallerRole, RoomType  # noqa: E402
from booking.services.booking import BookingService  # noqa: E402
from booking.services.locks import RoomTypeLocks  # noqa: E402
from booking.services.payment_bridge import MockSettlementBridge  # noqa: E402
from booking.services.store import InMemoryReservationStore, RoomCatalog  # noqa: E402

NOW = dt.datetime(2026, 3, 1, 12, 0, tzinfo=dt.UTC)

DELUXE_PRICE = 15000  # EUR cents per night
SINGLE_PRICE = 9000


class FakeClock:
    """Settable UTC clock; call it like utc_now()."""

    def __init__(self, now: dt.datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, **kwargs: float) -> dt.datetime:
        self.now += dt.timedelta(**kwargs)
        return self.now


# === Singleton Resets ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset DynamoDB and API service caches before and after each test.

    Tests using mock_aws then get fresh clients inside the mock context
    rather than reusing ones built outside it.
    """
    from booking.api.dependencies import reset_services

    reset_services()
    yield
    reset_services()


# === Domain Fixtures ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def deluxe() -> RoomType:
    """Two units, sleeps two."""
    return RoomType(
        room_type_id="deluxe",
        name="Deluxe Double",
        price_per_night=DELUXE_PRICE,
        total_rooms=2,
        capacity=2,
        amenities=["wifi", "minibar"],
    )


@pytest.fixture
def single() -> RoomType:
    """One unit, sleeps one."""
    return RoomType(
        room_type_id="single",
        name="Single",
        price_per_night=SINGLE_PRICE,
        total_rooms=1,
        capacity=1,
    )


@pytest.fixture
def catalog(deluxe: RoomType, single: RoomType) -> RoomCatalog:
    return RoomCatalog([deluxe, single])


@pytest.fixture
def store() -> InMemoryReservationStore:
    return InMemoryReservationStore()


@pytest.fixture
def bridge() -> MockSettlementBridge:
    return MockSettlementBridge()


@pytest.fixture
def locks() -> RoomTypeLocks:
    return RoomTypeLocks(timeout_seconds=0.5)


@pytest.fixture
def booking_service(
    catalog: RoomCatalog,
    store: InMemoryReservationStore,
    bridge: MockSettlementBridge,
    locks: RoomTypeLocks,
    clock: FakeClock,
) -> BookingService:
    """BookingService with the default refund policy and a 15 minute payment window."""
    return BookingService(catalog, store, bridge, locks=locks, clock=clock)


@pytest.fixture
def guest() -> Caller:
    return Caller(user_id="user-guest-1", role=CallerRole.GUEST)


@pytest.fixture
def other_guest() -> Caller:
    return Caller(user_id="user-guest-2", role=CallerRole.GUEST)


@pytest.fixture
def manager() -> Caller:
    return Caller(user_id="user-manager-1", role=CallerRole.MANAGER)


# === DynamoDB Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"


@pytest.fixture
def dynamodb_client(aws_credentials: None) -> Generator[Any, None, None]:
    """Create a mocked DynamoDB client."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name="eu-west-1")
        yield client


def _gsi(name: str, attribute: str) -> dict[str, Any]:
    return {
        "IndexName": name,
        "KeySchema": [{"AttributeName": attribute, "KeyType": "HASH"}],
        "Projection": {"ProjectionType": "ALL"},
    }


@pytest.fixture
def create_tables(dynamodb_client: Any) -> None:
    """Create all booking tables with the test-booking prefix."""
    tables = [
        {
            "TableName": "test-booking-reservations",
            "KeySchema": [{"AttributeName": "reservation_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "reservation_id", "AttributeType": "S"},
                {"AttributeName": "room_type_status", "AttributeType": "S"},
                {"AttributeName": "status", "AttributeType": "S"},
                {"AttributeName": "user_id", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                _gsi("room_type_status-index", "room_type_status"),
                _gsi("status-index", "status"),
                _gsi("user_id-index", "user_id"),
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": "test-booking-payments",
            "KeySchema": [{"AttributeName": "reservation_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "reservation_id", "AttributeType": "S"},
                {"AttributeName": "user_id", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [_gsi("user_id-index", "user_id")],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": "test-booking-room-types",
            "KeySchema": [{"AttributeName": "room_type_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "room_type_id", "AttributeType": "S"},
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": "test-booking-inventory-holds",
            "KeySchema": [
                {"AttributeName": "room_type_id", "KeyType": "HASH"},
                {"AttributeName": "hold_id", "KeyType": "RANGE"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "room_type_id", "AttributeType": "S"},
                {"AttributeName": "hold_id", "AttributeType": "S"},
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": "test-booking-stripe-webhook-events",
            "KeySchema": [{"AttributeName": "event_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "event_id", "AttributeType": "S"},
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
    ]

    for table_def in tables:
        dynamodb_client.create_table(**table_def)


# === API Fixtures ===


@pytest.fixture
def client(
    booking_service: BookingService, bridge: MockSettlementBridge
) -> Generator[Any, None, None]:
    """TestClient with the API wired to the in-memory booking service."""
    from fastapi.testclient import TestClient

    from booking.api.dependencies import get_booking_service, get_bridge, get_webhook_handler
    from booking.api.main import app
    from booking.services.webhook_handler import WebhookHandler

    handler = WebhookHandler(booking_service)
    app.dependency_overrides[get_booking_service] = lambda: booking_service
    app.dependency_overrides[get_bridge] = lambda: bridge
    app.dependency_overrides[get_webhook_handler] = lambda: handler
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def identity(caller: Caller) -> dict[str, str]:
    """Gateway identity headers for a caller."""
    return {"x-user-sub": caller.user_id, "x-user-role": caller.role.value}
