"""Unit tests for BookingSettings."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from booking.config import BookingSettings, get_settings


class TestDefaults:
    def test_defaults(self) -> None:
        settings = BookingSettings()
        assert settings.lock_timeout_seconds == 5.0
        assert settings.payment_timeout_minutes == 15
        assert settings.default_cancellation_reason == "User requested cancellation"
        assert settings.store_backend == "memory"
        assert settings.payment_bridge == "mock"

    def test_table_prefix_from_environment_name(self) -> None:
        assert BookingSettings(environment="prod").dynamodb_table_prefix == "booking-prod"

    def test_explicit_table_prefix(self) -> None:
        assert BookingSettings(table_prefix="custom").dynamodb_table_prefix == "custom"


class TestFromEnv:
    def test_reads_environment(self) -> None:
        env = {
            "ENVIRONMENT": "staging",
            "BOOKING_LOCK_TIMEOUT_SECONDS": "2.5",
            "BOOKING_PAYMENT_TIMEOUT_MINUTES": "30",
            "BOOKING_DEFAULT_CANCELLATION_REASON": "Cancelled by guest",
            "BOOKING_FULL_REFUND_DAYS": "21",
            "BOOKING_PARTIAL_REFUND_PERCENT": "25",
            "BOOKING_STORE": "dynamodb",
            "BOOKING_PAYMENT_BRIDGE": "stripe",
            "DYNAMODB_TABLE_PREFIX": "staging-booking",
        }
        with patch.dict("os.environ", env, clear=True):
            settings = BookingSettings.from_env()

        assert settings.environment == "staging"
        assert settings.lock_timeout_seconds == 2.5
        assert settings.payment_timeout_minutes == 30
        assert settings.default_cancellation_reason == "Cancelled by guest"
        assert settings.full_refund_days == 21
        assert settings.partial_refund_percent == 25
        assert settings.store_backend == "dynamodb"
        assert settings.payment_bridge == "stripe"
        assert settings.dynamodb_table_prefix == "staging-booking"

    def test_empty_environment_uses_defaults(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            assert BookingSettings.from_env() == BookingSettings()

    def test_invalid_values_rejected(self) -> None:
        with patch.dict("os.environ", {"BOOKING_STORE": "sqlite"}, clear=True):
            with pytest.raises(ValidationError):
                BookingSettings.from_env()

    def test_non_positive_lock_timeout_rejected(self) -> None:
        with pytest.raises(ValidationError):
            BookingSettings(lock_timeout_seconds=0)


class TestGetSettings:
    def test_cached(self) -> None:
        assert get_settings() is get_settings()
