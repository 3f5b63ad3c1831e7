"""Runtime configuration for the booking core.

Values come from environment variables so the same build runs in every
environment. Services never read this module directly; the dependency
wiring passes the relevant values into their constructors.
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class BookingSettings(BaseModel):
    """Tunable policy parameters and infrastructure names."""

    model_config = ConfigDict(frozen=True)

    environment: str = "dev"
    lock_timeout_seconds: float = Field(default=5.0, gt=0)
    payment_timeout_minutes: int = Field(default=15, ge=1)
    reaper_interval_seconds: float = Field(default=60.0, gt=0)
    default_cancellation_reason: str = "User requested cancellation"
    full_refund_days: int = Field(default=14, ge=0)
    partial_refund_days: int = Field(default=7, ge=0)
    partial_refund_percent: int = Field(default=50, ge=0, le=100)
    currency: str = "EUR"
    table_prefix: str | None = None
    store_backend: Literal["memory", "dynamodb"] = "memory"
    payment_bridge: Literal["mock", "stripe"] = "mock"

    @property
    def dynamodb_table_prefix(self) -> str:
        return self.table_prefix or f"booking-{self.environment}"

    @classmethod
    def from_env(cls) -> "BookingSettings":
        """Build settings from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            environment=os.getenv("ENVIRONMENT", defaults.environment),
            lock_timeout_seconds=float(
                os.getenv("BOOKING_LOCK_TIMEOUT_SECONDS", defaults.lock_timeout_seconds)
            ),
            payment_timeout_minutes=int(
                os.getenv("BOOKING_PAYMENT_TIMEOUT_MINUTES", defaults.payment_timeout_minutes)
            ),
            reaper_interval_seconds=float(
                os.getenv("BOOKING_REAPER_INTERVAL_SECONDS", defaults.reaper_interval_seconds)
            ),
            default_cancellation_reason=os.getenv(
                "BOOKING_DEFAULT_CANCELLATION_REASON",
                defaults.default_cancellation_reason,
            ),
            full_refund_days=int(
                os.getenv("BOOKING_FULL_REFUND_DAYS", defaults.full_refund_days)
            ),
            partial_refund_days=int(
                os.getenv("BOOKING_PARTIAL_REFUND_DAYS", defaults.partial_refund_days)
            ),
            partial_refund_percent=int(
                os.getenv("BOOKING_PARTIAL_REFUND_PERCENT", defaults.partial_refund_percent)
            ),
            currency=os.getenv("BOOKING_CURRENCY", defaults.currency),
            table_prefix=os.getenv("DYNAMODB_TABLE_PREFIX"),
            store_backend=os.getenv("BOOKING_STORE", defaults.store_backend),
            payment_bridge=os.getenv("BOOKING_PAYMENT_BRIDGE", defaults.payment_bridge),
        )


@lru_cache(maxsize=1)
def get_settings() -> BookingSettings:
    """Get the process-wide settings (cached; call cache_clear() in tests)."""
    return BookingSettings.from_env()
