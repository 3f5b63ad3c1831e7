"""Correlation-id aware logging for the booking core.

Every record carries the correlation ID of the request (or reaper sweep)
that produced it, set once per request by the API middleware. Core
operations log one line each through log_booking_operation() and
log_webhook_event(); the structured fields also travel in ``extra`` so a
JSON handler can pick them up.

Usage:
    logger = get_logger(__name__)
    log_booking_operation(logger, "reserve", reservation_id=rid, status="pending_payment")
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

NO_CORRELATION_ID = "no-correlation-id"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Webhook results that need attention but are not failures
_WEBHOOK_WARNING_RESULTS = frozenset({"duplicate", "skipped", "retry", "refunded"})

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation ID to the current context, generating one if absent.

    Returns:
        The ID now in effect
    """
    cid = correlation_id or str(uuid.uuid4())
    _correlation_id.set(cid)
    return cid


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def _current_id() -> str:
    return get_correlation_id() or NO_CORRELATION_ID


class CorrelationIdFilter(logging.Filter):
    """Stamp records with the active correlation ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _current_id()
        return True


class StructuredFormatter(logging.Formatter):
    """Prefix each formatted line with ``[correlation-id]``."""

    def format(self, record: logging.LogRecord) -> str:
        cid = getattr(record, "correlation_id", None) or _current_id()
        return f"[{cid}] {super().format(record)}"


def get_logger(name: str) -> logging.Logger:
    """logging.getLogger() with a CorrelationIdFilter attached exactly once."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def configure_logging(level: int | str = logging.INFO) -> None:
    """Attach a StructuredFormatter stream handler to the root logger.

    Repeated calls only adjust the level.
    """
    root = logging.getLogger()
    root.setLevel(level)
    if any(isinstance(h.formatter, StructuredFormatter) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter(DEFAULT_FORMAT))
    root.addHandler(handler)


def _emit(
    logger: logging.Logger,
    level: int,
    headline: str,
    context: dict[str, Any],
    **tags: Any,
) -> None:
    fields = " | ".join(f"{k}={v}" for k, v in context.items())
    message = f"{headline} | {fields}" if fields else headline
    logger.log(level, message, extra={**tags, **context})


def log_booking_operation(
    logger: logging.Logger,
    operation: str,
    *,
    reservation_id: str | None = None,
    room_type_id: str | None = None,
    user_id: str | None = None,
    status: str | None = None,
    amount_cents: int | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log one booking operation (reserve, cancel, settlement, refund, cancel_intent...).

    Unset fields are left out. Operations that carry an ``error`` log at
    WARNING.

    Args:
        logger: Logger to write to
        operation: Operation name
        reservation_id: Reservation acted on
        room_type_id: Room type whose inventory was touched
        user_id: Acting or owning user
        status: Reservation status after the operation
        amount_cents: Money moved or checked, in cents
        error: Error code when the operation was refused
        **extra: Further context fields
    """
    fields = {
        "reservation_id": reservation_id,
        "room_type_id": room_type_id,
        "user_id": user_id,
        "status": status,
        "amount_cents": amount_cents,
        "error": error,
        **extra,
    }
    context = {k: v for k, v in fields.items() if v is not None}
    level = logging.WARNING if error else logging.INFO
    _emit(logger, level, f"Booking operation: {operation}", context, operation=operation)


def log_webhook_event(
    logger: logging.Logger,
    event_type: str,
    event_id: str,
    *,
    reservation_id: str | None = None,
    result: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a payment provider event and what was done with it.

    ``result`` is one of success, refunded, ignored, duplicate, skipped, retry
    or error. Errors log at ERROR; refunded, duplicate, skipped and retry at
    WARNING.
    """
    fields = {"result": result, "reservation_id": reservation_id, "error": error, **extra}
    context = {k: v for k, v in fields.items() if v is not None}
    if result == "error":
        level = logging.ERROR
    elif result in _WEBHOOK_WARNING_RESULTS:
        level = logging.WARNING
    else:
        level = logging.INFO
    headline = f"Webhook event: {event_type} ({event_id})"
    _emit(logger, level, headline, context, event_type=event_type, event_id=event_id)
