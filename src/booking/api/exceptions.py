"""FastAPI exception handlers converting BookingError to HTTP responses.

The ErrorCode-to-HTTP status mapping:
- 400 Bad Request: request validation (dates, guest count)
- 403 Forbidden: caller may not act on the reservation
- 404 Not Found: unknown room type or reservation
- 409 Conflict: no capacity, status moved on, settlement mismatch
- 502 Bad Gateway: the payment provider failed
- 503 Service Unavailable: room type busy, with Retry-After

Usage:
    from booking.api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from booking.models import BookingError, ErrorCode

logger = logging.getLogger(__name__)

# Seconds a client should wait before retrying a BUSY response
BUSY_RETRY_AFTER_SECONDS = 1

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_DATE_RANGE: HTTP_400_BAD_REQUEST,
    ErrorCode.GUEST_COUNT_EXCEEDED: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_GUEST_COUNT: HTTP_400_BAD_REQUEST,
    ErrorCode.UNAUTHORIZED: HTTP_403_FORBIDDEN,
    ErrorCode.ROOM_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.RESERVATION_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.CAPACITY_EXCEEDED: HTTP_409_CONFLICT,
    ErrorCode.INVALID_STATUS_TRANSITION: HTTP_409_CONFLICT,
    ErrorCode.SETTLEMENT_AMOUNT_MISMATCH: HTTP_409_CONFLICT,
    ErrorCode.REFUND_FAILED: HTTP_502_BAD_GATEWAY,
    ErrorCode.PAYMENT_FAILED: HTTP_502_BAD_GATEWAY,
    ErrorCode.BUSY: HTTP_503_SERVICE_UNAVAILABLE,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode (400 if not mapped)."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    """Render a BookingError as an ErrorResponse body with the mapped status."""
    status_code = get_http_status_for_error(exc.code)
    headers = None
    if exc.code == ErrorCode.BUSY:
        headers = {"Retry-After": str(BUSY_RETRY_AFTER_SECONDS)}

    logger.info(
        "Booking error %s on %s %s",
        exc.code.value,
        request.method,
        request.url.path,
        extra={"error_code": exc.code.value, "status_code": status_code},
    )
    return JSONResponse(
        status_code=status_code,
        content=exc.to_error_response().model_dump(mode="json"),
        headers=headers,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for uncaught exceptions; internal details stay in the logs."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error_code": "ERR_INTERNAL",
            "message": "An unexpected error occurred",
            "recovery": "Please try again later or contact support",
            "retryable": False,
            "details": None,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(BookingError, booking_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
