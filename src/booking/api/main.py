"""FastAPI application for the room booking API.

Routes are mounted under /api. On AWS Lambda the Mangum handler serves the
app and the payment-timeout sweep runs as a scheduled call to
POST /api/admin/expire-pending; run_server() runs the sweep in-process.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from booking import __version__
from booking.api.dependencies import get_booking_service
from booking.api.exceptions import register_exception_handlers
from booking.api.middleware import CorrelationIdMiddleware
from booking.api.routes.admin import router as admin_router
from booking.api.routes.availability import router as availability_router
from booking.api.routes.reservations import router as reservations_router
from booking.api.routes.room_types import router as room_types_router
from booking.api.routes.webhooks import router as webhooks_router
from booking.config import get_settings
from booking.services.expiry import PendingPaymentReaper
from booking.utils.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Room Booking API",
    description="Room-type inventory booking with race-free reservations",
    version=__version__,
)

# Configure CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)

register_exception_handlers(app)

app.include_router(availability_router, prefix="/api")
app.include_router(room_types_router, prefix="/api")
app.include_router(reservations_router, prefix="/api")
app.include_router(admin_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")


@app.get("/api/ping")
async def ping() -> dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "service": "booking-api",
    }


# Lambda handler - Mangum wraps FastAPI for AWS Lambda + API Gateway
handler = Mangum(app, lifespan="off")


def run_server(host: str = "0.0.0.0", port: int = 8080) -> None:
    """Run the API with uvicorn and an in-process payment-timeout sweep.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to listen on (default: 8080)
    """
    import uvicorn

    reaper = PendingPaymentReaper(
        get_booking_service(), interval_seconds=get_settings().reaper_interval_seconds
    )
    reaper.start()
    try:
        uvicorn.run(app, host=host, port=port)
    finally:
        reaper.stop(timeout=5)


if __name__ == "__main__":
    run_server()
