"""Webhook endpoint for payment provider events.

Handles payment_intent.succeeded and payment_intent.payment_failed. No
identity headers: with the Stripe bridge the payload signature is
verified instead. The mock bridge accepts unsigned JSON for local runs.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_503_SERVICE_UNAVAILABLE

from booking.api.dependencies import get_bridge, get_webhook_handler
from booking.models import SettlementBridgeError
from booking.services.payment_bridge import PaymentSettlementBridge
from booking.services.stripe_bridge import StripeSettlementBridge
from booking.services.webhook_handler import WebhookHandler
from booking.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])

SIGNATURE_HEADER = "Stripe-Signature"


class WebhookResponse(BaseModel):
    """Standard webhook response."""

    received: bool
    event_id: str | None = None
    event_type: str | None = None
    processing_result: str
    message: str | None = None


def _parse_event(
    payload: bytes, signature: str | None, bridge: PaymentSettlementBridge
) -> dict[str, Any]:
    if isinstance(bridge, StripeSettlementBridge):
        if not signature:
            raise HTTPException(HTTP_400_BAD_REQUEST, detail="Missing Stripe-Signature header")
        try:
            return bridge.verify_webhook_signature(payload, signature)
        except SettlementBridgeError as e:
            logger.warning("Webhook signature verification failed: %s", e)
            raise HTTPException(HTTP_400_BAD_REQUEST, detail="Invalid webhook signature") from e

    try:
        event: dict[str, Any] = json.loads(payload)
    except json.JSONDecodeError as e:
        raise HTTPException(HTTP_400_BAD_REQUEST, detail="Malformed webhook payload") from e
    return event


@router.post(
    "/webhooks/stripe",
    summary="Receive payment provider events",
    description="""
Applies payment outcomes to reservations.

**Idempotent**: a redelivered event (same event id) returns 200 with
processing_result "duplicate". A 503 asks the provider to redeliver later.
""",
    response_model=WebhookResponse,
    responses={
        400: {"description": "Invalid signature or payload"},
        503: {"description": "Reservation busy, redeliver later"},
    },
)
async def handle_stripe_webhook(
    request: Request,
    bridge: PaymentSettlementBridge = Depends(get_bridge),
    handler: WebhookHandler = Depends(get_webhook_handler),
) -> WebhookResponse | JSONResponse:
    payload = await request.body()
    event = _parse_event(payload, request.headers.get(SIGNATURE_HEADER), bridge)

    # Settlement takes per-room-type locks; keep it off the event loop
    outcome = await run_in_threadpool(handler.handle, event)
    response = WebhookResponse(
        received=True,
        event_id=event.get("id"),
        event_type=event.get("type"),
        processing_result=outcome.result,
        message=outcome.error_message,
    )
    if outcome.result == "retry":
        return JSONResponse(
            status_code=HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json"),
        )
    return response
