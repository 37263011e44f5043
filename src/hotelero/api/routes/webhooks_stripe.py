"""Stripe webhook route - finalizes bookings paid through Checkout.

Security rules:
- Validate Stripe-Signature on every request.
- Never log payload or signature header.
- Return 5xx on unexpected failures (so Stripe retries).
"""

from __future__ import annotations

from fastapi import APIRouter, Header, Request, Response
from fastapi.responses import JSONResponse

from hotelero.infra.db import txn
from hotelero.observability.logging import get_logger
from hotelero.services.booking_service import BookingError, handle_checkout_completed
from hotelero.stripe.client import MissingConfigurationError
from hotelero.stripe.webhook import (
    CHECKOUT_SESSION_COMPLETED,
    InvalidPayloadError,
    InvalidSignatureError,
    get_webhook_secret,
    verify_and_extract,
)

router = APIRouter(tags=["webhooks"])

logger = get_logger(__name__)


def _prefix(value: str) -> str:
    return value[:8]


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(..., alias="Stripe-Signature"),
) -> Response:
    """Receive Stripe webhook events.

    Returns:
        200 when processed, skipped or already processed.
        400 if signature or payload is invalid.
        404 if no payment session matches the Checkout Session.
        500 if configuration is missing or processing fails.
    """
    payload_bytes = await request.body()

    try:
        webhook_secret = get_webhook_secret()
    except MissingConfigurationError:
        logger.error("stripe_webhook_secret_missing")
        return Response(status_code=500, content="server configuration error")

    try:
        event = verify_and_extract(payload_bytes, stripe_signature, webhook_secret)
    except InvalidSignatureError:
        return Response(status_code=400, content="invalid signature")
    except InvalidPayloadError:
        return Response(status_code=400, content="invalid payload")

    logger.info(
        "stripe_webhook_received",
        extra={
            "extra_fields": {
                "event_id_prefix": _prefix(event.event_id),
                "event_type": event.event_type,
            }
        },
    )

    if event.event_type != CHECKOUT_SESSION_COMPLETED:
        return JSONResponse({"ok": True, "skipped": True})

    # Deferred payment methods complete the session before money arrives
    if event.payment_status != "paid":
        return JSONResponse({"ok": True, "skipped": True})

    if not event.object_id:
        return Response(status_code=400, content="event missing object id")

    try:
        with txn() as cur:
            result = handle_checkout_completed(cur, session_id=event.object_id)
    except BookingError as exc:
        if exc.reason_code == "payment_session_not_found":
            logger.warning(
                "stripe_webhook_unknown_session",
                extra={"extra_fields": {"session_id_prefix": _prefix(event.object_id)}},
            )
            return JSONResponse({"error": exc.reason_code}, status_code=404)
        # Booking can no longer be confirmed; retrying will not change that
        logger.error(
            "stripe_webhook_finalize_rejected",
            extra={"extra_fields": {"reason_code": exc.reason_code}},
        )
        return JSONResponse({"ok": False, "error": exc.reason_code})
    except Exception:
        logger.exception("stripe_webhook_processing_failed")
        return Response(status_code=500, content="processing failed")

    return JSONResponse({"ok": True, **result})
