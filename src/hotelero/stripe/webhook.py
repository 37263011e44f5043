"""Stripe webhook signature validation and payload parsing.

Purpose:
- Validate webhook signature using Stripe-Signature header.
- Extract minimal data needed for routing (no full event).
- Never log payload or signature.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any

import stripe

from hotelero.observability.logging import get_logger
from hotelero.stripe.client import MissingConfigurationError

logger = get_logger(__name__)

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"


class InvalidSignatureError(Exception):
    """Webhook signature validation failed."""


class InvalidPayloadError(Exception):
    """Payload structure is invalid or missing required fields."""


@dataclass
class StripeWebhookEvent:
    """Minimal extracted data from a Stripe webhook event."""

    event_id: str
    event_type: str
    object_id: str | None  # e.g., checkout.session.id
    payment_status: str | None = None


def get_webhook_secret(environ: dict[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    secret = env.get("STRIPE_WEBHOOK_SECRET")
    if not secret:
        raise MissingConfigurationError("STRIPE_WEBHOOK_SECRET")
    return secret


def verify_and_extract(
    payload_bytes: bytes,
    signature_header: str,
    webhook_secret: str,
) -> StripeWebhookEvent:
    """Validate Stripe webhook signature and extract minimal event data.

    Raises:
        InvalidSignatureError: If signature validation fails.
        InvalidPayloadError: If event structure is invalid.
    """
    try:
        stripe.Webhook.construct_event(payload_bytes, signature_header, webhook_secret)
    except stripe.SignatureVerificationError as e:
        # Do NOT log signature or payload
        logger.warning("stripe_webhook_signature_invalid")
        raise InvalidSignatureError("Invalid signature") from e
    except ValueError as e:
        logger.warning("stripe_webhook_payload_invalid")
        raise InvalidPayloadError("Invalid payload") from e

    # Signature checked above; read fields from the raw JSON
    event = json.loads(payload_bytes)
    if not isinstance(event, dict):
        raise InvalidPayloadError("Event is not an object")

    event_id = event.get("id")
    event_type = event.get("type")
    if not event_id or not event_type:
        raise InvalidPayloadError("Missing event id or type")

    obj = _event_object(event)
    return StripeWebhookEvent(
        event_id=event_id,
        event_type=event_type,
        object_id=obj.get("id"),
        payment_status=obj.get("payment_status"),
    )


def _event_object(event: dict[str, Any]) -> dict[str, Any]:
    data = event.get("data") or {}
    obj = data.get("object") or {}
    return obj if isinstance(obj, dict) else {}
