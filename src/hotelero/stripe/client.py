"""Thin wrapper around Stripe SDK.

Purpose:
- Encapsulate Stripe API calls so services don't import stripe.* directly.
- Built from an explicit StripeConfig; a missing key fails when the config
  is built, not on the first payment.
- Accept idempotency_key for safe retries.
- Never log full Stripe payloads (only IDs + correlation metadata).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

import stripe

from hotelero.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SUCCESS_URL = "https://book.hotelero.app/checkout/success"
DEFAULT_CANCEL_URL = "https://book.hotelero.app/checkout/cancel"


class MissingConfigurationError(RuntimeError):
    """Raised when a required setting is absent from the environment."""

    def __init__(self, setting: str):
        self.setting = setting
        super().__init__(f"missing configuration: {setting}")


@dataclass(frozen=True)
class StripeConfig:
    secret_key: str
    success_url: str = DEFAULT_SUCCESS_URL
    cancel_url: str = DEFAULT_CANCEL_URL

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> StripeConfig:
        """Build config from STRIPE_* variables.

        Raises:
            MissingConfigurationError: If STRIPE_SECRET_KEY is not set.
        """
        env = os.environ if environ is None else environ
        secret_key = env.get("STRIPE_SECRET_KEY")
        if not secret_key:
            raise MissingConfigurationError("STRIPE_SECRET_KEY")
        return cls(
            secret_key=secret_key,
            success_url=env.get("STRIPE_SUCCESS_URL") or DEFAULT_SUCCESS_URL,
            cancel_url=env.get("STRIPE_CANCEL_URL") or DEFAULT_CANCEL_URL,
        )


class StripeClient:
    """Wrapper for Stripe Checkout operations.

    Usage:
        client = StripeClient(StripeConfig.from_env())
        session = client.create_checkout_session(
            amount_cents=25000,
            currency="usd",
            product_name="Deluxe Room - 2 nights",
            idempotency_key="booking_quote:abc123:checkout_session",
        )
        print(session["session_id"], session["url"])
    """

    def __init__(self, config: StripeConfig) -> None:
        self._config = config
        self._client = stripe.StripeClient(config.secret_key)

    def create_checkout_session(
        self,
        *,
        amount_cents: int,
        currency: str,
        product_name: str,
        idempotency_key: str,
        success_url: str | None = None,
        cancel_url: str | None = None,
        metadata: dict[str, str] | None = None,
        client_reference_id: str | None = None,
        customer_email: str | None = None,
        correlation_id: str | None = None,
    ) -> dict[str, Any]:
        """Create a Stripe Checkout Session for a single line item.

        Returns:
            Dict with session_id, url, and status.
        """
        params: dict[str, Any] = {
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": currency.lower(),
                        "unit_amount": amount_cents,
                        "product_data": {"name": product_name},
                    },
                    "quantity": 1,
                }
            ],
            "success_url": success_url or self._config.success_url,
            "cancel_url": cancel_url or self._config.cancel_url,
        }
        if metadata:
            params["metadata"] = metadata
        if client_reference_id:
            params["client_reference_id"] = client_reference_id
        if customer_email:
            params["customer_email"] = customer_email

        session = self._client.v1.checkout.sessions.create(
            params=params,
            options={"idempotency_key": idempotency_key},
        )

        # Log only IDs, never full payload
        logger.info(
            "stripe_checkout_session_created",
            extra={
                "extra_fields": {
                    "session_id": session.id,
                    "correlation_id": correlation_id,
                }
            },
        )

        return {
            "session_id": session.id,
            "url": session.url,
            "status": session.status,
        }
