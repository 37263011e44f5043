"""Tests for Stripe configuration and client wrapper (SDK mocked)."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from hotelero.stripe.client import (
    DEFAULT_CANCEL_URL,
    MissingConfigurationError,
    StripeClient,
    StripeConfig,
)


class TestStripeConfig:
    def test_missing_secret_key_raises_typed_error(self):
        with pytest.raises(MissingConfigurationError) as exc_info:
            StripeConfig.from_env({})
        assert exc_info.value.setting == "STRIPE_SECRET_KEY"

    def test_empty_secret_key_is_missing(self):
        with pytest.raises(MissingConfigurationError):
            StripeConfig.from_env({"STRIPE_SECRET_KEY": ""})

    def test_reads_urls_with_defaults(self):
        config = StripeConfig.from_env(
            {"STRIPE_SECRET_KEY": "sk_test_x", "STRIPE_SUCCESS_URL": "https://h.example/ok"}
        )
        assert config.secret_key == "sk_test_x"
        assert config.success_url == "https://h.example/ok"
        assert config.cancel_url == DEFAULT_CANCEL_URL

    def test_reads_process_environment_by_default(self):
        with patch.dict("os.environ", {"STRIPE_SECRET_KEY": "sk_test_env"}, clear=True):
            assert StripeConfig.from_env().secret_key == "sk_test_env"


class TestCreateCheckoutSession:
    def test_passes_amount_and_idempotency_key(self):
        sdk = MagicMock()
        sdk.v1.checkout.sessions.create.return_value = SimpleNamespace(
            id="cs_test_1", url="https://checkout.stripe.com/c/cs_test_1", status="open"
        )
        with patch("hotelero.stripe.client.stripe.StripeClient", return_value=sdk) as ctor:
            client = StripeClient(StripeConfig(secret_key="sk_test_x"))
            result = client.create_checkout_session(
                amount_cents=25000,
                currency="USD",
                product_name="Reserva - 2 noche(s)",
                idempotency_key="booking_quote:bq-1:checkout_session",
                metadata={"booking_quote_id": "bq-1"},
                client_reference_id="bq-1",
            )

        ctor.assert_called_once_with("sk_test_x")
        assert result == {
            "session_id": "cs_test_1",
            "url": "https://checkout.stripe.com/c/cs_test_1",
            "status": "open",
        }
        call = sdk.v1.checkout.sessions.create.call_args.kwargs
        params = call["params"]
        assert params["line_items"][0]["price_data"]["currency"] == "usd"
        assert params["line_items"][0]["price_data"]["unit_amount"] == 25000
        assert params["client_reference_id"] == "bq-1"
        assert "customer_email" not in params
        assert params["cancel_url"] == DEFAULT_CANCEL_URL
        assert call["options"] == {"idempotency_key": "booking_quote:bq-1:checkout_session"}
