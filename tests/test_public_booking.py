"""Tests for the public booking funnel and dashboard quote routes."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from unittest.mock import ANY, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from hotelero.api.factory import create_app
from hotelero.api.routes.public_booking import get_stripe_client
from hotelero.domain.availability import Room
from hotelero.domain.quote import NightQuote, QuoteResult, QuoteUnavailable
from hotelero.services.booking_service import BookingError

PUBLIC = "hotelero.api.routes.public_booking"
QUOTES = "hotelero.api.routes.quotes"
CHECKOUT = "hotelero.services.checkout"
BOOKING = "hotelero.services.booking_service"
QUOTE_SERVICE = "hotelero.services.quote_service"


@contextmanager
def mock_txn():
    yield MagicMock()


QUOTE = QuoteResult(
    nights=[
        NightQuote(
            night=date(2025, 3, 10),
            base_rate_cents=12000,
            extras_adults_cents=0,
            extras_children_cents=0,
            subtotal_cents=12000,
            taxes_cents=1440,
            total_rate_cents=13440,
        )
    ],
    subtotal_cents=12000,
    taxes_total_cents=1440,
    grand_total_cents=13440,
    currency="USD",
)


@pytest.fixture
def stripe_client():
    client = MagicMock()
    client.create_checkout_session.return_value = {
        "session_id": "cs_test_123",
        "url": "https://checkout.stripe.com/c/cs_test_123",
        "status": "open",
    }
    return client


@pytest.fixture
def app(stripe_client):
    app = create_app(role="public")
    app.dependency_overrides[get_stripe_client] = lambda: stripe_client
    return app


@pytest.fixture
def client(app):
    with patch(f"{PUBLIC}.txn", mock_txn), patch(f"{QUOTES}.txn", mock_txn):
        yield TestClient(app)


class TestPublicQuote:
    def test_creates_quote(self, client):
        expires = datetime(2025, 3, 1, 12, 30, tzinfo=timezone.utc)
        with patch(
            f"{PUBLIC}.create_public_quote",
            return_value={
                "quote_id": "bq-1",
                "property_id": "prop-1",
                "room_id": "r1",
                "expires_at": expires,
                "quote": QUOTE,
            },
        ) as create:
            response = client.post(
                "/public/pk_abc/quotes",
                json={
                    "room_type_id": "dbl",
                    "check_in": "2025-03-10",
                    "check_out": "2025-03-11",
                    "adults": 2,
                    "children_ages": [4],
                },
            )

        assert response.status_code == 200
        body = response.json()
        assert body["quote_id"] == "bq-1"
        assert body["quote"]["grand_total_cents"] == 13440
        assert create.call_args.kwargs["public_key"] == "pk_abc"
        assert create.call_args.kwargs["children_ages"] == [4]

    def test_unpriced_night_is_409(self, client):
        with patch(
            f"{PUBLIC}.create_public_quote",
            side_effect=QuoteUnavailable("rate_missing", {"date": "2025-03-10"}),
        ):
            response = client.post(
                "/public/pk_abc/quotes",
                json={"room_type_id": "dbl", "check_in": "2025-03-10", "check_out": "2025-03-11"},
            )

        assert response.status_code == 409
        assert response.json()["detail"] == {
            "reason_code": "rate_missing",
            "meta": {"date": "2025-03-10"},
        }

    def test_unknown_property_is_404(self, client):
        with patch(
            f"{PUBLIC}.create_public_quote",
            side_effect=QuoteUnavailable("property_not_found"),
        ):
            response = client.post(
                "/public/pk_missing/quotes",
                json={"room_type_id": "dbl", "check_in": "2025-03-10", "check_out": "2025-03-11"},
            )
        assert response.status_code == 404

    def test_zero_adults_is_422(self, client):
        response = client.post(
            "/public/pk_abc/quotes",
            json={"room_type_id": "dbl", "check_in": "2025-03-10", "check_out": "2025-03-11", "adults": 0},
        )
        assert response.status_code == 422


def _stored_quote(**overrides) -> dict:
    quote = {
        "id": "bq-1",
        "property_id": "prop-1",
        "room_id": "r1",
        "room_type_id": "dbl",
        "check_in": date(2025, 3, 10),
        "check_out": date(2025, 3, 11),
        "adults": 2,
        "children_ages": [],
        "quote_payload": QUOTE.to_dict(),
        "expires_at": datetime.now(timezone.utc) + timedelta(minutes=10),
    }
    quote.update(overrides)
    return quote


GUEST = {"guest_name": "Ana Pérez", "guest_email": "guest@example.com"}


@pytest.fixture
def stored_quote():
    """Patch the property and quote lookups used by every booking guard."""
    quote = _stored_quote()
    with patch(f"{BOOKING}.get_property_id_by_public_key", return_value="prop-1") as prop, \
         patch(f"{BOOKING}.get_booking_quote", return_value=quote) as get_quote:
        yield {"quote": quote, "property": prop, "get_quote": get_quote}


@pytest.fixture
def rooms():
    """r1 exists and is free unless a test says otherwise."""
    room = Room(id="r1", name="101", room_type_id="dbl", room_type_name="Double")
    with patch(f"{QUOTE_SERVICE}.fetch_rooms", return_value=[room]), \
         patch(f"{QUOTE_SERVICE}.fetch_blocked_room_ids", return_value=set()) as blocked:
        yield blocked


class TestCheckout:
    def test_creates_pending_booking_and_session(self, client, stripe_client, stored_quote, rooms):
        with patch(f"{CHECKOUT}.get_open_session_for_quote", return_value=None), \
             patch(f"{BOOKING}.insert_booking", return_value="bk-1") as insert_booking, \
             patch(f"{CHECKOUT}.insert_payment_session", return_value="ps-1") as insert_ps, \
             patch(f"{CHECKOUT}.set_provider_reference") as set_ref:
            response = client.post("/public/pk_abc/quotes/bq-1/checkout", json=GUEST)

        assert response.status_code == 200
        assert response.json() == {
            "session_id": "cs_test_123",
            "url": "https://checkout.stripe.com/c/cs_test_123",
            "booking_id": "bk-1",
            "amount_cents": 13440,
            "currency": "USD",
        }
        booking = insert_booking.call_args.kwargs
        assert booking["status"] == "pending_payment"
        assert booking["guest_name"] == "Ana Pérez"
        assert booking["quote_payload"]["grand_total_cents"] == 13440
        assert insert_ps.call_args.kwargs["amount_cents"] == 13440

        kwargs = stripe_client.create_checkout_session.call_args.kwargs
        assert kwargs["amount_cents"] == 13440
        assert kwargs["idempotency_key"] == "booking_quote:bq-1:checkout_session"
        assert kwargs["metadata"]["payment_session_id"] == "ps-1"
        assert kwargs["customer_email"] == "guest@example.com"
        set_ref.assert_called_once_with(
            ANY,
            "ps-1",
            provider_reference="cs_test_123",
            checkout_url="https://checkout.stripe.com/c/cs_test_123",
        )

    def test_room_taken_since_quote_is_409(self, client, stripe_client, stored_quote, rooms):
        rooms.return_value = {"r1"}
        with patch(f"{CHECKOUT}.get_open_session_for_quote", return_value=None), \
             patch(f"{BOOKING}.insert_booking") as insert_booking:
            response = client.post("/public/pk_abc/quotes/bq-1/checkout", json=GUEST)

        assert response.status_code == 409
        assert response.json()["detail"]["reason_code"] == "room_unavailable"
        insert_booking.assert_not_called()
        stripe_client.create_checkout_session.assert_not_called()

    def test_retry_returns_open_session(self, client, stripe_client, stored_quote):
        existing = {
            "booking_id": "bk-1",
            "provider_reference": "cs_test_123",
            "checkout_url": "https://checkout.stripe.com/c/cs_test_123",
        }
        with patch(f"{CHECKOUT}.get_open_session_for_quote", return_value=existing), \
             patch(f"{BOOKING}.insert_booking") as insert_booking:
            response = client.post("/public/pk_abc/quotes/bq-1/checkout", json=GUEST)

        assert response.status_code == 200
        assert response.json()["booking_id"] == "bk-1"
        insert_booking.assert_not_called()
        stripe_client.create_checkout_session.assert_not_called()

    def test_blank_guest_name_is_400(self, client, stripe_client, stored_quote):
        response = client.post(
            "/public/pk_abc/quotes/bq-1/checkout", json={"guest_name": "   "}
        )
        assert response.status_code == 400
        assert response.json()["detail"]["reason_code"] == "guest_name_required"
        stripe_client.create_checkout_session.assert_not_called()

    def test_missing_guest_name_is_422(self, client):
        response = client.post("/public/pk_abc/quotes/bq-1/checkout", json={})
        assert response.status_code == 422

    def test_expired_quote_is_410(self, client, stripe_client, stored_quote):
        stored_quote["get_quote"].return_value = _stored_quote(
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1)
        )
        response = client.post("/public/pk_abc/quotes/bq-1/checkout", json=GUEST)

        assert response.status_code == 410
        assert response.json()["detail"]["reason_code"] == "quote_expired"
        stripe_client.create_checkout_session.assert_not_called()

    def test_quote_of_other_property_is_404(self, client, stripe_client, stored_quote):
        stored_quote["property"].return_value = "prop-2"
        response = client.post("/public/pk_other/quotes/bq-1/checkout", json=GUEST)

        assert response.status_code == 404
        assert response.json()["detail"]["reason_code"] == "property_mismatch"
        stripe_client.create_checkout_session.assert_not_called()

    def test_stripe_not_configured_is_503(self):
        app = create_app(role="public")
        with patch.dict("os.environ", {}, clear=True):
            response = TestClient(app).post("/public/pk_abc/quotes/bq-1/checkout", json=GUEST)
        assert response.status_code == 503


class TestConfirm:
    def test_books_without_payment(self, client, stored_quote, rooms):
        with patch(f"{BOOKING}.insert_booking", return_value="bk-2") as insert_booking, \
             patch(f"{BOOKING}.finalize_booking_payment", return_value="confirmed") as finalize:
            response = client.post("/public/pk_abc/quotes/bq-1/confirm", json=GUEST)

        assert response.status_code == 200
        assert response.json() == {"booking_id": "bk-2", "status": "confirmed"}
        assert insert_booking.call_args.kwargs["status"] == "hold"
        finalize.assert_called_once_with(ANY, "bk-2")

    def test_room_taken_is_409(self, client, stored_quote, rooms):
        rooms.return_value = {"r1"}
        with patch(f"{BOOKING}.insert_booking") as insert_booking:
            response = client.post("/public/pk_abc/quotes/bq-1/confirm", json=GUEST)

        assert response.status_code == 409
        insert_booking.assert_not_called()

    def test_night_conflict_at_snapshot_is_409(self, client, stored_quote, rooms):
        with patch(f"{BOOKING}.insert_booking", return_value="bk-2"), \
             patch(f"{BOOKING}.finalize_booking_payment", return_value="conflict"):
            response = client.post("/public/pk_abc/quotes/bq-1/confirm", json=GUEST)

        assert response.status_code == 409
        assert response.json()["detail"]["reason_code"] == "room_unavailable"


class TestDashboardQuote:
    def test_quote_for_room(self):
        app = create_app(role="dashboard")
        with patch(f"{QUOTES}.txn", mock_txn), \
             patch(f"{QUOTES}.quote_for_room", return_value=QUOTE) as quote_for_room:
            response = TestClient(app).post(
                "/quotes",
                json={
                    "property_id": "prop-1",
                    "room_id": "r1",
                    "check_in": "2025-03-10",
                    "check_out": "2025-03-11",
                },
            )

        assert response.status_code == 200
        assert response.json()["nights"][0]["night"] == "2025-03-10"
        assert quote_for_room.call_args.kwargs["adults"] == 2

    def test_room_unavailable_is_409(self):
        app = create_app(role="dashboard")
        with patch(f"{QUOTES}.txn", mock_txn), \
             patch(f"{QUOTES}.quote_for_room", side_effect=QuoteUnavailable("room_unavailable")):
            response = TestClient(app).post(
                "/quotes",
                json={
                    "property_id": "prop-1",
                    "room_id": "r1",
                    "check_in": "2025-03-10",
                    "check_out": "2025-03-11",
                },
            )
        assert response.status_code == 409

    def test_not_mounted_for_public_role(self):
        response = TestClient(create_app(role="public")).post("/quotes", json={})
        assert response.status_code == 404


def test_booking_error_carries_reason_code():
    assert BookingError("not_found").reason_code == "not_found"
