"""Checkout service - Stripe payment link for a stored booking quote.

Immutability contract: amount and currency are always taken from the stored
quote payload; they are never recomputed or overridden here.

Flow: guards -> reuse an open session for the quote, if any -> room still
free -> pending_payment booking -> payment session -> Stripe Checkout. The
booking is confirmed later by the checkout.session.completed webhook.
"""

from __future__ import annotations

from psycopg2.extensions import cursor as PgCursor

from hotelero.infra.repositories.payment_sessions_repository import (
    get_open_session_for_quote,
    insert_payment_session,
    set_provider_reference,
)
from hotelero.observability.correlation import get_correlation_id
from hotelero.observability.logging import get_logger
from hotelero.observability.redaction import safe_log_context
from hotelero.services.booking_service import (
    clean_guest_name,
    create_booking_from_quote,
    ensure_room_still_available,
    load_bookable_quote,
)
from hotelero.stripe.client import StripeClient

logger = get_logger(__name__)


def start_checkout(
    cur: PgCursor,
    client: StripeClient,
    *,
    public_key: str,
    quote_id: str,
    guest_name: str,
    guest_email: str | None = None,
    guest_phone: str | None = None,
) -> dict:
    """Create a Stripe Checkout Session for a booking quote.

    Args:
        cur: Database cursor.
        client: Configured Stripe client.
        public_key: Public key of the property (anti-IDOR check).
        quote_id: Booking quote id from create_public_quote().
        guest_name: Required; stored on the booking.
        guest_email: Prefilled on the Stripe page when given.
        guest_phone: Stored on the booking.

    Returns:
        Dict with session_id, url, booking_id, amount_cents and currency.

    Raises:
        BookingError: property_not_found, not_found, property_mismatch,
            quote_expired, guest_name_required, room_unavailable.
    """
    property_id, quote = load_bookable_quote(cur, public_key=public_key, quote_id=quote_id)
    name = clean_guest_name(guest_name)

    payload = quote["quote_payload"]
    amount_cents = payload["grand_total_cents"]
    currency = payload["currency"]

    # A retry for the same quote returns the session already handed out;
    # its pending booking would otherwise fail the availability check below.
    existing = get_open_session_for_quote(cur, quote_id)
    if existing is not None:
        logger.info(
            "checkout_reused",
            extra={
                "extra_fields": {
                    "booking_quote_id": quote_id,
                    "session_id": existing["provider_reference"],
                }
            },
        )
        return {
            "session_id": existing["provider_reference"],
            "url": existing["checkout_url"],
            "booking_id": existing["booking_id"],
            "amount_cents": amount_cents,
            "currency": currency,
        }

    ensure_room_still_available(cur, property_id=property_id, quote=quote)

    booking_id = create_booking_from_quote(
        cur,
        property_id=property_id,
        quote=quote,
        status="pending_payment",
        guest_name=name,
        guest_email=guest_email,
        guest_phone=guest_phone,
    )
    payment_session_id = insert_payment_session(
        cur,
        property_id=property_id,
        booking_id=booking_id,
        booking_quote_id=quote_id,
        amount_cents=amount_cents,
        currency=currency,
    )

    nights = len(payload["nights"])
    session = client.create_checkout_session(
        amount_cents=amount_cents,
        currency=currency,
        product_name=f"Reserva - {nights} noche(s)",
        idempotency_key=f"booking_quote:{quote_id}:checkout_session",
        metadata={
            "property_id": property_id,
            "booking_quote_id": quote_id,
            "booking_id": booking_id,
            "payment_session_id": payment_session_id,
            "room_id": quote["room_id"],
        },
        client_reference_id=quote_id,
        customer_email=guest_email,
        correlation_id=get_correlation_id() or None,
    )
    set_provider_reference(
        cur,
        payment_session_id,
        provider_reference=session["session_id"],
        checkout_url=session["url"],
    )

    logger.info(
        "checkout_started",
        extra={
            "extra_fields": {
                "booking_quote_id": quote_id,
                "booking_id": booking_id,
                "session_id": session["session_id"],
                **safe_log_context(guest_email=guest_email),
            }
        },
    )

    return {
        "session_id": session["session_id"],
        "url": session["url"],
        "booking_id": booking_id,
        "amount_cents": amount_cents,
        "currency": currency,
    }
