"""Booking service - turn a stored public quote into a booking.

Two paths share the same guards (public key, TTL, guest name, room still
free):

- confirm_public_booking(): pay-at-property. Hold, snapshot nights, confirm.
- Card payment: services.checkout creates a pending_payment booking and a
  payment session; finalize_booking_payment() runs from the Stripe webhook.

Night rows are copied from the quote payload; nothing is repriced.
"""

from __future__ import annotations

from datetime import date

from psycopg2.extensions import cursor as PgCursor

from hotelero.infra.repositories.booking_quotes_repository import (
    get_booking_quote,
    get_property_id_by_public_key,
)
from hotelero.infra.repositories.bookings_repository import (
    find_conflicting_nights,
    get_booking_for_update,
    insert_booking,
    insert_booking_nights,
    set_booking_status,
)
from hotelero.infra.repositories.payment_sessions_repository import (
    get_session_by_reference_for_update,
    set_payment_session_status,
)
from hotelero.infra.time import is_expired
from hotelero.observability.logging import get_logger
from hotelero.observability.redaction import safe_log_context
from hotelero.services.quote_service import load_availability

logger = get_logger(__name__)

FINALIZE_CONFIRMED = "confirmed"
FINALIZE_ALREADY_CONFIRMED = "already_confirmed"
FINALIZE_CONFLICT = "conflict"


class BookingError(Exception):
    def __init__(self, reason_code: str):
        self.reason_code = reason_code
        super().__init__(f"Booking rejected: {reason_code}")


def load_bookable_quote(cur: PgCursor, *, public_key: str, quote_id: str) -> tuple[str, dict]:
    """Resolve the property and load an unexpired quote that belongs to it.

    Returns:
        (property_id, booking quote dict).

    Raises:
        BookingError: property_not_found, not_found, property_mismatch,
            quote_expired.
    """
    property_id = get_property_id_by_public_key(cur, public_key)
    if property_id is None:
        raise BookingError("property_not_found")

    quote = get_booking_quote(cur, quote_id)
    if quote is None:
        raise BookingError("not_found")
    # Anti-IDOR: a quote id alone must not reach another property's quote
    if quote["property_id"] != property_id:
        raise BookingError("property_mismatch")
    if is_expired(quote["expires_at"]):
        raise BookingError("quote_expired")
    return property_id, quote


def ensure_room_still_available(cur: PgCursor, *, property_id: str, quote: dict) -> None:
    """Raise room_unavailable if the quoted room was taken since quoting."""
    availability = load_availability(
        cur,
        property_id=property_id,
        date_from=quote["check_in"],
        date_to=quote["check_out"],
        safe_mode=False,
    )
    if not availability.is_room_available(quote["room_id"]):
        raise BookingError("room_unavailable")


def clean_guest_name(guest_name: str | None) -> str:
    name = (guest_name or "").strip()
    if not name:
        raise BookingError("guest_name_required")
    return name


def create_booking_from_quote(
    cur: PgCursor,
    *,
    property_id: str,
    quote: dict,
    status: str,
    guest_name: str,
    guest_email: str | None = None,
    guest_phone: str | None = None,
) -> str:
    return insert_booking(
        cur,
        property_id=property_id,
        room_id=quote["room_id"],
        booking_quote_id=quote["id"],
        guest_name=guest_name,
        guest_email=(guest_email or "").strip() or None,
        guest_phone=(guest_phone or "").strip() or None,
        check_in=quote["check_in"],
        check_out=quote["check_out"],
        status=status,
        adults=quote["adults"],
        children_count=len(quote["children_ages"]),
        quote_payload=quote["quote_payload"],
    )


def finalize_booking_payment(
    cur: PgCursor,
    booking_id: str,
    payment_session_id: str | None = None,
) -> str:
    """Snapshot nights and confirm a booking. Safe to call more than once.

    Locks the booking row first so concurrent webhook deliveries serialize.

    Returns:
        FINALIZE_CONFIRMED, FINALIZE_ALREADY_CONFIRMED, or FINALIZE_CONFLICT
        when another booking took one of the nights (the booking is then
        cancelled; the caller commits that outcome).

    Raises:
        BookingError: booking_not_found, booking_cancelled.
    """
    booking = get_booking_for_update(cur, booking_id)
    if booking is None:
        raise BookingError("booking_not_found")
    if booking["status"] == "confirmed":
        if payment_session_id:
            set_payment_session_status(cur, payment_session_id, "paid")
        return FINALIZE_ALREADY_CONFIRMED
    if booking["status"] == "cancelled":
        raise BookingError("booking_cancelled")

    payload_nights = booking["quote_payload"]["nights"]
    nights = [date.fromisoformat(n["night"]) for n in payload_nights]

    conflicts = find_conflicting_nights(
        cur,
        room_id=booking["room_id"],
        nights=nights,
        exclude_booking_id=booking_id,
    )
    if conflicts:
        set_booking_status(cur, booking_id, "cancelled")
        if payment_session_id:
            # Money was taken; flag the session for a manual refund
            set_payment_session_status(cur, payment_session_id, "conflict")
        logger.error(
            "booking_night_conflict",
            extra={
                "extra_fields": {
                    "booking_id": booking_id,
                    "room_id": booking["room_id"],
                    "nights": [n.isoformat() for n in conflicts],
                }
            },
        )
        return FINALIZE_CONFLICT

    insert_booking_nights(
        cur,
        booking_id=booking_id,
        room_id=booking["room_id"],
        adults=booking["adults"],
        children_count=booking["children_count"],
        nights=payload_nights,
    )
    set_booking_status(cur, booking_id, "confirmed")
    if payment_session_id:
        set_payment_session_status(cur, payment_session_id, "paid")

    logger.info(
        "booking_confirmed",
        extra={
            "extra_fields": {
                "booking_id": booking_id,
                "nights": len(payload_nights),
                "payment_session_id": payment_session_id,
            }
        },
    )
    return FINALIZE_CONFIRMED


def confirm_public_booking(
    cur: PgCursor,
    *,
    public_key: str,
    quote_id: str,
    guest_name: str,
    guest_email: str | None = None,
    guest_phone: str | None = None,
) -> dict:
    """Book a stored quote without online payment.

    Returns:
        Dict with booking_id and status.

    Raises:
        BookingError: any guard failure, or room_unavailable when a night
            was taken between the availability check and the snapshot.
    """
    property_id, quote = load_bookable_quote(cur, public_key=public_key, quote_id=quote_id)
    name = clean_guest_name(guest_name)
    ensure_room_still_available(cur, property_id=property_id, quote=quote)

    booking_id = create_booking_from_quote(
        cur,
        property_id=property_id,
        quote=quote,
        status="hold",
        guest_name=name,
        guest_email=guest_email,
        guest_phone=guest_phone,
    )

    outcome = finalize_booking_payment(cur, booking_id)
    if outcome == FINALIZE_CONFLICT:
        raise BookingError("room_unavailable")

    logger.info(
        "public_booking_confirmed",
        extra={
            "extra_fields": {
                "booking_id": booking_id,
                "booking_quote_id": quote_id,
                **safe_log_context(guest_email=guest_email),
            }
        },
    )
    return {"booking_id": booking_id, "status": "confirmed"}


def handle_checkout_completed(cur: PgCursor, *, session_id: str) -> dict:
    """Finalize the booking behind a paid Stripe Checkout Session.

    Returns:
        Dict with outcome (one of the FINALIZE_* values or already_processed)
        and booking_id.

    Raises:
        BookingError: payment_session_not_found, or any finalize error.
    """
    session = get_session_by_reference_for_update(cur, session_id)
    if session is None:
        raise BookingError("payment_session_not_found")
    if session["status"] == "paid":
        return {"outcome": "already_processed", "booking_id": session["booking_id"]}

    outcome = finalize_booking_payment(cur, session["booking_id"], session["id"])
    return {"outcome": outcome, "booking_id": session["booking_id"]}
