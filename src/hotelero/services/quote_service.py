"""Quote service - fetch once, resolve many nights in memory.

Loads everything a quote needs (room, availability, BAR intervals for the
whole stay, commercial settings, child rules, taxes) with one query each,
then hands the materialized data to the pure quote engine.
"""

from __future__ import annotations

from datetime import date
from typing import Sequence

from psycopg2.extensions import cursor as PgCursor

from hotelero.domain.availability import AvailabilityResult, compute_availability
from hotelero.domain.quote import QuoteResult, QuoteUnavailable, compute_quote, validate_stay
from hotelero.infra.repositories.booking_quotes_repository import (
    get_property_id_by_public_key,
    save_booking_quote,
)
from hotelero.infra.repositories.pricing_repository import (
    get_commercial_settings,
    list_active_tax_percents,
    list_child_pricing_rules,
)
from hotelero.infra.repositories.rate_plans_repository import (
    fetch_intervals,
    get_or_create_bar_rate_plan,
)
from hotelero.infra.repositories.rooms_repository import (
    fetch_blocked_room_ids,
    fetch_rooms,
    get_room,
)
from hotelero.infra.time import minutes_from_now
from hotelero.observability.logging import get_logger

logger = get_logger(__name__)

BOOKING_QUOTE_TTL_MINUTES = 30


def load_availability(
    cur: PgCursor,
    *,
    property_id: str,
    date_from: date,
    date_to: date,
    safe_mode: bool = True,
) -> AvailabilityResult:
    """Availability of every room of the property for [date_from, date_to)."""
    rooms = fetch_rooms(cur, property_id)
    blocked = fetch_blocked_room_ids(
        cur,
        property_id=property_id,
        room_ids=[r.id for r in rooms],
        date_from=date_from,
        date_to=date_to,
    )
    return compute_availability(rooms, blocked, date_from, date_to, safe_mode=safe_mode)


def _price_stay(
    cur: PgCursor,
    *,
    property_id: str,
    room_type_id: str | None,
    check_in: date,
    check_out: date,
    adults: int,
    children_ages: Sequence[int],
) -> tuple[QuoteResult, str]:
    """Price a stay against the BAR plan. Returns (quote, rate_plan_id)."""
    plan = get_or_create_bar_rate_plan(cur, property_id)

    intervals = []
    if room_type_id:
        intervals = fetch_intervals(
            cur,
            rate_plan_id=plan["id"],
            start=check_in,
            end=check_out,
            room_type_id=room_type_id,
            open_only=True,
        )

    quote = compute_quote(
        room_type_id=room_type_id,
        check_in=check_in,
        check_out=check_out,
        adults=adults,
        children_ages=children_ages,
        intervals=intervals,
        settings=get_commercial_settings(cur, property_id),
        child_rules=list_child_pricing_rules(cur, property_id),
        tax_percents=list_active_tax_percents(cur, property_id),
    )
    return quote, plan["id"]


def quote_for_room(
    cur: PgCursor,
    *,
    property_id: str,
    room_id: str,
    check_in: date,
    check_out: date,
    adults: int,
    children_ages: Sequence[int] = (),
) -> QuoteResult:
    """Dashboard quote for a specific room.

    Raises:
        QuoteUnavailable: room_not_found, room_unavailable, or any reason
            raised by the quote engine (invalid_dates, rate_missing, ...).
    """
    # Range checks happen before anything is fetched
    validate_stay(check_in, check_out)

    room = get_room(cur, property_id=property_id, room_id=room_id)
    if room is None:
        raise QuoteUnavailable("room_not_found")

    availability = load_availability(
        cur,
        property_id=property_id,
        date_from=check_in,
        date_to=check_out,
        safe_mode=False,
    )
    if not availability.is_room_available(room_id):
        raise QuoteUnavailable("room_unavailable")

    quote, _ = _price_stay(
        cur,
        property_id=property_id,
        room_type_id=room.room_type_id,
        check_in=check_in,
        check_out=check_out,
        adults=adults,
        children_ages=children_ages,
    )

    logger.info(
        "quote_computed",
        extra={
            "extra_fields": {
                "property_id": property_id,
                "room_id": room_id,
                "nights": len(quote.nights),
                "grand_total_cents": quote.grand_total_cents,
            }
        },
    )
    return quote


def create_public_quote(
    cur: PgCursor,
    *,
    public_key: str,
    room_type_id: str,
    check_in: date,
    check_out: date,
    adults: int,
    children_ages: Sequence[int] = (),
) -> dict:
    """Quote the first free room of a type and store it with a 30-minute TTL.

    Returns:
        Dict with quote_id, property_id, room_id, expires_at and quote.

    Raises:
        QuoteUnavailable: property_not_found, no_rooms_available, or any
            reason raised by the quote engine.
    """
    validate_stay(check_in, check_out)

    property_id = get_property_id_by_public_key(cur, public_key)
    if property_id is None:
        raise QuoteUnavailable("property_not_found")

    availability = load_availability(
        cur,
        property_id=property_id,
        date_from=check_in,
        date_to=check_out,
        safe_mode=False,
    )
    group = availability.group_for(room_type_id)
    if group is None or not group.rooms:
        raise QuoteUnavailable("no_rooms_available")
    room = group.rooms[0]

    quote, rate_plan_id = _price_stay(
        cur,
        property_id=property_id,
        room_type_id=room_type_id,
        check_in=check_in,
        check_out=check_out,
        adults=adults,
        children_ages=children_ages,
    )

    expires_at = minutes_from_now(BOOKING_QUOTE_TTL_MINUTES)
    quote_id = save_booking_quote(
        cur,
        property_id=property_id,
        room_id=room.id,
        room_type_id=room_type_id,
        rate_plan_id=rate_plan_id,
        check_in=check_in,
        check_out=check_out,
        adults=adults,
        children_ages=list(children_ages),
        quote_payload=quote.to_dict(),
        expires_at=expires_at,
    )

    logger.info(
        "public_quote_created",
        extra={
            "extra_fields": {
                "quote_id": quote_id,
                "property_id": property_id,
                "room_type_id": room_type_id,
                "grand_total_cents": quote.grand_total_cents,
            }
        },
    )

    return {
        "quote_id": quote_id,
        "property_id": property_id,
        "room_id": room.id,
        "expires_at": expires_at,
        "quote": quote,
    }
