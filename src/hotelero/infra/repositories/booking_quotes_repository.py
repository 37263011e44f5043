"""Booking quotes repository - persistence for public booking_quotes.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

import json
from datetime import date, datetime

from psycopg2.extensions import cursor as PgCursor

from hotelero.infra.db import fetchone


def get_property_id_by_public_key(cur: PgCursor, public_key: str) -> str | None:
    row = fetchone(cur, "SELECT id FROM properties WHERE public_key = %s", (public_key,))
    return str(row[0]) if row else None


def save_booking_quote(
    cur: PgCursor,
    *,
    property_id: str,
    room_id: str,
    room_type_id: str,
    rate_plan_id: str | None,
    check_in: date,
    check_out: date,
    adults: int,
    children_ages: list[int],
    quote_payload: dict,
    expires_at: datetime,
) -> str:
    """Persist a public quote and return its id.

    Args:
        cur: Database cursor (within transaction).
        property_id: Property identifier.
        room_id: Room selected for the stay.
        room_type_id: Room type the guest asked for.
        rate_plan_id: Plan the quote was priced against.
        check_in: First night.
        check_out: Checkout date (exclusive).
        adults: Adult count.
        children_ages: Child ages.
        quote_payload: QuoteResult.to_dict().
        expires_at: TTL deadline for checkout.

    Returns:
        Generated booking quote id.
    """
    cur.execute(
        """
        INSERT INTO booking_quotes (
            property_id, room_id, room_type_id, rate_plan_id,
            check_in, check_out, adults, children_ages,
            quote_payload, expires_at
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING id
        """,
        (
            property_id,
            room_id,
            room_type_id,
            rate_plan_id,
            check_in,
            check_out,
            adults,
            children_ages,
            json.dumps(quote_payload),
            expires_at,
        ),
    )
    return str(cur.fetchone()[0])


def get_booking_quote(cur: PgCursor, quote_id: str) -> dict | None:
    """Retrieve a booking quote by id (None if not found)."""
    cur.execute(
        """
        SELECT id, property_id, room_id, room_type_id, check_in, check_out,
               adults, children_ages, quote_payload, expires_at
        FROM booking_quotes
        WHERE id = %s
        """,
        (quote_id,),
    )
    row = cur.fetchone()
    if row is None:
        return None

    payload = row[8]
    if isinstance(payload, str):
        payload = json.loads(payload)

    return {
        "id": str(row[0]),
        "property_id": str(row[1]),
        "room_id": str(row[2]),
        "room_type_id": str(row[3]),
        "check_in": row[4],
        "check_out": row[5],
        "adults": row[6],
        "children_ages": list(row[7] or []),
        "quote_payload": payload,
        "expires_at": row[9],
    }
