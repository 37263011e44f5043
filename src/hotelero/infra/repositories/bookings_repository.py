"""Bookings repository - direct bookings and their per-night snapshot.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

import json
from datetime import date
from typing import Sequence

from psycopg2.extensions import cursor as PgCursor

from hotelero.infra.db import fetchall, fetchone


def insert_booking(
    cur: PgCursor,
    *,
    property_id: str,
    room_id: str,
    booking_quote_id: str,
    guest_name: str,
    guest_email: str | None,
    guest_phone: str | None,
    check_in: date,
    check_out: date,
    status: str,
    adults: int,
    children_count: int,
    quote_payload: dict,
) -> str:
    """Insert a direct booking carrying the quote snapshot. Returns its id.

    Amounts are copied from the stored quote, never recomputed.
    """
    row = fetchone(
        cur,
        """
        INSERT INTO bookings (
            property_id, room_id, booking_quote_id,
            guest_name, guest_email, guest_phone,
            check_in, check_out, status, source, currency,
            adults, children_count,
            subtotal_cents, taxes_total_cents, total_amount_cents,
            quote_payload
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, 'direct', %s, %s, %s, %s, %s, %s, %s)
        RETURNING id
        """,
        (
            property_id,
            room_id,
            booking_quote_id,
            guest_name,
            guest_email,
            guest_phone,
            check_in,
            check_out,
            status,
            quote_payload["currency"],
            adults,
            children_count,
            quote_payload["subtotal_cents"],
            quote_payload["taxes_total_cents"],
            quote_payload["grand_total_cents"],
            json.dumps(quote_payload),
        ),
    )
    return str(row[0])


def get_booking_for_update(cur: PgCursor, booking_id: str) -> dict | None:
    """Lock a booking row for finalization (None if not found)."""
    row = fetchone(
        cur,
        """
        SELECT id, property_id, room_id, status, adults, children_count, quote_payload
        FROM bookings
        WHERE id = %s
        FOR UPDATE
        """,
        (booking_id,),
    )
    if row is None:
        return None

    payload = row[6]
    if isinstance(payload, str):
        payload = json.loads(payload)

    return {
        "id": str(row[0]),
        "property_id": str(row[1]),
        "room_id": str(row[2]),
        "status": row[3],
        "adults": row[4],
        "children_count": row[5],
        "quote_payload": payload,
    }


def set_booking_status(cur: PgCursor, booking_id: str, status: str) -> None:
    cur.execute(
        "UPDATE bookings SET status = %s, updated_at = now() WHERE id = %s",
        (status, booking_id),
    )


def find_conflicting_nights(
    cur: PgCursor,
    *,
    room_id: str,
    nights: Sequence[date],
    exclude_booking_id: str,
) -> list[date]:
    """Nights of *room_id* already held by another active booking."""
    if not nights:
        return []
    rows = fetchall(
        cur,
        """
        SELECT night FROM booking_nights
        WHERE room_id = %s
          AND night = ANY(%s)
          AND is_active = true
          AND booking_id <> %s
        ORDER BY night
        """,
        (room_id, list(nights), exclude_booking_id),
    )
    return [r[0] for r in rows]


def insert_booking_nights(
    cur: PgCursor,
    *,
    booking_id: str,
    room_id: str,
    adults: int,
    children_count: int,
    nights: Sequence[dict],
) -> int:
    """Insert the per-night snapshot from a quote payload. Returns rows inserted.

    The UNIQUE (room_id, night) WHERE is_active index is the last guard
    against double booking.
    """
    for night in nights:
        cur.execute(
            """
            INSERT INTO booking_nights (
                booking_id, room_id, night, is_active, adults, children_count,
                base_rate_cents, extras_adults_cents, extras_children_cents,
                taxes_cents, total_rate_cents
            )
            VALUES (%s, %s, %s, true, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                booking_id,
                room_id,
                night["night"],
                adults,
                children_count,
                night["base_rate_cents"],
                night["extras_adults_cents"],
                night["extras_children_cents"],
                night["taxes_cents"],
                night["total_rate_cents"],
            ),
        )
    return len(nights)
