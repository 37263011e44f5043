"""Payment sessions repository - one row per provider checkout attempt.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

from psycopg2.extensions import cursor as PgCursor

from hotelero.infra.db import fetchone

_SESSION_COLUMNS = """
    id, property_id, booking_id, booking_quote_id, provider,
    provider_reference, checkout_url, status, amount_cents, currency
"""


def _row_to_session(row: tuple) -> dict:
    return {
        "id": str(row[0]),
        "property_id": str(row[1]),
        "booking_id": str(row[2]),
        "booking_quote_id": str(row[3]) if row[3] is not None else None,
        "provider": row[4],
        "provider_reference": row[5],
        "checkout_url": row[6],
        "status": row[7],
        "amount_cents": row[8],
        "currency": row[9],
    }


def insert_payment_session(
    cur: PgCursor,
    *,
    property_id: str,
    booking_id: str,
    booking_quote_id: str,
    amount_cents: int,
    currency: str,
    provider: str = "stripe",
) -> str:
    """Insert a payment session in status 'created'. Returns its id."""
    row = fetchone(
        cur,
        """
        INSERT INTO payment_sessions (
            property_id, booking_id, booking_quote_id, provider,
            status, amount_cents, currency
        )
        VALUES (%s, %s, %s, %s, 'created', %s, %s)
        RETURNING id
        """,
        (property_id, booking_id, booking_quote_id, provider, amount_cents, currency),
    )
    return str(row[0])


def set_provider_reference(
    cur: PgCursor,
    payment_session_id: str,
    *,
    provider_reference: str,
    checkout_url: str | None,
) -> None:
    cur.execute(
        """
        UPDATE payment_sessions
        SET provider_reference = %s, checkout_url = %s, updated_at = now()
        WHERE id = %s
        """,
        (provider_reference, checkout_url, payment_session_id),
    )


def get_open_session_for_quote(cur: PgCursor, booking_quote_id: str) -> dict | None:
    """Latest unpaid session already sent to the provider for this quote."""
    row = fetchone(
        cur,
        f"""
        SELECT {_SESSION_COLUMNS}
        FROM payment_sessions
        WHERE booking_quote_id = %s
          AND status = 'created'
          AND provider_reference IS NOT NULL
        ORDER BY created_at DESC
        LIMIT 1
        """,
        (booking_quote_id,),
    )
    return _row_to_session(row) if row else None


def get_session_by_reference_for_update(
    cur: PgCursor,
    provider_reference: str,
    *,
    provider: str = "stripe",
) -> dict | None:
    """Lock the session matching a provider object id (e.g. Checkout Session id)."""
    row = fetchone(
        cur,
        f"""
        SELECT {_SESSION_COLUMNS}
        FROM payment_sessions
        WHERE provider = %s AND provider_reference = %s
        FOR UPDATE
        """,
        (provider, provider_reference),
    )
    return _row_to_session(row) if row else None


def set_payment_session_status(cur: PgCursor, payment_session_id: str, status: str) -> None:
    cur.execute(
        "UPDATE payment_sessions SET status = %s, updated_at = now() WHERE id = %s",
        (status, payment_session_id),
    )
