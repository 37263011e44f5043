"""Rate plans repository - rate_plans, room_types and rate_plan_intervals.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

from datetime import date
from typing import Sequence

from psycopg2.extensions import cursor as PgCursor

from hotelero.domain.ari import RatePlanInterval
from hotelero.domain.bulk_ari import IntervalRow

BAR_CODE = "BAR"
BAR_NAME = "Best Available Rate"

_INTERVAL_COLUMNS = """
    id, property_id, room_type_id, rate_plan_id,
    start_date, end_date, dow_mask, base_rate_cents,
    min_los, closed, priority
"""


def _row_to_interval(row: tuple) -> RatePlanInterval:
    return RatePlanInterval(
        id=str(row[0]),
        property_id=row[1],
        room_type_id=row[2],
        rate_plan_id=str(row[3]),
        start_date=row[4],
        end_date=row[5],
        dow_mask=row[6],
        base_rate_cents=row[7],
        min_los=row[8],
        closed=row[9],
        priority=row[10],
    )


def get_or_create_bar_rate_plan(cur: PgCursor, property_id: str) -> dict:
    """Return the property's BAR plan, creating it on first use.

    ON CONFLICT makes concurrent first calls converge on the same row.
    """
    cur.execute(
        """
        INSERT INTO rate_plans (property_id, code, name, is_active)
        VALUES (%s, %s, %s, true)
        ON CONFLICT (property_id, code) DO NOTHING
        """,
        (property_id, BAR_CODE, BAR_NAME),
    )
    cur.execute(
        """
        SELECT id, property_id, code, name, is_active
        FROM rate_plans
        WHERE property_id = %s AND code = %s
        """,
        (property_id, BAR_CODE),
    )
    row = cur.fetchone()
    return {
        "id": str(row[0]),
        "property_id": row[1],
        "code": row[2],
        "name": row[3],
        "is_active": row[4],
    }


def rate_plan_belongs_to_property(cur: PgCursor, *, rate_plan_id: str, property_id: str) -> bool:
    cur.execute(
        "SELECT 1 FROM rate_plans WHERE id = %s AND property_id = %s",
        (rate_plan_id, property_id),
    )
    return cur.fetchone() is not None


def list_room_types(
    cur: PgCursor,
    property_id: str,
    room_type_ids: Sequence[str] | None = None,
) -> list[dict]:
    """Room types of a property ordered by name, optionally restricted to ids."""
    if room_type_ids is not None:
        cur.execute(
            """
            SELECT id, name FROM room_types
            WHERE property_id = %s AND id = ANY(%s)
            ORDER BY name
            """,
            (property_id, list(room_type_ids)),
        )
    else:
        cur.execute(
            "SELECT id, name FROM room_types WHERE property_id = %s ORDER BY name",
            (property_id,),
        )
    return [{"id": str(r[0]), "name": r[1]} for r in cur.fetchall()]


def fetch_intervals(
    cur: PgCursor,
    *,
    rate_plan_id: str,
    start: date,
    end: date,
    room_type_id: str | None = None,
    open_only: bool = False,
) -> list[RatePlanInterval]:
    """Fetch every interval overlapping [start, end) in one query.

    Args:
        cur: Database cursor.
        rate_plan_id: Rate plan to read.
        start: First night of the range.
        end: Exclusive end of the range (checkout).
        room_type_id: Restrict to one room type.
        open_only: Skip closed intervals (pricing never selects them).

    Returns:
        Intervals as domain objects, ready for per-night resolution.
    """
    query = f"""
        SELECT {_INTERVAL_COLUMNS}
        FROM rate_plan_intervals
        WHERE rate_plan_id = %s
          AND start_date < %s
          AND end_date > %s
    """
    params: list = [rate_plan_id, end, start]
    if room_type_id is not None:
        query += " AND room_type_id = %s"
        params.append(room_type_id)
    if open_only:
        query += " AND closed = false"

    cur.execute(query, params)
    return [_row_to_interval(r) for r in cur.fetchall()]


def delete_overlapping_intervals(
    cur: PgCursor,
    *,
    property_id: str,
    rate_plan_id: str,
    room_type_id: str,
    start: date,
    end: date,
) -> int:
    """Delete intervals of a room type overlapping [start, end). Returns rows deleted."""
    cur.execute(
        """
        DELETE FROM rate_plan_intervals
        WHERE property_id = %s
          AND room_type_id = %s
          AND rate_plan_id = %s
          AND start_date < %s
          AND end_date > %s
        """,
        (property_id, room_type_id, rate_plan_id, end, start),
    )
    return cur.rowcount


def insert_interval(cur: PgCursor, row: IntervalRow) -> str:
    """Insert one interval and return its id."""
    cur.execute(
        """
        INSERT INTO rate_plan_intervals (
            property_id, room_type_id, rate_plan_id,
            start_date, end_date, dow_mask,
            base_rate_cents, min_los, closed, priority
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING id
        """,
        (
            row.property_id,
            row.room_type_id,
            row.rate_plan_id,
            row.start_date,
            row.end_date,
            row.dow_mask,
            row.base_rate_cents,
            row.min_los,
            row.closed,
            row.priority,
        ),
    )
    return str(cur.fetchone()[0])
