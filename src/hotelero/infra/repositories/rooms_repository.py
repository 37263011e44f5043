"""Rooms repository - rooms and the reservations that block them.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

from datetime import date
from typing import Sequence

from psycopg2.extensions import cursor as PgCursor

from hotelero.domain.availability import Room

_ROOM_SELECT = """
    SELECT r.id, r.name, r.room_type_id, rt.name,
           r.sync_status, r.last_synced_at
    FROM rooms r
    LEFT JOIN room_types rt ON rt.id = r.room_type_id
"""


def _row_to_room(row: tuple) -> Room:
    return Room(
        id=str(row[0]),
        name=row[1],
        room_type_id=str(row[2]) if row[2] is not None else None,
        room_type_name=row[3],
        sync_status=row[4] or "never",
        last_synced_at=row[5],
    )


def fetch_rooms(cur: PgCursor, property_id: str) -> list[Room]:
    """All rooms of a property with room type name and iCal sync state."""
    cur.execute(
        _ROOM_SELECT + " WHERE r.property_id = %s ORDER BY r.name",
        (property_id,),
    )
    return [_row_to_room(row) for row in cur.fetchall()]


def get_room(cur: PgCursor, *, property_id: str, room_id: str) -> Room | None:
    """Fetch one room, scoped to the property (None if it belongs elsewhere)."""
    cur.execute(
        _ROOM_SELECT + " WHERE r.id = %s AND r.property_id = %s",
        (room_id, property_id),
    )
    row = cur.fetchone()
    if row is None:
        return None
    return _row_to_room(row)


def fetch_blocked_room_ids(
    cur: PgCursor,
    *,
    property_id: str,
    room_ids: Sequence[str],
    date_from: date,
    date_to: date,
) -> set[str]:
    """Rooms with a non-cancelled booking or external reservation overlapping the range.

    Overlap on half-open ranges: check_in < date_to AND check_out > date_from.
    """
    if not room_ids:
        return set()

    cur.execute(
        """
        SELECT room_id FROM bookings
        WHERE property_id = %s
          AND room_id = ANY(%s)
          AND status <> 'cancelled'
          AND check_in < %s
          AND check_out > %s
        UNION
        SELECT room_id FROM external_reservations
        WHERE room_id = ANY(%s)
          AND status <> 'cancelled'
          AND check_in < %s
          AND check_out > %s
        """,
        (
            property_id,
            list(room_ids),
            date_to,
            date_from,
            list(room_ids),
            date_to,
            date_from,
        ),
    )
    return {str(r[0]) for r in cur.fetchall() if r[0] is not None}
