"""Availability domain logic - unit-based availability for a date range.

A room is blocked when a non-cancelled booking or external reservation
overlaps [date_from, date_to) (check_in < date_to AND check_out > date_from).

Safe mode: rooms whose iCal feed is not known to be fresh are stop-sold to
avoid overbooking against an out-of-date external calendar.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Literal, Sequence

from hotelero.infra.time import utc_now

SYNC_STALE_AFTER = timedelta(minutes=15)
UNTYPED_LABEL = "Sin tipo"

SyncStatus = Literal["ok", "error", "stale", "never"]


@dataclass(frozen=True)
class Room:
    id: str
    name: str
    room_type_id: str | None = None
    room_type_name: str | None = None
    sync_status: str = "ok"
    last_synced_at: datetime | None = None


@dataclass(frozen=True)
class StopSellRoom:
    id: str
    name: str
    reason: SyncStatus


@dataclass
class AvailabilityByType:
    room_type_id: str | None
    room_type_name: str
    total_units: int = 0
    available_units: int = 0
    rooms: list[Room] = field(default_factory=list)


@dataclass
class AvailabilityResult:
    date_from: date
    date_to: date
    by_type: list[AvailabilityByType]
    total_rooms: int
    total_available: int
    stop_sell_rooms: list[StopSellRoom]
    safe_mode: bool

    def group_for(self, room_type_id: str | None) -> AvailabilityByType | None:
        for group in self.by_type:
            if group.room_type_id == room_type_id:
                return group
        return None

    def is_room_available(self, room_id: str) -> bool:
        return any(r.id == room_id for g in self.by_type for r in g.rooms)


def effective_sync_status(
    sync_status: str,
    last_synced_at: datetime | None,
    *,
    now: datetime | None = None,
) -> SyncStatus:
    if last_synced_at is None:
        return "never"
    if sync_status == "error":
        return "error"
    if last_synced_at.tzinfo is None:
        last_synced_at = last_synced_at.replace(tzinfo=timezone.utc)
    if (now or utc_now()) - last_synced_at > SYNC_STALE_AFTER:
        return "stale"
    return "ok"


def compute_availability(
    rooms: Sequence[Room],
    blocked_room_ids: Iterable[str],
    date_from: date,
    date_to: date,
    *,
    safe_mode: bool = True,
    now: datetime | None = None,
) -> AvailabilityResult:
    """Group rooms by type and count the ones free for the whole range.

    Args:
        rooms: All rooms of the property, in display order.
        blocked_room_ids: Rooms with an overlapping booking or external
            reservation (already filtered by the caller's query).
        safe_mode: Stop-sell rooms whose sync status is not "ok".
    """
    blocked = set(blocked_room_ids)
    stop_sell: list[StopSellRoom] = []

    if safe_mode:
        for room in rooms:
            status = effective_sync_status(room.sync_status, room.last_synced_at, now=now)
            if status != "ok":
                stop_sell.append(StopSellRoom(id=room.id, name=room.name, reason=status))
                blocked.add(room.id)

    groups: dict[str | None, AvailabilityByType] = {}
    for room in rooms:
        group = groups.get(room.room_type_id)
        if group is None:
            group = AvailabilityByType(
                room_type_id=room.room_type_id,
                room_type_name=room.room_type_name or UNTYPED_LABEL,
            )
            groups[room.room_type_id] = group

        group.total_units += 1
        if room.id not in blocked:
            group.available_units += 1
            group.rooms.append(room)

    by_type = list(groups.values())
    return AvailabilityResult(
        date_from=date_from,
        date_to=date_to,
        by_type=by_type,
        total_rooms=len(rooms),
        total_available=sum(g.available_units for g in by_type),
        stop_sell_rooms=stop_sell,
        safe_mode=safe_mode,
    )
