"""ARI domain logic - per-night rate resolution.

Resolves which rate plan interval applies to a given night. Intervals are
pre-fetched by the caller for the whole stay (one query per quote), so
resolution is pure and never touches the database.

Interval rules:
- [start_date, end_date) - the end date is not covered.
- dow_mask bit i set = applies on weekday i, Monday=0 ... Sunday=6.
- closed=True is a stop-sell and never prices a night.
- Highest priority wins; ties are broken by latest start_date, then the
  narrowest range, then the greatest id.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, Sequence

ALL_DAYS_MASK = 0b1111111


@dataclass(frozen=True)
class RatePlanInterval:
    room_type_id: str
    start_date: date
    end_date: date
    base_rate_cents: int
    dow_mask: int = ALL_DAYS_MASK
    closed: bool = False
    priority: int = 0
    min_los: int | None = None
    id: str = ""
    rate_plan_id: str | None = None
    property_id: str | None = None

    def covers(self, night: date) -> bool:
        """True if *night* is inside [start_date, end_date) and on a masked weekday."""
        if not (self.start_date <= night < self.end_date):
            return False
        return (self.dow_mask & weekday_bit(night)) != 0


@dataclass(frozen=True)
class NightRate:
    """Resolved rate for one night; both fields are None when unpriced.

    total_rate_cents equals base_rate_cents until surcharges are layered in.
    """

    base_rate_cents: int | None
    total_rate_cents: int | None

    @property
    def is_priced(self) -> bool:
        return self.base_rate_cents is not None


NO_RATE = NightRate(base_rate_cents=None, total_rate_cents=None)


@dataclass(frozen=True)
class AriCell:
    """Dashboard grid cell. Unlike pricing, closed intervals are reported."""

    base_rate_cents: int | None
    min_los: int | None
    closed: bool


EMPTY_CELL = AriCell(base_rate_cents=None, min_los=None, closed=False)


def as_date(value: date | datetime | str) -> date:
    """Accept a date, a datetime (its calendar day) or an ISO YYYY-MM-DD string."""
    # datetime is a date subclass but does not compare with one
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def weekday_bit(night: date) -> int:
    """Bit for *night* in a dow_mask (date.weekday() is already Monday=0)."""
    return 1 << night.weekday()


def iter_nights(check_in: date, check_out: date) -> Iterator[date]:
    """Yield each night in [check_in, check_out)."""
    current = check_in
    while current < check_out:
        yield current
        current += timedelta(days=1)


def _precedence(interval: RatePlanInterval) -> tuple:
    # Max of this key wins: priority, latest start, narrowest range, id.
    return (
        interval.priority,
        interval.start_date.toordinal(),
        -interval.end_date.toordinal(),
        interval.id,
    )


def _winner(
    room_type_id: str,
    night: date,
    intervals: Iterable[RatePlanInterval],
    *,
    include_closed: bool,
) -> RatePlanInterval | None:
    candidates = [
        iv
        for iv in intervals
        if iv.room_type_id == room_type_id
        and (include_closed or not iv.closed)
        and iv.covers(night)
    ]
    if not candidates:
        return None
    return max(candidates, key=_precedence)


def resolve_night_rate(
    room_type_id: str | None,
    night: date | datetime | str,
    intervals: Sequence[RatePlanInterval],
) -> NightRate:
    """Return the applicable rate for one night.

    Args:
        room_type_id: Room type, or None for rooms without a type.
        night: The stay night (not the checkout date).
        intervals: Pre-fetched intervals for the stay.

    Returns:
        NightRate from the winning interval, or NO_RATE when the room has no
        type or no open interval matches.
    """
    if not room_type_id:
        return NO_RATE

    best = _winner(room_type_id, as_date(night), intervals, include_closed=False)
    if best is None:
        return NO_RATE

    return NightRate(
        base_rate_cents=best.base_rate_cents,
        total_rate_cents=best.base_rate_cents,
    )


def resolve_ari_cell(
    room_type_id: str,
    day: date,
    intervals: Sequence[RatePlanInterval],
) -> AriCell:
    """Resolve the grid cell for one room type and day, closed intervals included."""
    best = _winner(room_type_id, as_date(day), intervals, include_closed=True)
    if best is None:
        return EMPTY_CELL
    return AriCell(
        base_rate_cents=None if best.closed else best.base_rate_cents,
        min_los=best.min_los,
        closed=best.closed,
    )


def build_ari_grid(
    room_type_ids: Sequence[str],
    date_from: date,
    date_to: date,
    intervals: Sequence[RatePlanInterval],
) -> dict[str, dict[date, AriCell]]:
    """Build {room_type_id: {day: AriCell}} for days in [date_from, date_to)."""
    days = list(iter_nights(date_from, date_to))
    by_type: dict[str, list[RatePlanInterval]] = {rt: [] for rt in room_type_ids}
    for iv in intervals:
        if iv.room_type_id in by_type:
            by_type[iv.room_type_id].append(iv)

    return {
        rt: {day: resolve_ari_cell(rt, day, by_type[rt]) for day in days}
        for rt in room_type_ids
    }
