"""Time utilities for consistent timestamp handling."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def minutes_from_now(minutes: int, *, now: datetime | None = None) -> datetime:
    """Return the UTC timestamp *minutes* after now."""
    return (now or utc_now()) + timedelta(minutes=minutes)


def is_expired(expires_at: datetime, *, now: datetime | None = None) -> bool:
    """True when *expires_at* is in the past.

    Naive datetimes are treated as UTC (psycopg2 returns naive values for
    ``timestamp without time zone`` columns).
    """
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < (now or utc_now())
