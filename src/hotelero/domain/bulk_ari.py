"""Bulk ARI edits - validation and planning.

A bulk edit replaces every interval of the plan that overlaps
[start_date, end_date) with a single new interval per room type.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

from hotelero.domain.ari import ALL_DAYS_MASK


class BulkAriError(Exception):
    def __init__(self, reason_code: str, message: str):
        self.reason_code = reason_code
        super().__init__(message)


@dataclass(frozen=True)
class BulkAriUpdate:
    property_id: str
    rate_plan_id: str
    room_type_ids: list[str]
    start_date: date
    end_date: date
    dow_mask: int = ALL_DAYS_MASK
    base_rate_cents: int | None = None
    min_los: int | None = None
    closed: bool | None = None


@dataclass(frozen=True)
class BulkPreviewItem:
    room_type_id: str
    room_type_name: str
    start_date: date
    end_date: date
    base_rate_cents: int | None
    min_los: int | None
    closed: bool


@dataclass(frozen=True)
class IntervalRow:
    """Row to insert into rate_plan_intervals."""

    property_id: str
    room_type_id: str
    rate_plan_id: str
    start_date: date
    end_date: date
    dow_mask: int
    base_rate_cents: int
    min_los: int | None
    closed: bool
    priority: int = 0


def validate_bulk_update(update: BulkAriUpdate) -> None:
    """Raise BulkAriError if the edit cannot be applied."""
    if update.end_date <= update.start_date:
        raise BulkAriError("invalid_range", "end_date must be after start_date")
    if not update.room_type_ids:
        raise BulkAriError("no_room_types", "select at least one room type")
    if update.base_rate_cents is None and update.closed is None:
        raise BulkAriError("nothing_to_apply", "base_rate_cents or closed is required")
    if not 1 <= update.dow_mask <= ALL_DAYS_MASK:
        raise BulkAriError("invalid_dow_mask", "dow_mask must be between 1 and 127")
    if update.base_rate_cents is not None and update.base_rate_cents < 0:
        raise BulkAriError("invalid_rate", "base_rate_cents must be >= 0")
    if update.min_los is not None and update.min_los < 1:
        raise BulkAriError("invalid_min_los", "min_los must be >= 1")


def preview_bulk_update(
    update: BulkAriUpdate,
    room_type_names: dict[str, str],
) -> list[BulkPreviewItem]:
    """Items the commit would write; room types not in *room_type_names* are skipped.

    Raises:
        BulkAriError: Invalid edit, or none of the room types belong to the property.
    """
    validate_bulk_update(update)
    items = [
        BulkPreviewItem(
            room_type_id=rt,
            room_type_name=room_type_names[rt],
            start_date=update.start_date,
            end_date=update.end_date,
            base_rate_cents=update.base_rate_cents,
            min_los=update.min_los,
            closed=bool(update.closed),
        )
        for rt in update.room_type_ids
        if rt in room_type_names
    ]
    if not items:
        raise BulkAriError("room_types_not_found", "room types not found for this property")
    return items


def plan_bulk_update(
    update: BulkAriUpdate,
    known_room_type_ids: Sequence[str],
) -> list[IntervalRow]:
    """Build the rows to insert after the overlapping intervals are deleted."""
    validate_bulk_update(update)
    known = set(known_room_type_ids)
    unknown = [rt for rt in update.room_type_ids if rt not in known]
    if unknown:
        raise BulkAriError("room_types_not_found", f"unknown room types: {unknown}")

    return [
        IntervalRow(
            property_id=update.property_id,
            room_type_id=room_type_id,
            rate_plan_id=update.rate_plan_id,
            start_date=update.start_date,
            end_date=update.end_date,
            dow_mask=update.dow_mask,
            base_rate_cents=update.base_rate_cents or 0,
            min_los=update.min_los,
            closed=bool(update.closed),
        )
        for room_type_id in update.room_type_ids
    ]
