"""ARI endpoints for dashboard.

GET  /ari/grid: resolved rate/min_los/closed per room type and day (BAR plan)
POST /ari/bulk/preview: what a bulk edit would write, no DB writes
POST /ari/bulk/commit: replace overlapping intervals with the edit
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field, field_validator

from hotelero.domain.ari import ALL_DAYS_MASK, build_ari_grid
from hotelero.domain.bulk_ari import (
    BulkAriError,
    BulkAriUpdate,
    plan_bulk_update,
    preview_bulk_update,
)
from hotelero.infra.db import txn
from hotelero.infra.repositories.rate_plans_repository import (
    delete_overlapping_intervals,
    fetch_intervals,
    get_or_create_bar_rate_plan,
    insert_interval,
    list_room_types,
    rate_plan_belongs_to_property,
)
from hotelero.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/ari", tags=["ari"])

MAX_GRID_DAYS = 366


# ── Schemas ───────────────────────────────────────────────


class BulkAriRequest(BaseModel):
    property_id: str
    rate_plan_id: str | None = None
    room_type_ids: list[str]
    start_date: date
    end_date: date
    dow_mask: int = Field(default=ALL_DAYS_MASK, ge=1, le=ALL_DAYS_MASK)
    base_rate_cents: int | None = Field(default=None, ge=0)
    min_los: int | None = Field(default=None, ge=1)
    closed: bool | None = None

    @field_validator("room_type_ids")
    @classmethod
    def limit_room_types(cls, v: list[str]) -> list[str]:
        if len(v) > 100:
            raise ValueError("at most 100 room types per request")
        return v

    def to_domain(self, rate_plan_id: str) -> BulkAriUpdate:
        return BulkAriUpdate(
            property_id=self.property_id,
            rate_plan_id=rate_plan_id,
            room_type_ids=self.room_type_ids,
            start_date=self.start_date,
            end_date=self.end_date,
            dow_mask=self.dow_mask,
            base_rate_cents=self.base_rate_cents,
            min_los=self.min_los,
            closed=self.closed,
        )


def _bulk_error(exc: BulkAriError) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"reason_code": exc.reason_code, "message": str(exc)},
    )


# ── GET /ari/grid ─────────────────────────────────────────


@router.get("/grid")
def get_ari_grid(property_id: str, date_from: date, date_to: date) -> dict:
    """ARI grid for [date_from, date_to) on the BAR plan (created if missing).

    Closed intervals are shown as closed cells with no rate.
    Max range: 366 days.
    """
    if date_to <= date_from:
        raise HTTPException(status_code=400, detail="date_to must be after date_from")
    if (date_to - date_from).days > MAX_GRID_DAYS:
        raise HTTPException(status_code=400, detail=f"max range: {MAX_GRID_DAYS} days")

    with txn() as cur:
        plan = get_or_create_bar_rate_plan(cur, property_id)
        room_types = list_room_types(cur, property_id)
        intervals = (
            fetch_intervals(cur, rate_plan_id=plan["id"], start=date_from, end=date_to)
            if room_types
            else []
        )

    grid = build_ari_grid([rt["id"] for rt in room_types], date_from, date_to, intervals)

    return {
        "rate_plan_id": plan["id"],
        "date_from": date_from.isoformat(),
        "date_to": date_to.isoformat(),
        "room_types": room_types,
        "grid": {
            rt_id: {
                day.isoformat(): {
                    "base_rate_cents": cell.base_rate_cents,
                    "min_los": cell.min_los,
                    "closed": cell.closed,
                }
                for day, cell in days.items()
            }
            for rt_id, days in grid.items()
        },
    }


# ── POST /ari/bulk/preview ────────────────────────────────


@router.post("/bulk/preview")
def preview_bulk(body: BulkAriRequest) -> dict:
    """Preview a bulk edit. Does NOT modify the DB."""
    with txn() as cur:
        room_types = list_room_types(cur, body.property_id, body.room_type_ids)

    names = {rt["id"]: rt["name"] for rt in room_types}
    try:
        items = preview_bulk_update(body.to_domain(body.rate_plan_id or ""), names)
    except BulkAriError as exc:
        raise _bulk_error(exc) from exc

    return {
        "items": [
            {
                "room_type_id": item.room_type_id,
                "room_type_name": item.room_type_name,
                "start_date": item.start_date.isoformat(),
                "end_date": item.end_date.isoformat(),
                "base_rate_cents": item.base_rate_cents,
                "min_los": item.min_los,
                "closed": item.closed,
            }
            for item in items
        ]
    }


# ── POST /ari/bulk/commit ─────────────────────────────────


@router.post("/bulk/commit")
def commit_bulk(body: BulkAriRequest) -> dict:
    """Apply a bulk edit in one transaction.

    Per room type: delete intervals overlapping [start_date, end_date), then
    insert one interval with the given values (priority 0).
    rate_plan_id defaults to the property's BAR plan.
    """
    with txn() as cur:
        if body.rate_plan_id is None:
            rate_plan_id = get_or_create_bar_rate_plan(cur, body.property_id)["id"]
        elif rate_plan_belongs_to_property(
            cur, rate_plan_id=body.rate_plan_id, property_id=body.property_id
        ):
            rate_plan_id = body.rate_plan_id
        else:
            raise HTTPException(status_code=404, detail="Rate plan not found")

        room_types = list_room_types(cur, body.property_id, body.room_type_ids)
        update = body.to_domain(rate_plan_id)
        try:
            rows = plan_bulk_update(update, [rt["id"] for rt in room_types])
        except BulkAriError as exc:
            raise _bulk_error(exc) from exc

        deleted = 0
        for row in rows:
            deleted += delete_overlapping_intervals(
                cur,
                property_id=row.property_id,
                rate_plan_id=row.rate_plan_id,
                room_type_id=row.room_type_id,
                start=row.start_date,
                end=row.end_date,
            )
            insert_interval(cur, row)

    logger.info(
        "ari_bulk_committed",
        extra={
            "extra_fields": {
                "property_id": body.property_id,
                "rate_plan_id": rate_plan_id,
                "room_types": len(rows),
                "intervals_deleted": deleted,
            }
        },
    )

    return {"rate_plan_id": rate_plan_id, "inserted": len(rows), "deleted": deleted}
