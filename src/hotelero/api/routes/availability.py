"""Availability endpoint for dashboard."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, HTTPException

from hotelero.infra.db import txn
from hotelero.services.quote_service import load_availability

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("")
def get_availability(
    property_id: str,
    date_from: date,
    date_to: date,
    safe_mode: bool = True,
) -> dict:
    """Rooms free for the whole [date_from, date_to) range, grouped by room type.

    With safe_mode (default) rooms whose iCal sync is missing, failed or
    stale are reported as stop-sell instead of available.
    """
    if date_to <= date_from:
        raise HTTPException(status_code=400, detail="date_to must be after date_from")

    with txn() as cur:
        result = load_availability(
            cur,
            property_id=property_id,
            date_from=date_from,
            date_to=date_to,
            safe_mode=safe_mode,
        )

    return {
        "date_from": result.date_from.isoformat(),
        "date_to": result.date_to.isoformat(),
        "safe_mode": result.safe_mode,
        "total_rooms": result.total_rooms,
        "total_available": result.total_available,
        "by_type": [
            {
                "room_type_id": g.room_type_id,
                "room_type_name": g.room_type_name,
                "total_units": g.total_units,
                "available_units": g.available_units,
                "rooms": [
                    {"id": r.id, "name": r.name, "room_type_id": r.room_type_id}
                    for r in g.rooms
                ],
            }
            for g in result.by_type
        ],
        "stop_sell_rooms": [
            {"id": s.id, "name": s.name, "reason": s.reason}
            for s in result.stop_sell_rooms
        ],
    }
