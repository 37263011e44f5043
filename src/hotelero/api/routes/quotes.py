"""Quote endpoint for dashboard (staff quoting a specific room)."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from hotelero.domain.quote import QuoteUnavailable
from hotelero.infra.db import txn
from hotelero.services.quote_service import quote_for_room

router = APIRouter(prefix="/quotes", tags=["quotes"])

# Reason codes that mean "that thing does not exist" rather than "cannot sell"
_NOT_FOUND_REASONS = frozenset({"room_not_found", "property_not_found"})


class QuoteRequest(BaseModel):
    property_id: str
    room_id: str
    check_in: date
    check_out: date
    adults: int = Field(default=2, ge=1, le=20)
    children_ages: list[int] = Field(default_factory=list, max_length=10)


def quote_unavailable_response(exc: QuoteUnavailable) -> HTTPException:
    """404 for unknown property/room, 409 for everything the quote engine rejects."""
    status_code = 404 if exc.reason_code in _NOT_FOUND_REASONS else 409
    return HTTPException(
        status_code=status_code,
        detail={"reason_code": exc.reason_code, "meta": exc.meta},
    )


@router.post("")
def create_quote(body: QuoteRequest) -> dict:
    """Price a stay for one room; not persisted."""
    try:
        with txn() as cur:
            quote = quote_for_room(
                cur,
                property_id=body.property_id,
                room_id=body.room_id,
                check_in=body.check_in,
                check_out=body.check_out,
                adults=body.adults,
                children_ages=body.children_ages,
            )
    except QuoteUnavailable as exc:
        raise quote_unavailable_response(exc) from exc

    return quote.to_dict()
