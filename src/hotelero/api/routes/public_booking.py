"""Public booking funnel (no session; property resolved by public key).

POST /public/{public_key}/quotes: quote + store with 30 min TTL
POST /public/{public_key}/quotes/{quote_id}/checkout: Stripe Checkout link
POST /public/{public_key}/quotes/{quote_id}/confirm: book without online payment
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from hotelero.api.routes.quotes import quote_unavailable_response
from hotelero.domain.quote import QuoteUnavailable
from hotelero.infra.db import txn
from hotelero.observability.logging import get_logger
from hotelero.services.booking_service import BookingError, confirm_public_booking
from hotelero.services.checkout import start_checkout
from hotelero.services.quote_service import create_public_quote
from hotelero.stripe.client import MissingConfigurationError, StripeClient, StripeConfig

logger = get_logger(__name__)

router = APIRouter(prefix="/public", tags=["public"])

_BOOKING_STATUS = {
    "property_not_found": 404,
    "not_found": 404,
    "property_mismatch": 404,
    "quote_expired": 410,
    "guest_name_required": 400,
    "room_unavailable": 409,
}


class PublicQuoteRequest(BaseModel):
    room_type_id: str
    check_in: date
    check_out: date
    adults: int = Field(default=2, ge=1, le=20)
    children_ages: list[int] = Field(default_factory=list, max_length=10)


class GuestRequest(BaseModel):
    guest_name: str = Field(min_length=1, max_length=200)
    guest_email: str | None = Field(default=None, max_length=254)
    guest_phone: str | None = Field(default=None, max_length=40)


def booking_error_response(exc: BookingError) -> HTTPException:
    return HTTPException(
        status_code=_BOOKING_STATUS.get(exc.reason_code, 409),
        detail={"reason_code": exc.reason_code},
    )


def get_stripe_client() -> StripeClient:
    """Stripe client from environment; 503 when payments are not configured."""
    try:
        return StripeClient(StripeConfig.from_env())
    except MissingConfigurationError as exc:
        logger.error(
            "stripe_not_configured",
            extra={"extra_fields": {"setting": exc.setting}},
        )
        raise HTTPException(status_code=503, detail="payments not configured") from exc


@router.post("/{public_key}/quotes")
def create_quote(public_key: str, body: PublicQuoteRequest) -> dict:
    try:
        with txn() as cur:
            result = create_public_quote(
                cur,
                public_key=public_key,
                room_type_id=body.room_type_id,
                check_in=body.check_in,
                check_out=body.check_out,
                adults=body.adults,
                children_ages=body.children_ages,
            )
    except QuoteUnavailable as exc:
        raise quote_unavailable_response(exc) from exc

    return {
        "quote_id": result["quote_id"],
        "expires_at": result["expires_at"].isoformat(),
        "quote": result["quote"].to_dict(),
    }


@router.post("/{public_key}/quotes/{quote_id}/checkout")
def checkout(
    public_key: str,
    quote_id: str,
    body: GuestRequest,
    client: StripeClient = Depends(get_stripe_client),
) -> dict:
    """Create a pending booking and a Stripe Checkout session for a stored quote."""
    try:
        with txn() as cur:
            return start_checkout(
                cur,
                client,
                public_key=public_key,
                quote_id=quote_id,
                guest_name=body.guest_name,
                guest_email=body.guest_email,
                guest_phone=body.guest_phone,
            )
    except BookingError as exc:
        raise booking_error_response(exc) from exc


@router.post("/{public_key}/quotes/{quote_id}/confirm")
def confirm(public_key: str, quote_id: str, body: GuestRequest) -> dict:
    """Confirm a stored quote as a booking paid at the property."""
    try:
        with txn() as cur:
            return confirm_public_booking(
                cur,
                public_key=public_key,
                quote_id=quote_id,
                guest_name=body.guest_name,
                guest_email=body.guest_email,
                guest_phone=body.guest_phone,
            )
    except BookingError as exc:
        raise booking_error_response(exc) from exc
