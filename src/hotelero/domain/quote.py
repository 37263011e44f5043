"""Quote domain logic - stay aggregation and price breakdown.

Every night of the stay must resolve to a rate, otherwise the whole stay is
unquotable. All amounts are integer cents.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from hotelero.domain.ari import RatePlanInterval, iter_nights, resolve_night_rate

MAX_STAY_NIGHTS = 30
MAX_CHILD_AGE = 17


class QuoteUnavailable(Exception):
    def __init__(self, reason_code: str, meta: dict | None = None):
        self.reason_code = reason_code
        self.meta = meta or {}
        super().__init__(f"Quote unavailable: {reason_code}")


@dataclass(frozen=True)
class CommercialSettings:
    """Per-property pricing settings; defaults apply when none are stored."""

    base_occupancy: int = 2
    extra_adult_fee_cents: int = 0
    prices_include_taxes: bool = False
    currency: str = "USD"


@dataclass(frozen=True)
class ChildPricingRule:
    min_age: int
    max_age: int
    fee_cents: int

    def matches(self, age: int) -> bool:
        return self.min_age <= age <= self.max_age


@dataclass(frozen=True)
class StayQuote:
    """Sum of resolved nightly rates for [check_in, check_out)."""

    room_type_id: str | None
    check_in: date
    check_out: date
    nightly_rates: dict[date, int]
    total_cents: int

    @property
    def nights(self) -> int:
        return len(self.nightly_rates)


@dataclass(frozen=True)
class NightQuote:
    night: date
    base_rate_cents: int
    extras_adults_cents: int
    extras_children_cents: int
    subtotal_cents: int
    taxes_cents: int
    total_rate_cents: int


@dataclass(frozen=True)
class QuoteResult:
    nights: list[NightQuote] = field(default_factory=list)
    subtotal_cents: int = 0
    taxes_total_cents: int = 0
    grand_total_cents: int = 0
    currency: str = "USD"

    def to_dict(self) -> dict:
        """JSON-safe payload (stored as booking_quotes.quote_payload)."""
        return {
            "nights": [
                {
                    "night": n.night.isoformat(),
                    "base_rate_cents": n.base_rate_cents,
                    "extras_adults_cents": n.extras_adults_cents,
                    "extras_children_cents": n.extras_children_cents,
                    "subtotal_cents": n.subtotal_cents,
                    "taxes_cents": n.taxes_cents,
                    "total_rate_cents": n.total_rate_cents,
                }
                for n in self.nights
            ],
            "subtotal_cents": self.subtotal_cents,
            "taxes_total_cents": self.taxes_total_cents,
            "grand_total_cents": self.grand_total_cents,
            "currency": self.currency,
        }


def validate_stay(check_in: date, check_out: date) -> int:
    """Check date ordering and max stay. Returns the number of nights."""
    if check_in >= check_out:
        raise QuoteUnavailable("invalid_dates")
    nights = (check_out - check_in).days
    if nights > MAX_STAY_NIGHTS:
        raise QuoteUnavailable("max_stay_exceeded", {"max_nights": MAX_STAY_NIGHTS})
    return nights


def quote_stay(
    room_type_id: str | None,
    check_in: date,
    check_out: date,
    intervals: Sequence[RatePlanInterval],
) -> StayQuote:
    """Resolve every night of the stay and sum the rates.

    Raises:
        QuoteUnavailable: invalid_dates, or rate_missing (with the first
            unpriced night in meta) when any night has no rate.
    """
    if check_in >= check_out:
        raise QuoteUnavailable("invalid_dates")

    nightly: dict[date, int] = {}
    for night in iter_nights(check_in, check_out):
        rate = resolve_night_rate(room_type_id, night, intervals)
        if not rate.is_priced:
            raise QuoteUnavailable("rate_missing", {"date": night.isoformat()})
        nightly[night] = rate.total_rate_cents

    return StayQuote(
        room_type_id=room_type_id,
        check_in=check_in,
        check_out=check_out,
        nightly_rates=nightly,
        total_cents=sum(nightly.values()),
    )


def _child_fees(children_ages: Sequence[int], rules: Sequence[ChildPricingRule]) -> int:
    total = 0
    for age in children_ages:
        for rule in rules:
            if rule.matches(age):
                total += rule.fee_cents
                break  # first matching rule only
    return total


def _round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def tax_rate(tax_percents: Sequence[Decimal | int | float]) -> Decimal:
    """Sum of active percentage tax rules as a fraction (18 + 2 -> 0.20)."""
    return sum((Decimal(str(p)) for p in tax_percents), Decimal("0")) / 100


def compute_quote(
    *,
    room_type_id: str | None,
    check_in: date,
    check_out: date,
    adults: int,
    children_ages: Sequence[int] | None = None,
    intervals: Sequence[RatePlanInterval],
    settings: CommercialSettings | None = None,
    child_rules: Sequence[ChildPricingRule] = (),
    tax_percents: Sequence[Decimal | int | float] = (),
) -> QuoteResult:
    """Full per-night breakdown: base rate, occupancy extras, child fees, taxes.

    Inclusive prices carry their tax (taxes = subtotal * r / (1 + r));
    exclusive prices get it added on top (taxes = subtotal * r).

    Raises:
        QuoteUnavailable: invalid_dates, max_stay_exceeded,
            invalid_adult_count, invalid_child_age, rate_missing.
    """
    settings = settings or CommercialSettings()
    children_ages = list(children_ages or [])

    # --- Fail-fast validations ---
    validate_stay(check_in, check_out)
    if adults < 1:
        raise QuoteUnavailable("invalid_adult_count")
    for age in children_ages:
        if age < 0 or age > MAX_CHILD_AGE:
            raise QuoteUnavailable("invalid_child_age", {"age": age})

    stay = quote_stay(room_type_id, check_in, check_out, intervals)

    rate = tax_rate(tax_percents)
    extras_adults = max(0, adults - settings.base_occupancy) * settings.extra_adult_fee_cents
    extras_children = _child_fees(children_ages, child_rules)

    nights: list[NightQuote] = []
    for night, base in stay.nightly_rates.items():
        subtotal = base + extras_adults + extras_children
        if settings.prices_include_taxes:
            taxes = _round_cents(subtotal * rate / (1 + rate)) if rate > 0 else 0
            total = subtotal
        else:
            taxes = _round_cents(subtotal * rate)
            total = subtotal + taxes

        nights.append(
            NightQuote(
                night=night,
                base_rate_cents=base,
                extras_adults_cents=extras_adults,
                extras_children_cents=extras_children,
                subtotal_cents=subtotal,
                taxes_cents=taxes,
                total_rate_cents=total,
            )
        )

    subtotal_cents = sum(n.subtotal_cents for n in nights)
    taxes_total_cents = sum(n.taxes_cents for n in nights)
    grand_total_cents = (
        subtotal_cents
        if settings.prices_include_taxes
        else subtotal_cents + taxes_total_cents
    )

    return QuoteResult(
        nights=nights,
        subtotal_cents=subtotal_cents,
        taxes_total_cents=taxes_total_cents,
        grand_total_cents=grand_total_cents,
        currency=settings.currency,
    )
