"""Pricing settings repository - commercial settings, child fees, taxes.

Uses raw SQL with psycopg2 (no ORM).
"""

from __future__ import annotations

from decimal import Decimal

from psycopg2.extensions import cursor as PgCursor

from hotelero.domain.quote import ChildPricingRule, CommercialSettings


def get_commercial_settings(cur: PgCursor, property_id: str) -> CommercialSettings:
    """Load property_commercial_settings, falling back to defaults when unset."""
    cur.execute(
        """
        SELECT base_occupancy, extra_adult_fee_cents, prices_include_taxes, currency
        FROM property_commercial_settings
        WHERE property_id = %s
        """,
        (property_id,),
    )
    row = cur.fetchone()
    defaults = CommercialSettings()
    if row is None:
        return defaults

    return CommercialSettings(
        base_occupancy=row[0] if row[0] is not None else defaults.base_occupancy,
        extra_adult_fee_cents=row[1] if row[1] is not None else defaults.extra_adult_fee_cents,
        prices_include_taxes=bool(row[2]) if row[2] is not None else defaults.prices_include_taxes,
        currency=row[3] or defaults.currency,
    )


def list_child_pricing_rules(cur: PgCursor, property_id: str) -> list[ChildPricingRule]:
    """Child fee rules in evaluation order (first match wins)."""
    cur.execute(
        """
        SELECT min_age, max_age, fee_cents
        FROM child_pricing_rules
        WHERE property_id = %s
        ORDER BY min_age, max_age
        """,
        (property_id,),
    )
    return [
        ChildPricingRule(min_age=r[0], max_age=r[1], fee_cents=r[2])
        for r in cur.fetchall()
    ]


def list_active_tax_percents(cur: PgCursor, property_id: str) -> list[Decimal]:
    """Percentages of active percent-type tax rules."""
    cur.execute(
        """
        SELECT value
        FROM tax_rules
        WHERE property_id = %s
          AND is_active = true
          AND type = 'percent'
        """,
        (property_id,),
    )
    return [Decimal(str(r[0])) for r in cur.fetchall()]
