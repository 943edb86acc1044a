"""
Currency helpers. Amounts are Decimal with two places; rounding happens only
when a figure is aggregated or reported, never on intermediate discounts.
"""
from decimal import Decimal, ROUND_HALF_UP, ROUND_FLOOR
from typing import Any

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Convert DB/JSON numbers to Decimal without picking up float noise."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Any) -> Decimal:
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def floor_units(value: Any) -> Decimal:
    """Floor to a whole currency unit (used for return refunds)."""
    return to_decimal(value).quantize(Decimal("1"), rounding=ROUND_FLOOR)


def as_number(value: Any) -> float:
    """JSON-friendly float of a 2-place amount."""
    return float(round2(value))
