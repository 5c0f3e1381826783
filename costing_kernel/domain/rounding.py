"""
Decimal rounding helpers.

All cost and hour figures are ``Decimal``.  Money and hours are reported
with two decimals, deviation percentages with one, both rounding half up.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

TWO_PLACES = Decimal("0.01")
ONE_PLACE = Decimal("0.1")
ZERO = Decimal("0")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a numeric input to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Decimal) -> Decimal:
    """Round to 2 decimals (money and hours)."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def round_percentage(value: Decimal) -> Decimal:
    """Round to 1 decimal (deviation percentages)."""
    return to_decimal(value).quantize(ONE_PLACE, rounding=ROUND_HALF_UP)
