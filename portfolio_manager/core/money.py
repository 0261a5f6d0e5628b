"""
Exact decimal helpers for money, quantities and percentages.

Every amount in the application is a ``Decimal``. Arithmetic keeps full
precision; values are only quantized at presentation boundaries or where a
ratio is turned into a percentage.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from portfolio_manager.core.exceptions import ValidationError


ZERO = Decimal("0")
HUNDRED = Decimal("100")

CURRENCY_SCALE = Decimal("0.01")
PERCENT_SCALE = Decimal("0.0001")
QUANTITY_SCALE = Decimal("0.00000001")
# Ratios are rounded to five places before scaling to a percentage
RATIO_SCALE = Decimal("0.00001")

Number = Union[Decimal, int, str, float]


def to_decimal(value: Optional[Number]) -> Optional[Decimal]:
    """Convert a raw value into a Decimal without going through binary floats."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValidationError(f"Not a decimal value: {value!r}")
    try:
        # str() keeps the shortest repr of provider floats (e.g. 175.5 -> "175.5")
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Not a decimal value: {value!r}")


def _quantize(value: Optional[Decimal], scale: Decimal) -> Optional[Decimal]:
    if value is None:
        return None
    return value.quantize(scale, rounding=ROUND_HALF_UP)


def round_currency(value: Optional[Decimal]) -> Optional[Decimal]:
    return _quantize(value, CURRENCY_SCALE)


def round_percent(value: Optional[Decimal]) -> Optional[Decimal]:
    return _quantize(value, PERCENT_SCALE)


def round_quantity(value: Optional[Decimal]) -> Optional[Decimal]:
    return _quantize(value, QUANTITY_SCALE)


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """
    Express ``part`` as a percentage of ``whole``.

    Returns zero when ``whole`` is zero or negative, so callers never divide
    by zero. The ratio is rounded half-up to five places and then scaled by
    100, giving a percentage with four fractional digits.
    """
    if whole <= ZERO:
        return round_percent(ZERO)
    ratio = (part / whole).quantize(RATIO_SCALE, rounding=ROUND_HALF_UP)
    return round_percent(ratio * HUNDRED)
