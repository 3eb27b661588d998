"""Shared monetary rounding.

Every amount produced by the calculator and the aggregator goes through
``round_money`` so item-level and sale-level figures never diverge by a cent.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from impostos.services.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_decimal(value: object, field: str) -> Decimal:
    """Convert str/int/Decimal (or float via its repr) to a finite Decimal.

    Raises ValidationError naming ``field`` for anything else.
    """
    if isinstance(value, bool):
        raise ValidationError(field, f"valor numerico invalido: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    try:
        d = Decimal(value)  # type: ignore[arg-type]
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(field, f"valor numerico invalido: {value!r}") from None
    if not d.is_finite():
        raise ValidationError(field, f"valor numerico invalido: {value!r}")
    return d


def round_money(value: Decimal) -> Decimal:
    """Round half away from zero to 2 fraction digits."""
    # adding ZERO turns a negative zero into 0.00
    return value.quantize(CENT, rounding=ROUND_HALF_UP) + ZERO


def percent_of(base: Decimal, rate_percent: Decimal) -> Decimal:
    return base * rate_percent / HUNDRED
