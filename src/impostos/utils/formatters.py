from __future__ import annotations

from decimal import Decimal


def format_brl(value: str | Decimal) -> str:
    """Format a numeric value as R$ X.XXX,XX (negatives as -R$ X,XX)."""
    d = Decimal(value)
    formatted = f"{abs(d):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    sign = "-" if d < 0 else ""
    return f"{sign}R$ {formatted}"


def format_percent(value: str | Decimal) -> str:
    """Format a percentage as 18,00%."""
    d = Decimal(value)
    return f"{d:.2f}%".replace(".", ",")
