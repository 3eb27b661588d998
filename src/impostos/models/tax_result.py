from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal

from impostos.services.rounding import ZERO


def _as_strings(obj) -> dict:
    """Render Decimal fields as "0.00" strings, leave the rest untouched."""
    out = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        out[f.name] = f"{value:.2f}" if isinstance(value, Decimal) else value
    return out


@dataclass(frozen=True)
class TaxResult:
    """Tax breakdown for one line item. Every amount is rounded to cents."""

    net_value: Decimal
    st_base: Decimal
    icms_st: Decimal
    icms_own: Decimal
    st_final: Decimal
    ipi: Decimal
    final_value: Decimal
    st_applied: bool = False
    icms_value: Decimal = ZERO  # informational, never part of final_value

    def to_dict(self) -> dict:
        return _as_strings(self)


@dataclass(frozen=True)
class SaleAggregate:
    """Sale-level totals: exact sums of already-rounded item amounts.

    ``net_value`` = ``gross_value`` - ``discount``; ``final_value`` never
    includes the informational ``icms_value``.
    """

    net_value: Decimal
    st_final: Decimal
    ipi: Decimal
    final_value: Decimal
    st_item_count: int
    item_count: int = 0
    st_base: Decimal = ZERO
    icms_st: Decimal = ZERO
    icms_own: Decimal = ZERO
    icms_value: Decimal = ZERO  # total_icms, informational
    gross_value: Decimal = ZERO  # total_produtos_bruto
    discount: Decimal = ZERO  # desconto_total

    @classmethod
    def zero(cls) -> SaleAggregate:
        return cls(
            net_value=ZERO,
            st_final=ZERO,
            ipi=ZERO,
            final_value=ZERO,
            st_item_count=0,
        )

    def to_dict(self) -> dict:
        return _as_strings(self)
