from __future__ import annotations

from collections.abc import Sequence

from impostos.models.sale_item import SaleLineItem
from impostos.models.tax_result import SaleAggregate, TaxResult
from impostos.services.calculator import compute_item_tax
from impostos.services.rounding import ZERO, round_money


def aggregate_sale(
    items: Sequence[tuple[SaleLineItem, TaxResult]],
    sale_level_override: bool = False,
) -> SaleAggregate:
    """Sum per-item results into sale totals.

    With ``sale_level_override`` (sem_impostos on the sale) every item is
    recomputed with taxes suppressed, whatever its own flag says.
    """
    if not items:
        return SaleAggregate.zero()

    if sale_level_override:
        results = [
            compute_item_tax(item.with_overrides(taxes_suppressed=True)) for item, _ in items
        ]
    else:
        results = [result for _, result in items]

    return SaleAggregate(
        net_value=round_money(sum((r.net_value for r in results), ZERO)),
        st_final=round_money(sum((r.st_final for r in results), ZERO)),
        ipi=round_money(sum((r.ipi for r in results), ZERO)),
        final_value=round_money(sum((r.final_value for r in results), ZERO)),
        st_item_count=sum(1 for r in results if r.st_applied),
        item_count=len(results),
        st_base=round_money(sum((r.st_base for r in results), ZERO)),
        icms_st=round_money(sum((r.icms_st for r in results), ZERO)),
        icms_own=round_money(sum((r.icms_own for r in results), ZERO)),
        icms_value=round_money(sum((r.icms_value for r in results), ZERO)),
        gross_value=sum((round_money(item.gross_or_net) for item, _ in items), ZERO),
        discount=round_money(sum((item.discount_share for item, _ in items), ZERO)),
    )


def apply_sale_flags(
    items: Sequence[SaleLineItem],
    sale_level_override: bool = False,
    *,
    without_ipi: bool = False,
    without_st: bool = False,
) -> list[SaleLineItem]:
    """Return the items with the sale-wide flags forced on each of them."""
    return [
        item.with_overrides(
            taxes_suppressed=sale_level_override,
            ipi_suppressed=without_ipi,
            st_suppressed=without_st,
        )
        for item in items
    ]


def compute_sale(
    items: Sequence[SaleLineItem],
    sale_level_override: bool = False,
    *,
    without_ipi: bool = False,
    without_st: bool = False,
) -> tuple[list[TaxResult], SaleAggregate]:
    """Compute every item and aggregate them.

    Sale-wide flags (sem_impostos, sem_ipi, sem_st) apply to all items alike.
    """
    effective = apply_sale_flags(
        items, sale_level_override, without_ipi=without_ipi, without_st=without_st
    )
    results = [compute_item_tax(item) for item in effective]
    return results, aggregate_sale(list(zip(effective, results, strict=True)))
