"""Per-item ICMS-ST, ICMS próprio and IPI.

Formula, with every intermediate rounded to cents on its own:

1. Base ST      = (valor líquido + frete + outras despesas) x (1 + MVA/100)
2. ICMS ST      = Base ST x alíquota interna/100
3. ICMS próprio = (valor líquido + frete + outras despesas) x alíquota ICMS próprio/100
4. ST final     = ICMS ST - ICMS próprio
5. IPI          = valor líquido x alíquota IPI/100
6. Valor final  = valor líquido + ST final + IPI

Frete and outras despesas default to zero. ST is only computed when MVA > 0.
The informational ICMS (valor líquido x alíquota ICMS/100) is reported but
never added to the final value. "sem_impostos" short-circuits everything.
"""

from __future__ import annotations

import logging

from impostos.models.sale_item import SaleLineItem
from impostos.models.tax_result import TaxResult
from impostos.services.rounding import HUNDRED, ZERO, percent_of, round_money

logger = logging.getLogger(__name__)


def _suppressed(item: SaleLineItem) -> TaxResult:
    net = round_money(item.net_value)
    return TaxResult(
        net_value=net,
        st_base=ZERO,
        icms_st=ZERO,
        icms_own=ZERO,
        st_final=ZERO,
        ipi=ZERO,
        final_value=net,
    )


def compute_item_tax(item: SaleLineItem) -> TaxResult:
    """Compute the tax breakdown of one line item.

    Inputs were validated when the SaleLineItem was built, so this function
    is total: no I/O, no transient failures.
    """
    if item.taxes_suppressed:
        return _suppressed(item)

    net = round_money(item.net_value)

    st_applied = item.mva_percent > 0 and not item.st_suppressed
    if st_applied:
        icms_base = item.net_value + item.freight + item.other_expenses
        raw_base = icms_base * (1 + item.mva_percent / HUNDRED)
        raw_icms_st = percent_of(raw_base, item.st_internal_rate_percent)
        raw_icms_own = percent_of(icms_base, item.icms_own_rate_percent)
        st_base = round_money(raw_base)
        icms_st = round_money(raw_icms_st)
        icms_own = round_money(raw_icms_own)
        # signed: may be negative when ICMS próprio exceeds ICMS ST
        st_final = round_money(raw_icms_st - raw_icms_own)
    else:
        st_base = icms_st = icms_own = st_final = ZERO

    if item.ipi_suppressed:
        ipi = ZERO
    else:
        ipi = round_money(percent_of(item.net_value, item.ipi_rate_percent))

    final_value = net + st_final + ipi

    if st_applied:
        logger.debug(
            "ST: liquido=%s mva=%s%% base=%s icms_st=%s icms_proprio=%s st_final=%s",
            net,
            item.mva_percent,
            st_base,
            icms_st,
            icms_own,
            st_final,
        )

    return TaxResult(
        net_value=net,
        st_base=st_base,
        icms_st=icms_st,
        icms_own=icms_own,
        st_final=st_final,
        ipi=ipi,
        final_value=final_value,
        st_applied=st_applied,
        icms_value=round_money(percent_of(item.net_value, item.icms_rate_percent)),
    )
