from __future__ import annotations

import logging
from dataclasses import dataclass

from impostos.config import RateDefaults, load_rate_defaults
from impostos.models.mva import MvaKey
from impostos.models.sale_item import GrossItem, SaleLineItem, pick_field
from impostos.models.tax_result import SaleAggregate, TaxResult
from impostos.services.aggregator import apply_sale_flags, compute_sale
from impostos.services.discounts import net_items
from impostos.services.exceptions import ValidationError
from impostos.services.mva_table import MvaTable
from impostos.utils.validators import validate_flag, validate_non_negative

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComputedSale:
    """Per-item breakdown and totals, ready for persistence or display.

    ``items`` are the effective items, with the sale-wide flags applied.
    """

    items: list[SaleLineItem]
    results: list[TaxResult]
    aggregate: SaleAggregate
    taxes_suppressed: bool = False

    def to_dict(self) -> dict:
        return {
            "sem_impostos": self.taxes_suppressed,
            "itens": [
                {
                    "produto_id": item.product_id,
                    "descricao": item.description,
                    "subtotal_bruto": f"{item.gross_or_net:.2f}",
                    "desconto_proporcional": f"{item.discount_share:.2f}",
                    **result.to_dict(),
                }
                for item, result in zip(self.items, self.results, strict=True)
            ],
            "totais": self.aggregate.to_dict(),
        }


def _resolve_rates(
    row: dict,
    origin_uf: str | None,
    destination_uf: str | None,
    table: MvaTable | None,
    defaults: RateDefaults,
) -> dict:
    """Fill MVA and ST internal rate from the table when the row omits them."""
    mva = pick_field(row, "mva_percent", "mva")
    internal = pick_field(row, "st_internal_rate_percent", "aliquota_st_interna")
    ncm = pick_field(row, "ncm", "categoria")

    needs_lookup = mva is None or internal is None
    if table is not None and ncm and origin_uf and destination_uf and needs_lookup:
        key = MvaKey.of(ncm, origin_uf, destination_uf)
        if mva is None:
            mva = table.resolve(key)
        if internal is None:
            internal = table.internal_rate(key)

    return {
        "mva_percent": mva if mva is not None else "0",
        "icms_own_rate_percent": pick_field(
            row, "icms_own_rate_percent", "icms_proprio", default=defaults.icms_own_rate_percent
        ),
        "st_internal_rate_percent": (
            internal if internal is not None else defaults.st_internal_rate_percent
        ),
        "ipi_rate_percent": pick_field(
            row, "ipi_rate_percent", "ipi", default=defaults.ipi_rate_percent
        ),
    }


def build_items(
    sale: dict,
    table: MvaTable | None = None,
    defaults: RateDefaults | None = None,
) -> list[SaleLineItem]:
    """Turn a sale dict (venda.yaml layout) into validated SaleLineItems.

    Items give either ``valor_liquido`` or ``preco_unitario`` + ``quantidade``;
    the sale ``desconto`` is allocated across gross-priced items. Mixing both
    styles in one sale is rejected.
    """
    defaults = defaults or RateDefaults()
    rows = sale.get("itens") or []
    origin_uf = sale.get("uf_origem")
    destination_uf = sale.get("uf_destino") or origin_uf

    gross_rows = [r for r in rows if pick_field(r, "net_value", "valor_liquido") is None]
    if gross_rows and len(gross_rows) != len(rows):
        raise ValidationError(
            "itens", "use valor_liquido em todos os itens ou preco_unitario em todos"
        )

    if not gross_rows:
        if validate_non_negative(sale.get("desconto") or "0", "desconto") != 0:
            raise ValidationError("desconto", "so se aplica a itens com preco_unitario")
        items = []
        for row in rows:
            merged = {**row, **_resolve_rates(row, origin_uf, destination_uf, table, defaults)}
            items.append(SaleLineItem.from_dict(merged, defaults))
        return items

    gross_items = []
    for row in rows:
        rates = _resolve_rates(row, origin_uf, destination_uf, table, defaults)
        template = SaleLineItem.from_dict({**row, **rates, "net_value": "0"}, defaults)
        gross_items.append(
            GrossItem(
                unit_price=pick_field(row, "unit_price", "preco_unitario"),
                quantity=pick_field(row, "quantity", "quantidade", default="1"),
                template=template,
            )
        )
    return net_items(gross_items, sale.get("desconto") or "0")


def calculate_sale(
    sale: dict,
    table: MvaTable | None = None,
    defaults: RateDefaults | None = None,
) -> ComputedSale:
    """Compute taxes and totals for a whole sale dict."""
    if defaults is None:
        defaults = load_rate_defaults()
    items = build_items(sale, table, defaults)
    suppressed = validate_flag(sale.get("sem_impostos"), "sem_impostos")
    without_ipi = validate_flag(sale.get("sem_ipi"), "sem_ipi")
    without_st = validate_flag(sale.get("sem_st"), "sem_st")

    items = apply_sale_flags(items, suppressed, without_ipi=without_ipi, without_st=without_st)
    results, aggregate = compute_sale(items)

    for item, result in zip(items, results, strict=True):
        logger.debug(
            "Item %s: liquido=%s st=%s ipi=%s total=%s",
            item.product_id or "-",
            result.net_value,
            result.st_final,
            result.ipi,
            result.final_value,
        )
    logger.info(
        "Venda calculada: %d itens, %d com ST, total=%s",
        aggregate.item_count,
        aggregate.st_item_count,
        aggregate.final_value,
    )
    return ComputedSale(
        items=items,
        results=results,
        aggregate=aggregate,
        taxes_suppressed=suppressed,
    )
