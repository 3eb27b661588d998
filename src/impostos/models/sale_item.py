from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from impostos.config import RateDefaults
from impostos.utils.validators import (
    validate_flag,
    validate_non_negative,
    validate_percent,
    validate_quantity,
)

_RATE_FIELDS = (
    "mva_percent",
    "icms_own_rate_percent",
    "st_internal_rate_percent",
    "ipi_rate_percent",
    "icms_rate_percent",
)
_AMOUNT_FIELDS = ("freight", "other_expenses", "discount_share")
_FLAG_FIELDS = ("taxes_suppressed", "ipi_suppressed", "st_suppressed")


def pick_field(d: dict, *keys: str, default=None):
    """Return the first key present in ``d`` (English or Portuguese spelling)."""
    for key in keys:
        if key in d and d[key] is not None:
            return d[key]
    return default


@dataclass(frozen=True)
class SaleLineItem:
    """One sale line item, already net of discounts (valor líquido).

    Construction validates every numeric field and flag, so a SaleLineItem in
    hand always has non-negative Decimal inputs and real bools.

    ``freight`` and ``other_expenses`` only widen the ICMS base of the ST
    calculation; they are billed elsewhere and stay out of the item value.
    ``icms_rate_percent`` drives the informational ICMS, which is shown but
    never added to the total. ``gross_value`` and ``discount_share`` are set
    for gross-priced items once the sale discount has been allocated.
    """

    net_value: Decimal
    mva_percent: Decimal = Decimal("0")
    icms_own_rate_percent: Decimal = Decimal("4")
    st_internal_rate_percent: Decimal = Decimal("18")
    ipi_rate_percent: Decimal = Decimal("0")
    icms_rate_percent: Decimal = Decimal("0")
    freight: Decimal = Decimal("0")  # frete
    other_expenses: Decimal = Decimal("0")  # outras_despesas
    taxes_suppressed: bool = False  # sem_impostos
    ipi_suppressed: bool = False  # sem_ipi
    st_suppressed: bool = False  # sem_st
    product_id: str | None = None
    description: str | None = None
    gross_value: Decimal | None = None  # subtotal_bruto
    discount_share: Decimal = Decimal("0")  # desconto_proporcional

    def __post_init__(self) -> None:
        object.__setattr__(self, "net_value", validate_non_negative(self.net_value, "net_value"))
        for name in _RATE_FIELDS:
            object.__setattr__(self, name, validate_percent(getattr(self, name), name))
        for name in _AMOUNT_FIELDS:
            object.__setattr__(self, name, validate_non_negative(getattr(self, name), name))
        for name in _FLAG_FIELDS:
            object.__setattr__(self, name, validate_flag(getattr(self, name), name))
        if self.gross_value is not None:
            object.__setattr__(
                self, "gross_value", validate_non_negative(self.gross_value, "gross_value")
            )

    @property
    def gross_or_net(self) -> Decimal:
        """Value before the sale discount (the net value for net-priced items)."""
        return self.gross_value if self.gross_value is not None else self.net_value

    @classmethod
    def from_dict(cls, d: dict, defaults: RateDefaults | None = None) -> SaleLineItem:
        """Create a SaleLineItem from a YAML-loaded dict.

        Omitted rates fall back to ``defaults``, resolved here and nowhere else.
        """
        defaults = defaults or RateDefaults()
        product_id = pick_field(d, "product_id", "produto_id")
        return cls(
            net_value=pick_field(d, "net_value", "valor_liquido"),
            mva_percent=pick_field(d, "mva_percent", "mva", default="0"),
            icms_own_rate_percent=pick_field(
                d,
                "icms_own_rate_percent",
                "icms_proprio",
                default=defaults.icms_own_rate_percent,
            ),
            st_internal_rate_percent=pick_field(
                d,
                "st_internal_rate_percent",
                "aliquota_st_interna",
                default=defaults.st_internal_rate_percent,
            ),
            ipi_rate_percent=pick_field(
                d, "ipi_rate_percent", "ipi", default=defaults.ipi_rate_percent
            ),
            icms_rate_percent=pick_field(d, "icms_rate_percent", "icms_aliquota", default="0"),
            freight=pick_field(d, "freight", "frete", default="0"),
            other_expenses=pick_field(d, "other_expenses", "outras_despesas", default="0"),
            taxes_suppressed=validate_flag(
                pick_field(d, "taxes_suppressed", "sem_impostos"), "sem_impostos"
            ),
            ipi_suppressed=validate_flag(pick_field(d, "ipi_suppressed", "sem_ipi"), "sem_ipi"),
            st_suppressed=validate_flag(pick_field(d, "st_suppressed", "sem_st"), "sem_st"),
            product_id=str(product_id) if product_id is not None else None,
            description=pick_field(d, "description", "descricao", "produto_nome"),
        )

    def with_overrides(
        self,
        *,
        taxes_suppressed: bool = False,
        ipi_suppressed: bool = False,
        st_suppressed: bool = False,
    ) -> SaleLineItem:
        """Return a copy with the given suppression flags forced on.

        Flags already set on the item stay set.
        """
        return replace(
            self,
            taxes_suppressed=self.taxes_suppressed or taxes_suppressed,
            ipi_suppressed=self.ipi_suppressed or ipi_suppressed,
            st_suppressed=self.st_suppressed or st_suppressed,
        )


@dataclass(frozen=True)
class GrossItem:
    """A line item priced gross (unit price x quantity), before the sale discount.

    ``template`` carries the rates and flags; its net_value is replaced once
    the discount share is known.
    """

    unit_price: Decimal
    quantity: Decimal
    template: SaleLineItem

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit_price", validate_non_negative(self.unit_price, "unit_price"))
        object.__setattr__(self, "quantity", validate_quantity(self.quantity, "quantity"))

    @property
    def gross_value(self) -> Decimal:
        return self.unit_price * self.quantity

    def to_line_item(
        self, net_value: Decimal, discount_share: Decimal | None = None
    ) -> SaleLineItem:
        """Return the template priced at ``net_value``, keeping gross and discount."""
        if discount_share is None:
            return replace(self.template, net_value=net_value)
        return replace(
            self.template,
            net_value=net_value,
            gross_value=net_value + discount_share,
            discount_share=discount_share,
        )
