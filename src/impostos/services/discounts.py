from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from impostos.models.sale_item import GrossItem, SaleLineItem
from impostos.services.exceptions import ValidationError
from impostos.services.rounding import ZERO, round_money
from impostos.utils.validators import validate_non_negative


def _rebalance(shares: list[Decimal], caps: list[Decimal]) -> None:
    """Keep every share within 0..cap, moving the excess to earlier items.

    Only the last share can fall outside its bounds (it absorbs the rounding
    remainder); the correction walks backwards from the item before it.
    """
    last = len(shares) - 1
    if shares[last] < 0:
        deficit = -shares[last]
        shares[last] = ZERO
        for index in range(last - 1, -1, -1):
            if deficit == 0:
                break
            taken = min(shares[index], deficit)
            shares[index] -= taken
            deficit -= taken
    elif shares[last] > caps[last]:
        excess = shares[last] - caps[last]
        shares[last] = caps[last]
        for index in range(last - 1, -1, -1):
            if excess == 0:
                break
            added = min(caps[index] - shares[index], excess)
            shares[index] += added
            excess -= added


def allocate_discount(gross_values: Sequence[Decimal], total_discount: object) -> list[Decimal]:
    """Split a sale-wide discount across items proportionally to gross value.

    Each share is rounded to cents; the last item takes the remainder so the
    shares always add up to the discount exactly. No share is ever negative
    or larger than its item's gross value.
    """
    discount = round_money(validate_non_negative(total_discount, "desconto"))
    gross = [round_money(g) for g in gross_values]
    total_gross = sum(gross, ZERO)

    if discount == 0 or total_gross == 0:
        return [ZERO for _ in gross]
    if discount > total_gross:
        raise ValidationError("desconto", f"maior que o total bruto da venda: {discount}")

    shares: list[Decimal] = []
    allocated = ZERO
    last = len(gross) - 1
    for index, value in enumerate(gross):
        if index == last:
            shares.append(discount - allocated)
        else:
            share = round_money(discount * value / total_gross)
            shares.append(share)
            allocated += share
    _rebalance(shares, gross)
    return shares


def net_items(items: Sequence[GrossItem], total_discount: object = "0") -> list[SaleLineItem]:
    """Turn gross-priced items into SaleLineItems with the discount applied.

    Each item keeps its gross value and discount share for reporting.
    """
    gross = [round_money(item.gross_value) for item in items]
    shares = allocate_discount(gross, total_discount)
    return [
        item.to_line_item(g - s, discount_share=s)
        for item, g, s in zip(items, gross, shares, strict=True)
    ]
