from __future__ import annotations

from decimal import Decimal

import pytest

from impostos.models.sale_item import SaleLineItem
from impostos.services.calculator import compute_item_tax

ZERO = Decimal("0.00")


def _tax_fields(result):
    return (result.st_base, result.icms_st, result.icms_own, result.st_final, result.ipi)


class TestStCalculation:
    def test_mva_40(self, st_item):
        result = compute_item_tax(st_item)
        assert result.st_base == Decimal("1400.00")
        assert result.icms_st == Decimal("252.00")
        assert result.icms_own == Decimal("40.00")
        assert result.st_final == Decimal("212.00")
        assert result.ipi == ZERO
        assert result.final_value == Decimal("1212.00")
        assert result.st_applied is True

    def test_mva_83_63_with_ipi(self):
        item = SaleLineItem(
            net_value=Decimal("2500"),
            mva_percent=Decimal("83.63"),
            ipi_rate_percent=Decimal("10"),
        )
        result = compute_item_tax(item)
        assert result.st_base == Decimal("4590.75")
        assert result.icms_st == Decimal("826.34")
        assert result.icms_own == Decimal("100.00")
        assert result.st_final == Decimal("726.34")
        assert result.ipi == Decimal("250.00")
        assert result.final_value == Decimal("3476.34")

    @pytest.mark.parametrize(
        ("mva", "st_final"),
        [("30", "194.00"), ("50", "230.00"), ("70", "266.00"), ("100", "320.00")],
    )
    def test_different_mvas(self, mva, st_final):
        item = SaleLineItem(net_value=Decimal("1000"), mva_percent=Decimal(mva))
        assert compute_item_tax(item).st_final == Decimal(st_final)

    def test_negative_st_final_not_clamped(self):
        item = SaleLineItem(
            net_value=Decimal("100"),
            mva_percent=Decimal("1"),
            st_internal_rate_percent=Decimal("1"),
            icms_own_rate_percent=Decimal("4"),
        )
        result = compute_item_tax(item)
        assert result.st_base == Decimal("101.00")
        assert result.icms_st == Decimal("1.01")
        assert result.icms_own == Decimal("4.00")
        assert result.st_final == Decimal("-2.99")
        assert result.final_value == Decimal("97.01")

    def test_intermediates_rounded(self):
        item = SaleLineItem(net_value=Decimal("33.33"), mva_percent=Decimal("33.33"))
        result = compute_item_tax(item)
        for value in _tax_fields(result):
            assert value.as_tuple().exponent == -2


class TestNoStBranch:
    def test_ipi_only(self, ipi_only_item):
        result = compute_item_tax(ipi_only_item)
        assert _tax_fields(result)[:4] == (ZERO, ZERO, ZERO, ZERO)
        assert result.ipi == Decimal("40.00")
        assert result.final_value == Decimal("840.00")
        assert result.st_applied is False

    def test_ipi_computed_without_st(self):
        item = SaleLineItem(net_value=Decimal("1000"), ipi_rate_percent=Decimal("10"))
        result = compute_item_tax(item)
        assert result.st_final == ZERO
        assert result.final_value == Decimal("1100.00")

    @pytest.mark.parametrize("net", ["0", "0.01", "123.45", "999999.99"])
    def test_no_taxes_final_equals_net(self, net):
        item = SaleLineItem(net_value=Decimal(net))
        assert compute_item_tax(item).final_value == Decimal(net)


class TestFreightAndExpenses:
    def test_freight_widens_st_base(self):
        item = SaleLineItem(
            net_value=Decimal("1000"),
            mva_percent=Decimal("40"),
            freight=Decimal("100"),
        )
        result = compute_item_tax(item)
        assert result.st_base == Decimal("1540.00")
        assert result.icms_st == Decimal("277.20")
        assert result.icms_own == Decimal("44.00")
        assert result.st_final == Decimal("233.20")
        assert result.final_value == Decimal("1233.20")

    def test_other_expenses_add_to_freight(self):
        item = SaleLineItem(
            net_value=Decimal("1000"),
            mva_percent=Decimal("40"),
            freight=Decimal("60"),
            other_expenses=Decimal("40"),
        )
        assert compute_item_tax(item).st_base == Decimal("1540.00")

    def test_freight_ignored_without_st(self):
        item = SaleLineItem(net_value=Decimal("800"), ipi_rate_percent="5", freight="50")
        result = compute_item_tax(item)
        assert result.final_value == Decimal("840.00")
        assert result.st_base == ZERO


class TestInformationalIcms:
    def test_reported_but_not_in_total(self):
        item = SaleLineItem(
            net_value=Decimal("1000"),
            mva_percent=Decimal("40"),
            icms_rate_percent=Decimal("12"),
        )
        result = compute_item_tax(item)
        assert result.icms_value == Decimal("120.00")
        assert result.final_value == Decimal("1212.00")

    def test_zero_rate_by_default(self, st_item):
        assert compute_item_tax(st_item).icms_value == ZERO

    def test_zero_when_suppressed(self):
        item = SaleLineItem(net_value="1000", icms_rate_percent="12", taxes_suppressed=True)
        assert compute_item_tax(item).icms_value == ZERO


class TestSuppression:
    def test_sem_impostos(self):
        item = SaleLineItem(
            net_value=Decimal("500"),
            mva_percent=Decimal("83.63"),
            ipi_rate_percent=Decimal("10"),
            taxes_suppressed=True,
        )
        result = compute_item_tax(item)
        assert _tax_fields(result) == (ZERO, ZERO, ZERO, ZERO, ZERO)
        assert result.final_value == Decimal("500.00")
        assert result.st_applied is False

    @pytest.mark.parametrize("net", ["0", "1", "1234.56", "1000000"])
    @pytest.mark.parametrize("mva", ["0", "40", "250"])
    @pytest.mark.parametrize("ipi", ["0", "15"])
    def test_any_input_suppressed(self, net, mva, ipi):
        item = SaleLineItem(
            net_value=Decimal(net),
            mva_percent=Decimal(mva),
            ipi_rate_percent=Decimal(ipi),
            icms_own_rate_percent=Decimal("12"),
            taxes_suppressed=True,
        )
        result = compute_item_tax(item)
        assert all(v == 0 for v in _tax_fields(result))
        assert result.final_value == Decimal(net)

    def test_sem_ipi_only(self):
        item = SaleLineItem(
            net_value=Decimal("200"),
            mva_percent=Decimal("83.63"),
            ipi_rate_percent=Decimal("10"),
            ipi_suppressed=True,
        )
        result = compute_item_tax(item)
        assert result.ipi == ZERO
        assert result.st_final > 0

    def test_sem_st_only(self):
        item = SaleLineItem(
            net_value=Decimal("200"),
            mva_percent=Decimal("83.63"),
            ipi_rate_percent=Decimal("10"),
            st_suppressed=True,
        )
        result = compute_item_tax(item)
        assert result.ipi == Decimal("20.00")
        assert result.st_base == ZERO
        assert result.st_final == ZERO
        assert result.st_applied is False

    def test_sem_ipi_and_sem_st(self):
        item = SaleLineItem(
            net_value=Decimal("200"),
            mva_percent=Decimal("83.63"),
            ipi_rate_percent=Decimal("10"),
            ipi_suppressed=True,
            st_suppressed=True,
        )
        assert compute_item_tax(item).final_value == Decimal("200.00")


class TestInvariants:
    @pytest.mark.parametrize(
        ("net", "mva", "ipi"),
        [
            ("1000", "40", "0"),
            ("33.33", "33.33", "3.33"),
            ("0.07", "71.11", "9.99"),
            ("12345.67", "83.63", "10"),
        ],
    )
    def test_final_is_sum_of_parts(self, net, mva, ipi):
        item = SaleLineItem(
            net_value=Decimal(net), mva_percent=Decimal(mva), ipi_rate_percent=Decimal(ipi)
        )
        r = compute_item_tax(item)
        assert r.final_value == r.net_value + r.st_final + r.ipi

    def test_idempotent(self, st_item):
        first = compute_item_tax(st_item)
        second = compute_item_tax(st_item)
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_equal_inputs_equal_outputs(self):
        a = SaleLineItem(net_value="100.10", mva_percent="40")
        b = SaleLineItem(net_value=Decimal("100.10"), mva_percent=Decimal("40"))
        assert compute_item_tax(a) == compute_item_tax(b)
