"""
Tests for the apportionment engine: per-member shares of a receipt line with
service charge and GST, reconciled so the shares add up to the line's total.
"""
from decimal import Decimal

import pytest

from hearth.domain.apportionment import (
    ItemLine,
    MemberShare,
    aggregate_by_member,
    apportion,
    item_grand_total,
    split_evenly,
)
from hearth.domain.errors import ValidationError
from hearth.utils.money import quantize_money

D = Decimal


def shares(*pairs):
    return [MemberShare(member_id, D(str(qty))) for member_id, qty in pairs]


def totals(allocations):
    return [a.total_amount for a in allocations]


class TestWorkedExamples:
    def test_even_split_with_charges_needs_no_residual(self):
        """2 x 20.00, 10% service charge, 8% tax: 11.88 each."""
        result = apportion(ItemLine(quantity=2, total_price=D("20.00")),
                           shares((1, 1), (2, 1)), D("0.10"), D("0.08"))

        for allocation in result:
            assert allocation.base_amount == D("10.00")
            assert allocation.service_charge_amount == D("1.00")
            assert allocation.gst_amount == D("0.88")
            assert allocation.total_amount == D("11.88")
        assert sum(totals(result)) == D("23.76")

    def test_thirds_residual_goes_to_first_of_equal_quantities(self):
        """3 x 10.00 in thirds: 3.33 x 3 = 9.99, the missing cent lands on the first."""
        result = apportion(ItemLine(quantity=3, total_price=D("10.00")),
                           shares((1, 1), (2, 1), (3, 1)))

        assert totals(result) == [D("3.34"), D("3.33"), D("3.33")]
        assert result[0].base_amount == D("3.34")

    def test_tax_is_charged_on_service_charge_too(self):
        result = apportion(ItemLine(quantity=1, total_price=D("100.00")),
                           shares((1, 1)), D("0.10"), D("0.09"))

        assert result[0].service_charge_amount == D("10.00")
        assert result[0].gst_amount == D("9.90")
        assert result[0].total_amount == D("119.90")


class TestResidual:
    def test_residual_goes_to_largest_quantity(self):
        """10.00 over 7 units as 1/3/3: 1.43 + 4.29 + 4.29 = 10.01, one cent back."""
        result = apportion(ItemLine(quantity=7, total_price=D("10.00")),
                           shares((1, 1), (2, 3), (3, 3)))

        assert totals(result) == [D("1.43"), D("4.28"), D("4.29")]
        assert sum(totals(result)) == D("10.00")

    def test_residual_with_charges_keeps_row_identity(self):
        result = apportion(ItemLine(quantity=3, total_price=D("10.00")),
                           shares((1, 1), (2, 1), (3, 1)), D("0.10"), D("0.09"))

        assert sum(totals(result)) == D("11.99")
        assert result[0].base_amount == D("3.35")
        assert result[0].total_amount == D("4.01")
        for allocation in result:
            assert allocation.total_amount == (
                allocation.base_amount + allocation.service_charge_amount + allocation.gst_amount
            )

    def test_half_even_rounding_of_base(self):
        """2.345 rounds to 2.34 (half-even); the reconciled cent goes to the first share."""
        result = apportion(ItemLine(quantity=2, total_price=D("4.69")), shares((1, 1), (2, 1)))

        assert totals(result) == [D("2.35"), D("2.34")]

    @pytest.mark.parametrize("quantity,price,qtys,sc,tax", [
        (3, "10.00", (1, 1, 1), "0", "0"),
        (3, "10.00", (1, 1, 1), "0.10", "0.09"),
        (7, "19.99", (2, 2, 3), "0.10", "0.09"),
        (4, "0.01", (1, 1, 1, 1), "0.10", "0.09"),
        (6, "123.45", (1, 5), "0.10", "0.07"),
        (5, "0.00", (2, 3), "0.10", "0.09"),
        (6, "0.09", (1, 1, 1, 1, 1, 1), "0", "0"),
        (9, "0.09", (1,) * 9, "0.10", "0.09"),
    ])
    def test_sum_of_totals_equals_item_grand_total(self, quantity, price, qtys, sc, tax):
        item = ItemLine(quantity=quantity, total_price=D(price))
        result = apportion(item, shares(*enumerate(qtys, start=1)), D(sc), D(tax))

        expected = quantize_money(D(price) * (1 + D(sc)) * (1 + D(tax)))
        assert sum(totals(result)) == expected
        assert all(a.total_amount >= 0 and a.base_amount >= 0 for a in result)

    def test_shortfall_spills_over_instead_of_going_negative(self):
        """Six shares of 0.015 each round up to 0.02: 0.12 against 0.09, three cents back."""
        result = apportion(ItemLine(quantity=6, total_price=D("0.09")),
                           shares(*[(member_id, 1) for member_id in range(1, 7)]))

        assert totals(result) == [D("0.00"), D("0.01"), D("0.02"), D("0.02"), D("0.02"), D("0.02")]
        assert sum(totals(result)) == D("0.09")

    def test_partial_assignment_totals_only_assigned_part(self):
        item = ItemLine(quantity=3, total_price=D("10.00"))
        result = apportion(item, shares((1, 1)))

        assert totals(result) == [D("3.33")]
        assert item_grand_total(item, D("1"), 0, 0) == D("3.33")


class TestQuantities:
    def test_exact_quantity_is_accepted(self):
        apportion(ItemLine(quantity=2, total_price=D("5.00")), shares((1, 2)))

    def test_within_epsilon_is_accepted(self):
        apportion(ItemLine(quantity=2, total_price=D("5.00")), shares((1, "2.0000001")))

    def test_over_quantity_is_rejected(self):
        with pytest.raises(ValidationError):
            apportion(ItemLine(quantity=2, total_price=D("5.00")), shares((1, 1), (2, "1.5")))

    def test_split_evenly_counts_as_whole_item(self):
        """1/3 + 1/3 + 1/3 of one unit is a full assignment despite the repeating decimal."""
        item = ItemLine(quantity=1, total_price=D("10.00"))
        result = apportion(item, split_evenly([1, 2, 3], 1))

        assert sum(totals(result)) == D("10.00")

    def test_fractional_quantities(self):
        result = apportion(ItemLine(quantity=1, total_price=D("9.00")), shares((1, "0.5"), (2, "0.5")))
        assert totals(result) == [D("4.50"), D("4.50")]


class TestValidation:
    @pytest.mark.parametrize("item,member_shares,sc,tax", [
        (ItemLine(quantity=1, total_price=D("1.00")), [], 0, 0),
        (ItemLine(quantity=1, total_price=D("1.00")), shares((1, 0)), 0, 0),
        (ItemLine(quantity=1, total_price=D("1.00")), shares((1, "-1")), 0, 0),
        (ItemLine(quantity=2, total_price=D("1.00")), shares((1, 1), (1, 1)), 0, 0),
        (ItemLine(quantity=1, total_price=D("1.00")), shares((1, 1)), D("-0.1"), 0),
        (ItemLine(quantity=1, total_price=D("1.00")), shares((1, 1)), 0, D("-0.1")),
        (ItemLine(quantity=1, total_price=D("-1.00")), shares((1, 1)), 0, 0),
        (ItemLine(quantity=0, total_price=D("1.00")), shares((1, 1)), 0, 0),
    ], ids=["empty", "zero", "negative", "duplicate-member", "negative-sc",
            "negative-tax", "negative-price", "zero-quantity"])
    def test_invalid_input_raises(self, item, member_shares, sc, tax):
        with pytest.raises(ValidationError):
            apportion(item, member_shares, sc, tax)

    def test_validation_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            apportion(ItemLine(quantity=1, total_price=D("1.00")), [])

    def test_split_evenly_needs_members(self):
        with pytest.raises(ValidationError):
            split_evenly([], 1)


def test_aggregate_by_member_sums_across_items():
    pizza = apportion(ItemLine(quantity=2, total_price=D("20.00")), shares((1, 1), (2, 1)))
    soda = apportion(ItemLine(quantity=3, total_price=D("10.00")), shares((2, 1), (3, 2)))

    result = aggregate_by_member([(10, pizza), (11, soda)])

    assert list(result) == [1, 2, 3]
    assert result[1].total_amount == D("10.00")
    assert result[2].total_amount == D("13.33")
    assert result[2].item_ids == [10, 11]
    assert result[3].total_amount == D("6.67")
