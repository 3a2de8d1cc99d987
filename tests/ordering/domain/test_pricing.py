"""Tests for the totals engine."""

import pytest
from ordering.errors import InvariantViolation
from ordering.pricing import (
    Discount,
    DiscountType,
    Line,
    Totals,
    compute_totals,
    discount_amount_for,
    from_minor_units,
    to_minor_units,
)


class TestComputeTotals:
    def test_fixed_discount_with_tax_and_shipping(self):
        totals = compute_totals(
            [Line(quantity=2, unit_price=500)],
            Discount(value=100, type=DiscountType.FIXED),
            tax_rate_percent=18,
            shipping_cost=50,
        )

        assert totals.subtotal == 1000
        assert totals.discount_amount == 100
        assert totals.tax_amount == 162
        assert totals.total == 1112
        assert totals.item_count == 2

    def test_percentage_discount(self):
        totals = compute_totals(
            [Line(quantity=1, unit_price=200), Line(quantity=3, unit_price=100)],
            Discount(value=10, type=DiscountType.PERCENTAGE),
            tax_rate_percent=0,
        )

        assert totals.subtotal == 500
        assert totals.discount_amount == 50
        assert totals.total == 450

    def test_empty_items_with_shipping(self):
        totals = compute_totals([], tax_rate_percent=18, shipping_cost=40)

        assert totals.item_count == 0
        assert totals.subtotal == 0
        assert totals.tax_amount == 0
        assert totals.total == 40

    def test_tax_is_rounded_to_cents(self):
        totals = compute_totals([Line(quantity=1, unit_price=9.99)], tax_rate_percent=18)

        assert totals.tax_amount == 1.8
        assert totals.total == 11.79
        assert totals.is_balanced()

    def test_negative_shipping_is_an_invariant_violation(self):
        with pytest.raises(InvariantViolation):
            compute_totals([Line(quantity=1, unit_price=10)], shipping_cost=-5)


class TestDiscountClamp:
    def test_fixed_discount_larger_than_subtotal_is_capped(self):
        totals = compute_totals(
            [Line(quantity=1, unit_price=80)],
            Discount(value=100, type=DiscountType.FIXED),
            tax_rate_percent=18,
        )

        assert totals.discount_amount == 80
        assert totals.tax_amount == 0
        assert totals.total == 0

    def test_percentage_over_hundred_is_capped(self):
        assert discount_amount_for(200, Discount(value=150, type=DiscountType.PERCENTAGE)) == 200

    def test_zero_value_means_no_discount(self):
        assert discount_amount_for(200, Discount(value=0, type=DiscountType.PERCENTAGE)) == 0


class TestTotalsBalance:
    def test_unbalanced_totals_are_detected(self):
        totals = Totals(
            item_count=1,
            subtotal=100,
            discount_amount=0,
            tax_amount=18,
            shipping_cost=0,
            total=120,
        )
        assert not totals.is_balanced()


class TestMinorUnits:
    def test_rupees_to_paise(self):
        assert to_minor_units(1312.16) == 131216

    def test_paise_to_rupees(self):
        assert from_minor_units(131216) == 1312.16

    def test_fractional_paise_round(self):
        assert to_minor_units(19.999) == 2000
