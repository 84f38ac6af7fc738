"""Unit tests for integer-cent checkout arithmetic."""

from __future__ import annotations

from decimal import Decimal

import pytest

from storefront.catalog.constants import PromotionType
from storefront.orders.pricing import (
    PriceBreakdown,
    from_cents,
    line_total_cents,
    promotion_discount_cents,
    round_half_up,
    to_cents,
)

pytestmark = pytest.mark.unit


class TestCentConversion:
    @pytest.mark.parametrize(
        "amount, cents",
        [
            (Decimal("19.99"), 1999),
            (Decimal("0.005"), 1),
            (Decimal("0.004"), 0),
            ("1500.00", 150000),
            (3, 300),
        ],
    )
    def test_to_cents_rounds_half_up(self, amount, cents):
        assert to_cents(amount) == cents

    def test_round_half_up_on_exact_half(self):
        assert round_half_up(Decimal("2.5")) == 3
        assert round_half_up(Decimal("3.5")) == 4

    def test_from_cents_has_two_places(self):
        assert from_cents(5997) == Decimal("59.97")
        assert str(from_cents(380000)) == "3800.00"


class TestLineTotals:
    def test_repeated_price_has_no_float_drift(self):
        assert from_cents(line_total_cents(Decimal("19.99"), 3)) == Decimal("59.97")

    def test_two_line_cart_totals_exactly(self):
        subtotal = line_total_cents(Decimal("1500.00"), 2) + line_total_cents(
            Decimal("800.00"), 1
        )
        breakdown = PriceBreakdown(subtotal=subtotal)
        assert from_cents(breakdown.total) == Decimal("3800.00")

    def test_line_discount_is_subtracted(self):
        assert line_total_cents(Decimal("10.00"), 2, Decimal("2.50")) == 1750


class TestPromotionDiscount:
    def test_percentage_applies_to_subtotal(self):
        assert promotion_discount_cents(PromotionType.PERCENTAGE, "10", 380000, 50000) == (
            38000,
            0,
        )

    def test_percentage_rounds_half_up(self):
        # 15% of 0.33 = 0.0495 -> 5 cents
        assert promotion_discount_cents(PromotionType.PERCENTAGE, "15", 33, 0) == (5, 0)

    def test_fixed_amount_is_capped_at_subtotal(self):
        assert promotion_discount_cents(
            PromotionType.FIXED_AMOUNT, Decimal("5000.00"), 300000, 50000
        ) == (300000, 0)

    def test_free_delivery_waives_the_fee_only(self):
        assert promotion_discount_cents(
            PromotionType.FREE_DELIVERY, Decimal("0"), 300000, 50000
        ) == (0, 50000)

    def test_free_delivery_on_pickup_gives_nothing(self):
        assert promotion_discount_cents(PromotionType.FREE_DELIVERY, 0, 300000, 0) == (0, 0)


class TestPriceBreakdown:
    def test_total_combines_all_components(self):
        breakdown = PriceBreakdown(
            subtotal=300000, delivery_fee=50000, discount=30000, delivery_discount=50000
        )
        assert breakdown.total == 270000
        assert breakdown.as_amounts()["total_amount"] == Decimal("2700.00")

    def test_log_form_keeps_exact_strings(self):
        breakdown = PriceBreakdown(subtotal=5997, delivery_fee=500)
        assert breakdown.as_log() == {
            "subtotal": "59.97",
            "delivery_fee": "5.00",
            "discount_amount": "0.00",
            "delivery_discount": "0.00",
            "total_amount": "64.97",
        }
