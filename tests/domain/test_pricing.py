"""
Tests for the pure pricing functions.

Markup, per-issue-unit splitting, the never-decrease selling price rule,
and the profit and margin figures a purchase writes.
"""

from decimal import Decimal

import pytest

from pharmacy_kernel.domain.pricing import (
    PricingPolicy,
    line_total,
    margin_percentage,
    markup_price,
    next_selling_price,
    per_issue_unit,
    price_purchase,
    profit,
)


@pytest.fixture
def policy() -> PricingPolicy:
    return PricingPolicy()


class TestPricingPolicy:
    """Validation and rounding of the policy object."""

    def test_defaults(self, policy):
        assert policy.markup_rate == Decimal("0.40")
        assert policy.money_places == 4
        assert policy.quantum == Decimal("0.0001")

    def test_negative_markup_rejected(self):
        with pytest.raises(ValueError, match="markup_rate"):
            PricingPolicy(markup_rate=Decimal("-0.01"))

    def test_negative_places_rejected(self):
        with pytest.raises(ValueError, match="money_places"):
            PricingPolicy(money_places=-1)

    def test_quantize_rounds_half_up(self):
        policy = PricingPolicy(money_places=2)
        assert policy.quantize(Decimal("1.005")) == Decimal("1.01")
        assert policy.quantize(Decimal("1.004")) == Decimal("1.00")

    def test_zero_markup_allowed(self):
        policy = PricingPolicy(markup_rate=Decimal("0"))
        assert markup_price(Decimal("10"), policy) == Decimal("10")


class TestMarkupAndSplitting:

    def test_markup_adds_forty_percent(self, policy):
        assert markup_price(Decimal("2000"), policy) == Decimal("2800")

    def test_markup_is_quantized(self, policy):
        assert markup_price(Decimal("0.33335"), policy) == Decimal("0.4667")

    def test_per_issue_unit_even_split(self, policy):
        assert per_issue_unit(Decimal("2800"), 10, policy) == Decimal("280")

    def test_per_issue_unit_rounds(self, policy):
        assert per_issue_unit(Decimal("100"), 3, policy) == Decimal("33.3333")
        assert per_issue_unit(Decimal("200"), 3, policy) == Decimal("66.6667")


class TestNextSellingPrice:
    """Selling prices never decrease."""

    def test_no_current_price_adopts_candidate(self):
        assert next_selling_price(None, Decimal("5")) == Decimal("5")

    def test_higher_candidate_adopted(self):
        assert next_selling_price(Decimal("5"), Decimal("6")) == Decimal("6")

    def test_lower_candidate_ignored(self):
        assert next_selling_price(Decimal("5"), Decimal("4")) == Decimal("5")

    def test_equal_candidate_keeps_current(self):
        assert next_selling_price(Decimal("5"), Decimal("5")) == Decimal("5")


class TestProfitAndMargin:

    def test_profit_is_difference(self):
        assert profit(Decimal("2800"), Decimal("2000")) == Decimal("800")

    def test_profit_may_be_negative(self):
        assert profit(Decimal("10"), Decimal("12")) == Decimal("-2")

    def test_margin_percentage(self, policy):
        assert margin_percentage(Decimal("2800"), Decimal("2000"), policy) == Decimal("40")

    def test_margin_against_zero_purchase_is_zero(self, policy):
        assert margin_percentage(Decimal("10"), Decimal("0"), policy) == Decimal("0")


class TestPricePurchase:
    """Every figure derived from one purchase."""

    def test_first_purchase(self, policy):
        breakdown = price_purchase(Decimal("2000"), 10, Decimal("0"), Decimal("0"), policy)

        assert breakdown.pack_size_purchase_price == Decimal("2000")
        assert breakdown.issue_unit_purchase_price == Decimal("200")
        assert breakdown.pack_size_selling_price == Decimal("2800")
        assert breakdown.issue_unit_selling_price == Decimal("280")
        assert breakdown.profit_per_pack_size == Decimal("800")
        assert breakdown.profit_per_issue_unit == Decimal("80")
        assert breakdown.profit_margin_percentage_per_pack_size == Decimal("40")
        assert breakdown.profit_margin_percentage_per_issue_unit == Decimal("40")

    def test_cheaper_purchase_keeps_selling_prices(self, policy):
        breakdown = price_purchase(
            Decimal("1000"), 10, Decimal("2800"), Decimal("280"), policy
        )

        assert breakdown.pack_size_purchase_price == Decimal("1000")
        assert breakdown.issue_unit_purchase_price == Decimal("100")
        assert breakdown.pack_size_selling_price == Decimal("2800")
        assert breakdown.issue_unit_selling_price == Decimal("280")
        assert breakdown.profit_per_pack_size == Decimal("1800")
        assert breakdown.profit_margin_percentage_per_pack_size == Decimal("180")

    def test_issue_candidate_derives_from_adopted_pack_price(self, policy):
        """A kept pack price with a smaller factor raises the issue-unit price."""
        breakdown = price_purchase(
            Decimal("1000"), 5, Decimal("3000"), Decimal("250"), policy
        )

        assert breakdown.pack_size_selling_price == Decimal("3000")
        assert breakdown.issue_unit_selling_price == Decimal("600")
        assert breakdown.profit_per_issue_unit == Decimal("400")

    def test_issue_price_checked_independently(self, policy):
        breakdown = price_purchase(
            Decimal("5000"), 10, Decimal("2800"), Decimal("900"), policy
        )

        assert breakdown.pack_size_selling_price == Decimal("7000")
        assert breakdown.issue_unit_selling_price == Decimal("900")

    def test_no_current_prices(self, policy):
        breakdown = price_purchase(Decimal("10"), 4, None, None, policy)

        assert breakdown.pack_size_selling_price == Decimal("14")
        assert breakdown.issue_unit_selling_price == Decimal("3.5")
        assert breakdown.issue_unit_purchase_price == Decimal("2.5")


class TestLineTotal:

    def test_line_total(self, policy):
        assert line_total(Decimal("15"), 5, policy) == Decimal("75")

    def test_line_total_quantized(self, policy):
        assert line_total(Decimal("0.33333"), 3, policy) == Decimal("1.0000")
