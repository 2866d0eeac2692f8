from __future__ import annotations

from decimal import Decimal

import pytest

from restroflow.billing.pricing import PricingCalculator, PricingConfig, calculate_price, get_plan_name
from restroflow.core.enums import PlanName


@pytest.mark.parametrize("tables", [None, 0, -3])
def test_calculate_price_has_no_price_below_minimum(tables):
    assert calculate_price(tables) is None


def test_single_table_costs_price_per_table():
    quote = calculate_price(1)

    assert quote.monthly_price == Decimal("50.00")
    assert quote.price_per_table == Decimal("50")
    assert quote.annual_price == Decimal("540.00")


def test_ten_tables_monthly_and_annual():
    quote = calculate_price(10)

    assert quote.total_tables == 10
    assert quote.monthly_price == Decimal("500.00")
    assert quote.annual_price == Decimal("5400.00")


def test_counts_above_maximum_are_clamped():
    assert calculate_price(1000) == calculate_price(5000)
    assert calculate_price(5000).total_tables == 1000
    assert calculate_price(5000).monthly_price == Decimal("50000.00")


def test_annual_price_rounds_to_whole_units():
    pricing = PricingConfig(price_per_table=Decimal("33"))

    quote = calculate_price(1, pricing)

    # 33 * 12 * 0.9 = 356.4
    assert quote.annual_price == Decimal("356.00")


@pytest.mark.parametrize(
    ("tables", "plan"),
    [
        (1, PlanName.BASIC),
        (10, PlanName.BASIC),
        (11, PlanName.PRO),
        (50, PlanName.PRO),
        (51, PlanName.ENTERPRISE),
        (1000, PlanName.ENTERPRISE),
    ],
)
def test_plan_boundaries(tables, plan):
    assert get_plan_name(tables) is plan


def test_plan_name_never_decreases_with_more_tables():
    order = [PlanName.BASIC, PlanName.PRO, PlanName.ENTERPRISE]
    ranks = [order.index(get_plan_name(count)) for count in range(1, 120)]
    assert ranks == sorted(ranks)


def test_injected_pricing_changes_quote_and_tiers():
    pricing = PricingConfig(price_per_table=Decimal("75"), basic_max_tables=5, pro_max_tables=20)
    calculator = PricingCalculator(pricing)

    assert calculator.quote(4).monthly_price == Decimal("300.00")
    assert calculator.plan_for(6) is PlanName.PRO
    assert calculator.plan_for(21) is PlanName.ENTERPRISE


def test_monthly_price_for_extra_units_is_not_clamped():
    calculator = PricingCalculator()

    assert calculator.monthly_price_for(2) == Decimal("100.00")
    assert calculator.monthly_price_for(0) == Decimal("0.00")
