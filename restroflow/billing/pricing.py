"""Per-table pricing and plan tiers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from restroflow.core.config import Config
from restroflow.core.enums import PlanName

CENT = Decimal("0.01")
UNIT = Decimal("1")


@dataclass(frozen=True)
class PricingConfig:
    """Deployment-specific pricing inputs."""

    price_per_table: Decimal = Decimal("50")
    min_tables: int = 1
    max_tables: int = 1000
    annual_discount: Decimal = Decimal("0.9")
    basic_max_tables: int = 10
    pro_max_tables: int = 50

    @classmethod
    def from_settings(cls, settings: Config) -> "PricingConfig":
        return cls(
            price_per_table=settings.PRICE_PER_TABLE,
            min_tables=settings.MIN_TABLES,
            max_tables=settings.MAX_TABLES,
            annual_discount=settings.ANNUAL_DISCOUNT,
            basic_max_tables=settings.BASIC_MAX_TABLES,
            pro_max_tables=settings.PRO_MAX_TABLES,
        )


DEFAULT_PRICING = PricingConfig()


@dataclass(frozen=True)
class PriceQuote:
    total_tables: int
    price_per_table: Decimal
    monthly_price: Decimal
    annual_price: Decimal


def round_money(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_price(total_tables: int | None, pricing: PricingConfig = DEFAULT_PRICING) -> PriceQuote | None:
    """Quote monthly and annual prices for ``total_tables``.

    Returns ``None`` below the minimum table count; counts above the maximum
    are clamped, so 1000 and 5000 tables quote identically.
    """
    if not total_tables or total_tables < pricing.min_tables:
        return None

    tables = min(int(total_tables), pricing.max_tables)
    monthly_price = round_money(tables * pricing.price_per_table)
    annual_price = (monthly_price * 12 * pricing.annual_discount).quantize(UNIT, rounding=ROUND_HALF_UP)
    return PriceQuote(
        total_tables=tables,
        price_per_table=pricing.price_per_table,
        monthly_price=monthly_price,
        annual_price=round_money(annual_price),
    )


def get_plan_name(total_tables: int, pricing: PricingConfig = DEFAULT_PRICING) -> PlanName:
    if total_tables <= pricing.basic_max_tables:
        return PlanName.BASIC
    if total_tables <= pricing.pro_max_tables:
        return PlanName.PRO
    return PlanName.ENTERPRISE


class PricingCalculator:
    """Pricing bound to one injected configuration."""

    def __init__(self, pricing: PricingConfig = DEFAULT_PRICING) -> None:
        self.pricing = pricing

    def quote(self, total_tables: int | None) -> PriceQuote | None:
        return calculate_price(total_tables, self.pricing)

    def plan_for(self, total_tables: int) -> PlanName:
        return get_plan_name(total_tables, self.pricing)

    def monthly_price_for(self, units: int) -> Decimal:
        """Undiscounted, unclamped monthly price for ``units`` extra tables."""
        return round_money(max(int(units), 0) * self.pricing.price_per_table)
