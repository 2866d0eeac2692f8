"""Partial-period charges for tables added mid-subscription."""

from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal

from restroflow.billing.pricing import DEFAULT_PRICING, PricingCalculator, PricingConfig, round_money
from restroflow.utils.dates import days_in_month

SECONDS_PER_DAY = 86400
MINIMUM_CHARGE = Decimal("1.00")


def remaining_days(now: datetime, period_end: datetime) -> int:
    """Whole days left in the period, rounding any partial day up."""
    return math.ceil((period_end - now).total_seconds() / SECONDS_PER_DAY)


def calculate_prorated_amount(
    extra_units: int,
    now: datetime,
    period_end: datetime,
    pricing: PricingConfig = DEFAULT_PRICING,
) -> Decimal:
    """Charge for ``extra_units`` tables over the rest of the period.

    An elapsed period (clock skew, late invoice) or a window longer than the
    month containing ``period_end`` is billed at the full monthly price, so
    the proration factor never exceeds 1. The result is never below 1.00.
    """
    monthly_price = PricingCalculator(pricing).monthly_price_for(extra_units)

    days_left = remaining_days(now, period_end)
    if days_left <= 0:
        return monthly_price

    month_length = days_in_month(period_end)
    if days_left > month_length:
        return monthly_price

    prorated = round_money(monthly_price * days_left / month_length)
    return max(MINIMUM_CHARGE, prorated)
