"""Subscription date arithmetic and the derived display status."""

from __future__ import annotations

import math
from datetime import datetime

from restroflow.core.enums import SubscriptionStatus
from restroflow.utils.dates import add_months


def renewal_end_date(current_end: datetime | None, months: int, now: datetime) -> datetime:
    """Renewals count from today once a subscription has lapsed."""
    anchor = now if current_end is None else max(current_end, now)
    return add_months(anchor, months)


def extension_end_date(current_end: datetime | None, months: int, now: datetime) -> datetime:
    """Extensions stack on the current end date, lapsed or not."""
    anchor = now if current_end is None else current_end
    return add_months(anchor, months)


def derive_subscription_status(
    is_active: bool,
    end_date: datetime | None,
    now: datetime,
    expiring_within_days: int = 7,
) -> SubscriptionStatus:
    """Display status; an inactive subscription always reads as cancelled."""
    if not is_active:
        return SubscriptionStatus.CANCELLED
    if end_date is None:
        return SubscriptionStatus.ACTIVE
    if end_date < now:
        return SubscriptionStatus.EXPIRED

    days_left = math.ceil((end_date - now).total_seconds() / 86400)
    if days_left > expiring_within_days:
        return SubscriptionStatus.ACTIVE
    if days_left > 0:
        return SubscriptionStatus.EXPIRING
    return SubscriptionStatus.EXPIRED
