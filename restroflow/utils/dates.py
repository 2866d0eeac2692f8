"""Date helpers shared by pricing, settlement and scheduling."""

from __future__ import annotations

import calendar
from datetime import datetime, time, timezone


def utcnow_naive() -> datetime:
    """Return UTC now as a naive datetime, matching stored columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def days_in_month(moment: datetime) -> int:
    return calendar.monthrange(moment.year, moment.month)[1]


def add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length.

    Jan 31 + 1 month is Feb 28 (or 29), never early March.
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def day_bounds(moment: datetime) -> tuple[datetime, datetime]:
    """Return the first and last instant of ``moment``'s calendar day."""
    day = moment.date()
    return datetime.combine(day, time.min), datetime.combine(day, time.max)
