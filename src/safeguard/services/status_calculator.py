"""
Certification status rules for insulating gloves.

Gloves are recertified every six months. An asset's status is derived from
how many days remain until its next certification date:

- fewer than 0 days: expired
- 0 to 30 days (inclusive): near-due
- more than 30 days: active

Failed and in-testing are set only by explicit transitions and suspend the
date-based rules until a new certification is recorded.
"""

import calendar
from datetime import date

from ..models.assets import STICKY_STATUSES
from ..schemas.asset import AssetStatus

CERTIFICATION_INTERVAL_MONTHS = 6
NEAR_DUE_WINDOW_DAYS = 30


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping to the last day of the target month"""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def calculate_next_certification_date(last_certification_date: date) -> date:
    return add_months(last_certification_date, CERTIFICATION_INTERVAL_MONTHS)


def days_until_due(next_certification_date: date, today: date) -> int:
    return (next_certification_date - today).days


def compute_status(next_certification_date: date, today: date) -> AssetStatus:
    """
    Map a next certification date to an in-cycle status.

    Never returns failed or in-testing.
    """
    days = days_until_due(next_certification_date, today)
    if days < 0:
        return AssetStatus.EXPIRED
    if days <= NEAR_DUE_WINDOW_DAYS:
        return AssetStatus.NEAR_DUE
    return AssetStatus.ACTIVE


def effective_status(stored_status: str, next_certification_date: date, today: date) -> AssetStatus:
    """Sticky statuses win; everything else is re-evaluated against today"""
    if stored_status in STICKY_STATUSES:
        return AssetStatus(stored_status)
    return compute_status(next_certification_date, today)
