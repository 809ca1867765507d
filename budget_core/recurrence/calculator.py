"""
Recurrence Calculator

Turns a billing cadence plus an optional anchor into the concrete
calendar dates an obligation falls on within one target month.

Per cadence:
- monthly:       one date, day_of_month (else anchor day, else 1st),
                 clamped to the month's last day
- weekly:        7-day stride from the anchor (no anchor: every Monday)
- bi_weekly:     14-day stride from the anchor (no anchor: 1st and 15th)
- semi_annually: every 6 calendar months from the anchor month, on the
                 anchor's day, clamped (no anchor: January and July 1st)

Anchor resolution for stride cadences: an anchor after the month is
walked back by whole strides to the first date of the series inside
the month; an anchor before the month is walked forward. An anchor inside the
month starts the series at the anchor itself.

Unrecognized cadences behave as monthly. That fallback is logged.
"""

from datetime import date, timedelta
from typing import Optional, Union

import structlog

from budget_core.models.occurrence import BillingPeriod
from budget_core.recurrence.calendar import (
    clamped_date,
    first_day,
    last_day,
    months_between,
    parse_date,
)


logger = structlog.get_logger(__name__)

STRIDE_DAYS = {
    BillingPeriod.WEEKLY: 7,
    BillingPeriod.BI_WEEKLY: 14,
}

SEMI_ANNUAL_STRIDE_MONTHS = 6

DEFAULT_WEEKDAY = 0  # Monday
DEFAULT_BI_WEEKLY_DAYS = (1, 15)
DEFAULT_SEMI_ANNUAL_MONTHS = (1, 7)

TYPICAL_OCCURRENCES = {
    BillingPeriod.MONTHLY: 1,
    BillingPeriod.WEEKLY: 4,
    BillingPeriod.BI_WEEKLY: 2,
    BillingPeriod.SEMI_ANNUALLY: 0,
}


# =============================================================================
# DEFAULT RESOLUTION - one function per field
# =============================================================================

def resolve_billing_period(value: Union[str, BillingPeriod, None]) -> BillingPeriod:
    """
    Cadence to use for a template value.

    None and unrecognized strings resolve to MONTHLY. Unrecognized
    values are logged so the fallback is visible.
    """
    if isinstance(value, BillingPeriod):
        return value
    if value is None:
        return BillingPeriod.MONTHLY
    try:
        return BillingPeriod(value)
    except ValueError:
        logger.warning("unknown_billing_period", billing_period=value, fallback="monthly")
        return BillingPeriod.MONTHLY


def resolve_monthly_day(day_of_month: Optional[int], start_date: Optional[date]) -> int:
    """Day for a monthly obligation: explicit day_of_month, else the anchor's day, else the 1st."""
    if day_of_month:
        return day_of_month
    if start_date is not None:
        return start_date.day
    return 1


# =============================================================================
# PER-CADENCE DATE GENERATION
# =============================================================================

def monthly_dates(month: str, day_of_month: Optional[int], start_date: Optional[date]) -> list[date]:
    return [clamped_date(month, resolve_monthly_day(day_of_month, start_date))]


def stride_dates(month: str, anchor: date, stride_days: int) -> list[date]:
    """All anchor + k*stride dates that land inside `month`."""
    start, end = first_day(month), last_day(month)
    current = anchor

    if current > end:
        # Back to the earliest stride on or after the 1st
        current -= timedelta(days=stride_days * ((current - start).days // stride_days))

    if current < start:
        steps_forward = -(-(start - current).days // stride_days)
        current += timedelta(days=stride_days * steps_forward)

    dates = []
    while current <= end:
        dates.append(current)
        current += timedelta(days=stride_days)
    return dates


def weekday_dates(month: str, weekday: int) -> list[date]:
    """Every date in `month` falling on `weekday` (0 = Monday)."""
    start, end = first_day(month), last_day(month)
    current = start + timedelta(days=(weekday - start.weekday()) % 7)
    dates = []
    while current <= end:
        dates.append(current)
        current += timedelta(days=7)
    return dates


def weekly_dates(month: str, start_date: Optional[date]) -> list[date]:
    if start_date is None:
        return weekday_dates(month, DEFAULT_WEEKDAY)
    return stride_dates(month, start_date, STRIDE_DAYS[BillingPeriod.WEEKLY])


def bi_weekly_dates(month: str, start_date: Optional[date]) -> list[date]:
    if start_date is None:
        return [clamped_date(month, day) for day in DEFAULT_BI_WEEKLY_DAYS]
    return stride_dates(month, start_date, STRIDE_DAYS[BillingPeriod.BI_WEEKLY])


def semi_annual_dates(month: str, start_date: Optional[date]) -> list[date]:
    if start_date is None:
        if first_day(month).month in DEFAULT_SEMI_ANNUAL_MONTHS:
            return [first_day(month)]
        return []

    offset = months_between(start_date, month)
    if offset >= 0 and offset % SEMI_ANNUAL_STRIDE_MONTHS == 0:
        return [clamped_date(month, start_date.day)]
    return []


def occurrence_dates(
    billing_period: Union[str, BillingPeriod, None],
    month: str,
    start_date: Union[str, date, None] = None,
    day_of_month: Optional[int] = None,
) -> list[date]:
    """
    Calendar dates within `month` on which the obligation falls.

    Args:
        billing_period: Cadence; unknown values behave as monthly
        month: Target month, "YYYY-MM"
        start_date: Optional anchor (date or "YYYY-MM-DD")
        day_of_month: Optional explicit day for monthly cadence

    Returns:
        Strictly ascending dates, all inside the month. Possibly empty
        (semi-annual off-months).

    Raises:
        InvalidMonthError / InvalidDateError for malformed input
    """
    period = resolve_billing_period(billing_period)
    anchor = parse_date(start_date) if start_date is not None else None
    # Validates the month up front for every cadence
    first_day(month)

    if period == BillingPeriod.WEEKLY:
        return weekly_dates(month, anchor)
    if period == BillingPeriod.BI_WEEKLY:
        return bi_weekly_dates(month, anchor)
    if period == BillingPeriod.SEMI_ANNUALLY:
        return semi_annual_dates(month, anchor)
    return monthly_dates(month, day_of_month, anchor)


# =============================================================================
# INFORMATIONAL HELPERS
# =============================================================================

def typical_occurrence_count(billing_period: Union[str, BillingPeriod, None]) -> int:
    """Usual number of occurrences per month (semi-annual: 0, it varies)."""
    return TYPICAL_OCCURRENCES[resolve_billing_period(billing_period)]


def is_extra_occurrence_month(
    billing_period: Union[str, BillingPeriod, None],
    occurrence_count: int,
) -> bool:
    """
    Weekly months with a 5th date, bi-weekly months with a 3rd.

    Informational only; nothing in the ledger depends on it.
    """
    period = resolve_billing_period(billing_period)
    if period in STRIDE_DAYS:
        return occurrence_count > TYPICAL_OCCURRENCES[period]
    return False
