"""Recurrence calculation package."""

from budget_core.recurrence.calendar import (
    InvalidDateError,
    InvalidMonthError,
    clamped_date,
    first_day,
    last_day,
    month_of,
    parse_date,
    parse_month,
)
from budget_core.recurrence.calculator import (
    is_extra_occurrence_month,
    occurrence_dates,
    resolve_billing_period,
    resolve_monthly_day,
    typical_occurrence_count,
)

__all__ = [
    # Calendar
    "InvalidDateError",
    "InvalidMonthError",
    "clamped_date",
    "first_day",
    "last_day",
    "month_of",
    "parse_date",
    "parse_month",
    # Calculator
    "is_extra_occurrence_month",
    "occurrence_dates",
    "resolve_billing_period",
    "resolve_monthly_day",
    "typical_occurrence_count",
]
