"""
Calendar helpers.

All arithmetic is on plain calendar dates; there is no time-of-day
and no timezone anywhere in the ledger.
"""

import re
from calendar import monthrange
from datetime import date
from typing import Union


_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


class InvalidMonthError(ValueError):
    """Month string is not a valid YYYY-MM."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Month must be in YYYY-MM format, got {value!r}")


class InvalidDateError(ValueError):
    """Date string is not a valid YYYY-MM-DD."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Date must be in YYYY-MM-DD format, got {value!r}")


def parse_month(month: str) -> tuple[int, int]:
    """Split "YYYY-MM" into (year, month), rejecting anything malformed."""
    if not isinstance(month, str):
        raise InvalidMonthError(month)
    match = _MONTH_RE.match(month)
    if not match:
        raise InvalidMonthError(month)
    year, month_num = int(match.group(1)), int(match.group(2))
    if not 1 <= month_num <= 12 or year < 1:
        raise InvalidMonthError(month)
    return year, month_num


def parse_date(value: Union[str, date]) -> date:
    """Accept a date or an ISO "YYYY-MM-DD" string."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise InvalidDateError(value) from None


def format_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def month_of(day: date) -> str:
    return format_month(day.year, day.month)


def days_in_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def first_day(month: str) -> date:
    year, month_num = parse_month(month)
    return date(year, month_num, 1)


def last_day(month: str) -> date:
    year, month_num = parse_month(month)
    return date(year, month_num, days_in_month(year, month_num))


def clamped_date(month: str, day: int) -> date:
    """Day `day` of `month`, pulled back to the month's last day if too large."""
    year, month_num = parse_month(month)
    return date(year, month_num, min(max(day, 1), days_in_month(year, month_num)))


def months_between(start: date, month: str) -> int:
    """Whole calendar months from start's month to `month` (negative if earlier)."""
    year, month_num = parse_month(month)
    return (year - start.year) * 12 + (month_num - start.month)
