"""Due-date and overdue helpers."""

from budget_core.schedule.due_dates import (
    DEFAULT_DUE_SOON_DAYS,
    OverdueItem,
    calculate_due_date,
    days_overdue,
    due_soon_occurrences,
    is_due_soon,
    is_overdue,
    overdue_occurrences,
    sum_overdue,
)

__all__ = [
    "DEFAULT_DUE_SOON_DAYS",
    "OverdueItem",
    "calculate_due_date",
    "days_overdue",
    "due_soon_occurrences",
    "is_due_soon",
    "is_overdue",
    "overdue_occurrences",
    "sum_overdue",
]
