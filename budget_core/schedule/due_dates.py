"""
Due-date utilities.

Every check takes `today` explicitly.
"""

from datetime import date
from typing import Iterable, NamedTuple
from uuid import UUID

from budget_core.leftover.calculator import projection_start_date
from budget_core.models.occurrence import Instance
from budget_core.recurrence.calendar import clamped_date


DEFAULT_DUE_SOON_DAYS = 3


class OverdueItem(NamedTuple):
    instance_id: UUID
    instance_name: str
    occurrence_id: UUID
    expected_date: date
    amount: int


def calculate_due_date(month: str, due_day: int) -> date:
    """Due date in `month`, clamped to the month's last day."""
    return clamped_date(month, due_day)


def is_overdue(due_date: date, is_paid: bool, today: date) -> bool:
    return not is_paid and due_date < today


def days_overdue(due_date: date, today: date) -> int:
    return max(0, (today - due_date).days)


def is_due_soon(due_date: date, today: date, days: int = DEFAULT_DUE_SOON_DAYS) -> bool:
    """Due today or within the next `days` days."""
    return 0 <= (due_date - today).days <= days


def overdue_occurrences(
    instances: Iterable[Instance],
    month: str,
    today: date,
) -> list[OverdueItem]:
    """
    Open occurrences dated before the projection start.

    For the current month that is today; for any other month, the 1st,
    so nothing in a future month is overdue. Closed instances and
    occurrences are skipped.
    """
    cutoff = projection_start_date(month, today)
    items = []
    for instance in instances:
        if instance.is_closed:
            continue
        for occ in instance.open_occurrences:
            if occ.expected_date < cutoff:
                items.append(OverdueItem(
                    instance_id=instance.id,
                    instance_name=instance.name,
                    occurrence_id=occ.id,
                    expected_date=occ.expected_date,
                    amount=occ.expected_amount,
                ))
    return sorted(items, key=lambda item: item.expected_date)


def sum_overdue(items: Iterable[OverdueItem]) -> int:
    return sum(item.amount for item in items)


def due_soon_occurrences(
    instances: Iterable[Instance],
    today: date,
    days: int = DEFAULT_DUE_SOON_DAYS,
) -> list[OverdueItem]:
    """Open occurrences due today or within the next `days` days."""
    items = [
        OverdueItem(
            instance_id=instance.id,
            instance_name=instance.name,
            occurrence_id=occ.id,
            expected_date=occ.expected_date,
            amount=occ.expected_amount,
        )
        for instance in instances
        for occ in instance.open_occurrences
        if is_due_soon(occ.expected_date, today, days)
    ]
    return sorted(items, key=lambda item: item.expected_date)
