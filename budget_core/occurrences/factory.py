"""
Occurrence Factory

Builds Occurrence records from calendar dates and keeps their
sequence numbers in date order. Every function returns new objects;
inputs are never mutated.
"""

from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from budget_core.models.occurrence import Occurrence
from budget_core.recurrence.calendar import parse_date


def generate(
    dates: Iterable[date],
    amount: int,
    now: Optional[datetime] = None,
) -> list[Occurrence]:
    """
    One open, scheduled occurrence per date.

    Sequences run 1..N in ascending date order.
    """
    return [
        Occurrence(
            sequence=index,
            expected_date=day,
            expected_amount=amount,
            created_at=now,
            updated_at=now,
        )
        for index, day in enumerate(sorted(dates), start=1)
    ]


def create_adhoc(
    expected_date: date,
    amount: int,
    now: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> Occurrence:
    """
    A user-added occurrence.

    sequence is 0 until the owning set is resequenced.
    """
    return Occurrence(
        sequence=0,
        expected_date=parse_date(expected_date),
        expected_amount=amount,
        is_adhoc=True,
        notes=notes,
        created_at=now,
        updated_at=now,
    )


def resequence(occurrences: Sequence[Occurrence]) -> list[Occurrence]:
    """
    Sort by expected_date and renumber 1..N.

    The sort is stable, so same-day occurrences keep their relative
    order. Occurrences whose number is already right are returned
    as-is, which makes the operation idempotent.
    """
    ordered = sorted(occurrences, key=lambda occ: occ.expected_date)
    return [
        occ if occ.sequence == index else occ.model_copy(update={"sequence": index})
        for index, occ in enumerate(ordered, start=1)
    ]


def sum_expected(occurrences: Iterable[Occurrence]) -> int:
    """Total expected amount in cents."""
    return sum(occ.expected_amount for occ in occurrences)


def sum_closed(occurrences: Iterable[Occurrence]) -> int:
    """Total settled amount in cents (closed occurrences only)."""
    return sum(occ.expected_amount for occ in occurrences if occ.is_closed)


def all_closed(occurrences: Sequence[Occurrence]) -> bool:
    """True when there is at least one occurrence and every one is closed."""
    return bool(occurrences) and all(occ.is_closed for occ in occurrences)


def ensure_fallback(
    occurrences: Sequence[Occurrence],
    fallback_date: date,
    amount: int = 0,
    now: Optional[datetime] = None,
) -> list[Occurrence]:
    """
    Guarantee at least one occurrence.

    Instances read back with an empty set (older data) get a single
    scheduled occurrence so they can still be closed.
    """
    if occurrences:
        return list(occurrences)
    return generate([fallback_date], amount, now=now)
