"""
Occurrence Ledger

Every occurrence is either OPEN or CLOSED:

    OPEN --close--> CLOSED
    OPEN --split--> CLOSED (paid part) + new OPEN (remainder)
    CLOSED --reopen--> OPEN

CRITICAL: a split conserves money exactly.
    closed.expected_amount + remainder.expected_amount == original.expected_amount

IMPORTANT: Invalid transitions raise. The ledger never "corrects" a
request into something else (a partial close is not quietly turned
into a split).
"""

from datetime import date, datetime
from typing import NamedTuple, Optional

from budget_core.config.settings import (
    SPLIT_REMAINDER_END_OF_MONTH,
    SPLIT_REMAINDER_SAME_DATE,
)
from budget_core.models.occurrence import Occurrence
from budget_core.occurrences.factory import create_adhoc
from budget_core.recurrence.calendar import last_day, month_of, parse_date


class LedgerError(Exception):
    """Base exception for ledger errors."""
    pass


class LedgerValidationError(LedgerError, ValueError):
    """An amount or argument is outside what the transition accepts."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class OccurrenceStateError(LedgerError):
    """The occurrence is in the wrong state for the requested transition."""

    def __init__(self, occurrence_id, action: str, state: str):
        self.occurrence_id = occurrence_id
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} occurrence {occurrence_id}: it is already {state}")


class SplitResult(NamedTuple):
    closed: Occurrence
    remainder: Occurrence


def _clean_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    return notes.strip() or None


def _transition(occurrence: Occurrence, update: dict) -> Occurrence:
    """Copy with `update` applied, re-running the model validators."""
    return Occurrence.model_validate({**occurrence.model_dump(), **update})


def parse_closed_date(value) -> date:
    """A closed date is mandatory; ISO strings are parsed."""
    if value is None:
        raise LedgerValidationError(
            "closed_date is required to close an occurrence", field="closed_date"
        )
    return parse_date(value)


def close(
    occurrence: Occurrence,
    closed_date: date,
    amount: Optional[int] = None,
    payment_source_id: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Occurrence:
    """
    Close an open occurrence.

    Args:
        occurrence: Must be OPEN
        closed_date: Date the money moved (date or "YYYY-MM-DD")
        amount: Settled amount in cents. None or the expected amount is a
            full close. 0 waives the occurrence: it is closed and its
            expected_amount becomes 0. More than expected records the
            overpayment. Anything strictly between 0 and expected must
            go through split().
        payment_source_id: Account the money moved through
        notes: Optional free text (blank clears)

    Raises:
        OccurrenceStateError: occurrence already closed
        LedgerValidationError: missing closed_date, negative or partial amount
        InvalidDateError: malformed closed_date
    """
    if occurrence.is_closed:
        raise OccurrenceStateError(occurrence.id, "close", "closed")
    closed_date = parse_closed_date(closed_date)

    settled = occurrence.expected_amount if amount is None else amount
    if settled < 0:
        raise LedgerValidationError("Amount cannot be negative", field="amount")
    if 0 < settled < occurrence.expected_amount:
        raise LedgerValidationError(
            "Amount is less than expected; split the occurrence to record a partial payment",
            field="amount",
        )

    update = {
        "expected_amount": settled,
        "is_closed": True,
        "closed_date": closed_date,
        "payment_source_id": payment_source_id,
        "notes": _clean_notes(notes) if notes is not None else occurrence.notes,
    }
    if now is not None:
        update["updated_at"] = now
    return _transition(occurrence, update)


def remainder_date(
    occurrence: Occurrence,
    month: Optional[str] = None,
    policy: str = SPLIT_REMAINDER_END_OF_MONTH,
) -> date:
    """Where a split remainder is scheduled: last day of the month, or the original date."""
    if policy == SPLIT_REMAINDER_SAME_DATE:
        return occurrence.expected_date
    if policy != SPLIT_REMAINDER_END_OF_MONTH:
        raise LedgerValidationError(f"Unknown remainder policy: {policy}", field="policy")
    return last_day(month or month_of(occurrence.expected_date))


def split(
    occurrence: Occurrence,
    paid_amount: int,
    closed_date: date,
    payment_source_id: Optional[str] = None,
    notes: Optional[str] = None,
    month: Optional[str] = None,
    policy: str = SPLIT_REMAINDER_END_OF_MONTH,
    now: Optional[datetime] = None,
) -> SplitResult:
    """
    Record a partial payment.

    The original occurrence closes at paid_amount; a new ad-hoc open
    occurrence carries the rest. The remainder's sequence is 0 until
    its owner resequences.

    Raises:
        OccurrenceStateError: occurrence already closed
        LedgerValidationError: missing closed_date, or paid_amount not strictly
            between 0 and expected
        InvalidDateError: malformed closed_date
    """
    if occurrence.is_closed:
        raise OccurrenceStateError(occurrence.id, "split", "closed")
    closed_date = parse_closed_date(closed_date)
    if paid_amount <= 0:
        raise LedgerValidationError("Paid amount must be greater than 0", field="paid_amount")
    if paid_amount >= occurrence.expected_amount:
        raise LedgerValidationError(
            "Paid amount must be less than expected amount; close the occurrence instead",
            field="paid_amount",
        )

    remaining = occurrence.expected_amount - paid_amount
    closed = close(
        occurrence.model_copy(update={"expected_amount": paid_amount}),
        closed_date=closed_date,
        payment_source_id=payment_source_id,
        notes=notes,
        now=now,
    )
    remainder = create_adhoc(
        remainder_date(occurrence, month=month, policy=policy),
        remaining,
        now=now,
    )
    return SplitResult(closed=closed, remainder=remainder)


def reopen(
    occurrence: Occurrence,
    now: Optional[datetime] = None,
) -> Occurrence:
    """
    Reopen a closed occurrence.

    Clears closed_date and payment_source_id. The amount is left as it
    was closed: reopening the paid half of a split does not merge the
    remainder back.

    Raises:
        OccurrenceStateError: occurrence already open
    """
    if not occurrence.is_closed:
        raise OccurrenceStateError(occurrence.id, "reopen", "open")

    update = {
        "is_closed": False,
        "closed_date": None,
        "payment_source_id": None,
    }
    if now is not None:
        update["updated_at"] = now
    return _transition(occurrence, update)
