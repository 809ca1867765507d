"""
Instance-level ledger operations.

Each function takes an Instance, applies one transition to its
occurrence set and returns a new Instance whose is_closed and
closed_date agree with the occurrences again.

Operations that change the set of amounts (add, update, remove)
also recompute expected_amount as the sum of occurrences. close and
split leave it alone: a split conserves the total, and a close at a
different amount is recorded against the template's expectation.
"""

from datetime import date, datetime
from typing import Optional, Sequence
from uuid import UUID

from budget_core.config.settings import SPLIT_REMAINDER_END_OF_MONTH
from budget_core.ledger.state_machine import (
    LedgerError,
    LedgerValidationError,
    close,
    parse_closed_date,
    reopen,
    split,
)
from budget_core.models.occurrence import Instance, Occurrence
from budget_core.occurrences.factory import (
    all_closed,
    create_adhoc,
    resequence,
    sum_expected,
)
from budget_core.recurrence.calendar import parse_date


class OccurrenceNotFoundError(LedgerError):
    """No occurrence with the given id inside the instance."""

    def __init__(self, instance_id, occurrence_id):
        self.instance_id = instance_id
        self.occurrence_id = occurrence_id
        super().__init__(f"Occurrence {occurrence_id} not found in instance {instance_id}")


class RemovalNotAllowedError(LedgerError):
    """Only ad-hoc occurrences, or occurrences of payoff bills, can be removed."""

    def __init__(self, occurrence_id):
        self.occurrence_id = occurrence_id
        super().__init__(
            f"Occurrence {occurrence_id} is scheduled; only ad-hoc or payoff occurrences can be removed"
        )


class InstanceStateError(LedgerError):
    """Instance is already in the requested state."""

    def __init__(self, instance_id, action: str, state: str):
        self.instance_id = instance_id
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} instance {instance_id}: it is already {state}")


# =============================================================================
# HELPERS
# =============================================================================

def _as_uuid(value) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def _rebuild(instance: Instance, update: dict) -> Instance:
    """Copy with `update` applied, re-running the model validators."""
    return Instance.model_validate({**instance.model_dump(), **update})


def find_occurrence(instance: Instance, occurrence_id) -> Occurrence:
    """Look up an occurrence by id (UUID or string)."""
    try:
        wanted = _as_uuid(occurrence_id)
    except ValueError:
        raise OccurrenceNotFoundError(instance.id, occurrence_id) from None
    for occ in instance.occurrences:
        if occ.id == wanted:
            return occ
    raise OccurrenceNotFoundError(instance.id, occurrence_id)


def _replace(occurrences: Sequence[Occurrence], updated: Occurrence) -> list[Occurrence]:
    return [updated if occ.id == updated.id else occ for occ in occurrences]


def _latest_closed_date(occurrences: Sequence[Occurrence]) -> Optional[date]:
    dates = [occ.closed_date for occ in occurrences if occ.closed_date is not None]
    return max(dates) if dates else None


def with_occurrences(
    instance: Instance,
    occurrences: Sequence[Occurrence],
    recompute_expected: bool = False,
    now: Optional[datetime] = None,
) -> Instance:
    """
    New instance owning `occurrences`, with derived state recomputed.

    The instance is closed exactly when every occurrence is; its
    closed_date is then the latest occurrence closed_date.
    """
    ordered = resequence(occurrences)
    closed = all_closed(ordered)
    update = {
        "occurrences": ordered,
        "is_closed": closed,
        "closed_date": _latest_closed_date(ordered) if closed else None,
    }
    if recompute_expected:
        update["expected_amount"] = sum_expected(ordered)
    if now is not None:
        update["updated_at"] = now
    return _rebuild(instance, update)


# =============================================================================
# OCCURRENCE TRANSITIONS
# =============================================================================

def close_occurrence(
    instance: Instance,
    occurrence_id,
    closed_date: date,
    amount: Optional[int] = None,
    payment_source_id: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Instance:
    target = find_occurrence(instance, occurrence_id)
    updated = close(
        target,
        closed_date=closed_date,
        amount=amount,
        payment_source_id=payment_source_id,
        notes=notes,
        now=now,
    )
    return with_occurrences(instance, _replace(instance.occurrences, updated), now=now)


def split_occurrence(
    instance: Instance,
    occurrence_id,
    paid_amount: int,
    closed_date: date,
    payment_source_id: Optional[str] = None,
    notes: Optional[str] = None,
    policy: str = SPLIT_REMAINDER_END_OF_MONTH,
    now: Optional[datetime] = None,
) -> Instance:
    """Split inside the instance; the remainder is appended and the set resequenced."""
    target = find_occurrence(instance, occurrence_id)
    result = split(
        target,
        paid_amount=paid_amount,
        closed_date=closed_date,
        payment_source_id=payment_source_id,
        notes=notes,
        month=instance.month,
        policy=policy,
        now=now,
    )
    occurrences = _replace(instance.occurrences, result.closed) + [result.remainder]
    return with_occurrences(instance, occurrences, now=now)


def reopen_occurrence(
    instance: Instance,
    occurrence_id,
    now: Optional[datetime] = None,
) -> Instance:
    target = find_occurrence(instance, occurrence_id)
    updated = reopen(target, now=now)
    return with_occurrences(instance, _replace(instance.occurrences, updated), now=now)


# =============================================================================
# OCCURRENCE EDITS
# =============================================================================

def update_occurrence(
    instance: Instance,
    occurrence_id,
    expected_date: Optional[date] = None,
    expected_amount: Optional[int] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Instance:
    """
    Change an occurrence's date, amount or notes.

    Moving a date can change the order, so the set is resequenced.
    A blank notes string clears the notes.
    """
    target = find_occurrence(instance, occurrence_id)
    changes = {}
    if expected_date is not None:
        changes["expected_date"] = parse_date(expected_date)
    if expected_amount is not None:
        if expected_amount < 0:
            raise LedgerValidationError("Amount cannot be negative", field="expected_amount")
        changes["expected_amount"] = expected_amount
    if notes is not None:
        changes["notes"] = notes.strip() or None
    if now is not None:
        changes["updated_at"] = now

    updated = Occurrence.model_validate({**target.model_dump(), **changes})
    return with_occurrences(
        instance,
        _replace(instance.occurrences, updated),
        recompute_expected=True,
        now=now,
    )


def add_adhoc_occurrence(
    instance: Instance,
    expected_date: date,
    amount: int,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Instance:
    if amount < 0:
        raise LedgerValidationError("Amount cannot be negative", field="amount")
    added = create_adhoc(expected_date, amount, now=now, notes=notes)
    return with_occurrences(
        instance,
        list(instance.occurrences) + [added],
        recompute_expected=True,
        now=now,
    )


def remove_occurrence(
    instance: Instance,
    occurrence_id,
    now: Optional[datetime] = None,
) -> Instance:
    """
    Remove an occurrence.

    Raises:
        RemovalNotAllowedError: scheduled occurrence of a regular instance
    """
    target = find_occurrence(instance, occurrence_id)
    if not (target.is_adhoc or instance.is_payoff_bill):
        raise RemovalNotAllowedError(target.id)
    remaining = [occ for occ in instance.occurrences if occ.id != target.id]
    return with_occurrences(instance, remaining, recompute_expected=True, now=now)


# =============================================================================
# WHOLE-INSTANCE TRANSITIONS
# =============================================================================

def close_instance(
    instance: Instance,
    closed_date: date,
    payment_source_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Instance:
    """
    Close every open occurrence at its expected amount.

    An instance with no occurrences (a manually tracked payoff bill)
    is closed directly.
    """
    if instance.is_closed:
        raise InstanceStateError(instance.id, "close", "closed")
    closed_date = parse_closed_date(closed_date)

    if not instance.occurrences:
        update = {"is_closed": True, "closed_date": closed_date}
        if now is not None:
            update["updated_at"] = now
        return _rebuild(instance, update)

    occurrences = [
        occ if occ.is_closed else close(
            occ,
            closed_date=closed_date,
            payment_source_id=payment_source_id or instance.payment_source_id,
            now=now,
        )
        for occ in instance.occurrences
    ]
    return with_occurrences(instance, occurrences, now=now)


def reopen_instance(
    instance: Instance,
    now: Optional[datetime] = None,
) -> Instance:
    """Reopen every closed occurrence."""
    if not instance.is_closed:
        raise InstanceStateError(instance.id, "reopen", "open")

    if not instance.occurrences:
        update = {"is_closed": False, "closed_date": None}
        if now is not None:
            update["updated_at"] = now
        return _rebuild(instance, update)

    occurrences = [
        reopen(occ, now=now) if occ.is_closed else occ
        for occ in instance.occurrences
    ]
    return with_occurrences(instance, occurrences, now=now)
