"""Occurrence ledger package."""

from budget_core.ledger.state_machine import (
    LedgerError,
    LedgerValidationError,
    OccurrenceStateError,
    SplitResult,
    close,
    parse_closed_date,
    remainder_date,
    reopen,
    split,
)
from budget_core.ledger.instance_ops import (
    InstanceStateError,
    OccurrenceNotFoundError,
    RemovalNotAllowedError,
    add_adhoc_occurrence,
    close_instance,
    close_occurrence,
    find_occurrence,
    remove_occurrence,
    reopen_instance,
    reopen_occurrence,
    split_occurrence,
    update_occurrence,
    with_occurrences,
)

__all__ = [
    # Errors
    "LedgerError",
    "LedgerValidationError",
    "OccurrenceStateError",
    "OccurrenceNotFoundError",
    "RemovalNotAllowedError",
    "InstanceStateError",
    # Occurrence transitions
    "SplitResult",
    "close",
    "parse_closed_date",
    "remainder_date",
    "reopen",
    "split",
    # Instance operations
    "add_adhoc_occurrence",
    "close_instance",
    "close_occurrence",
    "find_occurrence",
    "remove_occurrence",
    "reopen_instance",
    "reopen_occurrence",
    "split_occurrence",
    "update_occurrence",
    "with_occurrences",
]
