"""Occurrence factory package."""

from budget_core.occurrences.factory import (
    all_closed,
    create_adhoc,
    ensure_fallback,
    generate,
    resequence,
    sum_closed,
    sum_expected,
)

__all__ = [
    "all_closed",
    "create_adhoc",
    "ensure_fallback",
    "generate",
    "resequence",
    "sum_closed",
    "sum_expected",
]
