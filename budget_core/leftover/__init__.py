"""Leftover calculation package."""

from budget_core.leftover.calculator import (
    calculate_leftover,
    excluded_source_ids,
    has_actuals_entered,
    included_sources,
    is_current_month,
    missing_balance_sources,
    projection_start_date,
    remaining_for_leftover,
)

__all__ = [
    "calculate_leftover",
    "excluded_source_ids",
    "has_actuals_entered",
    "included_sources",
    "is_current_month",
    "missing_balance_sources",
    "projection_start_date",
    "remaining_for_leftover",
]
