"""Tally engine package."""

from budget_core.tally.engine import (
    EMPTY_TALLY,
    adhoc_tally,
    category_subtotal,
    category_subtotals,
    combine,
    combine_all,
    effective,
    instance_tally,
    month_tallies,
    payoff_tally,
    regular_tally,
    remaining,
    section_tally,
)

__all__ = [
    "EMPTY_TALLY",
    "adhoc_tally",
    "category_subtotal",
    "category_subtotals",
    "combine",
    "combine_all",
    "effective",
    "instance_tally",
    "month_tallies",
    "payoff_tally",
    "regular_tally",
    "remaining",
    "section_tally",
]
