"""
Tally Engine

Aggregates occurrence state into {expected, actual, remaining}.

CRITICAL: "actual" is always the sum of CLOSED occurrences'
expected_amount. There is no separate paid field anywhere.

Partitions used for a month view:
- regular:  scheduled instances (not ad-hoc, not payoff)
- ad-hoc:   contribute actual only (expected = remaining = 0)
- payoff:   revolving-balance paydown bills

Tallies combine componentwise. combine() is commutative and
associative with EMPTY_TALLY as identity, so partitions can be
summed in any order.
"""

from collections import defaultdict
from typing import Iterable, Optional

from budget_core.models.budget import MonthlyData
from budget_core.models.occurrence import Instance
from budget_core.models.tally import CategorySubtotal, MonthTallies, SectionTally
from budget_core.occurrences.factory import sum_closed


EMPTY_TALLY = SectionTally()


# =============================================================================
# PER-INSTANCE
# =============================================================================

def effective(instance: Instance) -> int:
    """Settled amount: sum of closed occurrences (0 for none)."""
    return sum_closed(instance.occurrences)


def remaining(instance: Instance) -> int:
    """Still outstanding; 0 when closed, never negative."""
    if instance.is_closed:
        return 0
    return max(0, instance.expected_amount - effective(instance))


def instance_tally(instance: Instance) -> SectionTally:
    """Contribution of one instance to its section."""
    if instance.is_adhoc:
        return SectionTally(expected=0, actual=effective(instance), remaining=0)
    return SectionTally(
        expected=instance.expected_amount,
        actual=effective(instance),
        remaining=remaining(instance),
    )


# =============================================================================
# ALGEBRA
# =============================================================================

def combine(a: SectionTally, b: SectionTally) -> SectionTally:
    return SectionTally(
        expected=a.expected + b.expected,
        actual=a.actual + b.actual,
        remaining=a.remaining + b.remaining,
    )


def combine_all(*tallies: SectionTally) -> SectionTally:
    total = EMPTY_TALLY
    for tally in tallies:
        total = combine(total, tally)
    return total


# =============================================================================
# SECTIONS
# =============================================================================

def section_tally(instances: Iterable[Instance]) -> SectionTally:
    """Sum of instance tallies; empty input gives EMPTY_TALLY."""
    return combine_all(*(instance_tally(instance) for instance in instances))


def regular_tally(instances: Iterable[Instance]) -> SectionTally:
    return section_tally(
        i for i in instances if not i.is_adhoc and not i.is_payoff_bill
    )


def adhoc_tally(instances: Iterable[Instance]) -> SectionTally:
    return section_tally(
        i for i in instances if i.is_adhoc and not i.is_payoff_bill
    )


def payoff_tally(instances: Iterable[Instance]) -> SectionTally:
    return section_tally(i for i in instances if i.is_payoff_bill)


def month_tallies(data: MonthlyData) -> MonthTallies:
    """All section tallies for a month view."""
    bills = regular_tally(data.bill_instances)
    adhoc_bills = adhoc_tally(data.bill_instances)
    payoff_bills = payoff_tally(data.bill_instances)
    income = regular_tally(data.income_instances)
    adhoc_income = adhoc_tally(data.income_instances)

    return MonthTallies(
        bills=bills,
        adhoc_bills=adhoc_bills,
        payoff_bills=payoff_bills,
        total_expenses=combine_all(bills, adhoc_bills, payoff_bills),
        income=income,
        adhoc_income=adhoc_income,
        total_income=combine(income, adhoc_income),
    )


# =============================================================================
# CATEGORY SUBTOTALS
# =============================================================================

def category_subtotal(instances: Iterable[Instance]) -> CategorySubtotal:
    tally = section_tally(instances)
    return CategorySubtotal(expected=tally.expected, actual=tally.actual)


def category_subtotals(instances: Iterable[Instance]) -> dict[Optional[str], CategorySubtotal]:
    """Subtotal per category_id (None groups uncategorized instances)."""
    groups: dict[Optional[str], list[Instance]] = defaultdict(list)
    for instance in instances:
        groups[instance.category_id].append(instance)
    return {category: category_subtotal(members) for category, members in groups.items()}
