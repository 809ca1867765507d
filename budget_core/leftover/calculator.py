"""
Leftover Calculator

leftover = sum(included balances) + sum(remaining income) - sum(remaining expenses)

Every entered balance counts except those of sources that are paid
off monthly or excluded from leftover. A pay-off-monthly card shows
up on the expense side instead, through its payoff bill. Only active
sources are required to have a balance entered.

CRITICAL: The completeness check runs first. When an active source
that counts toward leftover has no balance entry the result is still
computed (missing balances count as zero) but is_valid is False and
the result names the gaps.
"""

from datetime import date
from typing import Iterable, Sequence

from budget_core.models.budget import MonthlyData, PaymentSource
from budget_core.models.occurrence import Instance
from budget_core.models.tally import LeftoverResult
from budget_core.recurrence.calendar import first_day, month_of, parse_month
from budget_core.tally.engine import remaining


MISSING_BALANCES_MESSAGE = "Enter bank balances to calculate leftover. Missing: {names}"


def included_sources(payment_sources: Iterable[PaymentSource]) -> list[PaymentSource]:
    """Active sources that must have a balance entered."""
    return [s for s in payment_sources if s.is_active and s.counts_toward_leftover]


def excluded_source_ids(payment_sources: Iterable[PaymentSource]) -> set[str]:
    """Sources whose balance never counts, active or not."""
    return {s.id for s in payment_sources if not s.counts_toward_leftover}


def missing_balance_sources(
    data: MonthlyData,
    payment_sources: Iterable[PaymentSource],
) -> list[PaymentSource]:
    return [s for s in included_sources(payment_sources) if s.id not in data.bank_balances]


def remaining_for_leftover(instance: Instance) -> int:
    """
    Outstanding amount of one instance.

    Payoff bills are the exception: what is left is the current
    revolving balance, carried by the open occurrence(s).
    """
    if instance.is_closed:
        return 0
    if instance.is_payoff_bill:
        return sum(occ.expected_amount for occ in instance.open_occurrences)
    return remaining(instance)


def calculate_leftover(
    data: MonthlyData,
    payment_sources: Sequence[PaymentSource],
) -> LeftoverResult:
    """
    Project the end-of-month cash position.

    Args:
        data: The month's instances and balance map
        payment_sources: All known payment sources

    Returns:
        LeftoverResult (is_valid False when balances are missing)
    """
    missing = missing_balance_sources(data, payment_sources)

    excluded = excluded_source_ids(payment_sources)
    bank_balances = sum(
        balance
        for source_id, balance in data.bank_balances.items()
        if source_id not in excluded
    )
    remaining_income = sum(remaining_for_leftover(i) for i in data.income_instances)
    remaining_expenses = sum(remaining_for_leftover(i) for i in data.bill_instances)

    error_message = None
    if missing:
        error_message = MISSING_BALANCES_MESSAGE.format(
            names=", ".join(source.name for source in missing)
        )

    return LeftoverResult(
        bank_balances=bank_balances,
        remaining_income=remaining_income,
        remaining_expenses=remaining_expenses,
        leftover=bank_balances + remaining_income - remaining_expenses,
        is_valid=not missing,
        missing_balances=[source.id for source in missing],
        error_message=error_message,
    )


def has_actuals_entered(data: MonthlyData) -> bool:
    """True once anything in the month has been closed."""
    instances = list(data.bill_instances) + list(data.income_instances)
    return any(occ.is_closed for instance in instances for occ in instance.occurrences)


def is_current_month(month: str, today: date) -> bool:
    parse_month(month)
    return month_of(today) == month


def projection_start_date(month: str, today: date) -> date:
    """Projections for the current month start today, otherwise on the 1st."""
    if is_current_month(month, today):
        return today
    return first_day(month)
