"""
Month Materializer

Turns bill and income templates into one month's instances, and keeps
payoff bills in step with the card balances entered for the month.

Flow:
1. Templates -> Recurrence Calculator -> dates
2. Dates -> Occurrence Factory -> occurrences
3. Instance expected_amount = sum of its occurrences

Payoff bills:
- track_payments_manually sources get an empty "<name> Payments" bill
  at generation time; the user records payments against it.
- pay_off_monthly sources get a "<name> Payoff" bill once a non-zero
  balance is entered for them (reconcile_payoff_bills).

DESIGN DECISION: Balances for debt sources are negative. The amount
still owed is always the absolute value, so balances entered with
either sign reconcile the same way.
"""

from datetime import date, datetime
from typing import NamedTuple, Optional, Sequence

import structlog

from budget_core.ledger.instance_ops import with_occurrences
from budget_core.ledger.state_machine import LedgerValidationError, close
from budget_core.models.budget import (
    BillTemplate,
    IncomeTemplate,
    MonthlyData,
    PaymentSource,
    RecurringTemplate,
)
from budget_core.models.occurrence import Instance, InstanceKind
from budget_core.occurrences.factory import create_adhoc, generate, sum_expected
from budget_core.recurrence.calculator import occurrence_dates, resolve_billing_period
from budget_core.recurrence.calendar import clamped_date, parse_month


logger = structlog.get_logger(__name__)

DEFAULT_PAYOFF_DAY = 28
PAYOFF_BILL_SUFFIX = "Payoff"
MANUAL_PAYMENTS_SUFFIX = "Payments"


class PayoffPaymentResult(NamedTuple):
    instance: Instance
    new_balance: int
    remaining: int


# =============================================================================
# TEMPLATES -> INSTANCES
# =============================================================================

def _materialize(
    template: RecurringTemplate,
    month: str,
    kind: InstanceKind,
    now: Optional[datetime] = None,
) -> Instance:
    dates = occurrence_dates(
        template.billing_period,
        month,
        start_date=template.start_date,
        day_of_month=template.day_of_month,
    )
    occurrences = generate(dates, template.amount, now=now)
    return Instance(
        kind=kind,
        template_id=template.id,
        name=template.name,
        month=month,
        billing_period=resolve_billing_period(template.billing_period),
        expected_amount=sum_expected(occurrences),
        occurrences=occurrences,
        category_id=template.category_id,
        payment_source_id=template.payment_source_id,
        created_at=now,
        updated_at=now,
    )


def materialize_bill(
    template: BillTemplate,
    month: str,
    now: Optional[datetime] = None,
) -> Instance:
    return _materialize(template, month, InstanceKind.BILL, now=now)


def materialize_income(
    template: IncomeTemplate,
    month: str,
    now: Optional[datetime] = None,
) -> Instance:
    return _materialize(template, month, InstanceKind.INCOME, now=now)


def _payoff_bill(
    source: PaymentSource,
    month: str,
    suffix: str,
    occurrences=None,
    now: Optional[datetime] = None,
) -> Instance:
    occurrences = occurrences or []
    return Instance(
        kind=InstanceKind.BILL,
        name=f"{source.name} {suffix}",
        month=month,
        expected_amount=sum_expected(occurrences),
        occurrences=occurrences,
        is_payoff_bill=True,
        payoff_source_id=source.id,
        payment_source_id=source.id,
        created_at=now,
        updated_at=now,
    )


def generate_month(
    month: str,
    bills: Sequence[BillTemplate],
    incomes: Sequence[IncomeTemplate],
    payment_sources: Sequence[PaymentSource] = (),
    now: Optional[datetime] = None,
) -> MonthlyData:
    """
    Materialize every active template for `month`.

    Manually tracked sources get an empty payoff bill. Pay-off-monthly
    sources are skipped until a balance is entered.

    Raises:
        InvalidMonthError: malformed month
    """
    parse_month(month)

    bill_instances = [materialize_bill(t, month, now=now) for t in bills if t.is_active]
    income_instances = [materialize_income(t, month, now=now) for t in incomes if t.is_active]

    for source in payment_sources:
        if source.is_active and source.track_payments_manually:
            bill_instances.append(_payoff_bill(source, month, MANUAL_PAYMENTS_SUFFIX, now=now))

    logger.info(
        "month_generated",
        month=month,
        bill_count=len(bill_instances),
        income_count=len(income_instances),
    )

    return MonthlyData(
        month=month,
        bill_instances=bill_instances,
        income_instances=income_instances,
    )


# =============================================================================
# PAYOFF BILLS
# =============================================================================

def _reconcile_payoff_instance(
    instance: Instance,
    balance: int,
    payoff_date: date,
    now: Optional[datetime] = None,
) -> Instance:
    """Point the open occurrence at the current balance, or close it at zero."""
    owed = abs(balance)
    occurrences = list(instance.occurrences)
    open_index = next((i for i, occ in enumerate(occurrences) if not occ.is_closed), None)

    if owed > 0:
        if open_index is None:
            occurrences.extend(generate([payoff_date], owed, now=now))
        else:
            update = {"expected_amount": owed}
            if now is not None:
                update["updated_at"] = now
            occurrences[open_index] = occurrences[open_index].model_copy(update=update)
    elif open_index is not None:
        occurrences[open_index] = close(occurrences[open_index], payoff_date, amount=0, now=now)

    if not occurrences:
        # Nothing owed and nothing ever scheduled
        update = {"is_closed": True, "closed_date": payoff_date, "expected_amount": 0}
        if now is not None:
            update["updated_at"] = now
        return instance.model_copy(update=update)

    reconciled = with_occurrences(instance, occurrences, now=now)
    return reconciled.model_copy(update={"expected_amount": owed})


def reconcile_payoff_bills(
    data: MonthlyData,
    balances: dict[str, int],
    payment_sources: Sequence[PaymentSource],
    payoff_day: int = DEFAULT_PAYOFF_DAY,
    now: Optional[datetime] = None,
) -> MonthlyData:
    """
    Apply a new balance map to the month.

    - Existing payoff bills (except manually tracked ones) follow their
      source's balance: the open occurrence becomes the amount owed;
      a zero balance closes it.
    - Pay-off-monthly sources with a non-zero balance and no payoff bill
      yet get one.

    Returns:
        New MonthlyData carrying `balances` as its balance map
    """
    sources = {source.id: source for source in payment_sources}
    payoff_date = clamped_date(data.month, payoff_day)

    bill_instances = []
    covered = set()
    for instance in data.bill_instances:
        if instance.is_payoff_bill:
            covered.add(instance.payoff_source_id)
            source = sources.get(instance.payoff_source_id)
            manual = source is not None and source.track_payments_manually
            if not manual and instance.payoff_source_id in balances:
                instance = _reconcile_payoff_instance(
                    instance, balances[instance.payoff_source_id], payoff_date, now=now
                )
        bill_instances.append(instance)

    for source in payment_sources:
        if not (source.is_active and source.pay_off_monthly):
            continue
        if source.id in covered or not balances.get(source.id):
            continue
        occurrences = generate([payoff_date], abs(balances[source.id]), now=now)
        bill_instances.append(
            _payoff_bill(source, data.month, PAYOFF_BILL_SUFFIX, occurrences=occurrences, now=now)
        )
        logger.info("payoff_bill_created", month=data.month, payment_source_id=source.id)

    return data.model_copy(update={
        "bill_instances": bill_instances,
        "bank_balances": dict(balances),
    })


def record_payoff_payment(
    instance: Instance,
    amount: int,
    paid_date: date,
    current_balance: int,
    new_balance: Optional[int] = None,
    payoff_day: int = DEFAULT_PAYOFF_DAY,
    now: Optional[datetime] = None,
) -> PayoffPaymentResult:
    """
    Record a payment against a payoff bill.

    The open occurrence (or a new ad-hoc one) closes at `amount`. If a
    balance is still owed, a fresh open occurrence on the payoff day
    carries it; otherwise the bill closes.

    Args:
        instance: A payoff bill
        amount: Payment in cents (> 0)
        paid_date: Date of the payment
        current_balance: Source balance before the payment
        new_balance: Statement balance after the payment, when known;
            overrides current_balance - amount

    Returns:
        PayoffPaymentResult(instance, new_balance, remaining). The
        balance is negative while anything is owed.

    Raises:
        LedgerValidationError: not a payoff bill, or non-positive amount
    """
    if not instance.is_payoff_bill:
        raise LedgerValidationError("Payments can only be recorded against payoff bills")
    if amount <= 0:
        raise LedgerValidationError("Payment amount must be greater than 0", field="amount")

    if new_balance is not None:
        remaining = abs(new_balance)
    else:
        remaining = max(0, abs(current_balance) - amount)

    occurrences = list(instance.occurrences)
    open_index = next((i for i, occ in enumerate(occurrences) if not occ.is_closed), None)
    if open_index is None:
        paid = close(create_adhoc(paid_date, amount, now=now), paid_date, now=now)
        occurrences.append(paid)
    else:
        payable = occurrences[open_index].model_copy(update={"expected_amount": amount})
        occurrences[open_index] = close(payable, paid_date, now=now)

    if remaining > 0:
        occurrences.extend(
            generate([clamped_date(instance.month, payoff_day)], remaining, now=now)
        )

    updated = with_occurrences(instance, occurrences, now=now)
    updated = updated.model_copy(update={"expected_amount": remaining})

    return PayoffPaymentResult(instance=updated, new_balance=-remaining, remaining=remaining)
