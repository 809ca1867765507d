"""Month materialization package."""

from budget_core.materialize.generator import (
    DEFAULT_PAYOFF_DAY,
    PayoffPaymentResult,
    generate_month,
    materialize_bill,
    materialize_income,
    reconcile_payoff_bills,
    record_payoff_payment,
)

__all__ = [
    "DEFAULT_PAYOFF_DAY",
    "PayoffPaymentResult",
    "generate_month",
    "materialize_bill",
    "materialize_income",
    "reconcile_payoff_bills",
    "record_payoff_payment",
]
