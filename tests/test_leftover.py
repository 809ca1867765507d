"""
Tests for the Leftover Calculator.
"""

from datetime import date

from budget_core.leftover import (
    calculate_leftover,
    has_actuals_entered,
    is_current_month,
    projection_start_date,
    remaining_for_leftover,
)
from budget_core.ledger import close_occurrence
from budget_core.models import (
    Instance,
    InstanceKind,
    MonthlyData,
    PaymentSource,
    PaymentSourceType,
)
from budget_core.occurrences import generate
from budget_core.tally import remaining


def instance(name, amounts, kind=InstanceKind.BILL, **kwargs) -> Instance:
    occurrences = generate(
        [date(2025, 1, 5 + 10 * index) for index in range(len(amounts))],
        amounts[0] if amounts else 0,
    )
    occurrences = [
        occ.model_copy(update={"expected_amount": amount})
        for occ, amount in zip(occurrences, amounts)
    ]
    return Instance(
        kind=kind,
        name=name,
        month="2025-01",
        expected_amount=sum(amounts),
        occurrences=occurrences,
        **kwargs,
    )


def close_first(inst: Instance) -> Instance:
    return close_occurrence(inst, inst.occurrences[0].id, inst.occurrences[0].expected_date)


SOURCES = [
    PaymentSource(id="chk", name="Checking"),
    PaymentSource(id="sav", name="Savings"),
    PaymentSource(id="cash", name="Cash", type=PaymentSourceType.CASH),
    PaymentSource(
        id="visa",
        name="Visa",
        type=PaymentSourceType.CREDIT_CARD,
        pay_off_monthly=True,
    ),
    PaymentSource(
        id="brokerage",
        name="Brokerage",
        type=PaymentSourceType.INVESTMENT,
        exclude_from_leftover=True,
    ),
    PaymentSource(id="old", name="Old Account", is_active=False),
]


def scenario(balances) -> MonthlyData:
    """3 included accounts, 2 bills, 1 income."""
    rent = instance("Rent", [150000])
    utilities = close_first(instance("Utilities", [10000, 10000]))
    salary = close_first(instance("Salary", [200000, 200000], kind=InstanceKind.INCOME))
    return MonthlyData(
        month="2025-01",
        bill_instances=[rent, utilities],
        income_instances=[salary],
        bank_balances=balances,
    )


class TestCalculateLeftover:
    """The leftover formula and completeness check."""

    def test_hand_computed_scenario(self):
        """355000 + 200000 - (150000 + 10000) = 395000."""
        data = scenario({"chk": 250000, "sav": 100000, "cash": 5000, "visa": -80000})
        result = calculate_leftover(data, SOURCES)

        assert result.is_valid
        assert result.missing_balances == []
        assert result.error_message is None
        assert result.bank_balances == 355000
        assert result.remaining_income == 200000
        assert result.remaining_expenses == 160000
        assert result.leftover == 395000

    def test_one_missing_balance(self):
        """Exactly the missing source is reported."""
        data = scenario({"chk": 250000, "sav": 100000})
        result = calculate_leftover(data, SOURCES)

        assert result.is_valid is False
        assert result.missing_balances == ["cash"]
        assert result.error_message == "Enter bank balances to calculate leftover. Missing: Cash"

    def test_missing_balance_counted_as_zero(self):
        """The best-effort number treats missing balances as zero."""
        data = scenario({"chk": 250000, "sav": 100000})
        result = calculate_leftover(data, SOURCES)
        assert result.bank_balances == 350000
        assert result.leftover == 390000

    def test_excluded_sources_never_missing(self):
        """Pay-off-monthly, excluded and inactive sources are not required."""
        data = scenario({"chk": 1, "sav": 1, "cash": 1})
        result = calculate_leftover(data, SOURCES)
        assert result.is_valid

    def test_excluded_balances_not_summed(self):
        """Only included balances count."""
        data = scenario({"chk": 1, "sav": 1, "cash": 1, "brokerage": 999999, "visa": -5})
        assert calculate_leftover(data, SOURCES).bank_balances == 3

    def test_inactive_source_balance_counted(self):
        """An entered balance on an inactive account still counts."""
        data = scenario({"chk": 1, "sav": 1, "cash": 1, "old": 500})
        result = calculate_leftover(data, SOURCES)
        assert result.is_valid
        assert result.bank_balances == 503

    def test_unknown_source_balance_counted(self):
        """Only pay-off-monthly and excluded sources are left out."""
        data = scenario({"chk": 1, "sav": 1, "cash": 1, "closed-account": 7})
        assert calculate_leftover(data, SOURCES).bank_balances == 10

    def test_no_sources(self):
        """With nothing to check, the result is valid."""
        data = MonthlyData(month="2025-01")
        result = calculate_leftover(data, [])
        assert result.is_valid
        assert result.leftover == 0

    def test_closed_instances_contribute_nothing(self):
        """Closed bills have nothing remaining."""
        rent = instance("Rent", [150000])
        rent = close_first(rent)
        data = MonthlyData(month="2025-01", bill_instances=[rent], bank_balances={"chk": 1000})
        result = calculate_leftover(data, SOURCES[:1])
        assert result.remaining_expenses == 0
        assert result.leftover == 1000


class TestPayoffRemaining:
    """Payoff bills carry the revolving balance."""

    def test_payoff_uses_open_occurrence(self):
        """The open occurrence is what is left, not expected minus paid."""
        payoff = close_first(instance(
            "Visa Payoff",
            [20000, 30000],
            is_payoff_bill=True,
            payoff_source_id="visa",
        ))
        payoff = payoff.model_copy(update={"expected_amount": 30000})

        assert remaining(payoff) == 10000
        assert remaining_for_leftover(payoff) == 30000

    def test_closed_payoff(self):
        """A paid-off card leaves nothing."""
        payoff = close_first(instance(
            "Visa Payoff", [20000], is_payoff_bill=True, payoff_source_id="visa"
        ))
        assert remaining_for_leftover(payoff) == 0

    def test_regular_instance(self):
        """Regular instances use expected minus actual."""
        assert remaining_for_leftover(close_first(instance("Phone", [3000, 4000]))) == 4000


class TestMonthHelpers:
    """Date-dependent helpers take today explicitly."""

    def test_is_current_month(self):
        """Compares the month of `today`."""
        assert is_current_month("2025-01", date(2025, 1, 31))
        assert not is_current_month("2025-02", date(2025, 1, 31))

    def test_projection_start_current_month(self):
        """Current month projects from today."""
        assert projection_start_date("2025-01", date(2025, 1, 14)) == date(2025, 1, 14)

    def test_projection_start_other_month(self):
        """Other months project from the 1st."""
        assert projection_start_date("2025-03", date(2025, 1, 14)) == date(2025, 3, 1)

    def test_has_actuals_entered(self):
        """True once anything is closed."""
        assert not has_actuals_entered(MonthlyData(
            month="2025-01", bill_instances=[instance("Rent", [1000])]
        ))
        assert has_actuals_entered(scenario({}))
