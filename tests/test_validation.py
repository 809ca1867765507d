"""
Tests for the two-stage month validator.
"""

from datetime import date, datetime

from budget_core.ledger import close_occurrence
from budget_core.materialize import generate_month
from budget_core.models import (
    BillTemplate,
    IncomeTemplate,
    PaymentSource,
)
from budget_core.validation import MonthValidator


SOURCES = [
    PaymentSource(id="chk", name="Checking"),
    PaymentSource(id="sav", name="Savings"),
]


def month_data(balances=None):
    bills = [
        BillTemplate(id="rent", name="Rent", amount=150000, day_of_month=1),
        # Wednesday anchor: five Wednesdays in January 2025
        BillTemplate(
            id="cleaning",
            name="Cleaning",
            amount=6000,
            billing_period="weekly",
            start_date=date(2025, 1, 1),
        ),
    ]
    incomes = [IncomeTemplate(id="salary", name="Salary", amount=400000, day_of_month=25)]
    data = generate_month("2025-01", bills, incomes)
    return data.model_copy(update={"bank_balances": balances or {}})


class TestStructure:
    """Stage 1."""

    def test_generated_month_is_consistent(self):
        """Freshly generated data passes structural checks."""
        result = MonthValidator().validate(month_data({"chk": 1, "sav": 1}), SOURCES)
        assert result.structure_valid
        assert result.semantic_valid
        assert result.is_valid
        assert not result.has_errors

    def test_bad_sequence_detected(self):
        """Swapped sequence numbers are an error and stage 2 is skipped."""
        data = month_data()
        cleaning = data.bill_instances[1]
        swapped = [
            occ.model_copy(update={"sequence": 5 - index})
            for index, occ in enumerate(cleaning.occurrences)
        ]
        data.bill_instances[1] = cleaning.model_copy(update={"occurrences": swapped})

        result = MonthValidator().validate(data, SOURCES)

        assert not result.structure_valid
        assert not result.is_valid
        assert [i.entity_id for i in result.issues_of_type("bad_sequence")] == [str(cleaning.id)]
        assert result.issues_of_type("missing_balance") == []

    def test_month_mismatch(self):
        """Instances from another month are flagged."""
        data = month_data()
        data.bill_instances[0] = data.bill_instances[0].model_copy(update={"month": "2024-12"})
        result = MonthValidator().validate(data, SOURCES)
        assert len(result.issues_of_type("month_mismatch")) == 1

    def test_wrong_section(self):
        """An income listed among bills is flagged."""
        data = month_data()
        data.bill_instances.append(data.income_instances[0])
        result = MonthValidator().validate(data, SOURCES)
        assert len(result.issues_of_type("wrong_section")) == 1

    def test_inconsistent_closed_state(self):
        """Closed flag disagreeing with occurrences is flagged."""
        data = month_data()
        data.bill_instances[0] = data.bill_instances[0].model_copy(update={"is_closed": True})
        result = MonthValidator().validate(data, SOURCES)
        assert result.error_count == 1
        assert result.issues[0].issue_type == "inconsistent_closed_state"


class TestSemantic:
    """Stage 2."""

    def test_extra_occurrence_month_is_info(self):
        """Five weekly occurrences are reported, not failed."""
        result = MonthValidator().validate(month_data({"chk": 1, "sav": 1}), SOURCES)
        extra = result.issues_of_type("extra_occurrence_month")
        assert len(extra) == 1
        assert extra[0].severity == "info"
        assert result.is_valid

    def test_missing_balance_is_warning(self):
        """Missing balances become warnings."""
        result = MonthValidator().validate(month_data({"chk": 1}), SOURCES)
        missing = result.issues_of_type("missing_balance")
        assert [issue.entity_id for issue in missing] == ["sav"]
        assert "No balance entered for Savings" in result.warnings
        assert result.is_valid

    def test_overpaid_is_warning(self):
        """Closing above expected is flagged."""
        data = month_data({"chk": 1, "sav": 1})
        rent = data.bill_instances[0]
        data.bill_instances[0] = close_occurrence(
            rent, rent.occurrences[0].id, date(2025, 1, 1), amount=160000
        )
        result = MonthValidator().validate(data, SOURCES)
        assert len(result.issues_of_type("overpaid")) == 1

    def test_occurrence_outside_month(self):
        """Occurrences dated in another month are flagged."""
        data = month_data({"chk": 1, "sav": 1})
        rent = data.bill_instances[0]
        moved = rent.occurrences[0].model_copy(update={"expected_date": date(2025, 2, 1)})
        data.bill_instances[0] = rent.model_copy(update={"occurrences": [moved]})
        result = MonthValidator().validate(data, SOURCES)
        assert len(result.issues_of_type("occurrence_outside_month")) == 1

    def test_validated_at(self):
        """The timestamp is whatever the caller passes."""
        stamp = datetime(2025, 1, 31, 18, 0)
        result = MonthValidator().validate(month_data(), SOURCES, validated_at=stamp)
        assert result.validated_at == stamp


class TestSummary:
    """User-facing summary."""

    def test_all_clear(self):
        """No warnings, short message."""
        validator = MonthValidator()
        result = validator.validate(month_data({"chk": 1, "sav": 1}), SOURCES)
        assert validator.get_user_friendly_summary(result).startswith("✅")

    def test_lists_warnings(self):
        """Warnings are listed."""
        validator = MonthValidator()
        result = validator.validate(month_data(), SOURCES)
        summary = validator.get_user_friendly_summary(result)
        assert "No balance entered for Checking" in summary
        assert "No balance entered for Savings" in summary

    def test_lists_errors(self):
        """Structural errors are listed with fixes."""
        data = month_data()
        data.bill_instances[0] = data.bill_instances[0].model_copy(update={"month": "2024-12"})
        validator = MonthValidator()
        summary = validator.get_user_friendly_summary(validator.validate(data, SOURCES))
        assert summary.startswith("❌")
        assert "belongs to 2024-12" in summary
