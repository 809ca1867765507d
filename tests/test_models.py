"""
Tests for Budget Core

Test strategy:
1. Unit tests for individual components (models, ledger, tallies)
2. Integration tests for the month service
3. No clock reads in tests (pass `today` / `now`, inject clocks)
"""

import pytest
from datetime import date, datetime
from uuid import uuid4

from pydantic import ValidationError

from budget_core.audit import (
    AuditLogger,
    InMemoryAuditSink,
    configure_logging,
    create_correlation_id,
)
from budget_core.config import (
    AppSettings,
    LedgerSettings,
    get_settings,
    validate_all_settings,
)
from budget_core.models import (
    AuditSeverity,
    BillTemplate,
    Instance,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
    MonthlyData,
    Occurrence,
    PaymentSource,
    SectionTally,
    ValidationIssue,
    ValidationResult,
)


class TestLedgerModels:
    """Tests for the occurrence and instance models."""

    def test_occurrence_creation(self):
        """Test Occurrence defaults."""
        occ = Occurrence(expected_date=date(2025, 1, 3), expected_amount=12000)
        assert not occ.is_closed
        assert not occ.is_adhoc
        assert occ.sequence == 0
        assert occ.created_at is None

    def test_occurrence_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            Occurrence(expected_date=date(2025, 1, 3), expected_amount=-1)

    def test_closed_occurrence_requires_date(self):
        """Test that a closed occurrence needs its closed_date."""
        with pytest.raises(ValueError, match="Closed occurrence must have a closed_date"):
            Occurrence(expected_date=date(2025, 1, 3), expected_amount=100, is_closed=True)

    def test_open_occurrence_rejects_date(self):
        """Test that an open occurrence cannot carry a closed_date."""
        with pytest.raises(ValueError, match="Open occurrence cannot have a closed_date"):
            Occurrence(
                expected_date=date(2025, 1, 3),
                expected_amount=100,
                closed_date=date(2025, 1, 3),
            )

    def test_occurrence_accepts_iso_strings(self):
        """Test ISO date strings are parsed."""
        occ = Occurrence(expected_date="2025-01-03", expected_amount=100)
        assert occ.expected_date == date(2025, 1, 3)

    def test_notes_stripped(self):
        """Test that whitespace is stripped from notes."""
        occ = Occurrence(expected_date=date(2025, 1, 3), expected_amount=100, notes="  hi  ")
        assert occ.notes == "hi"

    def test_instance_month_format(self):
        """Test month must be YYYY-MM."""
        with pytest.raises(ValidationError):
            Instance(month="2025-1")
        with pytest.raises(ValidationError):
            Instance(month="2025-13")

    def test_instance_closed_must_match_occurrences(self):
        """Test the instance closed flag mirrors its occurrences."""
        open_occ = Occurrence(expected_date=date(2025, 1, 3), expected_amount=100)
        with pytest.raises(ValueError):
            Instance(month="2025-01", occurrences=[open_occ], is_closed=True)

        closed_occ = Occurrence(
            expected_date=date(2025, 1, 3),
            expected_amount=100,
            is_closed=True,
            closed_date=date(2025, 1, 3),
        )
        with pytest.raises(ValueError):
            Instance(month="2025-01", occurrences=[closed_occ], is_closed=False)

    def test_empty_instance_can_be_either(self):
        """Test an instance without occurrences may be open or closed."""
        assert Instance(month="2025-01", is_closed=True).is_closed
        assert not Instance(month="2025-01").is_closed

    def test_payoff_bill_needs_source(self):
        """Test payoff bills reference their payment source."""
        with pytest.raises(ValueError, match="payoff_source_id"):
            Instance(month="2025-01", is_payoff_bill=True)

    def test_open_and_closed_views(self):
        """Test the open/closed occurrence properties."""
        occurrences = [
            Occurrence(expected_date=date(2025, 1, 3), expected_amount=100),
            Occurrence(
                expected_date=date(2025, 1, 17),
                expected_amount=100,
                is_closed=True,
                closed_date=date(2025, 1, 17),
            ),
        ]
        instance = Instance(month="2025-01", occurrences=occurrences)
        assert instance.open_occurrences == occurrences[:1]
        assert instance.closed_occurrences == occurrences[1:]


class TestInputModels:
    """Tests for templates and payment sources."""

    def test_template_keeps_unknown_period(self):
        """Test unknown billing periods are accepted as stored."""
        template = BillTemplate(id="gym", name="Gym", amount=4000, billing_period="quarterly")
        assert template.billing_period == "quarterly"

    def test_template_day_bounds(self):
        """Test day_of_month is 1..31."""
        with pytest.raises(ValidationError):
            BillTemplate(id="gym", name="Gym", amount=4000, day_of_month=32)

    def test_counts_toward_leftover(self):
        """Test pay-off-monthly and excluded sources do not count."""
        assert PaymentSource(id="a", name="Checking").counts_toward_leftover
        assert not PaymentSource(id="b", name="Visa", pay_off_monthly=True).counts_toward_leftover
        assert not PaymentSource(id="c", name="RRSP", exclude_from_leftover=True).counts_toward_leftover

    def test_monthly_data_defaults(self):
        """Test empty month."""
        data = MonthlyData(month="2025-01")
        assert data.bill_instances == []
        assert data.bank_balances == {}

    def test_tally_is_frozen(self):
        """Test tallies are immutable values."""
        tally = SectionTally(expected=1)
        with pytest.raises(ValidationError):
            tally.expected = 2


class TestAuditModels:
    """Tests for audit event models."""

    def test_ledger_event_creation(self):
        """Test LedgerEvent creation."""
        event = LedgerEvent(
            event_type=LedgerEventType.OCCURRENCE_CLOSED,
            description="Test event",
        )
        assert event.event_type == LedgerEventType.OCCURRENCE_CLOSED
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp is None

    def test_ledger_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        instance_id = uuid4()
        event = LedgerEvent(
            event_type=LedgerEventType.INSTANCE_REOPENED,
            timestamp=datetime(2025, 1, 15, 9, 0),
            instance_id=instance_id,
            description="Test",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "instance_reopened"
        assert log_dict["timestamp"] == "2025-01-15T09:00:00"
        assert log_dict["instance_id"] == str(instance_id)
        assert log_dict["occurrence_id"] is None

    def test_builder_occurrence_split(self):
        """Test split event details."""
        new_id = uuid4()
        event = LedgerEventBuilder.occurrence_split(
            month="2025-01",
            instance_id=uuid4(),
            occurrence_id=uuid4(),
            new_occurrence_id=new_id,
            paid_amount=10000,
            remaining_amount=20000,
        )
        assert event.event_type == LedgerEventType.OCCURRENCE_SPLIT
        assert event.details["new_occurrence_id"] == str(new_id)
        assert "$100.00" in event.description
        assert "$200.00" in event.description

    def test_builder_ledger_error(self):
        """Test error events carry the message."""
        correlation_id = create_correlation_id()
        event = LedgerEventBuilder.ledger_error(
            month="2025-01",
            error_type="OccurrenceStateError",
            error_message="already closed",
            correlation_id=correlation_id,
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "already closed"
        assert event.correlation_id == correlation_id


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            month="2025-01",
            structure_valid=False,
            semantic_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="occurrences",
                    issue_type="bad_sequence",
                    message="Out of order",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors
        assert result.error_count == 1
        assert len(result.issues_of_type("bad_sequence")) == 1

    def test_validation_result_warnings_only(self):
        """Test result with only warnings."""
        result = ValidationResult(
            month="2025-01",
            structure_valid=True,
            semantic_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="bank_balances",
                    issue_type="missing_balance",
                    message="No balance entered for Savings",
                    severity="warning",
                ),
            ],
            warnings=["No balance entered for Savings"],
        )
        assert not result.has_errors
        assert result.error_count == 0

    def test_severity_values(self):
        """Test severity is restricted."""
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestSettings:
    """Tests for configuration."""

    def test_ledger_defaults(self, monkeypatch):
        """Test ledger defaults."""
        monkeypatch.delenv("BUDGET_LEDGER_SPLIT_REMAINDER_DATE", raising=False)
        settings = LedgerSettings()
        assert settings.split_remainder_date == "end_of_month"
        assert settings.payoff_occurrence_day == 28
        assert settings.due_soon_days == 3

    def test_ledger_env_prefix(self, monkeypatch):
        """Test environment overrides use the BUDGET_LEDGER_ prefix."""
        monkeypatch.setenv("BUDGET_LEDGER_SPLIT_REMAINDER_DATE", "same_date")
        monkeypatch.setenv("BUDGET_LEDGER_PAYOFF_OCCURRENCE_DAY", "15")
        settings = LedgerSettings()
        assert settings.split_remainder_date == "same_date"
        assert settings.payoff_occurrence_day == 15

    def test_invalid_remainder_policy(self):
        """Test unknown policies are rejected."""
        with pytest.raises(ValidationError):
            LedgerSettings(split_remainder_date="next_month")

    def test_log_level_normalized(self):
        """Test log level is upper-cased and checked."""
        assert AppSettings(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            AppSettings(log_level="chatty")

    def test_validate_all_settings(self, monkeypatch):
        """Test the startup check reports each group."""
        monkeypatch.setenv("BUDGET_LEDGER_SPLIT_REMAINDER_DATE", "sideways")
        get_settings.cache_clear()
        try:
            results = validate_all_settings()
        finally:
            get_settings.cache_clear()
        assert results["ledger"] is False
        assert "ledger_error" in results
        assert results["app"] is True


class TestAuditLogger:
    """Tests for the audit logger."""

    def test_events_reach_sink(self):
        """Test events are appended to the sink."""
        sink = InMemoryAuditSink()
        logger = AuditLogger(sink)
        event = LedgerEventBuilder.instance_reopened(month="2025-01", instance_id=uuid4())
        assert logger.log(event) is True
        assert sink.events == [event]

    def test_no_sink(self):
        """Test local-only logging succeeds."""
        event = LedgerEventBuilder.leftover_incomplete(month="2025-01", missing_balances=["chk"])
        assert AuditLogger().log(event) is True

    def test_configure_logging_from_settings(self, monkeypatch):
        """The level falls back to AppSettings."""
        monkeypatch.setenv("LOG_LEVEL", "warning")
        get_settings.cache_clear()
        try:
            assert get_settings().app.log_level == "WARNING"
            configure_logging()
        finally:
            get_settings.cache_clear()
