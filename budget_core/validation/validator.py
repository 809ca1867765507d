"""
Two-Stage Month Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - STRUCTURAL VALIDATION:
- Occurrence sequences numbered 1..N in date order
- Instance closed state agrees with its occurrences
- Every instance belongs to the month and section it sits in
- This catches data that was edited outside the ledger

STAGE 2 - SEMANTIC VALIDATION:
- Months with an extra weekly/bi-weekly occurrence (info)
- Missing balances for leftover (warning)
- Overpaid instances (warning)
- Occurrences dated outside the month (warning)
- These are expected, recoverable states worth surfacing

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user (or the service layer) to act on.
"""

from datetime import datetime
from typing import Optional, Sequence

from budget_core.leftover.calculator import missing_balance_sources
from budget_core.models.budget import MonthlyData, PaymentSource
from budget_core.models.occurrence import Instance, InstanceKind
from budget_core.models.validation import ValidationIssue, ValidationResult
from budget_core.recurrence.calculator import is_extra_occurrence_month
from budget_core.recurrence.calendar import month_of
from budget_core.tally.engine import effective


class MonthValidator:
    """
    Validates one month of ledger data through a two-stage pipeline.

    Stage 1: Structural validation
    Stage 2: Semantic validation (skipped when stage 1 fails)
    """

    def _validate_instance_structure(
        self,
        instance: Instance,
        month: str,
        expected_kind: InstanceKind,
    ) -> list[ValidationIssue]:
        issues = []
        entity_id = str(instance.id)

        if instance.month != month:
            issues.append(ValidationIssue(
                field="month",
                issue_type="month_mismatch",
                message=f"{instance.name or 'Instance'} belongs to {instance.month}, not {month}",
                severity="error",
                entity_id=entity_id,
            ))

        if instance.kind != expected_kind:
            issues.append(ValidationIssue(
                field="kind",
                issue_type="wrong_section",
                message=f"{instance.name or 'Instance'} is a {instance.kind.value} listed under {expected_kind.value}",
                severity="error",
                entity_id=entity_id,
            ))

        sequences = [occ.sequence for occ in instance.occurrences]
        dates = [occ.expected_date for occ in instance.occurrences]
        if sequences != list(range(1, len(sequences) + 1)) or dates != sorted(dates):
            issues.append(ValidationIssue(
                field="occurrences",
                issue_type="bad_sequence",
                message=f"Occurrences of {instance.name or 'instance'} are not numbered 1..N in date order",
                severity="error",
                entity_id=entity_id,
                suggested_fix="Resequence the occurrences",
            ))

        if instance.occurrences:
            all_closed = all(occ.is_closed for occ in instance.occurrences)
            if instance.is_closed != all_closed:
                issues.append(ValidationIssue(
                    field="is_closed",
                    issue_type="inconsistent_closed_state",
                    message=f"{instance.name or 'Instance'} closed state disagrees with its occurrences",
                    severity="error",
                    entity_id=entity_id,
                ))

        return issues

    def _validate_structure(
        self,
        data: MonthlyData,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Structural validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        for instance in data.bill_instances:
            issues.extend(self._validate_instance_structure(instance, data.month, InstanceKind.BILL))
        for instance in data.income_instances:
            issues.extend(self._validate_instance_structure(instance, data.month, InstanceKind.INCOME))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        data: MonthlyData,
        payment_sources: Sequence[PaymentSource],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        instances = list(data.bill_instances) + list(data.income_instances)

        for instance in instances:
            entity_id = str(instance.id)
            scheduled = [occ for occ in instance.occurrences if not occ.is_adhoc]

            if not instance.is_adhoc and is_extra_occurrence_month(instance.billing_period, len(scheduled)):
                issues.append(ValidationIssue(
                    field="occurrences",
                    issue_type="extra_occurrence_month",
                    message=f"{instance.name} occurs {len(scheduled)} times this month",
                    severity="info",
                    entity_id=entity_id,
                ))

            paid = effective(instance)
            if not (instance.is_adhoc or instance.is_payoff_bill) and paid > instance.expected_amount:
                issues.append(ValidationIssue(
                    field="expected_amount",
                    issue_type="overpaid",
                    message=(
                        f"{instance.name} has {paid / 100:,.2f} closed against "
                        f"{instance.expected_amount / 100:,.2f} expected"
                    ),
                    severity="warning",
                    entity_id=entity_id,
                    suggested_fix="Check the closed amounts",
                ))

            for occ in instance.occurrences:
                if month_of(occ.expected_date) != data.month:
                    issues.append(ValidationIssue(
                        field="expected_date",
                        issue_type="occurrence_outside_month",
                        message=f"{instance.name} has an occurrence dated {occ.expected_date}",
                        severity="warning",
                        entity_id=str(occ.id),
                        suggested_fix="Move the occurrence into the month",
                    ))

        for source in missing_balance_sources(data, payment_sources):
            issues.append(ValidationIssue(
                field="bank_balances",
                issue_type="missing_balance",
                message=f"No balance entered for {source.name}",
                severity="warning",
                entity_id=source.id,
                suggested_fix="Enter the balance to calculate leftover",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(
        self,
        data: MonthlyData,
        payment_sources: Sequence[PaymentSource] = (),
        validated_at: Optional[datetime] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            data: The month to validate
            payment_sources: Needed for the missing-balance check
            validated_at: Timestamp to stamp on the result

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        # Stage 1: Structural validation
        structure_valid, structure_issues = self._validate_structure(data)
        all_issues.extend(structure_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if structure_valid:
            semantic_valid, semantic_issues = self._validate_semantic(data, payment_sources)
            all_issues.extend(semantic_issues)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            month=data.month,
            validated_at=validated_at,
            structure_valid=structure_valid,
            semantic_valid=semantic_valid,
            is_valid=structure_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed for this month."

        lines = []

        if not result.structure_valid:
            lines.append("❌ Some of this month's data is inconsistent:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please check the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
