"""
Validation Models

Findings from the month consistency validator. Warnings and info
findings are expected, recoverable states and are reported as data.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation finding."""

    field: str = Field(
        ...,
        description="Field or entity with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'bad_sequence', 'missing_balance', 'extra_occurrence_month')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Instance, occurrence or payment source the issue is about"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """
    Result of the two-stage month validation.

    Stage 1: Structural validation (ledger invariants)
    Stage 2: Semantic validation (completeness and sanity findings)
    """

    month: str
    validated_at: Optional[datetime] = None

    structure_valid: bool = Field(
        ...,
        description="Did structural validation pass?"
    )
    semantic_valid: bool = Field(
        ...,
        description="Did semantic validation pass?"
    )
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    def issues_of_type(self, issue_type: str) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.issue_type == issue_type]
