"""
Read-model aggregates.

These are derived on demand and never persisted.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SectionTally(BaseModel):
    """
    {expected, actual, remaining} over a set of instances.

    Tallies form a commutative monoid under combine() with the
    all-zero tally as identity.
    """
    model_config = ConfigDict(frozen=True)

    expected: int = 0
    actual: int = 0
    remaining: int = 0


class CategorySubtotal(BaseModel):
    """Presentation aggregate for one category group (no remaining)."""
    model_config = ConfigDict(frozen=True)

    expected: int = 0
    actual: int = 0


class MonthTallies(BaseModel):
    """Every section tally shown for a month."""

    bills: SectionTally
    adhoc_bills: SectionTally
    payoff_bills: SectionTally
    total_expenses: SectionTally
    income: SectionTally
    adhoc_income: SectionTally
    total_income: SectionTally


class LeftoverResult(BaseModel):
    """
    Projected end-of-month cash position.

    CRITICAL: when is_valid is False the numbers are best-effort
    (missing balances counted as zero) and must not be trusted.
    """

    bank_balances: int = Field(..., description="Sum of included balances in cents")
    remaining_income: int = Field(..., ge=0)
    remaining_expenses: int = Field(..., ge=0)
    leftover: int
    is_valid: bool
    missing_balances: list[str] = Field(default_factory=list)
    error_message: Optional[str] = None
