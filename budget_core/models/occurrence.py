"""
Core Ledger Models for Budget Core

These models define the strict schemas for everything the ledger touches:
- Occurrence: one scheduled (or ad-hoc) money movement
- Instance: a bill or income materialized for one month

They are designed to:
1. Enforce the closed/open accounting invariants at construction time
2. Keep money as integer cents (never float)
3. Be serializable for the persistence layer and for logging

DESIGN DECISION: The ledger never mutates these in place.
Every transition returns a new model (see budget_core.ledger).
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BillingPeriod(str, Enum):
    """
    Recurrence cadence of a bill or income.

    Values outside this set are resolved to MONTHLY by
    budget_core.recurrence.resolve_billing_period.
    """
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi_weekly"
    SEMI_ANNUALLY = "semi_annually"


class InstanceKind(str, Enum):
    """Which side of the budget an instance belongs to."""
    BILL = "bill"
    INCOME = "income"


# =============================================================================
# OCCURRENCE
# =============================================================================

class Occurrence(BaseModel):
    """
    A single expected payment (bill) or receipt (income) inside an instance.

    CRITICAL: Once closed, expected_amount is the amount treated as
    settled. Tallies never look anywhere else for "paid" money.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique occurrence ID"
    )
    sequence: int = Field(
        default=0,
        ge=0,
        description="1..N position inside the parent instance (0 = not yet sequenced)"
    )
    expected_date: date = Field(
        ...,
        description="Calendar date the money is expected to move"
    )
    expected_amount: int = Field(
        ...,
        ge=0,
        description="Amount owed in cents; the settled amount once closed"
    )
    is_closed: bool = False
    closed_date: Optional[date] = None
    payment_source_id: Optional[str] = None
    is_adhoc: bool = Field(
        default=False,
        description="Manually added (or split remainder) rather than generated"
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
    )

    # Timestamps are supplied by the caller; the ledger never reads the clock
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_closed_state(self) -> 'Occurrence':
        """A closed occurrence always carries its closed date, an open one never does."""
        if self.is_closed and self.closed_date is None:
            raise ValueError("Closed occurrence must have a closed_date")
        if not self.is_closed and self.closed_date is not None:
            raise ValueError("Open occurrence cannot have a closed_date")
        return self


# =============================================================================
# INSTANCE
# =============================================================================

class Instance(BaseModel):
    """
    A bill or income template materialized for one month.

    The instance exclusively owns its occurrence sequence.
    is_closed must agree with the occurrences whenever there are any.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique instance ID"
    )
    kind: InstanceKind = InstanceKind.BILL
    template_id: Optional[str] = Field(
        default=None,
        description="Bill/income template this was materialized from (None for ad-hoc)"
    )
    name: str = Field(
        default="",
        max_length=200,
    )
    month: str = Field(
        ...,
        pattern=MONTH_PATTERN,
        description="Month in YYYY-MM format"
    )
    billing_period: BillingPeriod = BillingPeriod.MONTHLY

    # Money
    expected_amount: int = Field(
        default=0,
        ge=0,
        description="Total expected for the month in cents"
    )
    occurrences: list[Occurrence] = Field(default_factory=list)

    # Status
    is_closed: bool = False
    closed_date: Optional[date] = None
    is_adhoc: bool = False
    is_default: bool = True

    # Payoff bills track paydown of a revolving balance
    is_payoff_bill: bool = False
    payoff_source_id: Optional[str] = None

    # References (owned externally)
    category_id: Optional[str] = None
    payment_source_id: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_closed_state(self) -> 'Instance':
        """Instance closed state must mirror a non-empty occurrence set."""
        if self.occurrences:
            all_closed = all(occ.is_closed for occ in self.occurrences)
            if self.is_closed != all_closed:
                raise ValueError(
                    "Instance is_closed must be true exactly when every occurrence is closed"
                )
        if self.is_payoff_bill and not self.payoff_source_id:
            raise ValueError("Payoff bill must reference its payoff_source_id")
        return self

    @property
    def open_occurrences(self) -> list[Occurrence]:
        return [occ for occ in self.occurrences if not occ.is_closed]

    @property
    def closed_occurrences(self) -> list[Occurrence]:
        return [occ for occ in self.occurrences if occ.is_closed]
