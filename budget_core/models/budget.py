"""
Budget Input Models

Templates and payment sources are owned by the persistence layer and
handed to the core already decoded into these shapes. Older storage
formats are translated before they get here; the core only ever sees
the current schema.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from budget_core.models.occurrence import MONTH_PATTERN, Instance


class PaymentSourceType(str, Enum):
    """Kinds of accounts money moves through."""
    BANK_ACCOUNT = "bank_account"
    CREDIT_CARD = "credit_card"
    LINE_OF_CREDIT = "line_of_credit"
    CASH = "cash"
    INVESTMENT = "investment"


class RecurringTemplate(BaseModel):
    """
    Shared shape of bill and income templates.

    billing_period is kept as a plain string: unrecognized cadences
    are resolved (to monthly) at materialization time rather than
    rejected here.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    amount: int = Field(
        ...,
        ge=0,
        description="Per-occurrence amount in cents"
    )
    billing_period: str = "monthly"
    start_date: Optional[date] = Field(
        default=None,
        description="Anchor date of the first occurrence"
    )
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    due_day: Optional[int] = Field(default=None, ge=1, le=31)
    category_id: Optional[str] = None
    payment_source_id: Optional[str] = None
    is_active: bool = True


class BillTemplate(RecurringTemplate):
    """A recurring expense."""


class IncomeTemplate(RecurringTemplate):
    """A recurring income."""


class PaymentSource(BaseModel):
    """An account whose month balance feeds the leftover calculation."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    type: PaymentSourceType = PaymentSourceType.BANK_ACCOUNT
    pay_off_monthly: bool = Field(
        default=False,
        description="Card is paid in full each month; its balance becomes a payoff bill"
    )
    track_payments_manually: bool = Field(
        default=False,
        description="Card payments are entered by hand against an empty payoff bill"
    )
    exclude_from_leftover: bool = False
    is_active: bool = True

    @property
    def counts_toward_leftover(self) -> bool:
        return not (self.pay_off_monthly or self.exclude_from_leftover)


class MonthlyData(BaseModel):
    """Everything materialized for one month."""

    month: str = Field(..., pattern=MONTH_PATTERN)
    bill_instances: list[Instance] = Field(default_factory=list)
    income_instances: list[Instance] = Field(default_factory=list)
    bank_balances: dict[str, int] = Field(
        default_factory=dict,
        description="Payment source id -> balance in cents"
    )
