"""
Data Models Package

This package contains all Pydantic models used in Budget Core.
All data flowing through the ledger must conform to these schemas.
"""

from budget_core.models.occurrence import (
    BillingPeriod,
    Instance,
    InstanceKind,
    Occurrence,
)
from budget_core.models.budget import (
    BillTemplate,
    IncomeTemplate,
    MonthlyData,
    PaymentSource,
    PaymentSourceType,
    RecurringTemplate,
)
from budget_core.models.tally import (
    CategorySubtotal,
    LeftoverResult,
    MonthTallies,
    SectionTally,
)
from budget_core.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from budget_core.models.audit import (
    AuditSeverity,
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
)

__all__ = [
    # Ledger models
    "BillingPeriod",
    "Instance",
    "InstanceKind",
    "Occurrence",
    # Inputs
    "BillTemplate",
    "IncomeTemplate",
    "MonthlyData",
    "PaymentSource",
    "PaymentSourceType",
    "RecurringTemplate",
    # Read models
    "CategorySubtotal",
    "LeftoverResult",
    "MonthTallies",
    "SectionTally",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditSeverity",
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventType",
]
