"""
Audit Models for Budget Core

Every ledger mutation is logged for audit purposes.
This provides:
1. Traceability of every close, split and reopen
2. A way to reconstruct how a month's totals came about
3. Debugging information when a tally looks wrong

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class LedgerEventType(str, Enum):
    """
    Types of events we audit.

    Each ledger transition has its own event type.
    """
    # Materialization
    MONTH_GENERATED = "month_generated"
    BALANCES_UPDATED = "balances_updated"

    # Occurrence transitions
    OCCURRENCE_CLOSED = "occurrence_closed"
    OCCURRENCE_SPLIT = "occurrence_split"
    OCCURRENCE_REOPENED = "occurrence_reopened"
    OCCURRENCE_ADDED = "occurrence_added"
    OCCURRENCE_UPDATED = "occurrence_updated"
    OCCURRENCE_REMOVED = "occurrence_removed"

    # Instance transitions
    INSTANCE_CLOSED = "instance_closed"
    INSTANCE_REOPENED = "instance_reopened"

    # Payoff bills
    PAYOFF_PAYMENT_RECORDED = "payoff_payment_recorded"

    # Read model
    LEFTOVER_INCOMPLETE = "leftover_incomplete"

    # Failures
    LEDGER_ERROR = "ledger_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LedgerEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: Optional[datetime] = Field(
        default=None,
        description="When the event occurred; supplied by the caller's clock"
    )

    event_type: LedgerEventType
    severity: AuditSeverity = AuditSeverity.INFO

    month: Optional[str] = None
    instance_id: Optional[UUID] = None
    occurrence_id: Optional[UUID] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one user action)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "month": self.month,
            "instance_id": str(self.instance_id) if self.instance_id else None,
            "occurrence_id": str(self.occurrence_id) if self.occurrence_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


def _cents(amount: int) -> str:
    return f"${amount / 100:,.2f}"


class LedgerEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = LedgerEventBuilder.occurrence_closed(month, instance_id, occ, ...)
    """

    @staticmethod
    def month_generated(
        month: str,
        bill_count: int,
        income_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.MONTH_GENERATED,
            month=month,
            correlation_id=correlation_id,
            description=f"Generated {month}: {bill_count} bills, {income_count} incomes",
            details={
                "bill_count": bill_count,
                "income_count": income_count,
            },
        )

    @staticmethod
    def balances_updated(
        month: str,
        balances: dict[str, int],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BALANCES_UPDATED,
            month=month,
            correlation_id=correlation_id,
            description=f"Bank balances updated for {len(balances)} sources",
            details={"balances": dict(balances)},
        )

    @staticmethod
    def occurrence_closed(
        month: str,
        instance_id: UUID,
        occurrence_id: UUID,
        amount: int,
        closed_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.OCCURRENCE_CLOSED,
            month=month,
            instance_id=instance_id,
            occurrence_id=occurrence_id,
            correlation_id=correlation_id,
            description=f"Occurrence closed at {_cents(amount)}",
            details={
                "amount": amount,
                "closed_date": closed_date.isoformat(),
            },
        )

    @staticmethod
    def occurrence_split(
        month: str,
        instance_id: UUID,
        occurrence_id: UUID,
        new_occurrence_id: UUID,
        paid_amount: int,
        remaining_amount: int,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.OCCURRENCE_SPLIT,
            month=month,
            instance_id=instance_id,
            occurrence_id=occurrence_id,
            correlation_id=correlation_id,
            description=(
                f"Occurrence split: paid {_cents(paid_amount)}, "
                f"remaining {_cents(remaining_amount)}"
            ),
            details={
                "paid_amount": paid_amount,
                "remaining_amount": remaining_amount,
                "new_occurrence_id": str(new_occurrence_id),
            },
        )

    @staticmethod
    def occurrence_reopened(
        month: str,
        instance_id: UUID,
        occurrence_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.OCCURRENCE_REOPENED,
            month=month,
            instance_id=instance_id,
            occurrence_id=occurrence_id,
            correlation_id=correlation_id,
            description="Occurrence reopened",
        )

    @staticmethod
    def occurrence_added(
        month: str,
        instance_id: UUID,
        occurrence_id: UUID,
        amount: int,
        expected_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.OCCURRENCE_ADDED,
            month=month,
            instance_id=instance_id,
            occurrence_id=occurrence_id,
            correlation_id=correlation_id,
            description=f"Ad-hoc occurrence added: {_cents(amount)} on {expected_date.isoformat()}",
            details={
                "amount": amount,
                "expected_date": expected_date.isoformat(),
            },
        )

    @staticmethod
    def occurrence_updated(
        month: str,
        instance_id: UUID,
        occurrence_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.OCCURRENCE_UPDATED,
            month=month,
            instance_id=instance_id,
            occurrence_id=occurrence_id,
            correlation_id=correlation_id,
            description=f"Occurrence updated: {', '.join(sorted(changes)) or 'no fields'}",
            details={"changes": changes},
        )

    @staticmethod
    def occurrence_removed(
        month: str,
        instance_id: UUID,
        occurrence_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.OCCURRENCE_REMOVED,
            month=month,
            instance_id=instance_id,
            occurrence_id=occurrence_id,
            correlation_id=correlation_id,
            description="Occurrence removed",
        )

    @staticmethod
    def instance_closed(
        month: str,
        instance_id: UUID,
        closed_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.INSTANCE_CLOSED,
            month=month,
            instance_id=instance_id,
            correlation_id=correlation_id,
            description="Instance and all its occurrences closed",
            details={"closed_date": closed_date.isoformat()},
        )

    @staticmethod
    def instance_reopened(
        month: str,
        instance_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.INSTANCE_REOPENED,
            month=month,
            instance_id=instance_id,
            correlation_id=correlation_id,
            description="Instance and all its occurrences reopened",
        )

    @staticmethod
    def payoff_payment_recorded(
        month: str,
        instance_id: UUID,
        amount: int,
        new_balance: int,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.PAYOFF_PAYMENT_RECORDED,
            month=month,
            instance_id=instance_id,
            correlation_id=correlation_id,
            description=f"Payoff payment {_cents(amount)}, balance now {_cents(new_balance)}",
            details={
                "amount": amount,
                "new_balance": new_balance,
            },
        )

    @staticmethod
    def leftover_incomplete(
        month: str,
        missing_balances: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.LEFTOVER_INCOMPLETE,
            severity=AuditSeverity.WARNING,
            month=month,
            correlation_id=correlation_id,
            description=f"Leftover incomplete: {len(missing_balances)} balances missing",
            details={"missing_balances": list(missing_balances)},
        )

    @staticmethod
    def ledger_error(
        month: str,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.LEDGER_ERROR,
            severity=AuditSeverity.ERROR,
            month=month,
            correlation_id=correlation_id,
            description=f"Ledger error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
