"""
Month Service for Budget Core

This module ties the ledger components together for one month of
data held in memory:
1. Materialize (templates -> instances)
2. Edit (close / split / reopen / add / update / remove)
3. Read (tallies, leftover, overdue, validation)

DESIGN DECISION: The service enforces the boundaries:
- Every mutation goes through the pure ledger functions
- Every mutation is audited, failures included
- The clock is injected; nothing here reads the system time

Persistence stays with the caller. The service hands back the
updated MonthlyData through the `data` property.
"""

from datetime import date, datetime
from typing import Callable, Optional, Sequence
from uuid import UUID

from budget_core.audit import AuditLogger, create_correlation_id
from budget_core.config import LedgerSettings, get_settings
from budget_core.ledger import instance_ops
from budget_core.ledger.state_machine import LedgerError
from budget_core.leftover import calculate_leftover
from budget_core.materialize import (
    PayoffPaymentResult,
    generate_month,
    reconcile_payoff_bills,
    record_payoff_payment,
)
from budget_core.models import (
    BillTemplate,
    IncomeTemplate,
    Instance,
    LedgerEvent,
    LedgerEventBuilder,
    LeftoverResult,
    MonthlyData,
    MonthTallies,
    PaymentSource,
    ValidationResult,
)
from budget_core.recurrence.calendar import InvalidDateError
from budget_core.schedule import OverdueItem, due_soon_occurrences, overdue_occurrences
from budget_core.tally import month_tallies
from budget_core.validation import MonthValidator


class InstanceNotFoundError(LedgerError):
    """No bill or income instance with the given id in this month."""

    def __init__(self, instance_id):
        self.instance_id = instance_id
        super().__init__(f"Instance {instance_id} not found")


BILLS = "bill_instances"
INCOMES = "income_instances"


class MonthService:
    """
    One month of ledger data plus the operations on it.

    Instances are located by id across bills and incomes.
    """

    def __init__(
        self,
        data: MonthlyData,
        payment_sources: Sequence[PaymentSource] = (),
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        ledger_settings: Optional[LedgerSettings] = None,
        validator: Optional[MonthValidator] = None,
    ):
        self._data = data
        self._payment_sources = list(payment_sources)
        self._audit_logger = audit_logger
        self._clock = clock
        self._settings = ledger_settings or get_settings().ledger
        self._validator = validator or MonthValidator()

    @classmethod
    def generate(
        cls,
        month: str,
        bills: Sequence[BillTemplate],
        incomes: Sequence[IncomeTemplate],
        payment_sources: Sequence[PaymentSource] = (),
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        ledger_settings: Optional[LedgerSettings] = None,
    ) -> "MonthService":
        """Materialize a fresh month from templates."""
        now = clock() if clock else None
        data = generate_month(month, bills, incomes, payment_sources, now=now)
        service = cls(
            data,
            payment_sources,
            audit_logger=audit_logger,
            clock=clock,
            ledger_settings=ledger_settings,
        )
        service._audit(LedgerEventBuilder.month_generated(
            month=month,
            bill_count=len(data.bill_instances),
            income_count=len(data.income_instances),
        ))
        return service

    @property
    def data(self) -> MonthlyData:
        return self._data

    @property
    def month(self) -> str:
        return self._data.month

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _now(self) -> Optional[datetime]:
        return self._clock() if self._clock else None

    def _audit(self, event: LedgerEvent) -> None:
        if not self._audit_logger:
            return
        now = self._now()
        if now is not None:
            event = event.model_copy(update={"timestamp": now})
        self._audit_logger.log(event)

    def _fail(self, error: Exception, action: str, correlation_id: UUID, **details) -> None:
        self._audit(LedgerEventBuilder.ledger_error(
            month=self.month,
            error_type=type(error).__name__,
            error_message=str(error),
            details={"action": action, **{k: str(v) for k, v in details.items()}},
            correlation_id=correlation_id,
        ))

    def _locate(self, instance_id) -> tuple[str, int, Instance]:
        try:
            wanted = instance_id if isinstance(instance_id, UUID) else UUID(str(instance_id))
        except ValueError:
            raise InstanceNotFoundError(instance_id) from None
        for section in (BILLS, INCOMES):
            for index, instance in enumerate(getattr(self._data, section)):
                if instance.id == wanted:
                    return section, index, instance
        raise InstanceNotFoundError(instance_id)

    def get_instance(self, instance_id) -> Instance:
        return self._locate(instance_id)[2]

    def _store(self, section: str, index: int, instance: Instance) -> None:
        instances = list(getattr(self._data, section))
        instances[index] = instance
        self._data = self._data.model_copy(update={section: instances})

    def _apply(
        self,
        action: str,
        instance_id,
        operation: Callable[[Instance, Optional[datetime]], Instance],
        correlation_id: UUID,
        **details,
    ) -> tuple[Instance, Instance]:
        """Run one instance operation; audit and re-raise ledger failures."""
        try:
            section, index, before = self._locate(instance_id)
            after = operation(before, self._now())
        except (LedgerError, InvalidDateError) as e:
            self._fail(e, action, correlation_id, instance_id=instance_id, **details)
            raise
        self._store(section, index, after)
        return before, after

    # =========================================================================
    # OCCURRENCE OPERATIONS
    # =========================================================================

    def close_occurrence(
        self,
        instance_id,
        occurrence_id,
        closed_date: date,
        amount: Optional[int] = None,
        payment_source_id: Optional[str] = None,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Instance:
        correlation_id = correlation_id or create_correlation_id()
        _, after = self._apply(
            "close_occurrence",
            instance_id,
            lambda inst, now: instance_ops.close_occurrence(
                inst, occurrence_id, closed_date,
                amount=amount,
                payment_source_id=payment_source_id,
                notes=notes,
                now=now,
            ),
            correlation_id,
            occurrence_id=occurrence_id,
        )
        closed = instance_ops.find_occurrence(after, occurrence_id)
        self._audit(LedgerEventBuilder.occurrence_closed(
            month=self.month,
            instance_id=after.id,
            occurrence_id=closed.id,
            amount=closed.expected_amount,
            closed_date=closed_date,
            correlation_id=correlation_id,
        ))
        return after

    def split_occurrence(
        self,
        instance_id,
        occurrence_id,
        paid_amount: int,
        closed_date: date,
        payment_source_id: Optional[str] = None,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Instance:
        correlation_id = correlation_id or create_correlation_id()
        before, after = self._apply(
            "split_occurrence",
            instance_id,
            lambda inst, now: instance_ops.split_occurrence(
                inst, occurrence_id, paid_amount, closed_date,
                payment_source_id=payment_source_id,
                notes=notes,
                policy=self._settings.split_remainder_date,
                now=now,
            ),
            correlation_id,
            occurrence_id=occurrence_id,
            paid_amount=paid_amount,
        )
        existing = {occ.id for occ in before.occurrences}
        remainder = next(occ for occ in after.occurrences if occ.id not in existing)
        self._audit(LedgerEventBuilder.occurrence_split(
            month=self.month,
            instance_id=after.id,
            occurrence_id=instance_ops.find_occurrence(after, occurrence_id).id,
            new_occurrence_id=remainder.id,
            paid_amount=paid_amount,
            remaining_amount=remainder.expected_amount,
            correlation_id=correlation_id,
        ))
        return after

    def reopen_occurrence(
        self,
        instance_id,
        occurrence_id,
        correlation_id: Optional[UUID] = None,
    ) -> Instance:
        correlation_id = correlation_id or create_correlation_id()
        _, after = self._apply(
            "reopen_occurrence",
            instance_id,
            lambda inst, now: instance_ops.reopen_occurrence(inst, occurrence_id, now=now),
            correlation_id,
            occurrence_id=occurrence_id,
        )
        self._audit(LedgerEventBuilder.occurrence_reopened(
            month=self.month,
            instance_id=after.id,
            occurrence_id=instance_ops.find_occurrence(after, occurrence_id).id,
            correlation_id=correlation_id,
        ))
        return after

    def add_adhoc_occurrence(
        self,
        instance_id,
        expected_date: date,
        amount: int,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Instance:
        correlation_id = correlation_id or create_correlation_id()
        before, after = self._apply(
            "add_adhoc_occurrence",
            instance_id,
            lambda inst, now: instance_ops.add_adhoc_occurrence(
                inst, expected_date, amount, notes=notes, now=now
            ),
            correlation_id,
            amount=amount,
        )
        existing = {occ.id for occ in before.occurrences}
        added = next(occ for occ in after.occurrences if occ.id not in existing)
        self._audit(LedgerEventBuilder.occurrence_added(
            month=self.month,
            instance_id=after.id,
            occurrence_id=added.id,
            amount=amount,
            expected_date=expected_date,
            correlation_id=correlation_id,
        ))
        return after

    def update_occurrence(
        self,
        instance_id,
        occurrence_id,
        expected_date: Optional[date] = None,
        expected_amount: Optional[int] = None,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Instance:
        correlation_id = correlation_id or create_correlation_id()
        _, after = self._apply(
            "update_occurrence",
            instance_id,
            lambda inst, now: instance_ops.update_occurrence(
                inst, occurrence_id,
                expected_date=expected_date,
                expected_amount=expected_amount,
                notes=notes,
                now=now,
            ),
            correlation_id,
            occurrence_id=occurrence_id,
        )
        changes = {
            key: value.isoformat() if isinstance(value, date) else value
            for key, value in (
                ("expected_date", expected_date),
                ("expected_amount", expected_amount),
                ("notes", notes),
            )
            if value is not None
        }
        self._audit(LedgerEventBuilder.occurrence_updated(
            month=self.month,
            instance_id=after.id,
            occurrence_id=instance_ops.find_occurrence(after, occurrence_id).id,
            changes=changes,
            correlation_id=correlation_id,
        ))
        return after

    def remove_occurrence(
        self,
        instance_id,
        occurrence_id,
        correlation_id: Optional[UUID] = None,
    ) -> Instance:
        correlation_id = correlation_id or create_correlation_id()
        before, after = self._apply(
            "remove_occurrence",
            instance_id,
            lambda inst, now: instance_ops.remove_occurrence(inst, occurrence_id, now=now),
            correlation_id,
            occurrence_id=occurrence_id,
        )
        self._audit(LedgerEventBuilder.occurrence_removed(
            month=self.month,
            instance_id=after.id,
            occurrence_id=instance_ops.find_occurrence(before, occurrence_id).id,
            correlation_id=correlation_id,
        ))
        return after

    # =========================================================================
    # INSTANCE OPERATIONS
    # =========================================================================

    def close_instance(
        self,
        instance_id,
        closed_date: date,
        payment_source_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Instance:
        correlation_id = correlation_id or create_correlation_id()
        _, after = self._apply(
            "close_instance",
            instance_id,
            lambda inst, now: instance_ops.close_instance(
                inst, closed_date, payment_source_id=payment_source_id, now=now
            ),
            correlation_id,
        )
        self._audit(LedgerEventBuilder.instance_closed(
            month=self.month,
            instance_id=after.id,
            closed_date=closed_date,
            correlation_id=correlation_id,
        ))
        return after

    def reopen_instance(
        self,
        instance_id,
        correlation_id: Optional[UUID] = None,
    ) -> Instance:
        correlation_id = correlation_id or create_correlation_id()
        _, after = self._apply(
            "reopen_instance",
            instance_id,
            lambda inst, now: instance_ops.reopen_instance(inst, now=now),
            correlation_id,
        )
        self._audit(LedgerEventBuilder.instance_reopened(
            month=self.month,
            instance_id=after.id,
            correlation_id=correlation_id,
        ))
        return after

    # =========================================================================
    # BALANCES AND PAYOFF BILLS
    # =========================================================================

    def update_bank_balances(
        self,
        balances: dict[str, int],
        correlation_id: Optional[UUID] = None,
    ) -> MonthlyData:
        """Replace the balance map and bring payoff bills in line with it."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            self._data = reconcile_payoff_bills(
                self._data,
                balances,
                self._payment_sources,
                payoff_day=self._settings.payoff_occurrence_day,
                now=self._now(),
            )
        except (LedgerError, InvalidDateError) as e:
            self._fail(e, "update_bank_balances", correlation_id)
            raise
        self._audit(LedgerEventBuilder.balances_updated(
            month=self.month,
            balances=balances,
            correlation_id=correlation_id,
        ))
        return self._data

    def add_payoff_payment(
        self,
        instance_id,
        amount: int,
        paid_date: date,
        new_balance: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> PayoffPaymentResult:
        """Record a card payment and carry the new balance into the balance map."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            section, index, instance = self._locate(instance_id)
            result = record_payoff_payment(
                instance,
                amount,
                paid_date,
                current_balance=self._data.bank_balances.get(instance.payoff_source_id, 0),
                new_balance=new_balance,
                payoff_day=self._settings.payoff_occurrence_day,
                now=self._now(),
            )
        except (LedgerError, InvalidDateError) as e:
            self._fail(e, "add_payoff_payment", correlation_id, instance_id=instance_id, amount=amount)
            raise

        self._store(section, index, result.instance)
        balances = dict(self._data.bank_balances)
        balances[instance.payoff_source_id] = result.new_balance
        self._data = self._data.model_copy(update={"bank_balances": balances})

        self._audit(LedgerEventBuilder.payoff_payment_recorded(
            month=self.month,
            instance_id=result.instance.id,
            amount=amount,
            new_balance=result.new_balance,
            correlation_id=correlation_id,
        ))
        return result

    # =========================================================================
    # READ MODELS
    # =========================================================================

    def tallies(self) -> MonthTallies:
        return month_tallies(self._data)

    def leftover(self) -> LeftoverResult:
        result = calculate_leftover(self._data, self._payment_sources)
        if not result.is_valid:
            self._audit(LedgerEventBuilder.leftover_incomplete(
                month=self.month,
                missing_balances=result.missing_balances,
            ))
        return result

    def overdue(self, today: date) -> list[OverdueItem]:
        return overdue_occurrences(self._data.bill_instances, self.month, today)

    def due_soon(self, today: date) -> list[OverdueItem]:
        return due_soon_occurrences(self._data.bill_instances, today, self._settings.due_soon_days)

    def validate(self) -> ValidationResult:
        return self._validator.validate(self._data, self._payment_sources, validated_at=self._now())
