"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Complete traceability of closes, splits and reopens
2. Debugging capability when a tally looks off
3. A history the service layer can persist

The audit logger:
- Is synchronous, like the ledger it records
- Gracefully handles sink failures (never breaks a ledger operation)
- Supports correlation IDs to trace related events
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID, uuid4

import structlog

from budget_core.config import get_settings
from budget_core.models.audit import LedgerEvent


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: Optional[str] = None) -> None:
    """
    Route structlog output through the stdlib root logger.

    Without an explicit level, AppSettings.log_level is used.
    """
    if level is None:
        level = get_settings().app.log_level
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))


class AuditSink(ABC):
    """
    Where audit events are persisted.

    The persistence layer owns the real implementation; the core only
    needs somewhere to hand events to.
    """

    @abstractmethod
    def append_event(self, event: LedgerEvent) -> bool:
        """
        Append an event to the audit trail.

        Returns:
            True if the event was stored
        """


class InMemoryAuditSink(AuditSink):
    """Keeps events in a list. Used by tests and single-session tools."""

    def __init__(self):
        self.events: list[LedgerEvent] = []

    def append_event(self, event: LedgerEvent) -> bool:
        self.events.append(event)
        return True


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional sink (for persistence)
    """

    def __init__(
        self,
        sink: Optional[AuditSink] = None,
    ):
        """
        Initialize audit logger.

        Args:
            sink: Storage backend for persistence.
                  If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger("budget_core.audit")

    def log(self, event: LedgerEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to the sink if available.

        Returns True if the sink write succeeded (or no sink configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("ledger_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("ledger_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("ledger_event", **log_dict)
        else:
            self._logger.info("ledger_event", **log_dict)

        if self._sink:
            try:
                return self._sink.append_event(event)
            except Exception as e:
                # Audit persistence must not break the ledger operation
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., a split) and pass it
    through every event that action produces.
    """
    return uuid4()
