"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Complete traceability of account and expense changes
2. Debugging capability when storage misbehaves
3. A recent-history view the presentation layer can show

The audit logger:
- Never raises (a logging failure must not fail a ledger operation)
- Keeps a bounded in-memory history, newest last
- Supports correlation IDs to trace related events
"""

import logging
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_ledger.models.audit import AuditEvent, AuditSeverity


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Safe to call more than once; the last call wins.
    """
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
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
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Writes ledger audit events to structlog at their severity and keeps
    the most recent ones in memory for the presentation layer.
    """

    def __init__(self, history_size: int = 500):
        """
        Args:
            history_size: How many events to keep in memory.
                          0 disables the history.
        """
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("expense_ledger.audit")

    def log(self, event: AuditEvent) -> None:
        """Log an audit event locally and remember it."""
        log_dict = event.to_log_dict()
        try:
            if event.severity == AuditSeverity.CRITICAL:
                self._logger.critical("audit_event", **log_dict)
            elif event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Log failure but don't raise
            logging.getLogger(__name__).warning("audit log write failed: %s", e)

        if self._history.maxlen:
            self._history.append(event)

    def recent_events(
        self,
        limit: int = 100,
        account_name: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Most recent events, newest first.

        Args:
            limit: Maximum number of events to return
            account_name: Only events about this account
        """
        events = [
            event for event in reversed(self._history)
            if account_name is None or event.account_name == account_name
        ]
        return events[:limit]

    def events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        """Events of one logical operation, in chronological order."""
        return [e for e in self._history if e.correlation_id == correlation_id]

    def clear(self) -> None:
        self._history.clear()


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of an operation that emits several events
    (e.g., deleting an account and its expenses).
    """
    return uuid4()
