"""
Audit Models for Expense Ledger

Every ledger mutation, and every anomaly the ledger tolerates instead
of failing on, is recorded as an audit event. This provides:
1. Traceability of account and expense changes
2. Debugging information when storage misbehaves
3. A visible trail for skipped (dangling or malformed) records

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class LedgerEventType(str, Enum):
    """Types of events we audit."""
    LEDGER_INITIALIZED = "ledger_initialized"
    LEDGER_REPAIRED = "ledger_repaired"

    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_SWITCHED = "account_switched"
    ACCOUNT_DELETED = "account_deleted"
    ACCOUNT_DELETE_REJECTED = "account_delete_rejected"

    # Expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_REMOVED = "expense_removed"
    EXPENSE_REMOVE_IGNORED = "expense_remove_ignored"
    EXPENSES_CLEARED = "expenses_cleared"

    # Tolerated inconsistencies
    DANGLING_ID_SKIPPED = "dangling_id_skipped"
    MALFORMED_RECORD_SKIPPED = "malformed_record_skipped"
    CORRUPT_ACCOUNT_SKIPPED = "corrupt_account_skipped"

    # Failures
    ROLLBACK_FAILED = "rollback_failed"
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Maps onto the structlog method an event is logged with."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """One entry in the ledger's audit trail. Never modified once built."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC time the event was built"
    )

    event_type: LedgerEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What the event is about
    account_name: Optional[str] = Field(
        default=None,
        description="Account the event relates to"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Expense id the event relates to"
    )

    # Shared by all events of one operation, e.g. a cascading account delete
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Flat, JSON-safe view for structlog."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "account_name": self.account_name,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    One constructor per ledger event, so call sites stay one line and
    severities are decided in a single place.

        event = AuditEventBuilder.expense_added("Default", expense_id, "4.50", "Food")
        event = AuditEventBuilder.account_deleted("Trip", removed_count=3, was_current=False)
    """

    @staticmethod
    def ledger_initialized(current_account: str, created_accounts: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.LEDGER_INITIALIZED,
            account_name=current_account,
            description=f"Ledger initialized, current account: {current_account}",
            details={"created_accounts": created_accounts},
        )

    @staticmethod
    def account_created(name: str) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.ACCOUNT_CREATED,
            account_name=name,
            description=f"Account created: {name}",
        )

    @staticmethod
    def account_switched(previous: Optional[str], name: str) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.ACCOUNT_SWITCHED,
            account_name=name,
            description=f"Switched account: {previous} -> {name}",
            details={"previous": previous},
        )

    @staticmethod
    def account_deleted(
        name: str,
        removed_count: int,
        was_current: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.ACCOUNT_DELETED,
            account_name=name,
            correlation_id=correlation_id,
            description=f"Account deleted: {name} ({removed_count} expenses)",
            details={
                "removed_count": removed_count,
                "was_current": was_current,
            },
        )

    @staticmethod
    def account_delete_rejected(name: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.ACCOUNT_DELETE_REJECTED,
            severity=AuditSeverity.WARNING,
            account_name=name,
            description=f"Refused to delete account {name}: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def expense_added(
        account_name: str,
        expense_id: str,
        amount: str,
        category: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.EXPENSE_ADDED,
            account_name=account_name,
            entity_id=expense_id,
            description=f"Expense added to {account_name}: {amount} ({category})",
            details={
                "amount": amount,
                "category": category,
            },
        )

    @staticmethod
    def expense_removed(account_name: str, expense_id: str, index: Optional[int]) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.EXPENSE_REMOVED,
            account_name=account_name,
            entity_id=expense_id,
            description=f"Expense removed from {account_name}",
            details={"index": index},
        )

    @staticmethod
    def expense_remove_ignored(
        account_name: str,
        reason: str,
        index: Optional[int] = None,
        expense_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.EXPENSE_REMOVE_IGNORED,
            severity=AuditSeverity.DEBUG,
            account_name=account_name,
            entity_id=expense_id,
            description=f"Remove ignored on {account_name}: {reason}",
            details={"index": index, "reason": reason},
        )

    @staticmethod
    def expenses_cleared(
        account_name: str,
        removed_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.EXPENSES_CLEARED,
            account_name=account_name,
            correlation_id=correlation_id,
            description=f"Cleared {removed_count} expenses from {account_name}",
            details={"removed_count": removed_count},
        )

    @staticmethod
    def dangling_id_skipped(account_name: str, expense_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.DANGLING_ID_SKIPPED,
            severity=AuditSeverity.WARNING,
            account_name=account_name,
            entity_id=expense_id,
            description=f"Account {account_name} references a missing expense",
        )

    @staticmethod
    def malformed_record_skipped(account_name: str, expense_id: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.MALFORMED_RECORD_SKIPPED,
            severity=AuditSeverity.WARNING,
            account_name=account_name,
            entity_id=expense_id,
            description=f"Skipped malformed expense in {account_name}",
            error_message=error,
        )

    @staticmethod
    def corrupt_account_skipped(account_name: str, error: str) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.CORRUPT_ACCOUNT_SKIPPED,
            severity=AuditSeverity.WARNING,
            account_name=account_name,
            description=f"Skipped account {account_name}: its id list is unreadable",
            error_message=error,
        )

    @staticmethod
    def ledger_repaired(
        dangling: int,
        duplicates: int,
        orphans: int,
        pointer_healed: bool,
        corrupt: int = 0,
    ) -> AuditEvent:
        changed = bool(dangling or duplicates or orphans or corrupt or pointer_healed)
        return AuditEvent(
            event_type=LedgerEventType.LEDGER_REPAIRED,
            severity=AuditSeverity.WARNING if changed else AuditSeverity.INFO,
            description=(
                f"Repair removed {dangling} dangling ids, {duplicates} duplicate ids "
                f"and {orphans} orphaned records"
            ),
            details={
                "dangling_ids": dangling,
                "duplicate_ids": duplicates,
                "orphaned_records": orphans,
                "corrupt_accounts": corrupt,
                "current_account_healed": pointer_healed,
            },
        )

    @staticmethod
    def rollback_failed(account_name: str, expense_id: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.ROLLBACK_FAILED,
            severity=AuditSeverity.ERROR,
            account_name=account_name,
            entity_id=expense_id,
            description="Could not roll back a half-added expense",
            error_message=error_message,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        account_name: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=LedgerEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            account_name=account_name,
            correlation_id=correlation_id,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )
