"""
Data Models Package

This package contains all Pydantic models used by the Expense Ledger.
Everything the ledger persists or returns conforms to these schemas.
"""

from expense_ledger.models.expense import (
    Account,
    AccountSummary,
    ExpenseCategory,
    ExpenseRecord,
    ExpenseRecordInput,
    MAX_AMOUNT,
    RepairReport,
)
from expense_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditSeverity,
    LedgerEventType,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountSummary",
    "ExpenseCategory",
    "ExpenseRecord",
    "ExpenseRecordInput",
    "MAX_AMOUNT",
    "RepairReport",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditSeverity",
    "LedgerEventType",
]
