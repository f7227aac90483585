"""
Main Orchestrator for Expense Ledger

This module ties together the components: settings pick the storage
backend, logging is configured, and one LedgerStore is built for the
presentation layer to share.

DESIGN DECISION: The ledger is created here and injected into the
presentation layer, never embedded in a UI object. The caller owns the
lifecycle:

    ledger = create_ledger_store()
    await ledger.initialize()
    ...
    await ledger.shutdown()
"""

from typing import Optional

from expense_ledger.audit import AuditLogger, configure_logging
from expense_ledger.config import Settings, get_settings
from expense_ledger.ledger import LedgerStore
from expense_ledger.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    PersistentKeyValueStore,
)


def create_key_value_store(settings: Optional[Settings] = None) -> PersistentKeyValueStore:
    """
    Build the key-value backend named by the storage settings.

    Google Sheets credentials are only loaded when that backend is selected.
    """
    settings = settings or get_settings()
    storage = settings.storage

    if storage.backend == "memory":
        return InMemoryKeyValueStore()
    if storage.backend == "google_sheets":
        return GoogleSheetsKeyValueStore(GoogleSheetsClient())
    return JsonFileKeyValueStore(storage.json_file)


def create_ledger_store(
    settings: Optional[Settings] = None,
    store: Optional[PersistentKeyValueStore] = None,
) -> LedgerStore:
    """
    Factory function to create the ledger.

    Args:
        settings: Settings to use (defaults to get_settings()).
        store: Key-value backend to use instead of the configured one.

    Returns:
        An un-initialized LedgerStore; await initialize() before use.
    """
    settings = settings or get_settings()
    app = settings.app

    configure_logging(level=app.log_level, json_logs=app.json_logs)

    if store is None:
        store = create_key_value_store(settings)

    return LedgerStore(
        store,
        audit_logger=AuditLogger(history_size=app.audit_history_size),
    )
