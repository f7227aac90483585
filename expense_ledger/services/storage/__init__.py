"""
Storage Services Package

Provides the abstract key-value interface and concrete implementations.
The ledger only ever sees PersistentKeyValueStore, so backends are swappable.
"""

from expense_ledger.services.storage.interface import (
    PersistentKeyValueStore,
    RecordSchemaError,
    StorageError,
    StorageUnavailable,
)
from expense_ledger.services.storage.memory import InMemoryKeyValueStore
from expense_ledger.services.storage.json_file import JsonFileKeyValueStore
from expense_ledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
)

__all__ = [
    # Interface
    "PersistentKeyValueStore",
    # Exceptions
    "RecordSchemaError",
    "StorageError",
    "StorageUnavailable",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
]
