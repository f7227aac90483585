"""Services package."""

from expense_ledger.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    PersistentKeyValueStore,
    RecordSchemaError,
    StorageError,
    StorageUnavailable,
)

__all__ = [
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "PersistentKeyValueStore",
    "RecordSchemaError",
    "StorageError",
    "StorageUnavailable",
]
