"""Shared fixtures: an in-memory backend and an initialized ledger on top of it."""

from typing import Any, Optional

import pytest

from expense_ledger.audit import AuditLogger
from expense_ledger.ledger import LedgerStore
from expense_ledger.services.storage import InMemoryKeyValueStore, StorageUnavailable


class FlakyKeyValueStore(InMemoryKeyValueStore):
    """
    In-memory store that fails on demand.

    fail("put", "account:") makes every put on a key starting with
    "account:" raise StorageUnavailable until heal() is called.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        super().__init__(initial)
        self._failures: set[tuple[str, str]] = set()
        self.error_class: type[Exception] = StorageUnavailable

    def fail(self, operation: str, key_prefix: str = "") -> None:
        self._failures.add((operation, key_prefix))

    def heal(self) -> None:
        self._failures.clear()

    def _check(self, operation: str, key: str = "") -> None:
        for failing_op, prefix in self._failures:
            if failing_op == operation and key.startswith(prefix):
                raise self.error_class(f"simulated {operation} failure on {key!r}")

    async def get(self, key: str) -> Optional[Any]:
        self._check("get", key)
        return await super().get(key)

    async def put(self, key: str, value: Any) -> None:
        self._check("put", key)
        await super().put(key, value)

    async def delete(self, key: str) -> None:
        self._check("delete", key)
        await super().delete(key)

    async def keys(self) -> set[str]:
        self._check("keys")
        return await super().keys()


@pytest.fixture
def memory_store() -> FlakyKeyValueStore:
    return FlakyKeyValueStore()


@pytest.fixture
def audit_logger() -> AuditLogger:
    return AuditLogger(history_size=1000)


@pytest.fixture
async def ledger(memory_store, audit_logger) -> LedgerStore:
    store = LedgerStore(memory_store, audit_logger=audit_logger)
    await store.initialize()
    return store
