"""In-memory key-value store, used in tests and for throwaway ledgers."""

import copy
from typing import Any, Optional

from expense_ledger.services.storage.interface import PersistentKeyValueStore


class InMemoryKeyValueStore(PersistentKeyValueStore):
    """
    Dict-backed implementation of the key-value interface.

    Values are deep-copied on the way in and out so callers can never
    mutate stored state by holding on to a returned list.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get(self, key: str) -> Optional[Any]:
        value = self._data.get(key)
        return copy.deepcopy(value)

    async def put(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> set[str]:
        return set(self._data)

    def snapshot(self) -> dict[str, Any]:
        """Copy of everything stored (handy for assertions and debugging)."""
        return copy.deepcopy(self._data)
