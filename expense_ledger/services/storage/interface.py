"""
Abstract Key-Value Storage Interface

DESIGN DECISION: The ledger talks to storage through a tiny key-value
interface supplied by the host application, so the same LedgerStore
runs on a JSON preference file, a Google Sheets worksheet, or plain
memory in tests.

Each call is individually atomic and durable once it returns.
There are no cross-key transactions - the ledger handles this with
careful ordering and tolerant reads.

Values are JSON-compatible: strings, numbers, lists and dicts.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class PersistentKeyValueStore(ABC):
    """
    Abstract interface for the ledger's persistence collaborator.

    Any storage implementation must implement these methods and raise
    StorageUnavailable when it cannot complete a read or write.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Read the value stored under a key.

        Args:
            key: The key to read

        Returns:
            The stored value, or None if the key is absent

        Raises:
            StorageUnavailable: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def put(self, key: str, value: Any) -> None:
        """
        Store a value under a key, replacing any previous value.

        Args:
            key: The key to write
            value: A JSON-compatible value

        Raises:
            StorageUnavailable: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """
        Remove a key. Removing an absent key is a no-op.

        Raises:
            StorageUnavailable: If the delete fails
        """
        pass

    @abstractmethod
    async def keys(self) -> set[str]:
        """
        Enumerate every key currently stored.

        Raises:
            StorageUnavailable: If the backend cannot be read
        """
        pass

    async def close(self) -> None:
        """Release backend resources. Default: nothing to release."""
        return None


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageUnavailable(StorageError):
    """The storage backend could not complete a read or write."""
    pass


class RecordSchemaError(StorageError):
    """A stored payload does not match the expected schema."""
    pass
