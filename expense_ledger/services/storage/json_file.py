"""
JSON File Storage Implementation

The flat "preference store" variant: the whole key space lives in one
JSON object on disk, like a shared-preferences file.

TRADEOFFS:
- Every put/delete rewrites the file (fine for a personal ledger)
- Writes go to a temp file first and are swapped in with os.replace,
  so a crash never leaves a half-written file behind
- The cached copy is only updated after the write succeeds
"""

import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_ledger.services.storage.interface import (
    PersistentKeyValueStore,
    StorageUnavailable,
)


logger = structlog.get_logger(__name__)


class JsonFileKeyValueStore(PersistentKeyValueStore):
    """
    Key-value store persisted as a single JSON document.

    The file is read lazily on first access and kept in memory afterwards.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._data: Optional[dict[str, Any]] = None

    @property
    def path(self) -> Path:
        return self._path

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, max=0.5),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _read_file(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        with open(self._path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return data

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.05, max=0.5),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write_file(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _load(self) -> dict[str, Any]:
        if self._data is None:
            try:
                self._data = self._read_file()
            except (OSError, ValueError) as e:
                logger.error("json_store_read_failed", path=str(self._path), error=str(e))
                raise StorageUnavailable(f"Failed to read ledger file {self._path}: {e}") from e
        return self._data

    def _commit(self, data: dict[str, Any]) -> None:
        try:
            self._write_file(data)
        except (OSError, TypeError, ValueError) as e:
            logger.error("json_store_write_failed", path=str(self._path), error=str(e))
            raise StorageUnavailable(f"Failed to write ledger file {self._path}: {e}") from e
        self._data = data

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._load().get(key))

    async def put(self, key: str, value: Any) -> None:
        data = dict(self._load())
        data[key] = copy.deepcopy(value)
        self._commit(data)

    async def delete(self, key: str) -> None:
        current = self._load()
        if key not in current:
            return
        data = dict(current)
        del data[key]
        self._commit(data)

    async def keys(self) -> set[str]:
        return set(self._load())

    async def close(self) -> None:
        # Everything is already on disk; drop the cache so a reopen re-reads
        self._data = None
