"""
Persistent key/value storage for the catalog index.

Keys are category names; values are JSON-serializable dicts. Two
backends are provided:

    MemoryStore         In-process dict, insertion-ordered (tests, dry runs)
    JsonDirectoryStore  One JSON file per key in a directory

Writes are atomic per key: a reader sees either the complete previous
value, the complete new value, or no value at all.
"""

import os
import json
import logging
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Dict, List
from urllib.parse import quote, unquote

from .errors import CorruptIndexEntry, IndexNotFound, PersistedStoreWriteFailure

logger = logging.getLogger(__name__)

ENTRY_SUFFIX = ".json"


class KeyValueStore(ABC):
    """Abstract base class for index stores."""

    @abstractmethod
    def save(self, key: str, value: Dict[str, Any]) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def read(self, key: str) -> Dict[str, Any]:
        """Return the value for key; raise IndexNotFound if absent."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key. Returns False if it was not present."""

    @abstractmethod
    def keys(self) -> List[str]:
        """Keys in store iteration order."""

    def __contains__(self, key: str) -> bool:
        return key in self.keys()

    def __len__(self) -> int:
        return len(self.keys())

    def is_empty(self) -> bool:
        return len(self) == 0

    def clear(self) -> None:
        for key in self.keys():
            self.delete(key)


class MemoryStore(KeyValueStore):
    """
    In-memory store. Values are kept as serialized JSON so callers never
    share mutable state with the store.
    """

    def __init__(self):
        self._data: Dict[str, str] = {}

    def save(self, key: str, value: Dict[str, Any]) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise PersistedStoreWriteFailure(key, e) from e

    def read(self, key: str) -> Dict[str, Any]:
        try:
            return json.loads(self._data[key])
        except KeyError:
            raise IndexNotFound(key) from None

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> List[str]:
        return list(self._data)


class JsonDirectoryStore(KeyValueStore):
    """
    Directory-backed store: one ``<quoted key>.json`` file per entry.

    Each save writes a temporary file in the same directory and then
    renames it over the target, so an entry is never half-written.
    Temporary files use a .part suffix and never count as entries.
    Iteration order is sorted by key.
    """

    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, quote(key, safe="") + ENTRY_SUFFIX)

    def save(self, key: str, value: Dict[str, Any]) -> None:
        try:
            payload = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistedStoreWriteFailure(key, e) from e

        tmp_path = None
        try:
            os.makedirs(self.directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.directory, prefix=".tmp-", suffix=".part"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path(key))
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise PersistedStoreWriteFailure(key, e) from e

    def read(self, key: str) -> Dict[str, Any]:
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise IndexNotFound(key) from None
        except ValueError as e:
            logger.error(f"Corrupt index entry {path}: {e}")
            raise CorruptIndexEntry(key, e) from e

    def delete(self, key: str) -> bool:
        try:
            os.remove(self._path(key))
            return True
        except FileNotFoundError:
            return False

    def keys(self) -> List[str]:
        if not os.path.isdir(self.directory):
            return []
        return sorted(
            unquote(name[:-len(ENTRY_SUFFIX)])
            for name in os.listdir(self.directory)
            if name.endswith(ENTRY_SUFFIX)
        )
