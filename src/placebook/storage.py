"""
Key-value persistence - the durable storage collaborator.

The identity provider and the local cache both sit on top of a small
string-to-string store, the Python counterpart of browser localStorage.
Three backends:

- SqliteKeyValueStore: one table in a SQLite file (WAL, short busy timeout)
- JsonFileKeyValueStore: one file per key, written atomically
- MemoryKeyValueStore: process-local dict, nothing survives a restart

Every backend failure is raised as LocalStorageError.
"""

import logging
import re
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from .atomic_write import atomic_text_write
from .errors import LocalStorageError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal durable key-value interface."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None if the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Removing a missing key is not an error."""

    def close(self) -> None:
        pass


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise LocalStorageError(f"Value for {key!r} must be a string")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SqliteKeyValueStore(KeyValueStore):
    """SQLite-backed key-value store."""

    def __init__(self, db_path: Union[str, Path] = "placebook.db"):
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                self._conn = sqlite3.connect(self.db_path, timeout=5.0)
                # WAL lets a reader see the last snapshot while a write is in flight
                self._conn.execute("PRAGMA journal_mode=WAL")
                self._conn.execute("PRAGMA busy_timeout=5000")
                self._conn.execute(
                    "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
                )
                self._conn.commit()
            except (sqlite3.Error, OSError) as e:
                self._conn = None
                raise LocalStorageError(f"Cannot open {self.db_path}: {e}") from e
        return self._conn

    def get(self, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            raise LocalStorageError(f"Read of {key!r} failed: {e}") from e
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise LocalStorageError(f"Write of {key!r} failed: {e}") from e

    def delete(self, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise LocalStorageError(f"Delete of {key!r} failed: {e}") from e

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileKeyValueStore(KeyValueStore):
    """
    One file per key under a directory.

    Keys are restricted to [A-Za-z0-9_.-] so they map to file names
    directly. Values are written with the temp-then-rename pattern.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise LocalStorageError(f"Unsupported key for file store: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise LocalStorageError(f"Read of {key!r} failed: {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            atomic_text_write(self._path(key), value)
        except OSError as e:
            raise LocalStorageError(f"Write of {key!r} failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise LocalStorageError(f"Delete of {key!r} failed: {e}") from e


def open_store(backend: str, path: Union[str, Path, None] = None) -> KeyValueStore:
    """
    Build a store from a config name: "sqlite", "json" or "memory".

    Raises:
        ValueError: unknown backend or missing path
    """
    if backend == "memory":
        return MemoryKeyValueStore()
    if path is None:
        raise ValueError(f"Storage backend {backend!r} needs a path")
    if backend == "sqlite":
        return SqliteKeyValueStore(path)
    if backend == "json":
        return JsonFileKeyValueStore(path)
    raise ValueError(f"Unknown storage backend: {backend!r}")
