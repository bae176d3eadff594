"""
Durable key-value store - SQLite persistence for the navigation graph.

Stores:
- sitemapGraph: the navigation graph (nodes, edges, transitions) as JSON
- navTreeSettings: the nesting settings record as JSON

Values are opaque bytes here; schema validation happens in core.schemas.
Every sqlite3 failure is surfaced as StorageUnavailableError so a lost
write is visible to the caller.
"""
import logging
import sqlite3
from pathlib import Path
from typing import Dict, Optional, Protocol

from core.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal durable storage boundary."""

    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class SQLiteKeyValueStore:
    """SQLite-backed key-value store."""

    DB_PATH = Path("data/navtree.db")

    def __init__(self, db_path: Path | str | None = None):
        """
        Initialize the store.

        Args:
            db_path: Optional path to database file (defaults to data/navtree.db)
        """
        self.db_path = Path(db_path) if db_path else self.DB_PATH
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError("open", str(self.db_path), e) from e
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_schema(self) -> None:
        """Create the table if it doesn't exist."""
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS kv (
                        key TEXT PRIMARY KEY,
                        value BLOB NOT NULL,
                        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                    )
                    """
                )
        except sqlite3.Error as e:
            logger.error(f"Cannot initialize store at {self.db_path}: {e}")
            raise StorageUnavailableError("open", str(self.db_path), e) from e

    def get(self, key: str) -> Optional[bytes]:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Read of '{key}' failed: {e}")
            raise StorageUnavailableError("read", key, e) from e
        return bytes(row[0]) if row else None

    def set(self, key: str, value: bytes) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO kv (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, value),
                )
        except sqlite3.Error as e:
            logger.error(f"Write of '{key}' failed: {e}")
            raise StorageUnavailableError("write", key, e) from e

    def remove(self, key: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        except sqlite3.Error as e:
            logger.error(f"Delete of '{key}' failed: {e}")
            raise StorageUnavailableError("remove", key, e) from e

    def __repr__(self) -> str:
        return f"SQLiteKeyValueStore({str(self.db_path)!r})"


class MemoryKeyValueStore:
    """Dict-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return list(self._data)
