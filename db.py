import logging
import os
import sqlite3
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, Optional

from db_pool import SQLiteConnectionPool

logger = logging.getLogger(__name__)

DB_PATH = os.getenv("DB_PATH", "data.db")
DEFAULT_STORAGE_KEY = "GamifiedUserProfile"

# Initialize connection pool
_pool = SQLiteConnectionPool(DB_PATH, max_connections=10)


def _conn():
    """Return a context manager for acquiring a pooled SQLite connection."""
    return _pool.get_connection()


def _exec(sql: str, params: Iterable = ()):
    with _pool.get_connection() as con:
        cur = con.execute(sql, params)
        con.commit()
        return cur


def _query(sql: str, params: Iterable = ()) -> list[sqlite3.Row]:
    with _pool.get_connection() as con:
        cur = con.execute(sql, params)
        return cur.fetchall()


def init() -> None:
    """Create the database file and the profile table when missing."""
    global _pool
    path = Path(DB_PATH)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    if _pool.database != DB_PATH:
        _pool.close_all()
        _pool = SQLiteConnectionPool(DB_PATH, max_connections=10)

    with _conn() as con:
        con.executescript(
            """
            PRAGMA journal_mode = WAL;

            CREATE TABLE IF NOT EXISTS profiles (
                storage_key TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
            """
        )
        con.commit()
    logger.info("Profile database ready at %s", DB_PATH)


def close() -> None:
    _pool.close_all()


# -------------- profile blobs --------------
def load_profile_blob(storage_key: str = DEFAULT_STORAGE_KEY) -> Optional[str]:
    """Return the serialized profile stored under ``storage_key``, if any."""
    rows = _query("SELECT payload FROM profiles WHERE storage_key = ?", [storage_key])
    if not rows:
        return None
    return rows[0]["payload"] or None


def save_profile_blob(blob: str, storage_key: str = DEFAULT_STORAGE_KEY) -> None:
    """Upsert the serialized profile under ``storage_key``."""
    _exec(
        """
        INSERT INTO profiles (storage_key, payload, updated_at)
        VALUES (?, ?, CURRENT_TIMESTAMP)
        ON CONFLICT(storage_key) DO UPDATE SET
            payload = excluded.payload,
            updated_at = CURRENT_TIMESTAMP
        """,
        [storage_key, blob],
    )


def delete_profile_blob(storage_key: str = DEFAULT_STORAGE_KEY) -> bool:
    cur = _exec("DELETE FROM profiles WHERE storage_key = ?", [storage_key])
    return cur.rowcount > 0


class SQLiteProfileStore:
    """Profile store backed by the ``profiles`` table."""

    def __init__(self, storage_key: str = DEFAULT_STORAGE_KEY) -> None:
        self.storage_key = storage_key

    def load(self) -> Optional[str]:
        return load_profile_blob(self.storage_key)

    def save(self, blob: str) -> None:
        save_profile_blob(blob, self.storage_key)


class InMemoryProfileStore:
    """Dictionary-backed store for tests and embedding without a database."""

    def __init__(self, initial: Optional[Dict[str, str]] = None, storage_key: str = DEFAULT_STORAGE_KEY) -> None:
        self.storage_key = storage_key
        self._blobs: Dict[str, str] = dict(initial or {})
        self._lock = Lock()
        self.saves = 0

    def load(self) -> Optional[str]:
        with self._lock:
            return self._blobs.get(self.storage_key)

    def save(self, blob: str) -> None:
        with self._lock:
            self._blobs[self.storage_key] = blob
            self.saves += 1


__all__ = [
    "DB_PATH",
    "DEFAULT_STORAGE_KEY",
    "init",
    "close",
    "load_profile_blob",
    "save_profile_blob",
    "delete_profile_blob",
    "SQLiteProfileStore",
    "InMemoryProfileStore",
]
