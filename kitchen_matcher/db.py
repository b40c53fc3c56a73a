"""SQLite storage shared by the match cache and the conversion rule store."""

import asyncio
import sqlite3
import threading
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from .config import DATABASE_FILE

T = TypeVar("T")

# Seconds a write waits for another connection to release its lock
BUSY_TIMEOUT = 5.0


class StoreError(Exception):
    """Exception raised when a persistent store cannot be read or written."""

    pass


def get_db_path() -> Path:
    """Get the path to the default database."""
    DATABASE_FILE.parent.mkdir(parents=True, exist_ok=True)
    return DATABASE_FILE


def get_connection(
    db_path: Path | str | None = None, *, timeout: float = BUSY_TIMEOUT
) -> sqlite3.Connection:
    """Get a database connection ("" or ":memory:" opens an in-memory database).

    The connection may be used from worker threads; callers serialize access.
    """
    path = get_db_path() if db_path is None else db_path
    conn = sqlite3.connect(str(path) or ":memory:", timeout=timeout, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Initialize the database schema."""
    # user_id is '' for global conversion rules so the unique key also covers them
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS ingredient_match_cache (
            user_id TEXT NOT NULL,
            normalized_name TEXT NOT NULL,
            catalog_item_id TEXT NOT NULL,
            confidence REAL NOT NULL,
            match_type TEXT NOT NULL,
            match_metadata TEXT NOT NULL DEFAULT '{}',
            last_updated TEXT NOT NULL,
            PRIMARY KEY (user_id, normalized_name, catalog_item_id)
        );

        CREATE TABLE IF NOT EXISTS unit_conversions (
            user_id TEXT NOT NULL DEFAULT '',
            from_unit TEXT NOT NULL,
            to_unit TEXT NOT NULL,
            conversion_factor REAL NOT NULL,
            category TEXT NOT NULL,
            notes TEXT,
            is_active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (user_id, from_unit, to_unit)
        );

        CREATE INDEX IF NOT EXISTS idx_cache_item ON ingredient_match_cache(user_id, catalog_item_id);
    """)
    conn.commit()


class SQLiteStore:
    """Base for stores that share one lazily opened connection.

    Async methods hand their queries to run(), which executes them in a worker
    thread so a locked database never blocks the event loop.
    """

    def __init__(self, db_path: Path | str | None = None, *, timeout: float = BUSY_TIMEOUT) -> None:
        self.db_path = get_db_path() if db_path is None else db_path
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = get_connection(self.db_path, timeout=self.timeout)
            init_db(self._conn)
        return self._conn

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    async def run(self, func: Callable[[sqlite3.Connection], T]) -> T:
        """Run func(conn) in a worker thread, one call at a time."""
        return await asyncio.to_thread(self._run_locked, func)

    def _run_locked(self, func: Callable[[sqlite3.Connection], T]) -> T:
        with self._lock:
            return func(self.conn)
