"""Match cache: remembers which catalog items matched a normalized ingredient name."""

import json
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Protocol

from .db import BUSY_TIMEOUT, SQLiteStore, StoreError


@dataclass
class CachedMatchEntry:
    """A previously successful match, keyed by (user_id, normalized_name, catalog_item_id)."""

    user_id: str
    normalized_name: str
    catalog_item_id: str
    confidence: float
    match_type: str
    match_metadata: dict[str, Any] = field(default_factory=dict)
    last_updated: datetime | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.user_id, self.normalized_name, self.catalog_item_id)

    @classmethod
    def from_row(cls, row: Any) -> "CachedMatchEntry":
        """Create from a sqlite3.Row or dict-like object."""
        try:
            metadata = json.loads(row["match_metadata"] or "{}")
        except json.JSONDecodeError:
            metadata = {}
        return cls(
            user_id=row["user_id"],
            normalized_name=row["normalized_name"],
            catalog_item_id=row["catalog_item_id"],
            confidence=row["confidence"],
            match_type=row["match_type"],
            match_metadata=metadata if isinstance(metadata, dict) else {},
            last_updated=datetime.fromisoformat(row["last_updated"]),
        )


class MatchCacheStore(Protocol):
    """Persistence for cached matches.

    upsert is idempotent: writing the same key twice leaves one row holding
    the last confidence, match type and metadata.
    """

    async def get(self, user_id: str, normalized_name: str) -> list[CachedMatchEntry]: ...

    async def upsert(self, entries: list[CachedMatchEntry]) -> None: ...

    async def invalidate(
        self,
        user_id: str,
        *,
        catalog_item_id: str | None = None,
        normalized_name: str | None = None,
    ) -> int: ...

    async def clear(self, user_id: str) -> int: ...


class InMemoryMatchCache:
    """Match cache kept in a dict (tests and one-off runs)."""

    def __init__(
        self,
        *,
        max_age: timedelta | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.max_age = max_age
        self._clock = clock
        self._entries: dict[tuple[str, str, str], CachedMatchEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _is_fresh(self, entry: CachedMatchEntry) -> bool:
        if self.max_age is None or entry.last_updated is None:
            return True
        return entry.last_updated >= self._clock() - self.max_age

    async def get(self, user_id: str, normalized_name: str) -> list[CachedMatchEntry]:
        entries = [
            entry
            for entry in self._entries.values()
            if entry.user_id == user_id
            and entry.normalized_name == normalized_name
            and self._is_fresh(entry)
        ]
        return sorted(entries, key=lambda e: e.confidence, reverse=True)

    async def upsert(self, entries: list[CachedMatchEntry]) -> None:
        now = self._clock()
        for entry in entries:
            self._entries[entry.key] = CachedMatchEntry(
                user_id=entry.user_id,
                normalized_name=entry.normalized_name,
                catalog_item_id=entry.catalog_item_id,
                confidence=entry.confidence,
                match_type=entry.match_type,
                match_metadata=dict(entry.match_metadata),
                last_updated=entry.last_updated or now,
            )

    async def invalidate(
        self,
        user_id: str,
        *,
        catalog_item_id: str | None = None,
        normalized_name: str | None = None,
    ) -> int:
        doomed = [
            key
            for key, entry in self._entries.items()
            if entry.user_id == user_id
            and (catalog_item_id is None or entry.catalog_item_id == catalog_item_id)
            and (normalized_name is None or entry.normalized_name == normalized_name)
        ]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    async def clear(self, user_id: str) -> int:
        return await self.invalidate(user_id)


class SQLiteMatchCache(SQLiteStore):
    """Match cache backed by the ingredient_match_cache table."""

    def __init__(
        self,
        db_path: Path | str | None = None,
        *,
        max_age: timedelta | None = None,
        clock: Callable[[], datetime] = datetime.now,
        timeout: float = BUSY_TIMEOUT,
    ) -> None:
        super().__init__(db_path, timeout=timeout)
        self.max_age = max_age
        self._clock = clock

    async def get(self, user_id: str, normalized_name: str) -> list[CachedMatchEntry]:
        """
        Get cached matches for a normalized ingredient name.

        Args:
            user_id: Owner of the cache entries
            normalized_name: Normalized ingredient name

        Returns:
            Entries newest-first by confidence, excluding expired ones
        """
        cutoff = ""
        if self.max_age is not None:
            cutoff = (self._clock() - self.max_age).isoformat()

        def query(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            return conn.execute(
                """
                SELECT * FROM ingredient_match_cache
                WHERE user_id = ? AND normalized_name = ? AND last_updated >= ?
                ORDER BY confidence DESC
                """,
                (user_id, normalized_name, cutoff),
            ).fetchall()

        try:
            rows = await self.run(query)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read match cache: {e}") from e

        return [CachedMatchEntry.from_row(row) for row in rows]

    async def upsert(self, entries: list[CachedMatchEntry]) -> None:
        """Insert or refresh entries; concurrent writers of the same key converge."""
        now = self._clock()
        rows = [
            (
                entry.user_id,
                entry.normalized_name,
                entry.catalog_item_id,
                entry.confidence,
                entry.match_type,
                json.dumps(entry.match_metadata, ensure_ascii=False),
                (entry.last_updated or now).isoformat(),
            )
            for entry in entries
        ]

        def write(conn: sqlite3.Connection) -> None:
            with conn:
                conn.executemany(
                    """
                    INSERT INTO ingredient_match_cache (
                        user_id, normalized_name, catalog_item_id, confidence,
                        match_type, match_metadata, last_updated
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(user_id, normalized_name, catalog_item_id) DO UPDATE SET
                        confidence = excluded.confidence,
                        match_type = excluded.match_type,
                        match_metadata = excluded.match_metadata,
                        last_updated = excluded.last_updated
                    """,
                    rows,
                )

        try:
            await self.run(write)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to write match cache: {e}") from e

    async def invalidate(
        self,
        user_id: str,
        *,
        catalog_item_id: str | None = None,
        normalized_name: str | None = None,
    ) -> int:
        """
        Delete cached matches, e.g. after a catalog item is renamed or removed.

        Args:
            user_id: Owner of the cache entries
            catalog_item_id: Only delete entries pointing at this item
            normalized_name: Only delete entries for this ingredient name

        Returns:
            Number of entries deleted
        """
        sql = "DELETE FROM ingredient_match_cache WHERE user_id = ?"
        params: list[str] = [user_id]
        if catalog_item_id is not None:
            sql += " AND catalog_item_id = ?"
            params.append(catalog_item_id)
        if normalized_name is not None:
            sql += " AND normalized_name = ?"
            params.append(normalized_name)

        def delete(conn: sqlite3.Connection) -> int:
            with conn:
                return conn.execute(sql, params).rowcount

        try:
            return await self.run(delete)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to invalidate match cache: {e}") from e

    async def clear(self, user_id: str) -> int:
        """Delete all cached matches for a user."""
        return await self.invalidate(user_id)
