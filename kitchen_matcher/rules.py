"""Storage for user-authored and global unit conversion rules."""

import dataclasses
import sqlite3
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from .db import BUSY_TIMEOUT, SQLiteStore, StoreError
from .units import ConversionRule


class ConversionRuleStore(Protocol):
    """Persistence for custom conversion rules.

    Rules are keyed by (user_id, from_unit, to_unit); a user_id of None
    marks a global rule. Lookups check the user's rule before the global one.
    """

    async def get(
        self, from_unit: str, to_unit: str, user_id: str | None = None
    ) -> ConversionRule | None: ...

    async def upsert(self, rule: ConversionRule) -> None: ...

    async def deactivate(self, from_unit: str, to_unit: str, user_id: str | None = None) -> bool: ...

    async def list_rules(self, user_id: str | None = None) -> list[ConversionRule]: ...


def _key(user_id: str | None, from_unit: str, to_unit: str) -> tuple[str, str, str]:
    return (user_id or "", from_unit, to_unit)


class InMemoryRuleStore:
    """Conversion rule store kept in a dict (tests and one-off runs)."""

    def __init__(self, rules: list[ConversionRule] | None = None) -> None:
        self._rules: dict[tuple[str, str, str], ConversionRule] = {}
        for rule in rules or []:
            self._rules[_key(rule.user_id, rule.from_unit, rule.to_unit)] = rule

    async def get(
        self, from_unit: str, to_unit: str, user_id: str | None = None
    ) -> ConversionRule | None:
        owners = [user_id, None] if user_id else [None]
        for owner in owners:
            rule = self._rules.get(_key(owner, from_unit, to_unit))
            if rule and rule.is_active:
                return rule
        return None

    async def upsert(self, rule: ConversionRule) -> None:
        self._rules[_key(rule.user_id, rule.from_unit, rule.to_unit)] = rule

    async def deactivate(self, from_unit: str, to_unit: str, user_id: str | None = None) -> bool:
        key = _key(user_id, from_unit, to_unit)
        rule = self._rules.get(key)
        if rule is None or not rule.is_active:
            return False
        self._rules[key] = dataclasses.replace(rule, is_active=False)
        return True

    async def list_rules(self, user_id: str | None = None) -> list[ConversionRule]:
        owners = {user_id or "", ""}
        return sorted(
            (rule for key, rule in self._rules.items() if key[0] in owners and rule.is_active),
            key=lambda r: (r.user_id or "", r.from_unit, r.to_unit),
        )


def _rule_from_row(row: Any) -> ConversionRule:
    return ConversionRule(
        from_unit=row["from_unit"],
        to_unit=row["to_unit"],
        factor=row["conversion_factor"],
        category=row["category"],
        user_id=row["user_id"] or None,
        notes=row["notes"],
        is_active=bool(row["is_active"]),
    )


class SQLiteRuleStore(SQLiteStore):
    """Conversion rule store backed by the unit_conversions table."""

    def __init__(
        self,
        db_path: Path | str | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
        timeout: float = BUSY_TIMEOUT,
    ) -> None:
        super().__init__(db_path, timeout=timeout)
        self._clock = clock

    async def get(
        self, from_unit: str, to_unit: str, user_id: str | None = None
    ) -> ConversionRule | None:
        """
        Get the active rule for a unit pair.

        Args:
            from_unit: Canonical source unit
            to_unit: Canonical target unit
            user_id: User whose rule takes precedence over the global one

        Returns:
            ConversionRule or None if neither a user nor a global rule exists
        """

        def query(conn: sqlite3.Connection) -> sqlite3.Row | None:
            return conn.execute(
                """
                SELECT * FROM unit_conversions
                WHERE from_unit = ? AND to_unit = ? AND is_active = 1
                  AND (user_id = ? OR user_id = '')
                ORDER BY CASE WHEN user_id = '' THEN 1 ELSE 0 END
                LIMIT 1
                """,
                (from_unit, to_unit, user_id or ""),
            ).fetchone()

        try:
            row = await self.run(query)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read conversion rule: {e}") from e

        return _rule_from_row(row) if row else None

    async def upsert(self, rule: ConversionRule) -> None:
        """Insert or replace a rule (reactivating it if it was deactivated)."""
        now = self._clock().isoformat()
        params = (
            rule.user_id or "",
            rule.from_unit,
            rule.to_unit,
            rule.factor,
            rule.category,
            rule.notes,
            int(rule.is_active),
            now,
            now,
        )

        def write(conn: sqlite3.Connection) -> None:
            with conn:
                conn.execute(
                    """
                    INSERT INTO unit_conversions (
                        user_id, from_unit, to_unit, conversion_factor, category,
                        notes, is_active, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(user_id, from_unit, to_unit) DO UPDATE SET
                        conversion_factor = excluded.conversion_factor,
                        category = excluded.category,
                        notes = excluded.notes,
                        is_active = excluded.is_active,
                        updated_at = excluded.updated_at
                    """,
                    params,
                )

        try:
            await self.run(write)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to store conversion rule: {e}") from e

    async def deactivate(self, from_unit: str, to_unit: str, user_id: str | None = None) -> bool:
        """Soft-delete a rule. Returns True if an active rule was deactivated."""
        params = (self._clock().isoformat(), user_id or "", from_unit, to_unit)

        def update(conn: sqlite3.Connection) -> int:
            with conn:
                return conn.execute(
                    """
                    UPDATE unit_conversions SET is_active = 0, updated_at = ?
                    WHERE user_id = ? AND from_unit = ? AND to_unit = ? AND is_active = 1
                    """,
                    params,
                ).rowcount

        try:
            return await self.run(update) > 0
        except sqlite3.Error as e:
            raise StoreError(f"Failed to deactivate conversion rule: {e}") from e

    async def list_rules(self, user_id: str | None = None) -> list[ConversionRule]:
        """List active rules visible to a user (their own plus global ones)."""

        def query(conn: sqlite3.Connection) -> list[sqlite3.Row]:
            return conn.execute(
                """
                SELECT * FROM unit_conversions
                WHERE is_active = 1 AND (user_id = ? OR user_id = '')
                ORDER BY user_id, from_unit, to_unit
                """,
                (user_id or "",),
            ).fetchall()

        try:
            rows = await self.run(query)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to list conversion rules: {e}") from e

        return [_rule_from_row(row) for row in rows]
