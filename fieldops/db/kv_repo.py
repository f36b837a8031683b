"""Repository for the ``kv_store`` table: one JSON array per key."""

from __future__ import annotations

import json
from typing import Any, Callable

from fieldops.db.database import Database
from fieldops.models.common import utc_now_iso

Items = list[dict[str, Any]]


class KeyValueRepository:
    def __init__(self, db: Database):
        self._db = db

    def read_list(self, key: str) -> Items:
        """Return the stored array, or ``[]`` when the key is absent."""
        row = self._db.fetchone("SELECT value FROM kv_store WHERE key = ?", (key,))
        if row is None:
            return []
        value = json.loads(row["value"])
        return value if isinstance(value, list) else []

    def write_list(self, key: str, items: Items) -> None:
        """Replace the whole array stored under ``key``."""
        with self._db.transaction() as conn:
            self._put(conn, key, items)

    def update_list(self, key: str, change: Callable[[Items], Items]) -> Items:
        """Read, apply ``change`` and write back in one transaction."""
        with self._db.transaction() as conn:
            items = change(self.read_list(key))
            self._put(conn, key, items)
        return items

    def keys(self) -> list[str]:
        return [r["key"] for r in self._db.fetchall("SELECT key FROM kv_store ORDER BY key")]

    @staticmethod
    def _put(conn, key: str, items: Items) -> None:
        conn.execute(
            """INSERT INTO kv_store (key, value, updated_at)
               VALUES (?, ?, ?)
               ON CONFLICT(key) DO UPDATE
               SET value = excluded.value, updated_at = excluded.updated_at""",
            (key, json.dumps(items), utc_now_iso()),
        )
