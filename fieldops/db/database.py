"""SQLite access for the local record store and the sync log.

One connection is shared by every thread (FastAPI runs sync handlers in a
threadpool), so all access is serialised through a re-entrant lock. A
read-modify-write done inside ``transaction()`` is therefore atomic with
respect to every other reader and writer.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from fieldops.db.schema import SCHEMA_DDL


class Database:
    def __init__(self, path: Optional[Path | str] = None):
        from fieldops.config import get_db_path

        self.path = Path(path) if path is not None else get_db_path()
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.path), check_same_thread=False, isolation_level=None)
            conn.row_factory = sqlite3.Row
            self._conn = conn
        return self._conn

    def init(self) -> None:
        """Create the kv_store and sync_log tables if missing."""
        with self._lock:
            self._connect().executescript(SCHEMA_DDL)

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Hold the lock for the whole block inside ``BEGIN IMMEDIATE``; commit
        on success, roll back and re-raise on any error. Nested use joins
        the outer transaction.
        """
        with self._lock:
            conn = self._connect()
            if conn.in_transaction:
                yield conn
                return
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def fetchone(self, sql: str, params: tuple = ()) -> Optional[dict[str, Any]]:
        with self._lock:
            row = self._connect().execute(sql, params).fetchone()
        return dict(row) if row is not None else None

    def fetchall(self, sql: str, params: tuple = ()) -> list[dict[str, Any]]:
        with self._lock:
            rows = self._connect().execute(sql, params).fetchall()
        return [dict(r) for r in rows]


_default_db: Optional[Database] = None


def get_db(path: Optional[Path] = None) -> Database:
    """Process-wide Database, created and initialised on first use."""
    global _default_db
    if _default_db is None:
        _default_db = Database(path)
        _default_db.init()
    return _default_db


def reset_db() -> None:
    global _default_db
    if _default_db is not None:
        _default_db.close()
    _default_db = None
