"""Unit tests for the DB layer: schema, the key/value repository and the sync log.

Every test uses a fresh temporary SQLite file so tests are isolated.
"""

from __future__ import annotations

import sqlite3
import tempfile
import threading
import unittest
from pathlib import Path

from fieldops.db.database import Database, get_db, reset_db
from fieldops.db.kv_repo import KeyValueRepository
from fieldops.db.sync_log_repo import SyncLogRepository


def _make_db() -> Database:
    """Return a Database backed by a fresh temporary file."""
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    db = Database(path=Path(tmp.name))
    db.init()
    return db


# ===========================================================================
# 1. Database core
# ===========================================================================

class TestDatabaseCore(unittest.TestCase):
    def setUp(self):
        self.db = _make_db()

    def tearDown(self):
        self.db.close()

    def test_tables_created(self):
        tables = self.db.fetchall(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
        names = {t["name"] for t in tables}
        self.assertIn("kv_store", names)
        self.assertIn("sync_log", names)

    def test_init_is_idempotent(self):
        self.db.init()
        self.db.init()

    def test_transaction_rolls_back(self):
        with self.assertRaises(RuntimeError):
            with self.db.transaction() as conn:
                conn.execute(
                    "INSERT INTO kv_store (key, value) VALUES (?, ?)", ("BS_OPS_X", "[]")
                )
                raise RuntimeError("boom")
        self.assertIsNone(self.db.fetchone("SELECT * FROM kv_store WHERE key = 'BS_OPS_X'"))

    def test_nested_transaction_joins_outer(self):
        with self.assertRaises(RuntimeError):
            with self.db.transaction() as outer:
                outer.execute("INSERT INTO kv_store (key, value) VALUES (?, ?)", ("BS_OPS_A", "[]"))
                with self.db.transaction() as inner:
                    inner.execute("INSERT INTO kv_store (key, value) VALUES (?, ?)", ("BS_OPS_B", "[]"))
                raise RuntimeError("boom")
        self.assertEqual(self.db.fetchall("SELECT key FROM kv_store"), [])

    def test_module_singleton(self):
        reset_db()
        try:
            first = get_db(self.db.path)
            self.assertIs(get_db(), first)
            self.assertEqual(first.path, self.db.path)
        finally:
            reset_db()
        self.assertIsNot(get_db(self.db.path), first)
        reset_db()


# ===========================================================================
# 2. Key/value repository
# ===========================================================================

class TestKeyValueRepository(unittest.TestCase):
    def setUp(self):
        self.db = _make_db()
        self.repo = KeyValueRepository(self.db)

    def tearDown(self):
        self.db.close()

    def test_absent_key_reads_empty(self):
        self.assertEqual(self.repo.read_list("BS_OPS_TASKS"), [])

    def test_write_replaces_whole_array(self):
        self.repo.write_list("BS_OPS_TASKS", [{"id": "a"}, {"id": "b"}])
        self.repo.write_list("BS_OPS_TASKS", [{"id": "c"}])
        self.assertEqual(self.repo.read_list("BS_OPS_TASKS"), [{"id": "c"}])

    def test_non_array_value_reads_empty(self):
        with self.db.transaction() as conn:
            conn.execute("INSERT INTO kv_store (key, value) VALUES (?, ?)", ("BS_OPS_ODD", '{"a": 1}'))
        self.assertEqual(self.repo.read_list("BS_OPS_ODD"), [])

    def test_update_list_applies_change(self):
        self.repo.write_list("BS_OPS_TASKS", [{"id": "a"}])
        result = self.repo.update_list("BS_OPS_TASKS", lambda items: [*items, {"id": "b"}])
        self.assertEqual(result, [{"id": "a"}, {"id": "b"}])
        self.assertEqual(self.repo.read_list("BS_OPS_TASKS"), result)

    def test_update_list_failure_leaves_value(self):
        self.repo.write_list("BS_OPS_TASKS", [{"id": "a"}])

        def broken(items):
            raise ValueError("bad change")

        with self.assertRaises(ValueError):
            self.repo.update_list("BS_OPS_TASKS", broken)
        self.assertEqual(self.repo.read_list("BS_OPS_TASKS"), [{"id": "a"}])

    def test_concurrent_updates_are_not_lost(self):
        def append(n):
            self.repo.update_list("BS_OPS_TASKS", lambda items: [*items, {"id": str(n)}])

        threads = [threading.Thread(target=append, args=(n,)) for n in range(25)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(len(self.repo.read_list("BS_OPS_TASKS")), 25)

    def test_keys_sorted(self):
        self.repo.write_list("BS_OPS_VISITS", [])
        self.repo.write_list("BS_OPS_ISSUES", [])
        self.assertEqual(self.repo.keys(), ["BS_OPS_ISSUES", "BS_OPS_VISITS"])


# ===========================================================================
# 3. Sync log
# ===========================================================================

class TestSyncLogRepository(unittest.TestCase):
    def setUp(self):
        self.db = _make_db()
        self.repo = SyncLogRepository(self.db)

    def tearDown(self):
        self.db.close()

    def test_log_and_query_by_subject(self):
        self.repo.log("local", "save", "success", subject="tasks", subject_id="t1", message="Saved locally")
        self.repo.log("local", "save", "failed", subject="issues", subject_id="i1")
        entries = self.repo.get_by_subject("tasks", "t1")
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0]["operation"], "save")
        self.assertEqual(entries[0]["message"], "Saved locally")
        self.assertEqual(len(self.repo.get_by_subject("issues")), 1)

    def test_recent_newest_first(self):
        self.repo.log("local", "load", "success")
        self.repo.log("sheets", "connect", "success")
        recent = self.repo.recent(limit=1)
        self.assertEqual(len(recent), 1)
        self.assertEqual(recent[0]["operation"], "connect")

    def test_invalid_status_rejected(self):
        with self.assertRaises(sqlite3.IntegrityError):
            self.repo.log("local", "save", "maybe")


if __name__ == "__main__":
    unittest.main()
