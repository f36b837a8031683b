"""Unit tests for the sync coordinator: authority switch, reload policy and failures."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from fakes import FakeFirestore, FakeSheetsClient
from google.auth.exceptions import RefreshError

from fieldops.db.database import Database
from fieldops.db.kv_repo import KeyValueRepository
from fieldops.db.sync_log_repo import SyncLogRepository
from fieldops.errors import RemoteConnectionError, UnsupportedOperationError
from fieldops.models.common import CollectionKind
from fieldops.models.issue import Issue
from fieldops.models.task import Task, TaskStatus
from fieldops.models.visit import VisitNote
from fieldops.services.sync_coordinator import SyncCoordinator, SyncOutcome
from fieldops.stores.firestore import FirestoreRecordStore, firestore_backend
from fieldops.stores.local import LocalRecordStore, local_backend
from fieldops.stores.sheets import SheetsRecordStore, ensure_schema, sheets_backend


def _make_db() -> Database:
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    db = Database(path=Path(tmp.name))
    db.init()
    return db


def _task(task_id: str, title: str = "Follow up hub") -> Task:
    return Task(id=task_id, title=title, created_at="2024-03-01T08:00:00Z")


class _CoordinatorCase(unittest.TestCase):
    def setUp(self):
        self.db = _make_db()
        self.repo = KeyValueRepository(self.db)
        self.sync_log = SyncLogRepository(self.db)
        self.sheets = FakeSheetsClient()
        ensure_schema(self.sheets)
        self.firestore = FakeFirestore()

    def tearDown(self):
        self.db.close()

    def coordinator(self, remote: str = "sheets") -> SyncCoordinator:
        if remote == "sheets":
            connector = lambda creds: sheets_backend(self.sheets)  # noqa: E731
        else:
            connector = lambda creds: firestore_backend(self.firestore)  # noqa: E731
        coord = SyncCoordinator(local_backend(self.repo), connector=connector, sync_log=self.sync_log)
        coord.load()
        return coord

    def ids(self, records) -> list[str]:
        return sorted(r.id for r in records)


# ===========================================================================
# 1. Local authority
# ===========================================================================

class TestLocalAuthority(_CoordinatorCase):
    def test_load_reads_local(self):
        LocalRecordStore(self.repo, CollectionKind.TASKS).upsert(_task("t-1"))
        coord = self.coordinator()
        self.assertFalse(coord.is_remote)
        self.assertEqual(self.ids(coord.tasks), ["t-1"])

    def test_save_refreshes_only_touched_collection(self):
        coord = self.coordinator()
        # written behind the coordinator's back
        LocalRecordStore(self.repo, CollectionKind.ISSUES).upsert(Issue(awb="AWB1", id="i-1"))

        outcome = coord.save(_task("t-1"))
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.backend, "local")
        self.assertEqual(self.ids(coord.tasks), ["t-1"])
        self.assertEqual(coord.issues, [])

    def test_delete_locally(self):
        coord = self.coordinator()
        coord.save(VisitNote(partner_name="Toko A", id="v-1"))
        outcome = coord.delete("v-1", CollectionKind.VISITS)
        self.assertTrue(outcome.ok)
        self.assertEqual(coord.visits, [])

    def test_collections_are_copies(self):
        coord = self.coordinator()
        coord.save(_task("t-1"))
        coord.tasks.clear()
        self.assertEqual(len(coord.tasks), 1)


# ===========================================================================
# 2. Connect
# ===========================================================================

class TestConnect(_CoordinatorCase):
    def test_connect_discards_local_only_records(self):
        coord = self.coordinator()
        coord.save(_task("t-local"))
        SheetsRecordStore(self.sheets, CollectionKind.TASKS).upsert(_task("t-remote"))

        outcome = coord.connect()
        self.assertIsInstance(outcome, SyncOutcome)
        self.assertTrue(outcome.ok)
        self.assertTrue(outcome.remote)
        self.assertTrue(coord.is_remote)
        self.assertEqual(self.ids(coord.tasks), ["t-remote"])

    def test_local_store_left_untouched_by_connect(self):
        coord = self.coordinator()
        coord.save(_task("t-local"))
        coord.connect()
        self.assertEqual(
            self.ids(LocalRecordStore(self.repo, CollectionKind.TASKS).list()), ["t-local"]
        )

    def test_connector_failure_leaves_state(self):
        def failing(creds):
            raise RemoteConnectionError("consent denied")

        coord = SyncCoordinator(local_backend(self.repo), connector=failing, sync_log=self.sync_log)
        coord.save(_task("t-1"))
        with self.assertRaises(RemoteConnectionError):
            coord.connect()
        self.assertFalse(coord.is_remote)
        self.assertEqual(self.ids(coord.tasks), ["t-1"])

    def test_remote_read_failure_fails_connect(self):
        coord = self.coordinator()
        coord.save(_task("t-1"))
        self.sheets.fail_on.add("get_values")
        with self.assertRaises(RemoteConnectionError):
            coord.connect()
        self.assertEqual(coord.backend.name, "local")
        self.assertEqual(self.ids(coord.tasks), ["t-1"])

    def test_no_connector(self):
        coord = SyncCoordinator(local_backend(self.repo))
        with self.assertRaises(RemoteConnectionError):
            coord.connect()

    def test_failed_connect_is_logged(self):
        coord = self.coordinator()
        self.sheets.fail_on.add("get_values")
        with self.assertRaises(RemoteConnectionError):
            coord.connect()
        entry = self.sync_log.recent(1)[0]
        self.assertEqual(entry["operation"], "connect")
        self.assertEqual(entry["status"], "failed")


# ===========================================================================
# 3. Remote authority
# ===========================================================================

class TestRemoteAuthority(_CoordinatorCase):
    def test_remote_write_reloads_all_collections(self):
        coord = self.coordinator()
        coord.connect()
        # another device adds an issue
        SheetsRecordStore(self.sheets, CollectionKind.ISSUES).upsert(Issue(awb="AWB9", id="i-9"))

        outcome = coord.save(_task("t-1"))
        self.assertTrue(outcome.ok)
        self.assertTrue(outcome.reloaded)
        self.assertEqual(self.ids(coord.tasks), ["t-1"])
        self.assertEqual(self.ids(coord.issues), ["i-9"])

    def test_writes_go_to_remote_not_local(self):
        coord = self.coordinator()
        coord.connect()
        coord.save(_task("t-1"))
        self.assertEqual(LocalRecordStore(self.repo, CollectionKind.TASKS).list(), [])

    def test_unsupported_delete_raises_before_call(self):
        coord = self.coordinator()
        SheetsRecordStore(self.sheets, CollectionKind.ISSUES).upsert(Issue(awb="AWB1", id="i-1"))
        coord.connect()
        self.assertFalse(coord.supports_delete(CollectionKind.ISSUES))
        before = list(self.sheets.calls)
        with self.assertRaises(UnsupportedOperationError):
            coord.delete("i-1", CollectionKind.ISSUES)
        self.assertEqual(self.sheets.calls, before)
        self.assertEqual(self.ids(coord.issues), ["i-1"])

    def test_remote_task_delete(self):
        coord = self.coordinator()
        coord.connect()
        coord.save(_task("t-1"))
        coord.save(_task("t-2"))
        outcome = coord.delete("t-1", CollectionKind.TASKS)
        self.assertTrue(outcome.ok)
        self.assertEqual(self.ids(coord.tasks), ["t-2"])

    def test_failed_write_reports_not_ok(self):
        coord = self.coordinator(remote="firestore")
        coord.connect()
        coord.save(_task("t-1"))
        self.firestore.fail_on.add("set")

        outcome = coord.save(_task("t-1", title="Changed"))
        self.assertFalse(outcome.ok)
        self.assertEqual(coord.tasks[0].title, "Follow up hub")

    def test_expired_credentials_give_failed_outcome(self):
        coord = self.coordinator(remote="firestore")
        coord.connect()
        self.firestore.error = RefreshError
        self.firestore.fail_on.update({"set", "stream"})

        outcome = coord.save(_task("t-1"))
        self.assertFalse(outcome.ok)
        self.assertFalse(coord.load().ok)
        self.assertEqual(coord.tasks, [])

    def test_partial_reload_failure_keeps_previous_state(self):
        coord = self.coordinator(remote="firestore")
        coord.connect()
        coord.save(_task("t-1"))
        self.firestore.fail_on.add("stream")

        outcome = coord.save(_task("t-2"))
        self.assertTrue(outcome.ok)
        self.assertFalse(outcome.reloaded)
        self.assertIn("refresh failed", outcome.message)
        self.assertEqual(self.ids(coord.tasks), ["t-1"])
        self.assertIn("t-2", self.firestore.data["tasks"])

    def test_reload_replaces_state_only_when_all_succeed(self):
        coord = self.coordinator(remote="firestore")
        coord.connect()
        coord.save(_task("t-1"))
        FirestoreRecordStore(self.firestore, CollectionKind.TASKS).upsert(
            Task(id="t-1", title="Follow up hub", status=TaskStatus.CLOSED)
        )
        self.firestore.fail_on.add("stream")
        self.assertFalse(coord.load().ok)
        self.assertEqual(coord.tasks[0].status, TaskStatus.OPEN)

        self.firestore.fail_on.clear()
        self.assertTrue(coord.load().ok)
        self.assertEqual(coord.tasks[0].status, TaskStatus.CLOSED)


# ===========================================================================
# 4. Audit trail
# ===========================================================================

class TestSyncAudit(_CoordinatorCase):
    def test_save_logged_with_subject(self):
        coord = self.coordinator()
        coord.save(_task("t-1"))
        entries = self.sync_log.get_by_subject("tasks", "t-1")
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0]["operation"], "save")
        self.assertEqual(entries[0]["status"], "success")
        self.assertEqual(entries[0]["backend"], "local")

    def test_connect_logged_against_remote(self):
        coord = self.coordinator()
        coord.connect()
        entry = self.sync_log.recent(1)[0]
        self.assertEqual(entry["operation"], "connect")
        self.assertEqual(entry["backend"], "sheets")


if __name__ == "__main__":
    unittest.main()
