"""Unit tests for the record stores.

The local store runs on a real temp SQLite file; the Sheets and Firestore
stores run against the in-memory fakes in ``fakes.py``.
"""

from __future__ import annotations

import tempfile
import unittest
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import MagicMock, patch

from fakes import FakeFirestore, FakeSheetsClient
from google.auth.exceptions import RefreshError

from fieldops.config import SheetsConfig
from fieldops.db.database import Database
from fieldops.db.kv_repo import KeyValueRepository
from fieldops.errors import (
    ConfigurationError,
    RemoteConnectionError,
    RemoteStoreError,
    StoreError,
    UnsupportedOperationError,
)
from fieldops.integrations.sheets_client import SheetsClient, load_credentials
from fieldops.models.common import CollectionKind, Division
from fieldops.models.issue import EscalationLog, Issue, IssueStatus
from fieldops.models.partner import Partner
from fieldops.models.task import Task, TaskCategory, TaskPriority, TaskStatus
from fieldops.models.visit import VisitNote, VisitStatus
from fieldops.stores.base import kind_of
from fieldops.stores.firestore import FirestoreRecordStore, connect_firestore, firestore_backend
from fieldops.stores.local import LocalCollection, LocalRecordStore, local_backend, storage_key
from fieldops.stores.row_mapper import TABS, record_to_row, row_to_record
from fieldops.stores.sheets import SheetsRecordStore, connect_sheets, ensure_schema, sheets_backend


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_db() -> Database:
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    db = Database(path=Path(tmp.name))
    db.init()
    return db


def _sample_task(**overrides) -> Task:
    defaults = dict(
        id="t-1",
        title="Cek Paket Stuck Di Hub",
        description="Paket JNE123 belum bergerak 2 hari",
        created_at="2024-03-01T08:00:00Z",
        deadline="2024-03-02",
        category=TaskCategory.TODAY,
        priority=TaskPriority.P1,
        status=TaskStatus.OPEN,
        division=Division.OPS,
    )
    defaults.update(overrides)
    return Task(**defaults)


def _sample_issue(**overrides) -> Issue:
    defaults = dict(
        id="i-1",
        awb="JNE123",
        partner_name="Toko Makmur",
        issue_type="Stuck at hub",
        opcode="285",
        chronology="Package scanned at hub, no movement since.",
        created_at="2024-03-01T08:00:00Z",
        escalation_log=[
            EscalationLog(actor="Budi", action="Call hub", note="No answer", id="e-1",
                          timestamp="2024-03-01T09:00:00Z"),
        ],
    )
    defaults.update(overrides)
    return Issue(**defaults)


def _sample_visit(**overrides) -> VisitNote:
    defaults = dict(
        id="v-1",
        partner_name="Toko Makmur",
        nia="NIA-77",
        visit_date_plan="2024-03-05",
        orders_last_month=300.0,
        orders_daily_avg=10.0,
        findings="Busy counter",
    )
    defaults.update(overrides)
    return VisitNote(**defaults)


SAMPLES = {
    CollectionKind.TASKS: _sample_task,
    CollectionKind.ISSUES: _sample_issue,
    CollectionKind.VISITS: _sample_visit,
}


class _StoreContract:
    """Behaviour every backend shares; mixed into one TestCase per backend."""

    def make_store(self, kind: CollectionKind):
        raise NotImplementedError

    def test_round_trip_preserves_fields(self):
        for kind, factory in SAMPLES.items():
            store = self.make_store(kind)
            record = factory()
            self.assertTrue(store.upsert(record))
            self.assertEqual(store.fetch(), [record])

    def test_upsert_is_idempotent(self):
        for kind, factory in SAMPLES.items():
            store = self.make_store(kind)
            record = factory()
            store.upsert(record)
            once = store.list()
            store.upsert(record)
            self.assertEqual(store.list(), once)
            self.assertEqual(len(once), 1)

    def test_upsert_replaces_by_id(self):
        store = self.make_store(CollectionKind.TASKS)
        store.upsert(_sample_task())
        store.upsert(_sample_task(id="t-2", title="Second"))
        store.upsert(_sample_task(title="Renamed", status=TaskStatus.CLOSED))
        tasks = {t.id: t for t in store.list()}
        self.assertEqual(len(tasks), 2)
        self.assertEqual(tasks["t-1"].title, "Renamed")
        self.assertEqual(tasks["t-1"].status, TaskStatus.CLOSED)

    def test_task_delete_then_list(self):
        store = self.make_store(CollectionKind.TASKS)
        store.upsert(_sample_task())
        store.upsert(_sample_task(id="t-2"))
        self.assertTrue(store.delete("t-1"))
        self.assertEqual([t.id for t in store.list()], ["t-2"])


# ===========================================================================
# 1. Row mapping and record kinds
# ===========================================================================

class TestRowMapper(unittest.TestCase):
    def test_columns_are_positional(self):
        row = record_to_row(CollectionKind.TASKS, _sample_task())
        self.assertEqual(row[0], "t-1")
        self.assertEqual(row[1], "Cek Paket Stuck Di Hub")
        self.assertEqual(len(row), len(TABS[CollectionKind.TASKS].columns))

    def test_none_becomes_empty_cell(self):
        row = record_to_row(CollectionKind.TASKS, _sample_task(deadline=None))
        self.assertEqual(row[4], "")

    def test_escalation_log_serialized_as_json(self):
        row = record_to_row(CollectionKind.ISSUES, _sample_issue())
        self.assertIn('"actor": "Budi"', row[11])

    def test_short_rows_are_padded(self):
        task = row_to_record(CollectionKind.TASKS, ["t-9", "Only title"])
        self.assertEqual(task.title, "Only title")
        self.assertIsNone(task.deadline)
        self.assertEqual(task.status, TaskStatus.OPEN)

    def test_ranges(self):
        tab = TABS[CollectionKind.VISITS]
        self.assertEqual(tab.last_column, "N")
        self.assertEqual(tab.data_range, "VISIT_NOTES!A2:N")
        self.assertEqual(tab.header_range, "VISIT_NOTES!A1:N1")

    def test_kind_of(self):
        self.assertIs(kind_of(_sample_visit()), CollectionKind.VISITS)
        with self.assertRaises(TypeError):
            kind_of(Partner(name="x"))  # type: ignore[arg-type]


# ===========================================================================
# 2. Local store
# ===========================================================================

class TestLocalRecordStore(_StoreContract, unittest.TestCase):
    def setUp(self):
        self.db = _make_db()
        self.repo = KeyValueRepository(self.db)

    def tearDown(self):
        self.db.close()

    def make_store(self, kind: CollectionKind):
        return LocalRecordStore(self.repo, kind)

    def test_storage_key_is_namespaced(self):
        self.assertEqual(storage_key("tasks"), "BS_OPS_TASKS")
        self.assertEqual(storage_key("sops", "X_"), "X_SOPS")

    def test_absent_collection_is_empty(self):
        self.assertEqual(self.make_store(CollectionKind.ISSUES).fetch(), [])

    def test_all_kinds_support_delete(self):
        backend = local_backend(self.repo)
        for kind in CollectionKind:
            self.assertTrue(backend.store(kind).supports_delete)
        self.assertFalse(backend.remote)

    def test_issue_delete_locally(self):
        store = self.make_store(CollectionKind.ISSUES)
        store.upsert(_sample_issue())
        self.assertTrue(store.delete("i-1"))
        self.assertEqual(store.list(), [])

    def test_concurrent_upserts_keep_every_record(self):
        store = self.make_store(CollectionKind.TASKS)
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda n: store.upsert(_sample_task(id=f"t-{n}")), range(20)))
        self.assertTrue(all(results))
        self.assertEqual(len(store.fetch()), 20)

    def test_concurrent_upserts_and_deletes(self):
        store = self.make_store(CollectionKind.ISSUES)
        for n in range(10):
            store.upsert(_sample_issue(id=f"i-{n}"))
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda n: store.delete(f"i-{n}"), range(5)))
            list(pool.map(lambda n: store.upsert(_sample_issue(id=f"i-new-{n}")), range(5)))
        ids = sorted(i.id for i in store.fetch())
        self.assertEqual(ids, sorted([f"i-{n}" for n in range(5, 10)] + [f"i-new-{n}" for n in range(5)]))

    def test_corrupt_data_fetch_raises_list_swallows(self):
        self.repo.write_list("BS_OPS_TASKS", [{"title": "no id"}])
        store = self.make_store(CollectionKind.TASKS)
        with self.assertRaises(StoreError):
            store.fetch()
        self.assertEqual(store.list(), [])

    def test_reference_collection_get(self):
        partners = LocalCollection(self.repo, storage_key("partners"), Partner)
        partners.upsert(Partner(name="Toko A", id="p-1", volume_m1=120, volume_m2=100))
        self.assertEqual(partners.get("p-1").name, "Toko A")
        self.assertIsNone(partners.get("missing"))


# ===========================================================================
# 3. Sheets store
# ===========================================================================

class TestSheetsRecordStore(_StoreContract, unittest.TestCase):
    def setUp(self):
        self.client = FakeSheetsClient()
        ensure_schema(self.client)

    def make_store(self, kind: CollectionKind):
        return SheetsRecordStore(self.client, kind)

    def test_ensure_schema_creates_tabs_with_headers(self):
        client = FakeSheetsClient()
        created = ensure_schema(client)
        self.assertEqual(sorted(created), ["ISSUE_TRACKER", "TASK_MANAGER", "VISIT_NOTES"])
        self.assertEqual(client.header("TASK_MANAGER")[:3], ["ID", "Title", "Description"])

    def test_ensure_schema_is_idempotent(self):
        client = FakeSheetsClient()
        ensure_schema(client)
        self.assertEqual(ensure_schema(client), [])
        header_writes = [c for c in client.calls if c[0] == "update_values"]
        self.assertEqual(len(header_writes), 3)

    def test_ensure_schema_only_adds_missing(self):
        client = FakeSheetsClient(titles=["TASK_MANAGER"])
        client.sheets["TASK_MANAGER"][1] = ["custom header"]
        self.assertEqual(sorted(ensure_schema(client)), ["ISSUE_TRACKER", "VISIT_NOTES"])
        self.assertEqual(client.header("TASK_MANAGER"), ["custom header"])

    def test_upsert_updates_row_in_place(self):
        store = self.make_store(CollectionKind.TASKS)
        store.upsert(_sample_task())
        store.upsert(_sample_task(id="t-2"))
        store.upsert(_sample_task(title="Updated"))
        self.assertEqual(self.client.sheets["TASK_MANAGER"][2][1], "Updated")
        self.assertEqual(self.client.sheets["TASK_MANAGER"][3][0], "t-2")

    def test_blank_rows_keep_row_numbers(self):
        store = self.make_store(CollectionKind.TASKS)
        self.client.sheets["TASK_MANAGER"][2] = []
        self.client.sheets["TASK_MANAGER"][3] = record_to_row(CollectionKind.TASKS, _sample_task())
        store.upsert(_sample_task(title="Fixed"))
        self.assertEqual(self.client.sheets["TASK_MANAGER"][3][1], "Fixed")
        self.assertEqual(len(store.list()), 1)

    def test_only_tasks_support_delete(self):
        backend = sheets_backend(self.client)
        self.assertTrue(backend.remote)
        self.assertTrue(backend.store(CollectionKind.TASKS).supports_delete)
        self.assertFalse(backend.store(CollectionKind.ISSUES).supports_delete)
        self.assertFalse(backend.store(CollectionKind.VISITS).supports_delete)

    def test_issue_delete_raises_without_touching_remote(self):
        store = self.make_store(CollectionKind.ISSUES)
        store.upsert(_sample_issue())
        before = list(self.client.calls)
        with self.assertRaises(UnsupportedOperationError):
            store.delete("i-1")
        self.assertEqual(self.client.calls, before)
        self.assertEqual(len(store.list()), 1)

    def test_task_delete_rewrites_tab(self):
        store = self.make_store(CollectionKind.TASKS)
        for i in range(3):
            store.upsert(_sample_task(id=f"t-{i}"))
        store.delete("t-1")
        self.assertEqual([t.id for t in store.list()], ["t-0", "t-2"])
        self.assertNotIn(4, self.client.sheets["TASK_MANAGER"])

    def test_delete_last_task_leaves_header(self):
        store = self.make_store(CollectionKind.TASKS)
        store.upsert(_sample_task())
        store.delete("t-1")
        self.assertEqual(store.list(), [])
        self.assertEqual(self.client.header("TASK_MANAGER")[0], "ID")

    def test_read_failure_fetch_raises_list_swallows(self):
        store = self.make_store(CollectionKind.VISITS)
        self.client.fail_on.add("get_values")
        with self.assertRaises(RemoteStoreError):
            store.fetch()
        self.assertEqual(store.list(), [])

    def test_write_failure_returns_false(self):
        store = self.make_store(CollectionKind.TASKS)
        self.client.fail_on.add("append_values")
        self.assertFalse(store.upsert(_sample_task()))


class TestConnectSheets(unittest.TestCase):
    def test_connect_heals_schema(self):
        fake = FakeSheetsClient()
        with patch("fieldops.stores.sheets.SheetsClient", return_value=fake):
            backend = connect_sheets(credentials=MagicMock(), spreadsheet_id="sheet-1")
        self.assertEqual(backend.name, "sheets")
        self.assertEqual(set(fake.sheets), {"TASK_MANAGER", "ISSUE_TRACKER", "VISIT_NOTES"})

    def test_connect_failure_is_connection_error(self):
        fake = FakeSheetsClient()
        fake.fail_on.add("sheet_titles")
        with patch("fieldops.stores.sheets.SheetsClient", return_value=fake):
            with self.assertRaises(RemoteConnectionError):
                connect_sheets(credentials=MagicMock(), spreadsheet_id="sheet-1")

    def test_missing_credentials_is_connection_error(self):
        with patch("fieldops.stores.sheets.load_credentials",
                   side_effect=ConfigurationError("no creds")):
            with self.assertRaises(RemoteConnectionError):
                connect_sheets()


class TestSheetsClient(unittest.TestCase):
    def _client(self, valid: bool = True) -> tuple[SheetsClient, MagicMock]:
        creds = MagicMock(valid=valid, token="tok")
        return SheetsClient(creds, spreadsheet_id="sheet-1", api_key="app-key"), creds

    def _response(self, status: int = 200, body=None) -> MagicMock:
        resp = MagicMock(status_code=status, content=b"{}", text="err")
        resp.json.return_value = body or {}
        return resp

    @patch("fieldops.integrations.sheets_client.requests.request")
    def test_get_values(self, mock_request):
        mock_request.return_value = self._response(body={"values": [["t-1", "A"]]})
        client, _ = self._client()
        self.assertEqual(client.get_values("TASK_MANAGER!A2:J"), [["t-1", "A"]])
        method, url = mock_request.call_args[0]
        self.assertEqual(method, "GET")
        self.assertIn("/spreadsheets/sheet-1/values/", url)
        kwargs = mock_request.call_args[1]
        self.assertEqual(kwargs["params"]["key"], "app-key")
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer tok")

    @patch("fieldops.integrations.sheets_client.requests.request")
    def test_http_error_raises_store_error(self, mock_request):
        mock_request.return_value = self._response(403, {"error": {"message": "denied"}})
        client, _ = self._client()
        with self.assertRaises(RemoteStoreError) as ctx:
            client.sheet_titles()
        self.assertIn("denied", ctx.exception.message)

    @patch("fieldops.integrations.sheets_client.requests.request")
    def test_expired_credentials_refreshed(self, mock_request):
        mock_request.return_value = self._response(body={"sheets": [{"properties": {"title": "X"}}]})
        client, creds = self._client(valid=False)
        self.assertEqual(client.sheet_titles(), ["X"])
        creds.refresh.assert_called_once()

    def test_missing_spreadsheet_id(self):
        with patch("fieldops.integrations.sheets_client.get_sheets_config",
                   return_value=SheetsConfig(None, None, None, None)):
            with self.assertRaises(ConfigurationError):
                SheetsClient(MagicMock())

    def test_load_credentials_requires_a_source(self):
        with self.assertRaises(ConfigurationError):
            load_credentials(SheetsConfig(None, None, None, None))


# ===========================================================================
# 4. Firestore store
# ===========================================================================

class TestFirestoreRecordStore(_StoreContract, unittest.TestCase):
    def setUp(self):
        self.client = FakeFirestore()

    def make_store(self, kind: CollectionKind):
        return FirestoreRecordStore(self.client, kind)

    def test_one_document_per_record(self):
        store = self.make_store(CollectionKind.ISSUES)
        store.upsert(_sample_issue())
        doc = self.client.data["issues"]["i-1"]
        self.assertEqual(doc["awb"], "JNE123")
        self.assertEqual(doc["status"], IssueStatus.OPEN.value)

    def test_document_id_fills_missing_field(self):
        self.client.data["visits"] = {"v-9": {"partner_name": "Toko B", "status": "DONE"}}
        visits = self.make_store(CollectionKind.VISITS).fetch()
        self.assertEqual(visits[0].id, "v-9")
        self.assertEqual(visits[0].status, VisitStatus.DONE)

    def test_visit_delete_unsupported(self):
        backend = firestore_backend(self.client)
        with self.assertRaises(UnsupportedOperationError):
            backend.store(CollectionKind.VISITS).delete("v-1")

    def test_stream_failure(self):
        store = self.make_store(CollectionKind.TASKS)
        self.client.fail_on.add("stream")
        with self.assertRaises(RemoteStoreError):
            store.fetch()
        self.assertEqual(store.list(), [])

    def test_set_failure_returns_false(self):
        self.client.fail_on.add("set")
        self.assertFalse(self.make_store(CollectionKind.TASKS).upsert(_sample_task()))

    def test_expired_credentials_on_read(self):
        store = self.make_store(CollectionKind.TASKS)
        self.client.error = RefreshError
        self.client.fail_on.add("stream")
        with self.assertRaises(RemoteStoreError):
            store.fetch()
        self.assertEqual(store.list(), [])

    def test_expired_credentials_on_write(self):
        self.client.error = RefreshError
        self.client.fail_on.update({"set", "delete"})
        store = self.make_store(CollectionKind.TASKS)
        self.assertFalse(store.upsert(_sample_task()))
        self.assertFalse(store.delete("t-1"))

    def test_unreadable_document(self):
        self.client.data["tasks"] = {"t-1": {"title": "x"}}
        store = self.make_store(CollectionKind.TASKS)
        with patch.object(Task, "from_dict", side_effect=ValueError("bad row")):
            with self.assertRaises(RemoteStoreError) as ctx:
                store.fetch()
            self.assertEqual(store.list(), [])
        self.assertEqual(ctx.exception.details["document"], "t-1")

    def test_connect(self):
        backend = connect_firestore(client=self.client)
        self.assertEqual(backend.name, "firestore")
        self.assertTrue(backend.remote)

    def test_connect_failure(self):
        self.client.fail_on.add("collections")
        with self.assertRaises(RemoteConnectionError):
            connect_firestore(client=self.client)


if __name__ == "__main__":
    unittest.main()
