"""Tabular remote store over Google Sheets.

Each collection is one tab; row 1 is the header and data starts at row 2.
``upsert`` lists the tab first and then writes one row in place or appends,
so two near-simultaneous upserts can act on a stale row index. Task delete
rewrites the whole tab (O(n)); issues and visits have no remote delete.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fieldops.errors import (
    ConfigurationError,
    RemoteConnectionError,
    RemoteStoreError,
)
from fieldops.integrations.sheets_client import SheetsClient, load_credentials
from fieldops.models.common import CollectionKind
from fieldops.stores.base import Backend, Record, RecordStore
from fieldops.stores.row_mapper import TABS, record_to_row, row_to_record

logger = logging.getLogger(__name__)

# Upper bound of the area cleared before a full rewrite
CLEAR_ROWS = 5000


def ensure_schema(client: SheetsClient) -> list[str]:
    """
    Create any missing tab and write its header row.

    Headers are only written for tabs created here, so re-running against
    an existing spreadsheet is a no-op. Returns the titles created.
    """
    existing = set(client.sheet_titles())
    created: list[str] = []
    for tab in TABS.values():
        if tab.title in existing:
            continue
        client.add_sheet(tab.title)
        client.update_values(tab.header_range, [tab.headers])
        created.append(tab.title)
    if created:
        logger.info("Initialised sheets: %s", ", ".join(created))
    return created


class SheetsRecordStore(RecordStore):
    def __init__(self, client: SheetsClient, kind: CollectionKind):
        self._client = client
        self.kind = kind
        self._tab = TABS[kind]
        self.supports_delete = kind is CollectionKind.TASKS

    def _located(self) -> list[tuple[int, Record]]:
        """Records paired with their sheet row number; blank rows are skipped."""
        rows = self._client.get_values(self._tab.data_range)
        located: list[tuple[int, Record]] = []
        # data starts at row 2
        for row_number, row in enumerate(rows, start=2):
            if not row or not str(row[0]).strip():
                continue
            try:
                located.append((row_number, row_to_record(self.kind, row)))
            except (KeyError, TypeError, ValueError) as exc:
                raise RemoteStoreError(
                    f"Unreadable row in {self._tab.title}: {exc}", details={"row": row[:3]}
                ) from exc
        return located

    def fetch(self) -> list[Record]:
        return [record for _, record in self._located()]

    def list(self) -> list[Record]:
        try:
            return self.fetch()
        except RemoteStoreError as exc:
            logger.error("Sheets list failed for %s: %s", self._tab.title, exc.message)
            return []

    def upsert(self, record: Record) -> bool:
        row = record_to_row(self.kind, record)
        try:
            row_number = next((n for n, r in self._located() if r.id == record.id), None)
            if row_number is not None:
                self._client.update_values(
                    f"{self._tab.title}!A{row_number}:{self._tab.last_column}{row_number}", [row]
                )
            else:
                self._client.append_values(self._tab.data_range, [row])
        except RemoteStoreError as exc:
            logger.error("Sheets upsert failed for %s %s: %s", self.kind.value, record.id, exc.message)
            return False
        return True

    def delete(self, record_id: str) -> bool:
        self.require_delete()
        try:
            remaining = [r for r in self.fetch() if r.id != record_id]
            self._rewrite(remaining)
        except RemoteStoreError as exc:
            logger.error("Sheets delete failed for %s %s: %s", self.kind.value, record_id, exc.message)
            return False
        return True

    def _rewrite(self, records: list[Record]) -> None:
        """Clear every data row, then write ``records`` back from row 2."""
        self._client.clear_values(f"{self._tab.title}!A2:Z{CLEAR_ROWS}")
        if records:
            self._client.update_values(
                f"{self._tab.title}!A2",
                [record_to_row(self.kind, r) for r in records],
            )


def sheets_backend(client: SheetsClient) -> Backend:
    return Backend(
        name="sheets",
        stores={kind: SheetsRecordStore(client, kind) for kind in CollectionKind},
        remote=True,
    )


def connect_sheets(credentials: Any = None, spreadsheet_id: Optional[str] = None) -> Backend:
    """
    Connector for the sync coordinator: authenticate, self-heal the schema
    and return the backend. Any failure surfaces as RemoteConnectionError.
    """
    try:
        creds = credentials or load_credentials()
        client = SheetsClient(creds, spreadsheet_id=spreadsheet_id)
        ensure_schema(client)
    except (ConfigurationError, RemoteStoreError, OSError, ValueError) as exc:
        raise RemoteConnectionError(f"Could not connect to Google Sheets: {exc}") from exc
    return sheets_backend(client)

