"""Positional row mapping between records and spreadsheet tabs.

Columns are matched by index, never by header text, so the order below is a
storage format: changing it requires migrating existing sheets.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from fieldops.models.common import CollectionKind
from fieldops.stores.base import MODEL_FOR, Record


@dataclass(frozen=True)
class TabSpec:
    title: str
    columns: tuple[tuple[str, str], ...]  # (header, record key)

    @property
    def headers(self) -> list[str]:
        return [h for h, _ in self.columns]

    @property
    def last_column(self) -> str:
        return chr(ord("A") + len(self.columns) - 1)

    @property
    def data_range(self) -> str:
        return f"{self.title}!A2:{self.last_column}"

    @property
    def header_range(self) -> str:
        return f"{self.title}!A1:{self.last_column}1"


TABS: dict[CollectionKind, TabSpec] = {
    CollectionKind.TASKS: TabSpec("TASK_MANAGER", (
        ("ID", "id"),
        ("Title", "title"),
        ("Description", "description"),
        ("CreatedAt", "created_at"),
        ("Deadline", "deadline"),
        ("Category", "category"),
        ("Priority", "priority"),
        ("Status", "status"),
        ("Division", "division"),
        ("Notes", "notes"),
    )),
    CollectionKind.ISSUES: TabSpec("ISSUE_TRACKER", (
        ("ID", "id"),
        ("AWB", "awb"),
        ("PartnerName", "partner_name"),
        ("IssueType", "issue_type"),
        ("Opcode", "opcode"),
        ("SOP", "sop_related"),
        ("Chronology", "chronology"),
        ("Division", "division"),
        ("Status", "status"),
        ("CreatedAt", "created_at"),
        ("Screenshot", "screenshot_url"),
        ("EscalationLog", "escalation_log"),
    )),
    CollectionKind.VISITS: TabSpec("VISIT_NOTES", (
        ("ID", "id"),
        ("PartnerName", "partner_name"),
        ("MapsLink", "google_maps_link"),
        ("Coordinates", "coordinates"),
        ("PlanDate", "visit_date_plan"),
        ("ActualDate", "visit_date_actual"),
        ("OrdersTotal", "orders_last_month"),
        ("OrdersAvg", "orders_daily_avg"),
        ("Findings", "findings"),
        ("OpIssues", "operational_issues"),
        ("Suggestions", "suggestions"),
        ("Summary", "summary"),
        ("Status", "status"),
        ("NIA", "nia"),
    )),
}


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return value


def record_to_row(kind: CollectionKind, record: Record) -> list[Any]:
    data = record.to_dict()
    return [_cell(data.get(key)) for _, key in TABS[kind].columns]


def row_to_record(kind: CollectionKind, row: list[Any]) -> Record:
    columns = TABS[kind].columns
    padded = list(row) + [""] * (len(columns) - len(row))
    data = {key: padded[i] for i, (_, key) in enumerate(columns)}
    return MODEL_FOR[kind].from_dict(data)
