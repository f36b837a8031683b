"""Issue domain model: an operational problem tracked against a 24h SLA."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from fieldops.models.common import (
    Division,
    coerce_enum,
    new_id,
    optional_str,
    utc_now_iso,
)


class IssueStatus(str, Enum):
    OPEN = "OPEN"
    PROGRESS = "PROGRESS"
    DONE = "DONE"


@dataclass
class EscalationLog:
    """One follow-up step taken on an issue (call, email, visit...)."""

    actor: str
    action: str
    note: str = ""
    id: str = field(default_factory=new_id)
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "actor": self.actor,
            "action": self.action,
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> "EscalationLog":
        return cls(
            id=str(row.get("id") or new_id()),
            timestamp=row.get("timestamp") or "",
            actor=row.get("actor") or "",
            action=row.get("action") or "",
            note=row.get("note") or "",
        )


@dataclass
class Issue:
    awb: str
    id: str = field(default_factory=new_id)
    partner_name: str = ""
    issue_type: str = ""
    opcode: str = ""
    sop_related: str = ""
    chronology: str = ""
    division: Division = Division.OPS
    status: IssueStatus = IssueStatus.OPEN
    created_at: str = field(default_factory=utc_now_iso)
    screenshot_url: Optional[str] = None
    escalation_log: list[EscalationLog] = field(default_factory=list)

    def escalation_log_json(self) -> str:
        return json.dumps([e.to_dict() for e in self.escalation_log])

    @staticmethod
    def parse_escalation_log(raw: Any) -> list[EscalationLog]:
        if not raw:
            return []
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except (json.JSONDecodeError, TypeError):
                return []
        if not isinstance(raw, list):
            return []
        return [EscalationLog.from_dict(e) for e in raw if isinstance(e, dict)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "awb": self.awb,
            "partner_name": self.partner_name,
            "issue_type": self.issue_type,
            "opcode": self.opcode,
            "sop_related": self.sop_related,
            "chronology": self.chronology,
            "division": self.division.value,
            "status": self.status.value,
            "created_at": self.created_at,
            "screenshot_url": self.screenshot_url,
            "escalation_log": [e.to_dict() for e in self.escalation_log],
        }

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> "Issue":
        return cls(
            id=str(row["id"]),
            awb=row.get("awb") or "",
            partner_name=row.get("partner_name") or "",
            issue_type=row.get("issue_type") or "",
            opcode=str(row.get("opcode") or ""),
            sop_related=row.get("sop_related") or "",
            chronology=row.get("chronology") or "",
            division=coerce_enum(Division, row.get("division"), Division.OPS),
            status=coerce_enum(IssueStatus, row.get("status"), IssueStatus.OPEN),
            created_at=row.get("created_at") or "",
            screenshot_url=optional_str(row.get("screenshot_url")),
            escalation_log=cls.parse_escalation_log(row.get("escalation_log")),
        )
