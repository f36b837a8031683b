"""VisitNote domain model: a planned or completed partner field visit."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from fieldops.models.common import coerce_enum, new_id, optional_str, to_float


class VisitStatus(str, Enum):
    PLANNED = "PLANNED"
    DONE = "DONE"
    RESCHEDULED = "RESCHEDULED"


@dataclass
class VisitNote:
    partner_name: str
    id: str = field(default_factory=new_id)
    nia: str = ""
    google_maps_link: str = ""
    coordinates: str = ""
    visit_date_plan: str = ""
    visit_date_actual: str = ""
    orders_last_month: float = 0
    orders_daily_avg: float = 0
    findings: str = ""
    operational_issues: str = ""
    suggestions: str = ""
    summary: Optional[str] = None
    status: VisitStatus = VisitStatus.PLANNED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "partner_name": self.partner_name,
            "nia": self.nia,
            "google_maps_link": self.google_maps_link,
            "coordinates": self.coordinates,
            "visit_date_plan": self.visit_date_plan,
            "visit_date_actual": self.visit_date_actual,
            "orders_last_month": self.orders_last_month,
            "orders_daily_avg": self.orders_daily_avg,
            "findings": self.findings,
            "operational_issues": self.operational_issues,
            "suggestions": self.suggestions,
            "summary": self.summary,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> "VisitNote":
        return cls(
            id=str(row["id"]),
            partner_name=row.get("partner_name") or "",
            nia=str(row.get("nia") or ""),
            google_maps_link=row.get("google_maps_link") or "",
            coordinates=row.get("coordinates") or "",
            visit_date_plan=row.get("visit_date_plan") or "",
            visit_date_actual=row.get("visit_date_actual") or "",
            orders_last_month=to_float(row.get("orders_last_month")),
            orders_daily_avg=to_float(row.get("orders_daily_avg")),
            findings=row.get("findings") or "",
            operational_issues=row.get("operational_issues") or "",
            suggestions=row.get("suggestions") or "",
            summary=optional_str(row.get("summary")),
            status=coerce_enum(VisitStatus, row.get("status"), VisitStatus.PLANNED),
        )
