"""Visit helpers: scheduling, completion and the planned/history views."""

from __future__ import annotations

import dataclasses
from datetime import date
from enum import Enum
from typing import Iterable, Optional

from fieldops.models.common import CollectionKind
from fieldops.models.visit import VisitNote, VisitStatus
from fieldops.services.sync_coordinator import SyncCoordinator, SyncOutcome


class VisitTab(str, Enum):
    PLANNED = "PLANNED"
    HISTORY = "HISTORY"


def daily_average(orders_last_month: float) -> float:
    return round(orders_last_month / 30, 1)


def new_visit(
    partner_name: str,
    visit_date_plan: str = "",
    nia: str = "",
    google_maps_link: str = "",
    coordinates: str = "",
    orders_last_month: float = 0,
    findings: str = "",
    operational_issues: str = "",
    suggestions: str = "",
) -> VisitNote:
    return VisitNote(
        partner_name=partner_name.strip(),
        nia=nia,
        google_maps_link=google_maps_link,
        coordinates=coordinates,
        visit_date_plan=visit_date_plan or date.today().isoformat(),
        orders_last_month=orders_last_month,
        orders_daily_avg=daily_average(orders_last_month),
        findings=findings,
        operational_issues=operational_issues,
        suggestions=suggestions,
        status=VisitStatus.PLANNED,
    )


def mark_done(visit: VisitNote, today: Optional[date] = None) -> VisitNote:
    return dataclasses.replace(
        visit,
        status=VisitStatus.DONE,
        visit_date_actual=(today or date.today()).isoformat(),
    )


def reschedule(visit: VisitNote, new_date: str) -> VisitNote:
    return dataclasses.replace(visit, visit_date_plan=new_date, status=VisitStatus.RESCHEDULED)


def filter_visits(
    visits: Iterable[VisitNote],
    tab: VisitTab = VisitTab.PLANNED,
    on_date: Optional[str] = None,
) -> list[VisitNote]:
    """
    Planned tab: everything not DONE, keyed on the plan date.
    History tab: DONE visits, keyed on the actual date.
    Newest first in both.
    """
    if tab is VisitTab.PLANNED:
        selected = [v for v in visits if v.status is not VisitStatus.DONE]
        key = "visit_date_plan"
    else:
        selected = [v for v in visits if v.status is VisitStatus.DONE]
        key = "visit_date_actual"

    if on_date:
        selected = [v for v in selected if getattr(v, key) == on_date]
    return sorted(selected, key=lambda v: getattr(v, key) or "", reverse=True)


class VisitService:
    def __init__(self, coordinator: SyncCoordinator):
        self._sync = coordinator

    def list(self) -> list[VisitNote]:
        return self._sync.visits  # type: ignore[return-value]

    def get(self, visit_id: str) -> Optional[VisitNote]:
        return next((v for v in self.list() if v.id == visit_id), None)

    def save(self, visit: VisitNote) -> SyncOutcome:
        return self._sync.save(visit)

    def complete(self, visit_id: str, today: Optional[date] = None) -> Optional[SyncOutcome]:
        visit = self.get(visit_id)
        if visit is None:
            return None
        return self.save(mark_done(visit, today))

    def reschedule(self, visit_id: str, new_date: str) -> Optional[SyncOutcome]:
        visit = self.get(visit_id)
        if visit is None:
            return None
        return self.save(reschedule(visit, new_date))

    def delete(self, visit_id: str) -> SyncOutcome:
        return self._sync.delete(visit_id, CollectionKind.VISITS)

    def view(self, tab: VisitTab = VisitTab.PLANNED, on_date: Optional[str] = None) -> list[VisitNote]:
        return filter_visits(self.list(), tab, on_date)
