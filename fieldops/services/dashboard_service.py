"""Dashboard aggregates computed from the in-memory collections."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

from fieldops.models.issue import Issue
from fieldops.models.task import Task, TaskCategory, TaskPriority, TaskStatus
from fieldops.models.visit import VisitNote, VisitStatus
from fieldops.rules.sla import overdue_issues


@dataclass(frozen=True)
class DashboardStats:
    tasks_today: int
    sla_critical: int
    visits_planned: int
    visits_completed: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def dashboard_stats(
    tasks: Iterable[Task],
    issues: Iterable[Issue],
    visits: Iterable[VisitNote],
    now: Optional[datetime] = None,
) -> DashboardStats:
    visits = list(visits)
    return DashboardStats(
        tasks_today=sum(
            1 for t in tasks if t.category is TaskCategory.TODAY and t.status is not TaskStatus.CLOSED
        ),
        sla_critical=len(overdue_issues(issues, now)),
        visits_planned=sum(1 for v in visits if v.status is not VisitStatus.DONE),
        visits_completed=sum(1 for v in visits if v.status is VisitStatus.DONE),
    )


def priority_breakdown(tasks: Iterable[Task]) -> dict[str, int]:
    """Open (not CLOSED) task counts per priority."""
    counts = {p.value: 0 for p in TaskPriority}
    for t in tasks:
        if t.status is not TaskStatus.CLOSED:
            counts[t.priority.value] += 1
    return counts


def events_for_day(
    tasks: Iterable[Task], visits: Iterable[VisitNote], day: str
) -> dict[str, list[dict[str, Any]]]:
    """Calendar cell for ``day`` (YYYY-MM-DD): open task deadlines and pending visits."""
    return {
        "tasks": [
            t.to_dict() for t in tasks if t.deadline == day and t.status is not TaskStatus.CLOSED
        ],
        "visits": [
            v.to_dict() for v in visits if v.visit_date_plan == day and v.status is not VisitStatus.DONE
        ],
    }
