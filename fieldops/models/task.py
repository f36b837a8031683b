"""Task domain model: a unit of the specialist's own work."""

from __future__ import annotations

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


class TaskCategory(str, Enum):
    TODAY = "TODAY"
    THIS_WEEK = "THIS_WEEK"
    WAITING_UPDATE = "WAITING_UPDATE"


class TaskPriority(str, Enum):
    P1 = "PRIORITY_1"  # high impact
    P2 = "PRIORITY_2"  # deadline driven
    P3 = "PRIORITY_3"  # nice to have


class TaskStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    CLOSED = "CLOSED"


@dataclass
class Task:
    title: str
    id: str = field(default_factory=new_id)
    description: str = ""
    created_at: str = field(default_factory=utc_now_iso)
    deadline: Optional[str] = None
    category: TaskCategory = TaskCategory.TODAY
    priority: TaskPriority = TaskPriority.P3
    status: TaskStatus = TaskStatus.OPEN
    division: Division = Division.OPS
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "created_at": self.created_at,
            "deadline": self.deadline,
            "category": self.category.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "division": self.division.value,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> "Task":
        return cls(
            id=str(row["id"]),
            title=row.get("title") or "",
            description=row.get("description") or "",
            created_at=row.get("created_at") or "",
            deadline=optional_str(row.get("deadline")),
            category=coerce_enum(TaskCategory, row.get("category"), TaskCategory.TODAY),
            priority=coerce_enum(TaskPriority, row.get("priority"), TaskPriority.P3),
            status=coerce_enum(TaskStatus, row.get("status"), TaskStatus.OPEN),
            division=coerce_enum(Division, row.get("division"), Division.OPS),
            notes=row.get("notes") or "",
        )
