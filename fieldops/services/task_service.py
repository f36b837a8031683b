"""Task helpers: creation defaults, status cycling and priority ordering."""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import Any, Iterable, Optional

from fieldops.models.common import CollectionKind, Division, coerce_enum, optional_str
from fieldops.models.task import Task, TaskCategory, TaskPriority, TaskStatus
from fieldops.rules.priority import determine_priority
from fieldops.services.sync_coordinator import SyncCoordinator, SyncOutcome

logger = logging.getLogger(__name__)

_NEXT_STATUS = {
    TaskStatus.OPEN: TaskStatus.IN_PROGRESS,
    TaskStatus.IN_PROGRESS: TaskStatus.CLOSED,
    TaskStatus.CLOSED: TaskStatus.OPEN,
}

_WORD_RE = re.compile(r"\w\S*")


def title_case(text: str) -> str:
    return _WORD_RE.sub(lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), text)


def sentence_case(text: str) -> str:
    if not text:
        return ""
    return text[0].upper() + text[1:]


def new_task(
    title: str,
    description: str = "",
    deadline: Optional[str] = None,
    category: TaskCategory = TaskCategory.TODAY,
    priority: Optional[TaskPriority] = None,
    division: Division = Division.OPS,
    notes: str = "",
) -> Task:
    """Without an explicit priority the keyword rules pick one."""
    return Task(
        title=title_case(title.strip()),
        description=sentence_case(description.strip()),
        deadline=deadline or None,
        category=category,
        priority=priority or determine_priority(title, description),
        status=TaskStatus.OPEN,
        division=division,
        notes=notes,
    )


def task_from_draft(data: dict[str, Any]) -> Task:
    """Build a task from a loosely-typed draft (chat action, API body)."""
    title = str(data.get("title") or "Untitled")
    description = str(data.get("description") or "")
    return new_task(
        title=title,
        description=description,
        deadline=optional_str(data.get("deadline")),
        category=coerce_enum(TaskCategory, data.get("category"), TaskCategory.TODAY),
        priority=coerce_enum(TaskPriority, data.get("priority"), determine_priority(title, description)),
        division=coerce_enum(Division, data.get("division"), Division.OPS),
        notes=str(data.get("notes") or ""),
    )


def cycle_status(task: Task) -> Task:
    """OPEN -> IN_PROGRESS -> CLOSED -> OPEN."""
    return dataclasses.replace(task, status=_NEXT_STATUS[task.status])


def sort_by_priority(tasks: Iterable[Task]) -> list[Task]:
    # PRIORITY_1 < PRIORITY_2 < PRIORITY_3 lexically; sort is stable
    return sorted(tasks, key=lambda t: t.priority.value)


def tasks_in_category(tasks: Iterable[Task], category: TaskCategory) -> list[Task]:
    return sort_by_priority(t for t in tasks if t.category is category)


class TaskService:
    """Task operations routed through the sync coordinator."""

    def __init__(self, coordinator: SyncCoordinator):
        self._sync = coordinator

    def list(self) -> list[Task]:
        return self._sync.tasks  # type: ignore[return-value]

    def get(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.list() if t.id == task_id), None)

    def save(self, task: Task) -> SyncOutcome:
        outcome = self._sync.save(task)
        logger.info("Task %s save: %s", task.id, outcome.message)
        return outcome

    def toggle_status(self, task_id: str) -> Optional[SyncOutcome]:
        task = self.get(task_id)
        if task is None:
            return None
        return self.save(cycle_status(task))

    def delete(self, task_id: str) -> SyncOutcome:
        return self._sync.delete(task_id, CollectionKind.TASKS)

    def in_category(self, category: TaskCategory) -> list[Task]:
        return tasks_in_category(self.list(), category)
