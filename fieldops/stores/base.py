"""Record store contract shared by the local and remote backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Union

from fieldops.errors import UnsupportedOperationError
from fieldops.models.common import CollectionKind
from fieldops.models.issue import Issue
from fieldops.models.task import Task
from fieldops.models.visit import VisitNote

Record = Union[Task, Issue, VisitNote]

MODEL_FOR: dict[CollectionKind, type] = {
    CollectionKind.TASKS: Task,
    CollectionKind.ISSUES: Issue,
    CollectionKind.VISITS: VisitNote,
}


def kind_of(record: Record) -> CollectionKind:
    for kind, model in MODEL_FOR.items():
        if isinstance(record, model):
            return kind
    raise TypeError(f"Not a synced record: {type(record).__name__}")


class RecordStore(ABC):
    """
    One collection on one backend.

    ``fetch()`` is the strict read and raises ``StoreError``; ``list()`` logs
    and returns ``[]`` instead, so its callers cannot tell an empty
    collection from a failed read. ``upsert``/``delete`` log and return
    False on backend failure.
    """

    kind: CollectionKind
    supports_delete: bool = True

    @abstractmethod
    def fetch(self) -> list[Record]:
        ...

    @abstractmethod
    def list(self) -> list[Record]:
        ...

    @abstractmethod
    def upsert(self, record: Record) -> bool:
        ...

    @abstractmethod
    def delete(self, record_id: str) -> bool:
        ...

    def require_delete(self) -> None:
        if not self.supports_delete:
            raise UnsupportedOperationError(
                f"delete is not supported for {self.kind.value} on this backend",
                details={"collection": self.kind.value},
            )


@dataclass
class Backend:
    """The three collection stores of one backend, selected as a unit."""

    name: str
    stores: dict[CollectionKind, RecordStore] = field(default_factory=dict)
    remote: bool = False

    def store(self, kind: CollectionKind) -> RecordStore:
        return self.stores[kind]
