"""Local record store: one JSON array per collection in the SQLite kv table."""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Generic, Optional, TypeVar

from fieldops.db.kv_repo import KeyValueRepository
from fieldops.errors import StoreError
from fieldops.models.common import CollectionKind
from fieldops.stores.base import MODEL_FOR, Backend, Record, RecordStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PREFIX = "BS_OPS_"

_STORAGE_ERRORS = (sqlite3.Error, json.JSONDecodeError, KeyError, TypeError, ValueError)


def storage_key(name: str, prefix: str = DEFAULT_PREFIX) -> str:
    """``tasks`` -> ``BS_OPS_TASKS``."""
    return f"{prefix}{name.upper()}"


class LocalCollection(Generic[T]):
    """Upsert/delete by ``id`` over a whole-array key; the model supplies to_dict/from_dict."""

    def __init__(self, repo: KeyValueRepository, key: str, model: type[T]):
        self._repo = repo
        self.key = key
        self._model = model

    def fetch(self) -> list[T]:
        try:
            return [self._model.from_dict(item) for item in self._repo.read_list(self.key)]  # type: ignore[attr-defined]
        except _STORAGE_ERRORS as exc:
            raise StoreError(f"Local read failed for {self.key}: {exc}") from exc

    def list(self) -> list[T]:
        try:
            return self.fetch()
        except StoreError as exc:
            logger.error("%s", exc.message)
            return []

    def get(self, record_id: str) -> Optional[T]:
        return next((r for r in self.list() if r.id == record_id), None)  # type: ignore[attr-defined]

    def _write(self, items: list[dict[str, Any]]) -> None:
        self._repo.write_list(self.key, items)

    def upsert(self, record: T) -> bool:
        data = record.to_dict()  # type: ignore[attr-defined]

        def put(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
            for i, item in enumerate(items):
                if item.get("id") == data["id"]:
                    items[i] = data
                    return items
            return [*items, data]

        try:
            self._repo.update_list(self.key, put)
        except _STORAGE_ERRORS as exc:
            logger.error("Local upsert failed for %s: %s", self.key, exc)
            return False
        return True

    def delete(self, record_id: str) -> bool:
        try:
            self._repo.update_list(
                self.key, lambda items: [item for item in items if item.get("id") != record_id]
            )
        except _STORAGE_ERRORS as exc:
            logger.error("Local delete failed for %s: %s", self.key, exc)
            return False
        return True

    def replace_all(self, records: list[T]) -> None:
        self._write([r.to_dict() for r in records])  # type: ignore[attr-defined]


class LocalRecordStore(LocalCollection[Record], RecordStore):
    """A synced collection (tasks, issues or visits) on the local backend."""

    supports_delete = True

    def __init__(self, repo: KeyValueRepository, kind: CollectionKind, prefix: str = DEFAULT_PREFIX):
        super().__init__(repo, storage_key(kind.value, prefix), MODEL_FOR[kind])
        self.kind = kind


def local_backend(repo: KeyValueRepository, prefix: str = DEFAULT_PREFIX) -> Backend:
    return Backend(
        name="local",
        stores={kind: LocalRecordStore(repo, kind, prefix) for kind in CollectionKind},
        remote=False,
    )
