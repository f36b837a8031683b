"""
Sync coordinator: owns which backend is authoritative and the in-memory
mirror of the three synced collections.

The local backend is authoritative until ``connect`` succeeds; from then on
every read and write goes to the remote backend for the rest of the
session. After a remote write all three collections are reloaded; a local
write only refreshes the collection it touched.

Operations are not queued or serialized and remote calls have no timeout
here. If two saves overlap, whichever network response lands last decides
the in-memory state.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fieldops.db.sync_log_repo import SyncLogRepository
from fieldops.errors import FieldOpsError, RemoteConnectionError, StoreError
from fieldops.models.common import CollectionKind
from fieldops.stores.base import Backend, Record, kind_of

logger = logging.getLogger(__name__)

Connector = Callable[[Any], Backend]


@dataclass(frozen=True)
class SyncOutcome:
    """Result of one coordinator operation, suitable for a user notification."""

    ok: bool
    backend: str
    kind: Optional[CollectionKind] = None
    message: str = ""
    reloaded: bool = False

    @property
    def remote(self) -> bool:
        return self.backend != "local"

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "backend": self.backend,
            "kind": self.kind.value if self.kind else None,
            "message": self.message,
            "reloaded": self.reloaded,
        }


class SyncCoordinator:
    def __init__(
        self,
        local: Backend,
        connector: Optional[Connector] = None,
        sync_log: Optional[SyncLogRepository] = None,
    ):
        self._backend = local
        self._connector = connector
        self._sync_log = sync_log
        self._state: dict[CollectionKind, list[Record]] = {kind: [] for kind in CollectionKind}

    # -- read side -------------------------------------------------------------

    @property
    def backend(self) -> Backend:
        return self._backend

    @property
    def is_remote(self) -> bool:
        return self._backend.remote

    def collection(self, kind: CollectionKind) -> list[Record]:
        return list(self._state[kind])

    @property
    def tasks(self) -> list[Record]:
        return self.collection(CollectionKind.TASKS)

    @property
    def issues(self) -> list[Record]:
        return self.collection(CollectionKind.ISSUES)

    @property
    def visits(self) -> list[Record]:
        return self.collection(CollectionKind.VISITS)

    def supports_delete(self, kind: CollectionKind) -> bool:
        return self._backend.store(kind).supports_delete

    # -- reload ----------------------------------------------------------------

    def _fetch_all(self, backend: Backend) -> dict[CollectionKind, list[Record]]:
        """Fetch all three collections; any failure fails the whole reload."""
        if not backend.remote:
            # one shared sqlite connection
            return {kind: backend.store(kind).fetch() for kind in CollectionKind}
        with ThreadPoolExecutor(max_workers=len(CollectionKind)) as pool:
            futures = {kind: pool.submit(backend.store(kind).fetch) for kind in CollectionKind}
            return {kind: future.result() for kind, future in futures.items()}

    def _reload_all(self) -> bool:
        try:
            fresh = self._fetch_all(self._backend)
        except StoreError as exc:
            logger.error("Reload from %s failed, keeping previous state: %s", self._backend.name, exc)
            return False
        self._state = fresh
        return True

    def load(self) -> SyncOutcome:
        """Fill in-memory state from the authoritative backend."""
        ok = self._reload_all()
        message = "Loaded" if ok else f"Could not load data from {self._backend.name}"
        return self._finish("load", SyncOutcome(ok, self._backend.name, None, message, reloaded=ok))

    # -- writes ----------------------------------------------------------------

    def save(self, record: Record) -> SyncOutcome:
        kind = kind_of(record)
        store = self._backend.store(kind)
        if not store.upsert(record):
            return self._finish("save", SyncOutcome(
                False, self._backend.name, kind,
                f"Save failed on {self._backend.name}; the record was not stored",
            ), record.id)
        return self._finish("save", self._after_write(kind, "Saved"), record.id)

    def delete(self, record_id: str, kind: CollectionKind) -> SyncOutcome:
        store = self._backend.store(kind)
        store.require_delete()
        if not store.delete(record_id):
            return self._finish("delete", SyncOutcome(
                False, self._backend.name, kind,
                f"Delete failed on {self._backend.name}",
            ), record_id)
        return self._finish("delete", self._after_write(kind, "Deleted"), record_id)

    def _after_write(self, kind: CollectionKind, verb: str) -> SyncOutcome:
        if self._backend.remote:
            reloaded = self._reload_all()
            message = f"{verb} to {self._backend.name}"
            if not reloaded:
                message += "; refresh failed, showing previous data"
            return SyncOutcome(True, self._backend.name, kind, message, reloaded=reloaded)

        self._state[kind] = self._backend.store(kind).list()
        return SyncOutcome(True, self._backend.name, kind, f"{verb} locally", reloaded=True)

    # -- connect ---------------------------------------------------------------

    def connect(self, credentials: Any = None) -> SyncOutcome:
        """
        Switch authority to the remote backend and reload everything from it.

        In-memory records that only existed locally are dropped, not merged.
        On failure nothing changes and RemoteConnectionError is raised.
        """
        if self._connector is None:
            raise RemoteConnectionError("No remote backend is configured")
        try:
            remote = self._connector(credentials)
            fresh = self._fetch_all(remote)
        except RemoteConnectionError as exc:
            self._log("connect", "failed", message=exc.message)
            raise
        except FieldOpsError as exc:
            self._log("connect", "failed", message=exc.message)
            raise RemoteConnectionError(f"Remote connection failed: {exc.message}") from exc

        self._backend = remote
        self._state = fresh
        logger.info("Connected to %s; local state replaced", remote.name)
        return self._finish("connect", SyncOutcome(
            True, remote.name, None, f"Connected to {remote.name}", reloaded=True,
        ))

    # -- audit -----------------------------------------------------------------

    def _finish(self, operation: str, outcome: SyncOutcome, subject_id: Optional[str] = None) -> SyncOutcome:
        self._log(
            operation,
            "success" if outcome.ok else "failed",
            subject=outcome.kind.value if outcome.kind else None,
            subject_id=subject_id,
            message=outcome.message,
            backend=outcome.backend,
        )
        return outcome

    def _log(self, operation: str, status: str, backend: Optional[str] = None, **kwargs: Any) -> None:
        if self._sync_log is None:
            return
        self._sync_log.log(backend or self._backend.name, operation, status, **kwargs)
