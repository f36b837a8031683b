"""Document remote store over Firestore: one document per record, keyed by id."""

from __future__ import annotations

import logging
from typing import Any, Optional

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError

from fieldops.errors import ConfigurationError, RemoteConnectionError, RemoteStoreError
from fieldops.integrations.firestore_client import check_connection, create_firestore_client
from fieldops.models.common import CollectionKind
from fieldops.stores.base import MODEL_FOR, Backend, Record, RecordStore

logger = logging.getLogger(__name__)

# auth errors (expired or revoked credentials) are not GoogleAPIError subclasses
_CALL_ERRORS = (GoogleAPIError, GoogleAuthError)

COLLECTIONS: dict[CollectionKind, str] = {
    CollectionKind.TASKS: "tasks",
    CollectionKind.ISSUES: "issues",
    CollectionKind.VISITS: "visits",
}


class FirestoreRecordStore(RecordStore):
    def __init__(self, client: Any, kind: CollectionKind):
        self._client = client
        self.kind = kind
        self.collection_name = COLLECTIONS[kind]
        self.supports_delete = kind is CollectionKind.TASKS

    def _collection(self):
        return self._client.collection(self.collection_name)

    def fetch(self) -> list[Record]:
        model = MODEL_FOR[self.kind]
        records: list[Record] = []
        doc_id: Optional[str] = None
        try:
            for doc in self._collection().stream():
                doc_id = doc.id
                data = doc.to_dict() or {}
                data.setdefault("id", doc.id)
                records.append(model.from_dict(data))
        except _CALL_ERRORS as exc:
            raise RemoteStoreError(f"Firestore read failed for {self.collection_name}: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise RemoteStoreError(
                f"Unreadable document in {self.collection_name}: {exc}", details={"document": doc_id}
            ) from exc
        return records

    def list(self) -> list[Record]:
        try:
            return self.fetch()
        except RemoteStoreError as exc:
            logger.error("%s", exc.message)
            return []

    def upsert(self, record: Record) -> bool:
        try:
            self._collection().document(record.id).set(record.to_dict())
        except _CALL_ERRORS as exc:
            logger.error("Firestore upsert failed for %s %s: %s", self.collection_name, record.id, exc)
            return False
        return True

    def delete(self, record_id: str) -> bool:
        self.require_delete()
        try:
            self._collection().document(record_id).delete()
        except _CALL_ERRORS as exc:
            logger.error("Firestore delete failed for %s %s: %s", self.collection_name, record_id, exc)
            return False
        return True


def firestore_backend(client: Any) -> Backend:
    return Backend(
        name="firestore",
        stores={kind: FirestoreRecordStore(client, kind) for kind in CollectionKind},
        remote=True,
    )


def connect_firestore(credentials: Any = None, client: Optional[Any] = None) -> Backend:
    """
    Connector for the sync coordinator. Collections are created implicitly on
    first write, so the schema check only confirms the project is reachable.
    """
    try:
        client = client or create_firestore_client(credentials=credentials)
        check_connection(client)
    except (ConfigurationError, OSError, ValueError) as exc:
        raise RemoteConnectionError(f"Could not connect to Firestore: {exc}") from exc
    return firestore_backend(client)
