"""Record stores: local SQLite key/value plus the Sheets and Firestore remotes."""

from fieldops.stores.base import MODEL_FOR, Backend, Record, RecordStore, kind_of
from fieldops.stores.local import LocalCollection, LocalRecordStore, local_backend, storage_key

__all__ = [
    "MODEL_FOR", "Backend", "Record", "RecordStore", "kind_of",
    "LocalCollection", "LocalRecordStore", "local_backend", "storage_key",
]
