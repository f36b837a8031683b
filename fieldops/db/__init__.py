"""Local persistence: SQLite key/value collections and the sync audit log."""

from fieldops.db.database import Database, get_db, reset_db
from fieldops.db.kv_repo import KeyValueRepository
from fieldops.db.sync_log_repo import SyncLogRepository

__all__ = ["Database", "get_db", "reset_db", "KeyValueRepository", "SyncLogRepository"]
