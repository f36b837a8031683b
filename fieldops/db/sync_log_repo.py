"""Repository for the ``sync_log`` audit table."""

from __future__ import annotations

import uuid
from typing import Any, Optional

from fieldops.db.database import Database


class SyncLogRepository:
    def __init__(self, db: Database):
        self._db = db

    def log(
        self,
        backend: str,
        operation: str,
        status: str,
        subject: Optional[str] = None,
        subject_id: Optional[str] = None,
        message: Optional[str] = None,
    ) -> str:
        log_id = str(uuid.uuid4())
        with self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO sync_log
                   (id, backend, operation, subject, subject_id, status, message)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (log_id, backend, operation, subject, subject_id, status, message),
            )
        return log_id

    def get_by_subject(self, subject: str, subject_id: Optional[str] = None) -> list[dict[str, Any]]:
        if subject_id:
            return self._db.fetchall(
                "SELECT * FROM sync_log WHERE subject = ? AND subject_id = ? ORDER BY created_at DESC",
                (subject, subject_id),
            )
        return self._db.fetchall(
            "SELECT * FROM sync_log WHERE subject = ? ORDER BY created_at DESC",
            (subject,),
        )

    def recent(self, limit: int = 20) -> list[dict[str, Any]]:
        return self._db.fetchall(
            "SELECT * FROM sync_log ORDER BY created_at DESC, rowid DESC LIMIT ?", (limit,)
        )
