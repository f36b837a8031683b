"""Database schema DDL for the local record store."""

SCHEMA_DDL = """
PRAGMA journal_mode=WAL;

-- ==========================================================================
-- Key/value collections (one JSON array per namespaced key)
-- ==========================================================================
CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

-- ==========================================================================
-- Sync Log (audit trail of coordinator operations)
-- ==========================================================================
CREATE TABLE IF NOT EXISTS sync_log (
    id          TEXT PRIMARY KEY,
    backend     TEXT NOT NULL,
    operation   TEXT NOT NULL,
    subject     TEXT,
    subject_id  TEXT,
    status      TEXT NOT NULL CHECK(status IN ('success','failed')),
    message     TEXT,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE INDEX IF NOT EXISTS idx_sync_log_subject ON sync_log(subject, subject_id);
CREATE INDEX IF NOT EXISTS idx_sync_log_created ON sync_log(created_at);
"""
