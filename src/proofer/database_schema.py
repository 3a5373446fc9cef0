# src/proofer/database_schema.py

CACHE_SCHEMA_SCRIPT = """
CREATE TABLE IF NOT EXISTS external_cache (
    key TEXT PRIMARY KEY,
    ok INTEGER NOT NULL,
    status INTEGER NOT NULL,
    message TEXT DEFAULT '',
    checked_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_external_cache_checked_at ON external_cache(checked_at);
"""
