"""
Database schema for chartsync.

The SQLite database is the record store: one row per chart record.
Unlike a cache it also holds fields owned by other writers (labels,
annotations), so it is never dropped and rebuilt.
"""

import logging
import sqlite3

logger = logging.getLogger(__name__)

# Current schema version - increment when schema changes
# v1: Initial schema
CURRENT_VERSION = 1

SCHEMA_V1 = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS _schema_info (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    description TEXT
);

-- Chart records, keyed by "<repository>.<chart>"
CREATE TABLE IF NOT EXISTS charts (
    name TEXT PRIMARY KEY,
    repository_name TEXT NOT NULL,
    chart_name TEXT NOT NULL,

    labels TEXT NOT NULL DEFAULT '{}',       -- JSON object
    annotations TEXT NOT NULL DEFAULT '{}',  -- JSON object, never written by sync
    spec TEXT NOT NULL,                      -- JSON, owned by sync
    status TEXT NOT NULL DEFAULT '{}',       -- JSON, written by status updates only

    -- Bumped on every spec change, never on status writes
    generation INTEGER NOT NULL DEFAULT 1,

    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_charts_repository ON charts(repository_name);
CREATE INDEX IF NOT EXISTS idx_charts_chart ON charts(chart_name);
"""


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Get current schema version from database."""
    try:
        cursor = conn.execute("SELECT MAX(version) FROM _schema_info")
        result = cursor.fetchone()
        return result[0] if result[0] is not None else 0
    except sqlite3.OperationalError:
        # Table doesn't exist yet
        return 0


def ensure_schema(conn: sqlite3.Connection) -> None:
    """
    Ensure database has current schema.

    Raises:
        RuntimeError: if the database was written by a newer chartsync
    """
    current = get_schema_version(conn)

    if current > CURRENT_VERSION:
        raise RuntimeError(
            f"Database schema version {current} is newer than supported version {CURRENT_VERSION}"
        )

    if current < CURRENT_VERSION:
        logger.info(f"Applying database schema v{CURRENT_VERSION}")
        conn.executescript(SCHEMA_V1)
        conn.execute(
            "INSERT OR REPLACE INTO _schema_info (version, description) VALUES (?, ?)",
            (CURRENT_VERSION, "Initial schema")
        )
        conn.commit()
