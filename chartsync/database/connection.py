"""
Database connection management for chartsync.

Provides connection setup, a context manager, and path configuration.
Uses SQLite with WAL mode so the CLI can read while a sync loop writes.
"""

import os
import sqlite3
from pathlib import Path
from typing import Optional

from .schema import ensure_schema


def get_db_path(config: Optional[dict] = None) -> Path:
    """
    Get the database file path.

    Checks in order:
    1. CHARTSYNC_DB environment variable
    2. config['database']['path'] if provided
    3. Default: ~/.chartsync/charts.db

    Args:
        config: Optional configuration dictionary

    Returns:
        Path to database file
    """
    if 'CHARTSYNC_DB' in os.environ:
        return Path(os.environ['CHARTSYNC_DB'])

    if config and config.get('database', {}).get('path'):
        return Path(config['database']['path']).expanduser()

    return Path.home() / '.chartsync' / 'charts.db'


def get_connection(db_path: Path, read_only: bool = False) -> sqlite3.Connection:
    """
    Open a database connection.

    Creates the database and applies schema if it doesn't exist.

    Args:
        db_path: Path to database file
        read_only: If True, open in read-only mode

    Returns:
        SQLite connection
    """
    if read_only:
        conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True, timeout=30)
    else:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path), timeout=30)

    conn.row_factory = sqlite3.Row  # Enable dict-like access

    if not read_only:
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        ensure_schema(conn)

    return conn


class Database:
    """
    Database context manager for chartsync.

    One ``with`` block is one transaction: it commits on normal exit
    and rolls back if the block raises.

    Usage:
        with Database(db_path) as db:
            db.execute("SELECT * FROM charts")
            for row in db.fetchall():
                print(row['name'])
    """

    def __init__(self, db_path: Path, read_only: bool = False):
        self.db_path = db_path
        self.read_only = read_only
        self._conn: Optional[sqlite3.Connection] = None
        self._cursor: Optional[sqlite3.Cursor] = None

    def __enter__(self) -> 'Database':
        self._conn = get_connection(self.db_path, read_only=self.read_only)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._cursor:
            self._cursor.close()
        if self._conn:
            try:
                if self.read_only:
                    pass
                elif exc_type is None:
                    self._conn.commit()
                else:
                    self._conn.rollback()
            finally:
                self._conn.close()

    @property
    def conn(self) -> sqlite3.Connection:
        """Get the underlying connection."""
        if self._conn is None:
            raise RuntimeError("Database not connected. Use 'with Database(path) as db:'")
        return self._conn

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute SQL statement."""
        self._cursor = self.conn.execute(sql, params)
        return self._cursor

    def fetchone(self) -> Optional[sqlite3.Row]:
        """Fetch one row from last query."""
        if self._cursor is None:
            return None
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        """Fetch all rows from last query."""
        if self._cursor is None:
            return []
        return self._cursor.fetchall()
