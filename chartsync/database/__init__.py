"""
Database module for chartsync.

Provides SQLite-based persistence for chart records.

Key components:
- connection: Database connection management
- schema: Table definitions and schema versioning
- store: RecordStore interface and its SQLite implementation
"""

from .connection import get_connection, get_db_path, Database
from .schema import CURRENT_VERSION, ensure_schema
from .store import RecordStore, SQLiteRecordStore, utc_now

__all__ = [
    # Connection
    'get_connection',
    'get_db_path',
    'Database',
    # Schema
    'ensure_schema',
    'CURRENT_VERSION',
    # Store
    'RecordStore',
    'SQLiteRecordStore',
    'utc_now',
]
