"""
Chart record store for chartsync.

RecordStore is the storage interface the sync engine talks to
(get / create / update_spec / update_status) plus the idempotent
upsert built on top of it. SQLiteRecordStore implements it on the
SQLite database.

Ownership rules:
- ``spec`` and the repository label belong to synchronization and are
  overwritten by every pass
- other labels and all annotations belong to other writers and are
  carried over untouched
- ``status`` is only ever written through update_status
"""

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Any, Generator, List, Optional

from ..domain.chart import ChartRecord, ChartSpec, ChartStatus, format_timestamp
from ..errors import PersistenceError
from .connection import Database

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecordStore(ABC):
    """
    Storage interface for chart records.

    Args:
        clock: Time provider used for status timestamps
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utc_now

    @abstractmethod
    def get(self, name: str) -> Optional[ChartRecord]:
        """Get a record by key, or None if it does not exist."""

    @abstractmethod
    def create(self, record: ChartRecord) -> ChartRecord:
        """Create a new record. Fails if the key is taken."""

    @abstractmethod
    def update_spec(self, record: ChartRecord) -> bool:
        """
        Overwrite the sync-owned fields of an existing record.

        Returns:
            True if anything changed, False if the record already matched
        """

    @abstractmethod
    def update_status(self, name: str, status: ChartStatus) -> None:
        """Write the status of an existing record."""

    @abstractmethod
    def list(self, repository_name: Optional[str] = None) -> List[ChartRecord]:
        """List records, optionally only those of one repository."""

    def upsert(self, record: ChartRecord) -> bool:
        """
        Create the record or bring an existing one in line with it.

        Applying the same record twice changes nothing the second time.

        Returns:
            True if the record was created or its spec changed

        Raises:
            PersistenceError: if the store cannot be read or written
        """
        existing = self.get(record.name)
        if existing is None:
            self.create(record)
            logger.info(f"Created chart {record.name} ({len(record.spec.versions)} versions)")
            return True

        changed = self.update_spec(record)
        if changed:
            logger.info(f"Updated chart {record.name} ({len(record.spec.versions)} versions)")
        else:
            logger.debug(f"Chart {record.name} unchanged")
        return changed

    def mark_synced(self, name: str) -> datetime:
        """Set ``lastUpdateTimestamp`` of a record to the current time."""
        now = self.clock()
        self.update_status(name, ChartStatus(last_update_timestamp=now))
        return now


class SQLiteRecordStore(RecordStore):
    """
    RecordStore backed by the chartsync SQLite database.

    Every method runs in its own transaction, so each per-key write is
    atomic. Nothing spans more than one record.

    Example:
        store = SQLiteRecordStore(get_db_path(config))
        store.upsert(record)
        store.mark_synced(record.name)
    """

    def __init__(self, db_path: Path, clock: Optional[Clock] = None):
        super().__init__(clock)
        self.db_path = Path(db_path)

    @contextmanager
    def _database(self, action: str, read_only: bool = False) -> Generator[Database, None, None]:
        try:
            with Database(self.db_path, read_only=read_only) as db:
                yield db
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to {action}: {e}") from e

    def get(self, name: str) -> Optional[ChartRecord]:
        with self._database(f"get chart {name}") as db:
            db.execute("SELECT * FROM charts WHERE name = ?", (name,))
            row = db.fetchone()
        return _row_to_record(row) if row else None

    def create(self, record: ChartRecord) -> ChartRecord:
        now = format_timestamp(self.clock())
        try:
            with self._database(f"create chart {record.name}") as db:
                db.execute(
                    """INSERT INTO charts
                       (name, repository_name, chart_name, labels, annotations,
                        spec, status, generation, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?, ?)""",
                    (
                        record.name,
                        record.repository_name,
                        record.chart_name,
                        _dumps(record.labels),
                        _dumps(record.annotations),
                        _dumps(record.spec.to_dict()),
                        _dumps(record.status.to_dict()),
                        now,
                        now,
                    )
                )
        except PersistenceError as e:
            if isinstance(e.__cause__, sqlite3.IntegrityError):
                raise PersistenceError(f"Chart {record.name} already exists") from e.__cause__
            raise

        return self.get(record.name) or record

    def update_spec(self, record: ChartRecord) -> bool:
        new_spec = record.spec.to_dict()

        with self._database(f"update chart {record.name}") as db:
            db.execute("SELECT labels, spec FROM charts WHERE name = ?", (record.name,))
            row = db.fetchone()
            if row is None:
                raise PersistenceError(f"Chart {record.name} does not exist")

            current_labels = _loads(row['labels'])
            labels = dict(current_labels)
            labels.update(record.labels)

            if _loads(row['spec']) == new_spec and labels == current_labels:
                return False

            db.execute(
                """UPDATE charts
                   SET repository_name = ?, chart_name = ?, labels = ?, spec = ?,
                       generation = generation + 1, updated_at = ?
                   WHERE name = ?""",
                (
                    record.repository_name,
                    record.chart_name,
                    _dumps(labels),
                    _dumps(new_spec),
                    format_timestamp(self.clock()),
                    record.name,
                )
            )
        return True

    def update_status(self, name: str, status: ChartStatus) -> None:
        with self._database(f"update status of chart {name}") as db:
            db.execute("SELECT status FROM charts WHERE name = ?", (name,))
            row = db.fetchone()
            if row is None:
                raise PersistenceError(f"Chart {name} does not exist")

            merged = _loads(row['status'])
            merged.update(status.to_dict())
            db.execute("UPDATE charts SET status = ? WHERE name = ?", (_dumps(merged), name))

    def list(self, repository_name: Optional[str] = None) -> List[ChartRecord]:
        with self._database("list charts") as db:
            if repository_name:
                db.execute(
                    "SELECT * FROM charts WHERE repository_name = ? ORDER BY name",
                    (repository_name,)
                )
            else:
                db.execute("SELECT * FROM charts ORDER BY name")
            rows = db.fetchall()
        return [_row_to_record(row) for row in rows]


def _dumps(value: Dict[str, Any]) -> str:
    return json.dumps(value, ensure_ascii=False, sort_keys=True)


def _loads(text: Optional[str]) -> Dict[str, Any]:
    if not text:
        return {}
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise PersistenceError(f"Corrupt JSON column: {e}") from e
    return value if isinstance(value, dict) else {}


def _row_to_record(row: sqlite3.Row) -> ChartRecord:
    """Convert a database row to a ChartRecord."""
    try:
        spec = ChartSpec.from_dict(_loads(row['spec']))
        status = ChartStatus.from_dict(_loads(row['status']))
    except ValueError as e:
        raise PersistenceError(f"Corrupt record {row['name']}: {e}") from e

    return ChartRecord(
        name=row['name'],
        spec=spec,
        status=status,
        labels=_loads(row['labels']),
        annotations=_loads(row['annotations']),
        generation=row['generation'],
    )
