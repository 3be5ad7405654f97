"""
Tests for chartsync.database module.

Tests cover:
- Schema creation
- Record create/get/list
- Spec updates that preserve foreign labels and annotations
- Status writes with an injected clock
"""

import sqlite3
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from chartsync.database.connection import Database, get_connection
from chartsync.database.schema import CURRENT_VERSION, get_schema_version
from chartsync.database.store import SQLiteRecordStore
from chartsync.domain import (
    ChartRecord,
    ChartSpec,
    ChartVersionSpec,
    REPOSITORY_LABEL,
)
from chartsync.errors import PersistenceError

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


def make_record(versions=("1.0.0",), repo="stable", chart="nginx"):
    return ChartRecord(
        name=f"{repo}.{chart}",
        spec=ChartSpec(
            name=chart,
            repository_name=repo,
            versions=tuple(ChartVersionSpec(version=v) for v in versions),
        ),
        labels={REPOSITORY_LABEL: repo},
    )


class StoreTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = Path(self.temp_dir.name) / 'charts.db'
        self.clock = FakeClock()
        self.store = SQLiteRecordStore(self.db_path, clock=self.clock)

    def tearDown(self):
        self.temp_dir.cleanup()


class TestSchema(StoreTestCase):

    def test_schema_applied(self):
        conn = get_connection(self.db_path)
        try:
            self.assertEqual(get_schema_version(conn), CURRENT_VERSION)
        finally:
            conn.close()

    def test_newer_schema_rejected(self):
        with Database(self.db_path) as db:
            db.execute("INSERT INTO _schema_info (version) VALUES (?)", (CURRENT_VERSION + 1,))
        with self.assertRaises(RuntimeError):
            get_connection(self.db_path)

    def test_rollback_on_error(self):
        with self.assertRaises(ValueError):
            with Database(self.db_path) as db:
                db.execute(
                    "INSERT INTO charts (name, repository_name, chart_name, spec) VALUES (?, ?, ?, ?)",
                    ('x.y', 'x', 'y', '{}')
                )
                raise ValueError("boom")
        self.assertIsNone(self.store.get('x.y'))


class TestRecordStore(StoreTestCase):

    def test_get_missing(self):
        self.assertIsNone(self.store.get('stable.nginx'))

    def test_create_and_get(self):
        created = self.store.create(make_record())
        self.assertEqual(created.generation, 1)
        fetched = self.store.get('stable.nginx')
        self.assertEqual(fetched.spec, make_record().spec)
        self.assertEqual(fetched.labels, {REPOSITORY_LABEL: 'stable'})

    def test_create_twice_fails(self):
        self.store.create(make_record())
        with self.assertRaises(PersistenceError) as ctx:
            self.store.create(make_record())
        self.assertIn('already exists', str(ctx.exception))

    def test_upsert_creates_then_updates(self):
        self.assertTrue(self.store.upsert(make_record(("1.0.0",))))
        self.assertTrue(self.store.upsert(make_record(("1.1.0", "1.0.0"))))
        record = self.store.get('stable.nginx')
        self.assertEqual(record.latest_version, '1.1.0')
        self.assertEqual(record.generation, 2)

    def test_upsert_unchanged_is_noop(self):
        self.store.upsert(make_record())
        self.assertFalse(self.store.upsert(make_record()))
        self.assertEqual(self.store.get('stable.nginx').generation, 1)

    def test_update_preserves_foreign_fields(self):
        self.store.create(make_record())
        with Database(self.db_path) as db:
            db.execute(
                "UPDATE charts SET labels = ?, annotations = ? WHERE name = ?",
                ('{"team": "web", "%s": "stable"}' % REPOSITORY_LABEL, '{"note": "keep"}', 'stable.nginx')
            )

        self.store.upsert(make_record(("2.0.0",)))

        record = self.store.get('stable.nginx')
        self.assertEqual(record.labels['team'], 'web')
        self.assertEqual(record.annotations, {'note': 'keep'})
        self.assertEqual(record.latest_version, '2.0.0')

    def test_update_spec_missing_record(self):
        with self.assertRaises(PersistenceError):
            self.store.update_spec(make_record())

    def test_mark_synced_uses_clock(self):
        self.store.create(make_record())
        self.assertEqual(self.store.mark_synced('stable.nginx'), T0)
        self.clock.advance(60)
        self.store.mark_synced('stable.nginx')

        record = self.store.get('stable.nginx')
        self.assertEqual(record.status.last_update_timestamp, T0 + timedelta(seconds=60))
        self.assertEqual(record.generation, 1)

    def test_mark_synced_missing_record(self):
        with self.assertRaises(PersistenceError):
            self.store.mark_synced('stable.missing')

    def test_list(self):
        self.store.create(make_record(chart='redis'))
        self.store.create(make_record(chart='nginx'))
        self.store.create(make_record(repo='other', chart='nginx'))

        self.assertEqual(
            [r.name for r in self.store.list()],
            ['other.nginx', 'stable.nginx', 'stable.redis']
        )
        self.assertEqual(
            [r.name for r in self.store.list(repository_name='stable')],
            ['stable.nginx', 'stable.redis']
        )

    def test_sqlite_errors_wrapped(self):
        self.store.create(make_record())
        with Database(self.db_path) as db:
            db.execute("DROP TABLE charts")
        with self.assertRaises(PersistenceError) as ctx:
            self.store.get('stable.nginx')
        self.assertIsInstance(ctx.exception.__cause__, sqlite3.Error)
