"""
Tests for chartsync.services.sync_service module.

End-to-end passes against a real SQLite store, with the HTTP session
mocked. No network access.
"""

import tempfile
import threading
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

from chartsync.database.store import SQLiteRecordStore
from chartsync.domain import REPOSITORY_LABEL, RepositoryConfig
from chartsync.errors import ConfigLookupError, FetchError, ParseError, SyncCancelled
from chartsync.infra.object_store import ObjectStore, TrustLookup
from chartsync.infra.tls import SecureClientBuilder
from chartsync.services import ChartSyncService

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

NGINX_INDEX = b"""
apiVersion: v1
entries:
  nginx:
    - name: nginx
      version: "0.9.0"
      kubeVersion: ">=99.0.0"
      urls: ["nginx-0.9.0.tgz"]
    - name: nginx
      version: "1.0.0"
      urls: ["nginx-1.0.0.tgz"]
"""

TWO_CHART_INDEX = b"""
apiVersion: v1
entries:
  alpha:
    - version: "1.0.0"
  beta:
    - version: "2.0.0"
"""


class FakeClock:
    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now


def make_session(body=NGINX_INDEX, status_code=200):
    session = MagicMock()
    response = MagicMock()
    response.status_code = status_code
    response.reason = "OK" if status_code == 200 else "Error"
    response.iter_content.side_effect = lambda chunk_size: iter([body])
    session.get.return_value = response
    return session


class SyncTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.clock = FakeClock()
        self.store = SQLiteRecordStore(Path(self.temp_dir.name) / 'charts.db', clock=self.clock)
        self.session = make_session()
        self.builder = MagicMock()
        self.builder.build.return_value = self.session
        self.repo = RepositoryConfig(
            name='stable',
            url='https://charts.example.com/stable',
            display_name='Stable',
        )

    def tearDown(self):
        self.temp_dir.cleanup()

    def service(self, platform_version="1.25.0"):
        return ChartSyncService(self.builder, self.store, platform_version=platform_version, timeout=5)


class TestSyncRepository(SyncTestCase):

    def test_end_to_end_nginx(self):
        result = self.service().sync_repository(self.repo)

        self.session.get.assert_called_once_with(
            'https://charts.example.com/stable/index.yaml', timeout=5, stream=True
        )
        self.assertEqual(result.created, ['stable.nginx'])

        record = self.store.get('stable.nginx')
        self.assertEqual([v.version for v in record.spec.versions], ['1.0.0'])
        self.assertEqual(record.spec.versions[0].urls,
                         ('https://charts.example.com/stable/nginx-1.0.0.tgz',))
        self.assertEqual(record.spec.repository_display_name, 'Stable')
        self.assertEqual(record.labels, {REPOSITORY_LABEL: 'stable'})
        self.assertEqual(record.status.last_update_timestamp, T0)

    def test_session_closed(self):
        self.service().sync_repository(self.repo)
        self.session.close.assert_called_once()

    def test_platform_version_callable(self):
        self.service(platform_version=lambda: None).sync_repository(self.repo)
        record = self.store.get('stable.nginx')
        self.assertEqual([v.version for v in record.spec.versions], ['1.0.0', '0.9.0'])

    def test_second_pass_is_idempotent(self):
        service = self.service()
        service.sync_repository(self.repo)
        first = self.store.get('stable.nginx')

        self.clock.now = T0 + timedelta(minutes=10)
        result = service.sync_repository(self.repo)
        second = self.store.get('stable.nginx')

        self.assertEqual(result.unchanged, ['stable.nginx'])
        self.assertEqual(result.created, [])
        self.assertEqual(result.updated, [])
        self.assertEqual(second.spec, first.spec)
        self.assertEqual(second.labels, first.labels)
        self.assertEqual(second.generation, first.generation)
        self.assertEqual(second.status.last_update_timestamp, T0 + timedelta(minutes=10))

    def test_changed_index_updates_record(self):
        service = self.service()
        service.sync_repository(self.repo)

        self.builder.build.return_value = make_session(NGINX_INDEX + b"""
    - name: nginx
      version: "1.1.0"
""")
        result = service.sync_repository(self.repo)

        self.assertEqual(result.updated, ['stable.nginx'])
        record = self.store.get('stable.nginx')
        self.assertEqual(record.latest_version, '1.1.0')
        self.assertEqual(record.generation, 2)

    def test_result_dict(self):
        data = self.service().sync_repository(self.repo).to_dict()
        self.assertEqual(data['repository'], 'stable')
        self.assertEqual(data['status'], 'success')
        self.assertEqual(data['charts'], 1)
        self.assertEqual(data['created'], ['stable.nginx'])


class TestSyncFailures(SyncTestCase):

    def test_malformed_index_writes_nothing(self):
        self.builder.build.return_value = make_session(b"<html>definitely not an index</html>")
        with self.assertRaises(ParseError):
            self.service().sync_repository(self.repo)
        self.assertEqual(self.store.list(), [])

    def test_http_error_writes_nothing(self):
        self.builder.build.return_value = make_session(status_code=500)
        with self.assertRaises(FetchError) as ctx:
            self.service().sync_repository(self.repo)
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(self.store.list(), [])

    def test_transport_error(self):
        self.session.get.side_effect = requests.Timeout("slow")
        with self.assertRaises(FetchError):
            self.service().sync_repository(self.repo)
        self.session.close.assert_called_once()

    def test_missing_ca_makes_no_request(self):
        root = Path(self.temp_dir.name)
        lookup = TrustLookup(ObjectStore(root / 'cm.yaml'), ObjectStore(root / 'secrets.yaml'))
        repo = RepositoryConfig(name='private', url='https://charts.internal', ca_name='missing-ca')

        with patch('requests.Session.get') as get:
            service = ChartSyncService(SecureClientBuilder(lookup), self.store)
            with self.assertRaises(ConfigLookupError):
                service.sync_repository(repo)
            get.assert_not_called()
        self.assertEqual(self.store.list(), [])

    def test_cancelled_before_start(self):
        cancel = threading.Event()
        cancel.set()
        with self.assertRaises(SyncCancelled):
            self.service().sync_repository(self.repo, cancel)
        self.builder.build.assert_not_called()

    def test_cancel_between_charts_keeps_committed(self):
        self.builder.build.return_value = make_session(TWO_CHART_INDEX)
        cancel = threading.Event()
        original_upsert = self.store.upsert

        def upsert_then_cancel(record):
            changed = original_upsert(record)
            cancel.set()
            return changed

        self.store.upsert = upsert_then_cancel
        with self.assertRaises(SyncCancelled):
            self.service().sync_repository(self.repo, cancel)

        self.assertEqual([r.name for r in self.store.list()], ['stable.alpha'])
