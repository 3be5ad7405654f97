"""
Tests for chartsync.domain module.

Tests cover:
- RepositoryConfig parsing (flat and resource shapes)
- Record serialization
- Timestamp handling
"""

import unittest
from datetime import datetime, timezone

import pytest

from chartsync.domain import (
    ChartRecord,
    ChartSpec,
    ChartStatus,
    ChartVersionSpec,
    Dependency,
    Maintainer,
    REPOSITORY_LABEL,
    RepositoryConfig,
    record_name,
)
from chartsync.domain.chart import format_timestamp, parse_timestamp


class TestRepositoryConfig(unittest.TestCase):
    """Tests for RepositoryConfig."""

    def test_flat_shape(self):
        repo = RepositoryConfig.from_dict({
            'name': 'internal',
            'url': 'https://charts.internal',
            'ca': 'internal-ca',
            'tls_client_config': {'name': 'client-cert'},
        })
        self.assertEqual(repo.name, 'internal')
        self.assertEqual(repo.ca_name, 'internal-ca')
        self.assertEqual(repo.tls_client_config_name, 'client-cert')
        self.assertFalse(repo.disabled)

    def test_resource_shape(self):
        repo = RepositoryConfig.from_dict({
            'apiVersion': 'helm.openshift.io/v1beta1',
            'kind': 'HelmChartRepository',
            'metadata': {'name': 'redhat'},
            'spec': {
                'name': 'Red Hat Charts',
                'disabled': True,
                'connectionConfig': {
                    'url': 'https://charts.openshift.io',
                    'ca': {'name': 'my-ca'},
                },
            },
        })
        self.assertEqual(repo.name, 'redhat')
        self.assertEqual(repo.url, 'https://charts.openshift.io')
        self.assertEqual(repo.display_name, 'Red Hat Charts')
        self.assertTrue(repo.disabled)
        self.assertEqual(repo.ca_name, 'my-ca')
        self.assertIsNone(repo.tls_client_config_name)

    def test_empty_reference_is_none(self):
        repo = RepositoryConfig.from_dict({'name': 'a', 'url': 'https://a', 'ca': {'name': ''}})
        self.assertIsNone(repo.ca_name)

    def test_to_dict_omits_unset(self):
        repo = RepositoryConfig(name='a', url='https://a')
        self.assertEqual(repo.to_dict(), {'name': 'a', 'url': 'https://a', 'disabled': False})


class TestTimestamps:
    """Tests for timestamp parsing and formatting."""

    def test_z_suffix(self):
        assert parse_timestamp("2024-01-02T03:04:05Z") == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_nanoseconds(self):
        parsed = parse_timestamp("2024-01-02T03:04:05.123456789Z")
        assert parsed.second == 5
        assert parsed.tzinfo is not None

    def test_naive_is_utc(self):
        assert parse_timestamp(datetime(2024, 1, 1)).tzinfo == timezone.utc

    def test_empty(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("") is None

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_timestamp("soon")

    def test_format(self):
        assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5, 999, tzinfo=timezone.utc)) == "2024-01-02T03:04:05Z"
        assert format_timestamp(None) is None


class TestChartRecord:
    """Tests for record serialization."""

    def make_record(self):
        spec = ChartSpec(
            name='nginx',
            repository_name='stable',
            repository_display_name='Stable',
            versions=(
                ChartVersionSpec(
                    version='1.0.0',
                    api_version='v2',
                    created=datetime(2024, 1, 1, tzinfo=timezone.utc),
                    keywords=('web',),
                    maintainers=(Maintainer(name='Jane', email='jane@example.com'),),
                    dependencies=(Dependency(name='common', repository='https://charts.example.com'),),
                    urls=('https://charts.example.com/nginx-1.0.0.tgz',),
                ),
            ),
        )
        return ChartRecord(
            name=record_name('stable', 'nginx'),
            spec=spec,
            status=ChartStatus(last_update_timestamp=datetime(2024, 2, 1, tzinfo=timezone.utc)),
            labels={REPOSITORY_LABEL: 'stable'},
        )

    def test_to_dict(self):
        data = self.make_record().to_dict()
        assert data['name'] == 'stable.nginx'
        assert data['labels'] == {REPOSITORY_LABEL: 'stable'}
        assert data['spec']['repositoryName'] == 'stable'
        assert data['spec']['repositoryDisplayName'] == 'Stable'
        assert data['status'] == {'lastUpdateTimestamp': '2024-02-01T00:00:00Z'}

        entry = data['spec']['versions'][0]
        assert entry == {
            'version': '1.0.0',
            'apiVersion': 'v2',
            'created': '2024-01-01T00:00:00Z',
            'keywords': ['web'],
            'maintainers': [{'name': 'Jane', 'email': 'jane@example.com'}],
            'dependencies': [{'name': 'common', 'repository': 'https://charts.example.com'}],
            'urls': ['https://charts.example.com/nginx-1.0.0.tgz'],
        }

    def test_spec_from_dict_restores(self):
        record = self.make_record()
        assert ChartSpec.from_dict(record.spec.to_dict()) == record.spec

    def test_properties(self):
        record = self.make_record()
        assert record.repository_name == 'stable'
        assert record.chart_name == 'nginx'
        assert record.latest_version == '1.0.0'

    def test_empty_status(self):
        assert ChartStatus().to_dict() == {}
