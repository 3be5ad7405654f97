"""
chartsync - Mirror Helm chart repository indexes into a local record store.

For every configured repository chartsync fetches ``index.yaml`` over a
TLS session built from the repository's trust material, resolves chart
download URLs, orders versions newest first, drops versions whose
``kubeVersion`` excludes the platform, and keeps one record per chart
in SQLite. Passes repeat periodically.

Quick Start:
    from chartsync import (
        ChartSyncService, RepositoryConfig, SecureClientBuilder,
        SQLiteRecordStore, TrustLookup, get_db_path, load_config,
    )

    config = load_config()
    service = ChartSyncService(
        SecureClientBuilder(TrustLookup.from_config(config)),
        SQLiteRecordStore(get_db_path(config)),
        platform_version="1.27.3",
    )
    result = service.sync_repository(
        RepositoryConfig(name="bitnami", url="https://charts.bitnami.com/bitnami")
    )

Domain Objects:
    RepositoryConfig - A remote chart repository
    IndexFile, ChartVersion - The parsed remote index
    ChartRecord - The persisted record of one chart
"""

__version__ = "0.3.0"

from .config import load_config, load_repositories, get_reconcile_period
from .domain import (
    RepositoryConfig,
    IndexFile,
    ChartVersion,
    ChartRecord,
    ChartSpec,
    ChartStatus,
    ChartVersionSpec,
)
from .errors import (
    ChartSyncError,
    ConfigLookupError,
    ConfigKeyError,
    TrustParseError,
    FetchError,
    ParseError,
    PersistenceError,
    SyncCancelled,
)
from .database import SQLiteRecordStore, RecordStore, get_db_path
from .infra import SecureClientBuilder, TrustLookup, IndexClient
from .services import ChartSyncService, SyncScheduler, SyncState

__all__ = [
    '__version__',
    'load_config',
    'load_repositories',
    'get_reconcile_period',
    'RepositoryConfig',
    'IndexFile',
    'ChartVersion',
    'ChartRecord',
    'ChartSpec',
    'ChartStatus',
    'ChartVersionSpec',
    'ChartSyncError',
    'ConfigLookupError',
    'ConfigKeyError',
    'TrustParseError',
    'FetchError',
    'ParseError',
    'PersistenceError',
    'SyncCancelled',
    'SQLiteRecordStore',
    'RecordStore',
    'get_db_path',
    'SecureClientBuilder',
    'TrustLookup',
    'IndexClient',
    'ChartSyncService',
    'SyncScheduler',
    'SyncState',
]
