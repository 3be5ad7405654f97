"""
Domain layer for chartsync.

Contains pure domain objects with no I/O or side effects:
- RepositoryConfig: A remote chart repository to mirror
- IndexFile, ChartVersion: The parsed remote index document
- ChartRecord: The persisted record of one chart's versions

These objects are immutable where possible and provide
serialization methods for JSON output and storage.
"""

from .repository import RepositoryConfig
from .index import IndexFile, ChartVersion, Maintainer, Dependency
from .chart import (
    ChartRecord,
    ChartSpec,
    ChartStatus,
    ChartVersionSpec,
    REPOSITORY_LABEL,
    record_name,
)

__all__ = [
    'RepositoryConfig',
    'IndexFile',
    'ChartVersion',
    'Maintainer',
    'Dependency',
    'ChartRecord',
    'ChartSpec',
    'ChartStatus',
    'ChartVersionSpec',
    'REPOSITORY_LABEL',
    'record_name',
]
