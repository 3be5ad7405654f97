"""
Version filtering and record mapping for chartsync.

Turns the version entries of one chart from a parsed index into the
ChartRecord that gets persisted, dropping versions whose platform
(Kubernetes) version constraint excludes the running platform.
"""

from typing import Iterable, Optional

from .domain.chart import (
    ChartRecord,
    ChartSpec,
    ChartVersionSpec,
    REPOSITORY_LABEL,
    record_name,
)
from .domain.index import ChartVersion
from .domain.repository import RepositoryConfig
from .versions import is_compatible_range


def is_version_compatible(constraint: Optional[str], platform_version: Optional[str]) -> bool:
    """
    Decide whether an entry with ``constraint`` is kept on ``platform_version``.

    Entries are kept when either string is empty. Otherwise the platform
    version must satisfy the constraint; malformed input excludes the
    entry rather than raising.
    """
    if not constraint or not platform_version:
        return True
    return is_compatible_range(constraint, platform_version)


def map_chart_version(entry: ChartVersion) -> ChartVersionSpec:
    """Copy an index entry into its persisted representation."""
    return ChartVersionSpec(
        version=entry.version,
        api_version=entry.api_version,
        app_version=entry.app_version,
        created=entry.created,
        description=entry.description,
        digest=entry.digest,
        home=entry.home,
        icon=entry.icon,
        keywords=tuple(entry.keywords),
        sources=tuple(entry.sources) if entry.sources is not None else None,
        maintainers=tuple(entry.maintainers) if entry.maintainers is not None else None,
        dependencies=tuple(entry.dependencies) if entry.dependencies is not None else None,
        type=entry.type,
        urls=tuple(entry.urls),
        kube_version=entry.kube_version,
    )


def map_to_chart_record(
    repository: RepositoryConfig,
    chart_name: str,
    versions: Iterable[ChartVersion],
    platform_version: Optional[str] = None,
) -> ChartRecord:
    """
    Build the proposed record for one chart.

    Args:
        repository: Repository the chart was read from
        chart_name: Chart name (key in the index ``entries``)
        versions: Version entries, already sorted newest first
        platform_version: Currently known platform version, may be empty

    Returns:
        ChartRecord with an empty status; the store fills in the rest
    """
    mapped = tuple(
        map_chart_version(entry)
        for entry in versions
        if is_version_compatible(entry.kube_version, platform_version)
    )

    spec = ChartSpec(
        name=chart_name,
        repository_name=repository.name,
        versions=mapped,
        repository_display_name=repository.display_name or "",
    )

    return ChartRecord(
        name=record_name(repository.name, chart_name),
        spec=spec,
        labels={REPOSITORY_LABEL: repository.name},
    )
