"""
Chart record domain objects for chartsync.

A ChartRecord is the persisted, cluster-visible representation of one
chart's filtered version set. Its serialized form follows the
``HelmChart`` resource layout::

    {name, labels, spec: {name, repositoryName, repositoryDisplayName?,
                          versions: [...]},
     status: {lastUpdateTimestamp?}}
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, date, timezone
from typing import Optional, Dict, Any, Tuple

from .index import Maintainer, Dependency

# Label linking a record to the repository it was synced from
REPOSITORY_LABEL = "chartsync.io/repository"


def record_name(repository_name: str, chart_name: str) -> str:
    """Deterministic record key for a chart of a repository."""
    return f"{repository_name}.{chart_name}"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp from an index document or a stored record.

    Accepts datetime/date objects (as produced by YAML loaders) and
    RFC 3339 strings, including a ``Z`` suffix and more than six
    fractional digits. Naive values are taken to be UTC.

    Returns:
        Aware datetime, or None for empty input

    Raises:
        ValueError: if the value is not a recognizable timestamp
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    else:
        raise ValueError(f"Unsupported timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format as RFC 3339 in UTC with second precision."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


@dataclass(frozen=True)
class ChartVersionSpec:
    """Persisted representation of one chart version."""
    version: str
    api_version: str = ""
    app_version: str = ""
    created: Optional[datetime] = None
    description: str = ""
    digest: str = ""
    home: str = ""
    icon: str = ""
    keywords: Tuple[str, ...] = ()
    sources: Optional[Tuple[str, ...]] = None
    maintainers: Optional[Tuple[Maintainer, ...]] = None
    dependencies: Optional[Tuple[Dependency, ...]] = None
    type: str = ""
    urls: Tuple[str, ...] = ()
    kube_version: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize with camelCase keys.

        Empty scalars are omitted. Optional collections are omitted only
        when absent, so an empty ``maintainers: []`` survives.
        """
        result: Dict[str, Any] = {
            'version': self.version,
            'apiVersion': self.api_version,
        }
        if self.created is not None:
            result['created'] = format_timestamp(self.created)
        for key, value in (
            ('description', self.description),
            ('digest', self.digest),
            ('appVersion', self.app_version),
            ('home', self.home),
            ('icon', self.icon),
            ('type', self.type),
            ('kubeVersion', self.kube_version),
        ):
            if value:
                result[key] = value
        if self.keywords:
            result['keywords'] = list(self.keywords)
        if self.sources is not None:
            result['sources'] = list(self.sources)
        if self.maintainers is not None:
            result['maintainers'] = [m.to_dict() for m in self.maintainers]
        if self.dependencies is not None:
            result['dependencies'] = [d.to_dict() for d in self.dependencies]
        if self.urls:
            result['urls'] = list(self.urls)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChartVersionSpec':
        sources = data.get('sources')
        maintainers = data.get('maintainers')
        dependencies = data.get('dependencies')
        return cls(
            version=data.get('version', ''),
            api_version=data.get('apiVersion', ''),
            app_version=data.get('appVersion', ''),
            created=parse_timestamp(data.get('created')),
            description=data.get('description', ''),
            digest=data.get('digest', ''),
            home=data.get('home', ''),
            icon=data.get('icon', ''),
            keywords=tuple(data.get('keywords') or ()),
            sources=tuple(sources) if sources is not None else None,
            maintainers=tuple(Maintainer.from_dict(m) for m in maintainers) if maintainers is not None else None,
            dependencies=tuple(Dependency.from_dict(d) for d in dependencies) if dependencies is not None else None,
            type=data.get('type', ''),
            urls=tuple(data.get('urls') or ()),
            kube_version=data.get('kubeVersion', ''),
        )


@dataclass(frozen=True)
class ChartSpec:
    """Fields of a record owned by synchronization."""
    name: str
    repository_name: str
    versions: Tuple[ChartVersionSpec, ...] = ()
    repository_display_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'name': self.name,
            'repositoryName': self.repository_name,
        }
        if self.repository_display_name:
            result['repositoryDisplayName'] = self.repository_display_name
        result['versions'] = [v.to_dict() for v in self.versions]
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChartSpec':
        return cls(
            name=data.get('name', ''),
            repository_name=data.get('repositoryName', ''),
            versions=tuple(ChartVersionSpec.from_dict(v) for v in data.get('versions') or ()),
            repository_display_name=data.get('repositoryDisplayName', ''),
        )


@dataclass(frozen=True)
class ChartStatus:
    """Observed state of a record."""
    last_update_timestamp: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.last_update_timestamp is None:
            return {}
        return {'lastUpdateTimestamp': format_timestamp(self.last_update_timestamp)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChartStatus':
        return cls(last_update_timestamp=parse_timestamp(data.get('lastUpdateTimestamp')))


@dataclass(frozen=True)
class ChartRecord:
    """
    Persisted record of one chart of one repository.

    ``spec`` and the repository label are owned by synchronization;
    other labels and all annotations belong to whoever else edits the
    record and are never overwritten by a pass.
    """
    name: str
    spec: ChartSpec
    status: ChartStatus = field(default_factory=ChartStatus)
    labels: Dict[str, str] = field(default_factory=dict)
    annotations: Dict[str, str] = field(default_factory=dict)
    generation: int = 0

    @property
    def repository_name(self) -> str:
        return self.spec.repository_name

    @property
    def chart_name(self) -> str:
        return self.spec.name

    @property
    def latest_version(self) -> Optional[str]:
        """Highest version, given that versions are stored in descending order."""
        return self.spec.versions[0].version if self.spec.versions else None

    def with_status(self, status: ChartStatus) -> 'ChartRecord':
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'labels': dict(self.labels),
            'annotations': dict(self.annotations),
            'generation': self.generation,
            'spec': self.spec.to_dict(),
            'status': self.status.to_dict(),
        }

    def __repr__(self) -> str:
        return f"ChartRecord(name={self.name!r}, versions={len(self.spec.versions)})"
