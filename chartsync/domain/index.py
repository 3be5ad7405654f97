"""
Index document domain objects for chartsync.

These mirror the contents of a chart repository's ``index.yaml``.
They are rebuilt from the network response on every pass and
discarded once mapped into records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List, Tuple


@dataclass(frozen=True)
class Maintainer:
    """A chart maintainer."""
    name: str
    email: str = ""
    url: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Maintainer':
        return cls(
            name=str(data.get('name') or ''),
            email=str(data.get('email') or ''),
            url=str(data.get('url') or ''),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {'name': self.name}
        if self.email:
            result['email'] = self.email
        if self.url:
            result['url'] = self.url
        return result


@dataclass(frozen=True)
class Dependency:
    """A chart dependency descriptor."""
    name: str
    version: str = ""  # May be a range
    repository: str = ""
    condition: str = ""  # YAML path resolving to a boolean
    tags: Tuple[str, ...] = ()
    enabled: bool = False
    alias: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Dependency':
        tags = data.get('tags') or ()
        if isinstance(tags, str):
            tags = (tags,)
        return cls(
            name=str(data.get('name') or ''),
            version=str(data.get('version') or ''),
            repository=str(data.get('repository') or ''),
            condition=str(data.get('condition') or ''),
            tags=tuple(str(t) for t in tags),
            enabled=bool(data.get('enabled', False)),
            alias=str(data.get('alias') or ''),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'name': self.name,
            'repository': self.repository,
        }
        if self.version:
            result['version'] = self.version
        if self.condition:
            result['condition'] = self.condition
        if self.tags:
            result['tags'] = list(self.tags)
        if self.enabled:
            result['enabled'] = True
        if self.alias:
            result['alias'] = self.alias
        return result


@dataclass(frozen=True)
class ChartVersion:
    """
    One version entry of a chart in the index document.

    ``sources``, ``maintainers`` and ``dependencies`` are None when the
    index omits them and an empty tuple when it lists none; the two
    cases are kept apart all the way into the persisted record.
    """
    name: str
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
    kube_version: str = ""  # Platform-version constraint

    def with_urls(self, urls: List[str]) -> 'ChartVersion':
        """Create a new ChartVersion with replaced download URLs."""
        from dataclasses import replace
        return replace(self, urls=tuple(urls))

    def __repr__(self) -> str:
        return f"ChartVersion(name={self.name!r}, version={self.version!r})"


@dataclass
class IndexFile:
    """A parsed repository index: chart name to its version entries."""
    api_version: str
    entries: Dict[str, List[ChartVersion]] = field(default_factory=dict)

    def chart_names(self) -> List[str]:
        return list(self.entries.keys())

    def __len__(self) -> int:
        return len(self.entries)
