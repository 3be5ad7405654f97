"""
Index document parsing for chartsync.

Decodes a repository's ``index.yaml`` into an IndexFile, resolving
relative chart download URLs against the index location and ordering
each chart's versions by descending precedence.

Index documents are loosely typed in the wild: list fields may be
missing, a single value, or a list. Everything is normalized here so
the rest of the engine only sees tuples (or None for absent optional
collections).
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit, urlunsplit

import yaml

from .domain.index import ChartVersion, Dependency, IndexFile, Maintainer
from .domain.chart import parse_timestamp
from .errors import ParseError
from .versions import sort_descending

logger = logging.getLogger(__name__)

_NUMERIC_TAGS = ('tag:yaml.org,2002:int', 'tag:yaml.org,2002:float')


class IndexLoader(yaml.SafeLoader):
    """SafeLoader that keeps unquoted numbers such as ``version: 1.10`` as text."""


IndexLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _NUMERIC_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def parse_index(data: bytes, index_url: str) -> IndexFile:
    """
    Parse raw index bytes.

    Args:
        data: Raw response body (YAML or JSON)
        index_url: Fully normalized URL the bytes were fetched from

    Returns:
        IndexFile with absolute download URLs and sorted versions

    Raises:
        ParseError: if the document is structurally invalid
    """
    try:
        document = yaml.load(data, Loader=IndexLoader)
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid index document from {index_url}: {e}") from e

    if not isinstance(document, dict):
        raise ParseError(f"Index document from {index_url} is not a mapping")

    api_version = _string(document.get('apiVersion'))
    if not api_version:
        logger.warning(f"Index document from {index_url} has no apiVersion")

    raw_entries = document.get('entries') or {}
    if not isinstance(raw_entries, dict):
        raise ParseError(f"'entries' in {index_url} is not a mapping")

    entries: Dict[str, List[ChartVersion]] = {}
    for chart_name, raw_versions in raw_entries.items():
        chart_name = str(chart_name)
        versions = _parse_chart_versions(chart_name, raw_versions, index_url)
        versions = [_resolve_urls(v, index_url) for v in versions]
        entries[chart_name] = sort_entries(versions)

    return IndexFile(api_version=api_version, entries=entries)


def _parse_chart_versions(chart_name: str, raw_versions: Any, index_url: str) -> List[ChartVersion]:
    if raw_versions is None:
        return []
    if not isinstance(raw_versions, list):
        raise ParseError(f"Versions of chart {chart_name!r} in {index_url} are not a list")

    versions = []
    for raw in raw_versions:
        if raw is None:
            continue
        if not isinstance(raw, dict):
            raise ParseError(f"Version entry of chart {chart_name!r} in {index_url} is not a mapping")
        versions.append(parse_chart_version(chart_name, raw))

    return versions


def parse_chart_version(chart_name: str, raw: Dict[str, Any]) -> ChartVersion:
    """
    Build a ChartVersion from one raw index entry.

    Raises:
        ParseError: if a field has an unusable shape
    """
    try:
        created = parse_timestamp(raw.get('created'))
    except ValueError as e:
        raise ParseError(f"Invalid 'created' for {chart_name} {raw.get('version')}: {e}") from e

    maintainers = _optional_list(raw, 'maintainers')
    dependencies = _optional_list(raw, 'dependencies')
    sources = _optional_list(raw, 'sources')

    return ChartVersion(
        name=str(raw.get('name') or chart_name),
        version=_string(raw.get('version')),
        api_version=_string(raw.get('apiVersion')),
        app_version=_string(raw.get('appVersion')),
        created=created,
        description=_string(raw.get('description')),
        digest=_string(raw.get('digest')),
        home=_string(raw.get('home')),
        icon=_string(raw.get('icon')),
        keywords=_strings(_as_list(raw.get('keywords')) or []),
        sources=_strings(sources) if sources is not None else None,
        maintainers=tuple(
            _mapping(m, Maintainer.from_dict, 'name') for m in maintainers
        ) if maintainers is not None else None,
        dependencies=tuple(
            _mapping(d, Dependency.from_dict, 'name') for d in dependencies
        ) if dependencies is not None else None,
        type=_string(raw.get('type')),
        urls=_strings(_as_list(raw.get('urls')) or []),
        kube_version=_string(raw.get('kubeVersion')),
    )


def _as_list(value: Any) -> Optional[List[Any]]:
    """Normalize a missing, single or list value."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _optional_list(raw: Dict[str, Any], key: str) -> Optional[List[Any]]:
    """Like _as_list, but ``key: null`` and a missing key both mean absent."""
    if key not in raw:
        return None
    return _as_list(raw[key])


def _mapping(value: Any, factory, key: str):
    """Build from a mapping; a bare string is taken as the ``key`` field."""
    if isinstance(value, dict):
        return factory(value)
    if isinstance(value, str):
        return factory({key: value})
    raise ParseError(f"Expected a mapping, got {type(value).__name__}: {value!r}")


def _string(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _strings(values: List[Any]) -> Tuple[str, ...]:
    return tuple(str(v) for v in values if v is not None)


def resolve_reference_url(base_url: str, ref_url: str) -> str:
    """
    Resolve a chart download URL against the index URL.

    Absolute URLs are returned unchanged. Relative ones resolve against
    the directory holding the index document; a query string on the
    index URL (e.g. a signed token) is carried over.

    Example:
        >>> resolve_reference_url("https://example.com/repo/index.yaml",
        ...                       "charts/foo-1.0.0.tgz")
        'https://example.com/repo/charts/foo-1.0.0.tgz'

    Raises:
        ValueError: if the base URL is not absolute
    """
    ref = urlsplit(ref_url)
    if ref.scheme:
        return ref_url

    base = urlsplit(base_url)
    if not base.scheme or not base.netloc:
        raise ValueError(f"Base URL {base_url!r} is not absolute")

    # The index document itself is the last path element
    path = base.path.rsplit('/', 1)[0] + '/'
    directory = urlunsplit((base.scheme, base.netloc, path, '', ''))
    resolved = urlsplit(urljoin(directory, ref_url))

    query = resolved.query or base.query
    return urlunsplit((resolved.scheme, resolved.netloc, resolved.path, query, resolved.fragment))


def _resolve_urls(entry: ChartVersion, index_url: str) -> ChartVersion:
    urls = []
    for url in entry.urls:
        try:
            urls.append(resolve_reference_url(index_url, url))
        except ValueError as e:
            logger.error(f"Error resolving chart url {url!r} of {entry.name} {entry.version}: {e}")
            urls.append(url)
    return entry.with_urls(urls)


def sort_entries(versions: List[ChartVersion]) -> List[ChartVersion]:
    """Order versions newest first; unparseable versions go last."""
    return sort_descending(versions, lambda v: v.version)
