"""
Chart sync service for chartsync.

Runs one synchronization pass for one repository:
build client -> fetch index -> parse -> filter/map -> upsert records.

Passes are synchronous and strictly sequential per chart. A failure
anywhere aborts the rest of the pass; records already written by the
pass stay written and the next pass converges them.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from ..domain.repository import RepositoryConfig
from ..database.store import RecordStore
from ..errors import SyncCancelled
from ..index import parse_index
from ..infra.index_client import DEFAULT_TIMEOUT, IndexClient, normalize_index_url
from ..infra.tls import SecureClientBuilder
from ..mapping import map_to_chart_record

logger = logging.getLogger(__name__)

PlatformVersion = Union[str, Callable[[], Optional[str]], None]


@dataclass
class PassResult:
    """Outcome of one successful sync pass."""
    repository: str
    index_url: str
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.updated) + len(self.unchanged)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'repository': self.repository,
            'index_url': self.index_url,
            'status': 'success',
            'charts': self.total,
            'created': self.created,
            'updated': self.updated,
            'unchanged': len(self.unchanged),
        }


class ChartSyncService:
    """
    Mirrors one repository's index into the record store.

    Example:
        service = ChartSyncService(SecureClientBuilder(lookup), store, "1.27.3")
        result = service.sync_repository(repository)
        print(f"{result.repository}: {result.total} charts")
    """

    def __init__(
        self,
        client_builder: SecureClientBuilder,
        store: RecordStore,
        platform_version: PlatformVersion = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize ChartSyncService.

        Args:
            client_builder: Builds the per-pass HTTP session
            store: Where chart records are persisted
            platform_version: Platform version string, or a callable
                returning the currently known one (read once per pass)
            timeout: HTTP timeout in seconds
        """
        self.client_builder = client_builder
        self.store = store
        self.platform_version = platform_version
        self.timeout = timeout

    def current_platform_version(self) -> str:
        if callable(self.platform_version):
            return self.platform_version() or ""
        return self.platform_version or ""

    def sync_repository(
        self,
        repository: RepositoryConfig,
        cancel: Optional[threading.Event] = None,
    ) -> PassResult:
        """
        Run one pass for a repository.

        Args:
            repository: Repository to mirror
            cancel: Set by the caller to stop the pass between steps

        Returns:
            PassResult listing the charts written

        Raises:
            ChartSyncError: any failure; charts processed before it remain stored
        """
        _check_cancelled(cancel, repository)

        # Trust problems surface here, before any network access
        session = self.client_builder.build(repository)
        try:
            index_url = normalize_index_url(repository.url)
            logger.info(f"Syncing repository {repository.name} from {index_url}")

            data = IndexClient(session, timeout=self.timeout).fetch(index_url, cancel)
            index = parse_index(data, index_url)
        finally:
            session.close()

        platform_version = self.current_platform_version()
        result = PassResult(repository=repository.name, index_url=index_url)

        for chart_name in index.chart_names():
            _check_cancelled(cancel, repository)

            record = map_to_chart_record(
                repository,
                chart_name,
                index.entries[chart_name],
                platform_version,
            )
            existed = self.store.get(record.name) is not None
            changed = self.store.upsert(record)
            self.store.mark_synced(record.name)

            if not existed:
                result.created.append(record.name)
            elif changed:
                result.updated.append(record.name)
            else:
                result.unchanged.append(record.name)

        logger.info(
            f"Synced repository {repository.name}: {result.total} charts "
            f"({len(result.created)} created, {len(result.updated)} updated)"
        )
        return result


def _check_cancelled(cancel: Optional[threading.Event], repository: RepositoryConfig) -> None:
    if cancel is not None and cancel.is_set():
        raise SyncCancelled(f"Sync of {repository.name} cancelled")
