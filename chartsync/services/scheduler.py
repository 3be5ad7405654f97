"""
Periodic re-synchronization of repositories.

SyncScheduler.reconcile() is the unit a host invokes per repository:
it runs one pass and tells the host when to come back. run() is the
minimal host used by the CLI: a single-threaded loop that keeps one
schedule entry per repository and never runs two passes for the same
repository at once.
"""

import heapq
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..config import DEFAULT_RECONCILE_PERIOD_SECONDS
from ..domain.repository import RepositoryConfig
from ..errors import ChartSyncError, SyncCancelled
from .sync_service import ChartSyncService, PassResult

logger = logging.getLogger(__name__)

DEFAULT_ERROR_RETRY_SECONDS = 10


class SyncState(Enum):
    """Pass state of one repository."""
    IDLE = "idle"
    RUNNING = "running"
    FAILED = "failed"


@dataclass(frozen=True)
class ReconcileResult:
    """What the host should do after a reconcile call."""
    state: SyncState
    requeue_after: float
    result: Optional[PassResult] = None


@dataclass
class ScheduleEntry:
    """Loop-owned bookkeeping for one repository."""
    repository: RepositoryConfig
    state: SyncState = SyncState.IDLE
    next_run: float = 0.0
    last_error: Optional[str] = None
    passes: int = 0
    failures: int = 0


class SyncScheduler:
    """
    Schedules sync passes for repositories.

    Example:
        scheduler = SyncScheduler(service, reconcile_period=get_reconcile_period())
        scheduler.run(repositories, stop_event)
    """

    def __init__(
        self,
        service: ChartSyncService,
        reconcile_period: float = DEFAULT_RECONCILE_PERIOD_SECONDS,
        error_retry_seconds: float = DEFAULT_ERROR_RETRY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.service = service
        self.reconcile_period = reconcile_period
        self.error_retry_seconds = error_retry_seconds
        self.clock = clock

    def reconcile(
        self,
        repository: RepositoryConfig,
        cancel: Optional[threading.Event] = None,
    ) -> ReconcileResult:
        """
        Run one pass for a repository.

        Disabled repositories are skipped without network access and
        rescheduled after the normal interval.

        Raises:
            ChartSyncError: the pass failed; the host retries on its own terms
        """
        if repository.disabled:
            logger.info(f"Repository {repository.name} is disabled, skipping")
            return ReconcileResult(SyncState.IDLE, self.reconcile_period)

        try:
            result = self.service.sync_repository(repository, cancel)
        except SyncCancelled:
            logger.info(f"Sync of {repository.name} cancelled")
            raise
        except ChartSyncError as e:
            logger.error(f"Sync of {repository.name} failed: {e}")
            raise

        return ReconcileResult(SyncState.IDLE, self.reconcile_period, result)

    def run(
        self,
        repositories: Iterable[RepositoryConfig],
        stop_event: threading.Event,
        on_result: Optional[Callable[[ScheduleEntry, Optional[ReconcileResult]], None]] = None,
    ) -> Dict[str, ScheduleEntry]:
        """
        Reconcile repositories until ``stop_event`` is set.

        Every repository is due immediately; afterwards successes come
        back after the reconcile period and failures after the error
        retry delay. ``stop_event`` also cancels a pass in progress.

        Args:
            repositories: Repositories to keep in sync
            stop_event: Set to stop the loop
            on_result: Called after every pass with the entry and the
                result (None when the pass failed)

        Returns:
            The final schedule entries, keyed by repository name
        """
        entries: Dict[str, ScheduleEntry] = {}
        queue: List[Tuple[float, int, str]] = []
        now = self.clock()
        for order, repository in enumerate(repositories):
            entries[repository.name] = ScheduleEntry(repository=repository, next_run=now)
            heapq.heappush(queue, (now, order, repository.name))

        logger.info(f"Scheduling {len(entries)} repositories every {self.reconcile_period}s")

        while queue and not stop_event.is_set():
            due, order, name = queue[0]
            delay = due - self.clock()
            if delay > 0:
                # Wakes early when asked to stop
                stop_event.wait(delay)
                continue

            heapq.heappop(queue)
            entry = entries[name]
            requeue_after = self._run_entry(entry, stop_event, on_result)
            if requeue_after is None:
                break

            entry.next_run = self.clock() + requeue_after
            heapq.heappush(queue, (entry.next_run, order, name))

        logger.info("Scheduler stopped")
        return entries

    def _run_entry(self, entry, stop_event, on_result) -> Optional[float]:
        entry.state = SyncState.RUNNING
        entry.passes += 1
        try:
            outcome = self.reconcile(entry.repository, cancel=stop_event)
        except SyncCancelled:
            entry.state = SyncState.IDLE
            return None
        except ChartSyncError as e:
            entry.state = SyncState.FAILED
            entry.failures += 1
            entry.last_error = str(e)
            if on_result:
                on_result(entry, None)
            return self.error_retry_seconds

        entry.state = outcome.state
        entry.last_error = None
        if on_result:
            on_result(entry, outcome)
        return outcome.requeue_after
