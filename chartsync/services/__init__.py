"""
Service layer for chartsync.

Contains the sync engine that orchestrates domain objects and infrastructure:
- ChartSyncService: One synchronization pass for one repository
- SyncScheduler: Periodic re-synchronization of repositories

Services are the primary API for commands to use.
"""

from .sync_service import ChartSyncService, PassResult
from .scheduler import ReconcileResult, ScheduleEntry, SyncScheduler, SyncState

__all__ = [
    'ChartSyncService',
    'PassResult',
    'SyncScheduler',
    'SyncState',
    'ReconcileResult',
    'ScheduleEntry',
]
