"""
Handles the 'sync' command: one pass per configured repository.

Default output is one JSON line per repository. The command exits
non-zero if any pass failed, after every repository has been tried.
"""

from pathlib import Path
from typing import Any, Dict, Generator, List, Optional

import click

from ..cli_utils import add_common_options, standard_command
from ..config import get_reconcile_period, load_config, load_repositories
from ..database.connection import get_db_path
from ..database.store import SQLiteRecordStore
from ..domain.repository import RepositoryConfig
from ..errors import ChartSyncError
from ..exit_codes import CommandError, NoReposFoundError
from ..infra.object_store import TrustLookup
from ..infra.tls import SecureClientBuilder
from ..services import ChartSyncService, SyncScheduler


def build_store(config: Dict[str, Any]) -> SQLiteRecordStore:
    return SQLiteRecordStore(get_db_path(config))


def build_scheduler(config: Dict[str, Any]) -> SyncScheduler:
    """Wire the sync engine from configuration."""
    sync_config = config.get('sync', {})
    service = ChartSyncService(
        client_builder=SecureClientBuilder(TrustLookup.from_config(config)),
        store=build_store(config),
        platform_version=config.get('platform', {}).get('version') or None,
        timeout=float(sync_config.get('timeout_seconds', 30)),
    )
    return SyncScheduler(
        service,
        reconcile_period=get_reconcile_period(),
        error_retry_seconds=float(sync_config.get('error_retry_seconds', 10)),
    )


def select_repositories(
    config: Dict[str, Any],
    repos_file: Optional[Path],
    names: tuple,
) -> List[RepositoryConfig]:
    """Load configured repositories, narrowed to ``names`` when given."""
    try:
        repositories = load_repositories(config, repos_file)
    except (OSError, ValueError) as e:
        raise CommandError(f"Cannot load repositories: {e}") from e

    if names:
        unknown = set(names) - {r.name for r in repositories}
        if unknown:
            raise NoReposFoundError(f"Unknown repositories: {', '.join(sorted(unknown))}")
        repositories = [r for r in repositories if r.name in names]

    if not repositories:
        raise NoReposFoundError("No repositories configured")
    return repositories


@click.command(name='sync')
@click.option('-r', '--repo', 'repo_names', multiple=True,
              help='Only sync this repository (repeatable)')
@click.option('--repos-file', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='YAML file of repositories instead of the configured list')
@add_common_options('quiet')
@standard_command
def sync_handler(repo_names, repos_file, quiet, **kwargs):
    """Run one synchronization pass per repository.

    \b
    Examples:
        chartsync sync                      # All configured repositories
        chartsync sync --repo bitnami       # One repository
        chartsync sync --repos-file repos.yaml
    """
    config = load_config()
    repositories = select_repositories(config, repos_file, repo_names)
    scheduler = build_scheduler(config)
    return _sync_all(scheduler, repositories)


def _sync_all(scheduler: SyncScheduler, repositories: List[RepositoryConfig]) -> Generator[Dict[str, Any], None, None]:
    failed = 0
    for repository in repositories:
        try:
            outcome = scheduler.reconcile(repository)
        except ChartSyncError as e:
            failed += 1
            yield {
                'repository': repository.name,
                'status': 'failed',
                'error': str(e),
                'type': type(e).__name__,
            }
            continue

        if outcome.result is None:
            yield {'repository': repository.name, 'status': 'skipped', 'reason': 'disabled'}
        else:
            yield outcome.result.to_dict()

    if failed:
        raise CommandError(f"{failed} of {len(repositories)} repositories failed to sync")
