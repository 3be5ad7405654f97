"""
Handles the 'run' command: keep repositories in sync until stopped.
"""

import json
import logging
import signal
import threading
from pathlib import Path

import click

from ..cli_utils import add_common_options, standard_command
from ..config import load_config
from .sync import build_scheduler, select_repositories

logger = logging.getLogger(__name__)


@click.command(name='run')
@click.option('-r', '--repo', 'repo_names', multiple=True,
              help='Only keep this repository in sync (repeatable)')
@click.option('--repos-file', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='YAML file of repositories instead of the configured list')
@add_common_options('quiet')
@standard_command
def run_handler(repo_names, repos_file, quiet, **kwargs):
    """Re-synchronize repositories periodically until interrupted.

    The interval comes from REPOSITORY_RECONCILE_PERIOD_SECONDS (default
    600). Failed passes are retried after sync.error_retry_seconds.
    Stops on SIGINT or SIGTERM, cancelling a pass in progress.
    """
    config = load_config()
    repositories = select_repositories(config, repos_file, repo_names)
    scheduler = build_scheduler(config)

    stop_event = threading.Event()

    def _stop(signum, frame):
        logger.info(f"Received signal {signum}, stopping")
        stop_event.set()

    previous = {sig: signal.signal(sig, _stop) for sig in (signal.SIGINT, signal.SIGTERM)}

    def _report(entry, outcome):
        if quiet:
            return
        if outcome is None:
            item = {'repository': entry.repository.name, 'status': 'failed', 'error': entry.last_error}
        elif outcome.result is None:
            item = {'repository': entry.repository.name, 'status': 'skipped', 'reason': 'disabled'}
        else:
            item = outcome.result.to_dict()
        print(json.dumps(item, ensure_ascii=False), flush=True)

    try:
        scheduler.run(repositories, stop_event, on_result=_report)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
