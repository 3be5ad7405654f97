#!/usr/bin/env python3

import click

from chartsync.config import configure_logging, load_config
from chartsync.commands.sync import sync_handler
from chartsync.commands.run import run_handler
from chartsync.commands.charts import charts_cmd
from chartsync.commands.trust import trust_cmd
from chartsync.commands.config import config_cmd


@click.group()
@click.version_option(package_name='chartsync')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              default=None, help='Log level (default: logging.level from config)')
def cli(log_level):
    """chartsync - Mirror Helm chart repository indexes into a local record store.

    Fetches each configured repository's index.yaml over hardened TLS,
    filters versions by the platform version and keeps one record per
    chart, re-synchronizing periodically.
    """
    logging_config = load_config().get('logging', {})
    configure_logging(log_level or logging_config.get('level', 'INFO'), logging_config.get('format'))


# Sync commands
cli.add_command(sync_handler, name='sync')
cli.add_command(run_handler, name='run')

# Command groups
cli.add_command(charts_cmd)
cli.add_command(trust_cmd)
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
