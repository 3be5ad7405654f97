"""
Chart record inspection commands for chartsync.
"""

import json

import click

from ..cli_utils import add_common_options, standard_command
from ..config import load_config
from ..exit_codes import CommandError
from ..render import render_charts_table
from .sync import build_store


@click.group("charts")
def charts_cmd():
    """Inspect synchronized chart records."""
    pass


@charts_cmd.command("list")
@click.option('-r', '--repository', default=None, help='Only charts of this repository')
@add_common_options('pretty')
@standard_command
def list_charts(repository, pretty):
    """List chart records.

    By default outputs one JSON object per record (JSONL).
    Use --pretty for a table with the latest version of each chart.
    """
    records = build_store(load_config()).list(repository_name=repository)

    if pretty:
        render_charts_table(records)
        return None
    return (record.to_dict() for record in records)


@charts_cmd.command("show")
@click.argument('name')
@standard_command
def show_chart(name):
    """Show one chart record as JSON.

    NAME is the record key, "<repository>.<chart>".
    """
    record = build_store(load_config()).get(name)
    if record is None:
        raise CommandError(f"Chart record {name!r} not found")
    print(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))
