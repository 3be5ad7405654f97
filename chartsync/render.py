"""
Rendering functions for chartsync output.

This module handles all pretty-printing and table formatting.
Commands produce dictionaries; this module makes them human-readable.
"""

from typing import Any, Dict, List

from rich import box
from rich.console import Console
from rich.table import Table

from .domain.chart import ChartRecord, format_timestamp

console = Console()


def render_charts_table(records: List[ChartRecord]) -> None:
    """
    Render chart records as a pretty table.

    Args:
        records: Records to show, in display order
    """
    if not records:
        console.print("[yellow]No charts found.[/yellow]")
        return

    table = Table(
        title="Charts",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )

    table.add_column("Record", style="cyan")
    table.add_column("Repository", style="blue")
    table.add_column("Latest", style="green")
    table.add_column("Versions", justify="right")
    table.add_column("Last sync", style="dim")

    for record in records:
        latest = record.latest_version
        synced = record.status.last_update_timestamp
        table.add_row(
            record.name,
            record.repository_name,
            latest or "-",
            str(len(record.spec.versions)),
            format_timestamp(synced) if synced else "never",
        )

    console.print(table)


def render_trust_table(objects: List[Dict[str, Any]]) -> None:
    """
    Render stored trust objects (names and keys only, never contents).

    Args:
        objects: Dicts with ``kind``, ``name`` and ``keys``
    """
    if not objects:
        console.print("[yellow]No trust material stored.[/yellow]")
        return

    table = Table(
        title="Trust material",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )
    table.add_column("Kind", style="blue")
    table.add_column("Name", style="cyan")
    table.add_column("Keys")

    for obj in objects:
        table.add_row(obj['kind'], obj['name'], ", ".join(obj['keys']))

    console.print(table)
