"""History command: recorded load statistics per page."""

from __future__ import annotations

import argparse

from rich.console import Console
from rich.table import Table

from loadwatch.config.paths import get_paths
from loadwatch.runtime.load_history import LoadHistory, LoadStatsSnapshot


def _seconds(value: float | None) -> str:
    return "-" if value is None else f"{value:.1f}s"


def render_history_table(snapshots: list[LoadStatsSnapshot]) -> Table:
    table = Table(title="Load history")
    table.add_column("Page")
    table.add_column("Runs", justify="right")
    table.add_column("Timeouts", justify="right")
    table.add_column("Avg success", justify="right")
    table.add_column("p90", justify="right")
    table.add_column("Max", justify="right")
    for snapshot in snapshots:
        table.add_row(
            snapshot.page,
            str(snapshot.runs),
            str(snapshot.timeout_count),
            _seconds(snapshot.average_seconds),
            _seconds(snapshot.p90_duration_seconds),
            _seconds(snapshot.max_duration_seconds),
        )
    return table


def cmd_history(args: argparse.Namespace, console: Console | None = None) -> int:
    """Print load history for one page or all pages."""
    console = console or Console()
    history = LoadHistory.load(get_paths().load_history)
    pages = [args.page] if args.page else history.pages
    if not pages:
        console.print("No loads recorded yet.")
        return 0
    console.print(render_history_table([history.snapshot(page) for page in pages]))
    return 0
