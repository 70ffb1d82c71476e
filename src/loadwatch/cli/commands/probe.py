"""Probe command: one health-monitor run."""

from __future__ import annotations

import argparse
import asyncio

from rich.console import Console
from rich.table import Table

from loadwatch.cli.context import build_health_monitor
from loadwatch.config.settings import settings
from loadwatch.monitoring.health import HealthStatus, SystemHealth

STATUS_STYLES = {
    HealthStatus.HEALTHY: "green",
    HealthStatus.DEGRADED: "yellow",
    HealthStatus.UNHEALTHY: "red",
    HealthStatus.UNKNOWN: "dim",
}


def render_health_table(health: SystemHealth) -> Table:
    """Render a health run as a rich table."""
    style = STATUS_STYLES[health.overall]
    table = Table(title=f"Overall: [{style}]{health.overall.value}[/]")
    table.add_column("Service")
    table.add_column("Status")
    table.add_column("Latency", justify="right")
    table.add_column("Error")
    for result in health.services:
        table.add_row(
            result.service,
            f"[{STATUS_STYLES[result.status]}]{result.status.value}[/]",
            f"{result.latency_ms:.0f}ms",
            result.error or "",
        )
    return table


def cmd_probe(args: argparse.Namespace, console: Console | None = None) -> int:
    """Check every URL once; exit 0 only when all are healthy."""
    console = console or Console()
    timeout = args.timeout or settings.health_check_timeout_seconds
    monitor = build_health_monitor(args.urls, timeout)
    health = asyncio.run(monitor.run_checks())
    console.print(render_health_table(health))
    return 0 if health.overall == HealthStatus.HEALTHY else 1
