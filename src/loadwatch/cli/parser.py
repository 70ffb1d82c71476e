"""Argument parser construction for loadwatch CLI."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path


def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level CLI parser."""
    parser = argparse.ArgumentParser(
        description="loadwatch - supervise slow page and service loads"
    )
    parser.add_argument(
        "--workdir",
        "-w",
        type=Path,
        help="Working directory for the session (default: current directory)",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Watch command
    watch_parser = subparsers.add_parser(
        "watch",
        help="Load a URL under timeout, retry and health supervision",
    )
    watch_parser.add_argument(
        "url",
        help="Resource to load",
    )
    watch_parser.add_argument(
        "--health-url",
        action="append",
        default=[],
        help="Backend health endpoint to poll (repeatable)",
    )
    watch_parser.add_argument(
        "--page",
        help="Display name for the resource (default: URL host)",
    )
    watch_parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds before the load is considered timed out",
    )
    watch_parser.add_argument(
        "--max-retries",
        type=int,
        help="Automatic retries before giving up",
    )
    watch_parser.add_argument(
        "--retry-delay",
        type=float,
        help="Seconds to wait before an automatic retry",
    )
    watch_parser.add_argument(
        "--no-retry",
        action="store_true",
        help="Disable automatic retries",
    )
    watch_parser.add_argument(
        "--retry-when-unhealthy",
        action="store_true",
        help="Retry automatically even when the backend is not healthy",
    )
    watch_parser.add_argument(
        "--network-diagnostics",
        action="store_true",
        help="Show connection details read from LOADWATCH_NET_* variables",
    )
    watch_parser.add_argument(
        "--adaptive-timeout",
        action="store_true",
        help="Derive the timeout from recorded load history",
    )
    watch_parser.add_argument(
        "--headless",
        action="store_true",
        help="Print progress to the console instead of opening the TUI",
    )

    # Probe command
    probe_parser = subparsers.add_parser(
        "probe",
        help="Run one health check against one or more endpoints",
    )
    probe_parser.add_argument(
        "urls",
        nargs="+",
        help="Health endpoints to check",
    )
    probe_parser.add_argument(
        "--timeout",
        type=float,
        help="Per-check timeout in seconds",
    )

    # History command
    history_parser = subparsers.add_parser(
        "history",
        help="Show recorded load durations and timeouts",
    )
    history_parser.add_argument(
        "page",
        nargs="?",
        help="Page to show (default: all pages)",
    )

    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments from argv (or sys.argv when omitted)."""
    parser = build_parser()
    if argv is None:
        return parser.parse_args()
    return parser.parse_args(list(argv))
