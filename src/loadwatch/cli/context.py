"""Shared context helpers for CLI command modules."""

from __future__ import annotations

from collections.abc import Sequence
from urllib.parse import urlsplit

from loadwatch.monitoring.health import HealthMonitor
from loadwatch.monitoring.http import http_check


def build_health_monitor(urls: Sequence[str], timeout: float) -> HealthMonitor:
    """Register one required HTTP check per URL."""
    monitor = HealthMonitor(default_timeout_seconds=timeout)
    for url in urls:
        monitor.add_check(url, http_check(url, timeout=timeout))
    return monitor


def page_name_for(url: str) -> str:
    """Default display name for a URL: its host, or the URL itself."""
    host = urlsplit(url).netloc
    return host or url
