"""Watch command: load a URL under orchestrator supervision."""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
from typing import Any

from rich.console import Console

from loadwatch.cli.context import build_health_monitor, page_name_for
from loadwatch.config.settings import settings
from loadwatch.models.session import SessionState
from loadwatch.models.view_state import LoadViewState
from loadwatch.monitoring.health import HealthProbe
from loadwatch.monitoring.http import http_fetch
from loadwatch.monitoring.network import EnvironmentNetworkReader
from loadwatch.orchestration.navigation import (
    LoggingNavigator,
    Navigator,
    build_cache_busting_url,
)
from loadwatch.orchestration.orchestrator import LoadOrchestrator
from loadwatch.orchestration.presenter import (
    build_advisories,
    build_recovery_hint,
    build_status_message,
    build_timeout_reasons,
)
from loadwatch.orchestration.resource_loader import Fetch, ResourceLoader
from loadwatch.orchestration.types import LoadConfig, NavigationRequest
from loadwatch.runtime.load_history import LoadHistory, get_load_history
from loadwatch.runtime.scheduler import LoopScheduler

logger = logging.getLogger(__name__)

# Adaptive budgets never grow past this multiple of the configured timeout.
ADAPTIVE_CEILING_FACTOR = 4.0


def build_watch_config(
    args: argparse.Namespace, history: LoadHistory | None = None
) -> LoadConfig:
    """Merge persisted settings with command-line overrides."""
    page_name = args.page or page_name_for(args.url)
    overrides: dict[str, Any] = {"page_name": page_name}
    if args.timeout is not None:
        overrides["timeout_seconds"] = args.timeout
    if args.max_retries is not None:
        overrides["max_retries"] = args.max_retries
    if args.retry_delay is not None:
        overrides["retry_delay_seconds"] = args.retry_delay
    if args.no_retry:
        overrides["enable_retry_strategies"] = False
    if args.retry_when_unhealthy:
        overrides["retry_only_if_healthy"] = False
    if args.network_diagnostics:
        overrides["show_network_diagnostics"] = True
    config = LoadConfig.from_settings(settings, **overrides)

    if args.adaptive_timeout and history is not None:
        timeout = history.recommended_timeout_seconds(
            page_name,
            config.timeout_seconds,
            ceiling_seconds=config.timeout_seconds * ADAPTIVE_CEILING_FACTOR,
        )
        if timeout != config.timeout_seconds:
            logger.info(
                "Adaptive timeout for %s: %.1fs -> %.1fs",
                page_name,
                config.timeout_seconds,
                timeout,
            )
            config = dataclasses.replace(config, timeout_seconds=timeout)
    return config


class _HeadlessReporter:
    """Prints a line whenever state, phase or health changes."""

    def __init__(self, console: Console) -> None:
        self._console = console
        self._last: tuple[object, ...] | None = None

    def __call__(self, view: LoadViewState) -> None:
        key = (view.session_id, view.state, view.current_phase.name, view.health_status)
        if key == self._last:
            return
        self._last = key
        self._console.print(
            f"[bold]{build_status_message(view)}[/] "
            f"[dim]({round(view.progress_percent)}%, health {view.health_status.value})[/]"
        )
        for advisory in build_advisories(view):
            self._console.print(f"  [yellow]{advisory}[/]")
        if view.needs_recovery:
            for reason in build_timeout_reasons(view):
                self._console.print(f"  - {reason}")
            self._console.print(f"  [cyan]{build_recovery_hint(view)}[/]")


async def run_headless(
    config: LoadConfig,
    fetch: Fetch,
    *,
    console: Console,
    health_probe: HealthProbe | None = None,
    navigator: Navigator | None = None,
    history: LoadHistory | None = None,
) -> SessionState:
    """Run one supervised load on the current loop until it settles."""
    orchestrator = LoadOrchestrator(
        LoopScheduler(),
        health_probe=health_probe,
        network_reader=EnvironmentNetworkReader(),
        navigator=navigator,
        history=history,
    )
    finished = asyncio.Event()
    reporter = _HeadlessReporter(console)

    def _on_view(view: LoadViewState) -> None:
        reporter(view)
        if view.is_terminal:
            finished.set()

    handle = orchestrator.start(config)
    handle.subscribe(_on_view)
    if handle.view_state is not None:
        _on_view(handle.view_state)
    loader = ResourceLoader(fetch)
    loader.attach(handle)
    try:
        await finished.wait()
    finally:
        loader.detach()
        handle.cancel()

    session = orchestrator.session
    return session.state if session is not None else SessionState.GIVEN_UP


def describe_navigation(request: NavigationRequest, url: str) -> str:
    if request.action == "reload" and request.marker:
        return f"Force reload: {build_cache_busting_url(url, request.marker)}"
    return "Navigate home: /"


def cmd_watch(args: argparse.Namespace, console: Console | None = None) -> int:
    """Load a URL; exit 0 when it completes, 1 when the orchestrator gives up."""
    console = console or Console()
    history = get_load_history()
    config = build_watch_config(args, history)
    health_urls = args.health_url or [args.url]
    monitor = build_health_monitor(health_urls, settings.health_check_timeout_seconds)
    fetch = http_fetch(args.url, timeout=config.timeout_seconds)

    request: NavigationRequest | None
    if args.headless:
        navigator = LoggingNavigator()
        state = asyncio.run(
            run_headless(
                config,
                fetch,
                console=console,
                health_probe=monitor,
                navigator=navigator,
                history=history,
            )
        )
        request = navigator.last_request
    else:
        from loadwatch.tui.app import LoadWatchApp

        app = LoadWatchApp(
            config,
            fetch=fetch,
            health_probe=monitor,
            network_reader=EnvironmentNetworkReader(),
            history=history,
        )
        request = app.run()
        state = app.final_state

    if request is not None:
        console.print(describe_navigation(request, args.url))
    return 0 if state == SessionState.COMPLETED else 1
