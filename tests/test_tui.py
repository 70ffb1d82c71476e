"""Tests for the loadwatch TUI."""

from __future__ import annotations

import pytest

from loadwatch.config.settings import settings
from loadwatch.models.session import SessionState
from loadwatch.orchestration.types import LoadConfig, NavigationRequest
from loadwatch.tui.app import LoadWatchApp
from loadwatch.tui.widgets import LoadingPanel, TimeoutPanel
from loadwatch.tui.widgets.health_badge import HealthBadge


class HealthyProbe:
    async def check_health(self) -> str:
        return "healthy"


@pytest.fixture(autouse=True)
def fixed_theme() -> None:
    settings._data["theme"] = "textual-dark"


@pytest.mark.anyio
async def test_loading_panel_shown_while_loading() -> None:
    app = LoadWatchApp(
        LoadConfig(page_name="Reports", timeout_seconds=30.0),
        health_probe=HealthyProbe(),
    )

    async with app.run_test() as pilot:
        await pilot.pause(0.1)

        assert app.view_state is not None
        assert app.view_state.state == SessionState.LOADING
        assert app.query_one(LoadingPanel).display is True
        assert app.query_one(TimeoutPanel).display is False
        assert app.query_one("#loading-health", HealthBadge).status.value == "healthy"
        assert app.sub_title.startswith("Loading Reports")


@pytest.mark.anyio
async def test_timeout_switches_to_timeout_panel_and_retry_restores_loading() -> None:
    app = LoadWatchApp(
        LoadConfig(page_name="Reports", timeout_seconds=0.1, max_retries=0)
    )

    async with app.run_test() as pilot:
        await pilot.pause(0.4)

        assert app.final_state == SessionState.GIVEN_UP
        assert app.query_one(TimeoutPanel).display is True
        assert app.query_one(LoadingPanel).display is False

        await pilot.press("r")
        await pilot.pause()

        assert app.final_state == SessionState.LOADING
        assert app.query_one(LoadingPanel).display is True


@pytest.mark.anyio
async def test_go_home_exits_with_navigation_request() -> None:
    app = LoadWatchApp(LoadConfig(page_name="Reports", timeout_seconds=30.0))

    async with app.run_test() as pilot:
        await pilot.pause()
        await pilot.press("h")
        await pilot.pause()

    assert app.return_value == NavigationRequest(action="home")


@pytest.mark.anyio
async def test_force_reload_exits_with_cache_busting_marker() -> None:
    app = LoadWatchApp(LoadConfig(page_name="Reports", timeout_seconds=30.0))

    async with app.run_test() as pilot:
        await pilot.pause()
        await pilot.press("f")
        await pilot.pause()

    request = app.return_value
    assert request is not None
    assert request.action == "reload"
    assert request.marker is not None and request.marker.startswith("force=")


@pytest.mark.anyio
async def test_completed_fetch_renders_loaded_status() -> None:
    async def _fetch() -> None:
        return None

    app = LoadWatchApp(
        LoadConfig(page_name="Reports", timeout_seconds=30.0), fetch=_fetch
    )

    async with app.run_test() as pilot:
        await pilot.pause(0.1)

        assert app.final_state == SessionState.COMPLETED
        assert app.sub_title.startswith("Reports loaded in")
