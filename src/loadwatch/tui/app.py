"""Main loadwatch TUI application."""

import logging
from collections.abc import Callable
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Button, Footer, Header

from loadwatch.config import settings
from loadwatch.models.session import SessionState
from loadwatch.models.view_state import LoadViewState
from loadwatch.monitoring.health import HealthProbe
from loadwatch.monitoring.network import NetworkConditionReader
from loadwatch.orchestration.orchestrator import LoadOrchestrator, SessionHandle
from loadwatch.orchestration.presenter import build_status_message
from loadwatch.orchestration.resource_loader import Fetch, ResourceLoader
from loadwatch.orchestration.types import LoadConfig, NavigationRequest
from loadwatch.runtime.load_history import LoadHistory
from loadwatch.runtime.scheduler import LoopScheduler
from loadwatch.tui.widgets import LoadingPanel, TimeoutPanel

logger = logging.getLogger(__name__)

RECOVERY_STATES = frozenset(
    {SessionState.TIMED_OUT, SessionState.RETRYING, SessionState.GIVEN_UP}
)


class AppNavigator:
    """Navigator that leaves the app and reports where to go next."""

    def __init__(self, app: App[NavigationRequest | None]) -> None:
        self._app = app

    def go_home(self) -> None:
        logger.info("Leaving for home page")
        self._app.exit(NavigationRequest(action="home"))

    def force_reload(self, marker: str) -> None:
        logger.info("Leaving for forced reload (%s)", marker)
        self._app.exit(NavigationRequest(action="reload", marker=marker))


class LoadWatchApp(App[NavigationRequest | None]):
    """Supervises one load and renders its progress."""

    TITLE = "loadwatch"

    BINDINGS = [
        Binding("r", "retry", "Retry"),
        Binding("f", "force_reload", "Force Reload"),
        Binding("h", "go_home", "Go Home"),
        Binding("q", "quit", "Quit"),
    ]

    CSS = """
    Screen {
        background: $surface;
        align: center middle;
    }

    LoadingPanel, TimeoutPanel {
        max-width: 90;
    }
    """

    def __init__(
        self,
        config: LoadConfig,
        *,
        fetch: Fetch | None = None,
        health_probe: HealthProbe | None = None,
        network_reader: NetworkConditionReader | None = None,
        history: LoadHistory | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._config = config
        self._fetch = fetch
        self._health_probe = health_probe
        self._network_reader = network_reader
        self._history = history
        self._handle: SessionHandle | None = None
        self._loader: ResourceLoader | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._view: LoadViewState | None = None

    @property
    def view_state(self) -> LoadViewState | None:
        """Most recently rendered view-state."""
        return self._view

    @property
    def final_state(self) -> SessionState | None:
        return self._view.state if self._view is not None else None

    @property
    def handle(self) -> SessionHandle | None:
        return self._handle

    def compose(self) -> ComposeResult:
        yield Header()
        yield LoadingPanel(id="loading-panel")
        yield TimeoutPanel(id="timeout-panel")
        yield Footer()

    def on_mount(self) -> None:
        """Start supervising once the widgets exist."""
        saved_theme = settings.theme
        logger.info("Loading saved theme: %s", saved_theme)
        self.theme = saved_theme

        orchestrator = LoadOrchestrator(
            LoopScheduler(),
            health_probe=self._health_probe,
            network_reader=self._network_reader,
            navigator=AppNavigator(self),
            history=self._history,
        )
        self._handle = orchestrator.start(self._config)
        self._unsubscribe = self._handle.subscribe(self._render_view)
        if self._fetch is not None:
            self._loader = ResourceLoader(self._fetch)
            self._loader.attach(self._handle)
        if self._handle.view_state is not None:
            self._render_view(self._handle.view_state)

    def on_unmount(self) -> None:
        if self._loader is not None:
            self._loader.detach()
        if self._unsubscribe is not None:
            self._unsubscribe()
        if self._handle is not None:
            self._handle.cancel()

    def _render_view(self, view: LoadViewState) -> None:
        self._view = view
        self.sub_title = build_status_message(view)
        loading = self.query_one(LoadingPanel)
        timeout = self.query_one(TimeoutPanel)
        recovering = view.state in RECOVERY_STATES
        loading.display = not recovering
        timeout.display = recovering
        if recovering:
            timeout.show(view)
        else:
            loading.show(view)

    # --- actions ---

    def action_retry(self) -> None:
        if self._handle is not None:
            self._handle.retry()

    def action_force_reload(self) -> None:
        if self._handle is not None:
            self._handle.force_reload()

    def action_go_home(self) -> None:
        if self._handle is not None:
            self._handle.go_home()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        actions = {
            "retry": self.action_retry,
            "force-reload": self.action_force_reload,
            "go-home": self.action_go_home,
        }
        action = actions.get(event.button.id or "")
        if action is not None:
            action()
