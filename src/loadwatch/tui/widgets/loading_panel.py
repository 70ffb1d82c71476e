"""Loading and timeout panels driven by ``LoadViewState``."""

from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, ProgressBar, Static

from loadwatch.models.view_state import LoadViewState
from loadwatch.orchestration.presenter import (
    build_advisories,
    build_progress_line,
    build_recommended_actions,
    build_recovery_hint,
    build_timeout_reasons,
)
from loadwatch.tui.widgets.health_badge import HealthBadge


def _format_network(view: LoadViewState) -> str:
    if view.network is None:
        return view.network_class.value
    network = view.network
    return (
        f"{network.effective_class.value} · {network.connection_type} · "
        f"{network.downlink_mbps:g} Mbps · {network.rtt_ms:g}ms RTT"
    )


class LoadingPanel(Vertical):
    """Shown while a load is in progress or being retried."""

    DEFAULT_CSS = """
    LoadingPanel {
        height: auto;
        padding: 1 2;
        border: round $primary;
    }

    LoadingPanel #loading-title {
        text-style: bold;
    }

    LoadingPanel #loading-description {
        color: $text-muted;
        text-style: italic;
    }

    LoadingPanel .status-row {
        height: 1;
    }

    LoadingPanel #loading-advisories {
        color: $warning;
    }
    """

    def compose(self) -> ComposeResult:
        yield Static("", id="loading-title")
        yield Static("", id="loading-phase")
        yield ProgressBar(total=100, show_eta=False, id="loading-progress")
        yield Static("", id="loading-progress-line")
        yield Static("", id="loading-description")
        with Horizontal(classes="status-row"):
            yield Static("System:", id="loading-system-label")
            yield HealthBadge(id="loading-health")
            yield Static("", id="loading-network")
        yield Static("", id="loading-advisories")

    def show(self, view: LoadViewState) -> None:
        self.query_one("#loading-title", Static).update(f"Loading {view.page_name}")
        self.query_one("#loading-phase", Static).update(view.current_phase.name)

        progress = self.query_one("#loading-progress", ProgressBar)
        progress.display = view.show_progress
        progress.update(progress=view.progress_percent)
        line = self.query_one("#loading-progress-line", Static)
        line.display = view.show_progress
        line.update(build_progress_line(view))
        self.query_one("#loading-description", Static).update(
            view.current_phase.description
        )

        self.query_one("#loading-health", HealthBadge).status = view.health_status
        self.query_one("#loading-network", Static).update(_format_network(view))
        self.query_one("#loading-advisories", Static).update(
            "\n".join(build_advisories(view))
        )


class TimeoutPanel(Vertical):
    """Shown once the deadline fired, with manual recovery actions."""

    DEFAULT_CSS = """
    TimeoutPanel {
        height: auto;
        padding: 1 2;
        border: round $warning;
    }

    TimeoutPanel #timeout-title {
        text-style: bold;
    }

    TimeoutPanel #timeout-hint {
        color: $accent;
    }

    TimeoutPanel .actions {
        height: auto;
        margin-top: 1;
    }

    TimeoutPanel Button {
        margin-right: 1;
    }
    """

    def compose(self) -> ComposeResult:
        yield Static("", id="timeout-title")
        yield Static("", id="timeout-reasons")
        with Horizontal(classes="status-row"):
            yield Static("System Health:")
            yield HealthBadge(id="timeout-health")
            yield Static("", id="timeout-load-time")
        yield Static("", id="timeout-network")
        yield Static("", id="timeout-actions")
        yield Static("", id="timeout-hint")
        with Horizontal(classes="actions"):
            yield Button("Retry Loading", id="retry", variant="primary")
            yield Button("Force Reload", id="force-reload")
            yield Button("Go Home", id="go-home")

    def show(self, view: LoadViewState) -> None:
        timeout = f"{view.timeout_seconds:g}s"
        self.query_one("#timeout-title", Static).update(
            f"Loading Timeout - {view.page_name} ({timeout})"
        )
        reasons = "\n".join(f"• {reason}" for reason in build_timeout_reasons(view))
        self.query_one("#timeout-reasons", Static).update(
            f"Loading failed after {timeout}. This could be due to:\n{reasons}"
        )
        self.query_one("#timeout-health", HealthBadge).status = view.health_status
        load_time = f"Load Time: {round(view.elapsed_seconds)}s"
        if view.average_load_seconds is not None:
            load_time += f" (usually {view.average_load_seconds:.1f}s)"
        self.query_one("#timeout-load-time", Static).update(load_time)

        network = self.query_one("#timeout-network", Static)
        network.display = view.network is not None
        if view.network is not None:
            network.update(f"Network Diagnostics: {_format_network(view)}")

        actions = build_recommended_actions(view)
        self.query_one("#timeout-actions", Static).update(
            "Recommended Actions:\n"
            + "\n".join(f"{n}. {action}" for n, action in enumerate(actions, 1))
        )
        self.query_one("#timeout-hint", Static).update(
            f"Auto-Recovery: {build_recovery_hint(view)}"
        )
        self.query_one("#retry", Button).label = (
            f"Retry Loading (Attempt #{view.retry_count + 1})"
        )
