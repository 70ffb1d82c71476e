"""Load orchestrator: composition root for one logical load goal.

The orchestrator owns the current ``LoadingSession`` and four producers that
feed it: the progress ticker, the phase ticker, the health poller and the
deadline timer. Every producer callback, probe result and user command goes
through ``_dispatch``, a FIFO mutation gate that serializes changes and drops
anything addressed to a session that has since been replaced or torn down.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from typing import TypeAlias
from dataclasses import dataclass, fields

from loadwatch.models.session import (
    POLLING_STATES,
    LoadingSession,
    SessionState,
)
from loadwatch.models.view_state import LoadViewState
from loadwatch.monitoring.health import HealthProbe, HealthStatus, coerce_health_status
from loadwatch.monitoring.network import NetworkConditionReader, read_network_condition
from loadwatch.orchestration.navigation import (
    LoggingNavigator,
    Navigator,
    cache_busting_marker,
)
from loadwatch.orchestration.phase_walker import PhaseWalker
from loadwatch.orchestration.progress import ProgressEstimator
from loadwatch.orchestration.supervisor import TimeoutSupervisor
from loadwatch.orchestration.types import (
    CompletionOutcome,
    LoadConfig,
    TransitionRecord,
)
from loadwatch.runtime.load_history import LoadHistory
from loadwatch.runtime.scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

ViewSubscriber: TypeAlias = Callable[[LoadViewState], None]


class OrchestratorStateError(RuntimeError):
    """Raised when the orchestrator is driven out of order."""


@dataclass
class _SessionTimers:
    """Timers and in-flight work belonging to the current session."""

    progress: ScheduledTask | None = None
    phase: ScheduledTask | None = None
    deadline: ScheduledTask | None = None
    health_poll: ScheduledTask | None = None
    health_probe: ScheduledTask | None = None
    reload: ScheduledTask | None = None

    def cancel_loading(self) -> None:
        """Stop the producers that only run while loading."""
        for name in ("progress", "phase", "deadline"):
            self._cancel(name)

    def cancel_all(self) -> None:
        for timer_field in fields(self):
            self._cancel(timer_field.name)

    def _cancel(self, name: str) -> None:
        task: ScheduledTask | None = getattr(self, name)
        if task is not None:
            task.cancel()
            setattr(self, name, None)


class LoadOrchestrator:
    """Supervises loading sessions and exposes their view-state."""

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        health_probe: HealthProbe | None = None,
        network_reader: NetworkConditionReader | None = None,
        navigator: Navigator | None = None,
        estimator: ProgressEstimator | None = None,
        history: LoadHistory | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._health_probe = health_probe
        self._network_reader = network_reader
        self._navigator: Navigator = navigator or LoggingNavigator()
        self._estimator = estimator or ProgressEstimator()
        self._history = history

        self._config: LoadConfig | None = None
        self._supervisor: TimeoutSupervisor | None = None
        self._walker: PhaseWalker | None = None
        self._session: LoadingSession | None = None
        self._timers = _SessionTimers()
        self._average_load_seconds: float | None = None
        self._last_health = HealthStatus.UNKNOWN

        self._subscribers: list[ViewSubscriber] = []
        self._transitions: list[TransitionRecord] = []
        self._last_view: LoadViewState | None = None

        self._queue: deque[tuple[str | None, Callable[[], None]]] = deque()
        self._dispatching = False
        self._closed = False

    # --- read-only surface ---

    @property
    def config(self) -> LoadConfig | None:
        return self._config

    @property
    def session(self) -> LoadingSession | None:
        """Current session. Mutate it only through the orchestrator."""
        return self._session

    @property
    def closed(self) -> bool:
        """True once cancelled or handed off to a forced reload."""
        return self._closed

    @property
    def transitions(self) -> tuple[TransitionRecord, ...]:
        return tuple(self._transitions)

    @property
    def view_state(self) -> LoadViewState | None:
        if self._session is None or self._config is None:
            return None
        return self._build_view(self._session, self._config)

    def subscribe(self, callback: ViewSubscriber) -> Callable[[], None]:
        """Receive every changed view-state. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    # --- commands ---

    def start(self, config: LoadConfig) -> "SessionHandle":
        """Begin supervising a load goal.

        Raises:
            OrchestratorStateError: If this orchestrator was already started.
        """
        if self._config is not None:
            raise OrchestratorStateError("Orchestrator has already been started")
        self._config = config
        self._walker = PhaseWalker(config.phases)
        self._supervisor = TimeoutSupervisor(
            self._scheduler,
            config.retry_policy,
            page_name=config.page_name,
            on_timeout=config.on_timeout,
            on_transition=self._on_session_transition,
            is_active=lambda: not self._closed,
        )
        if self._history is not None:
            self._average_load_seconds = self._history.snapshot(
                config.page_name
            ).average_seconds
        logger.info(
            "Loading %s (timeout %.1fs, max retries %d)",
            config.page_name,
            config.timeout_seconds,
            config.max_retries,
        )
        self._dispatch(None, lambda: self._begin_session(0, "start"))
        return SessionHandle(self)

    def retry(self) -> bool:
        """Manual retry: restart loading with a fresh budget.

        Always permitted until the orchestrator is closed. Returns False if
        the command was ignored.
        """
        if not self._accepting_commands("retry"):
            return False
        self._dispatch(None, lambda: self._begin_session(0, "manual retry"))
        return True

    def complete(self, session_id: str | None = None) -> CompletionOutcome:
        """Signal that the underlying resource finished loading.

        When *session_id* is given, the signal only applies to that session.
        Returns COMPLETED when the session moved to COMPLETED, DEFERRED when
        the call arrived during another mutation (a subscriber or
        ``on_timeout`` callback) and was queued behind it, and IGNORED
        otherwise.
        """
        if not self._accepting_commands("complete"):
            return CompletionOutcome.IGNORED
        queued = self._dispatching
        applied: list[bool] = []

        def _complete() -> None:
            session = self._require_session()
            supervisor = self._require_supervisor()
            if not supervisor.complete(session):
                return
            self._timers.cancel_all()
            if self._history is not None and self._config is not None:
                self._history.record(
                    self._config.page_name,
                    session.elapsed(self._scheduler.now()),
                    timed_out=False,
                )
            applied.append(True)

        self._dispatch(session_id, _complete)
        if applied:
            return CompletionOutcome.COMPLETED
        return CompletionOutcome.DEFERRED if queued else CompletionOutcome.IGNORED

    def cancel(self) -> None:
        """Tear down every timer and probe. Later commands are no-ops."""
        if self._closed:
            return
        self._closed = True
        self._timers.cancel_all()
        self._queue.clear()
        if self._session is not None:
            logger.info(
                "Cancelled session %s in state %s",
                self._session.session_id,
                self._session.state.value,
            )

    def force_reload(self) -> None:
        """Hand control back to the host with a cache-busting reload."""
        if not self._accepting_commands("force_reload"):
            return
        marker = cache_busting_marker()
        self.cancel()
        self._navigator.force_reload(marker)

    def go_home(self) -> None:
        """Ask the host to navigate home. Does not touch the session."""
        self._navigator.go_home()

    # --- mutation gate ---

    def _dispatch(self, session_id: str | None, mutation: Callable[[], None]) -> None:
        self._queue.append((session_id, mutation))
        if self._dispatching:
            return
        self._dispatching = True
        try:
            while self._queue:
                target, fn = self._queue.popleft()
                if not self._is_live(target):
                    continue
                fn()
                self._publish()
        finally:
            self._dispatching = False

    def _is_live(self, session_id: str | None) -> bool:
        if self._closed or self._config is None:
            return False
        if session_id is None:
            return True
        return self._session is not None and self._session.session_id == session_id

    def _accepting_commands(self, command: str) -> bool:
        if self._config is None:
            raise OrchestratorStateError(f"Cannot {command} before start()")
        if self._closed:
            logger.debug("Ignoring %s: orchestrator closed", command)
            return False
        return True

    # --- session lifecycle ---

    def _begin_session(self, retry_count: int, reason: str) -> None:
        config = self._require_config()
        previous = self._session
        # Old timers must be gone before the new session arms its own.
        self._timers.cancel_all()

        session = LoadingSession(
            started_at=self._scheduler.now(),
            timeout_seconds=config.timeout_seconds,
            current_phase=config.phases[0],
            retry_count=retry_count,
            health_status=self._last_health,
        )
        if config.enable_advanced_monitoring:
            condition = read_network_condition(self._network_reader)
            if condition is not None:
                session.network = condition
                session.network_class = condition.effective_class
                if condition.is_slow:
                    logger.info(
                        "Slow connection detected (%s)", condition.effective_class.value
                    )
        self._session = session
        self._record(
            session.session_id,
            previous.state if previous is not None else None,
            SessionState.LOADING,
            reason,
        )
        self._arm(session, config)

    def _arm(self, session: LoadingSession, config: LoadConfig) -> None:
        sid = session.session_id
        if config.show_progress:
            self._timers.progress = self._scheduler.schedule_repeating(
                config.progress_tick_seconds,
                lambda: self._dispatch(sid, self._tick_progress),
            )
        self._timers.phase = self._scheduler.schedule_repeating(
            config.phase_tick_seconds,
            lambda: self._dispatch(sid, self._tick_phase),
        )
        self._arm_deadline(session)
        if self._health_probe is not None:
            self._timers.health_poll = self._scheduler.schedule_repeating(
                config.health_poll_seconds,
                lambda: self._dispatch(sid, self._poll_health),
            )
            self._poll_health()

    def _arm_deadline(self, session: LoadingSession) -> None:
        sid = session.session_id
        self._timers.deadline = self._require_supervisor().arm_deadline(
            session, lambda: self._dispatch(sid, self._on_deadline)
        )

    def _tick_progress(self) -> None:
        session = self._require_session()
        if session.state != SessionState.LOADING:
            return
        value = self._estimator.next_value(
            session.progress_percent,
            elapsed_seconds=session.elapsed(self._scheduler.now()),
            timeout_seconds=session.timeout_seconds,
            network_class=session.network_class,
        )
        session.advance_progress(value)

    def _tick_phase(self) -> None:
        session = self._require_session()
        walker = self._walker
        if session.state != SessionState.LOADING or walker is None:
            return
        index = walker.advance(
            session.current_phase_index,
            session.elapsed(self._scheduler.now()),
            session.timeout_seconds,
        )
        session.advance_phase(index, walker.phase(index))

    def _on_deadline(self) -> None:
        session = self._require_session()
        supervisor = self._require_supervisor()
        config = self._require_config()
        if session.state != SessionState.LOADING or session.timeout_fired:
            return
        if not supervisor.deadline_reached(session):
            self._arm_deadline(session)
            return

        self._timers.cancel_loading()
        decision = supervisor.handle_deadline(session)
        # Subscribers may cancel while RETRYING or GIVEN_UP is published.
        if decision is None or self._closed:
            return
        if self._history is not None:
            self._history.record(
                config.page_name,
                session.elapsed(self._scheduler.now()),
                timed_out=True,
            )
        if decision.should_retry:
            sid = session.session_id
            self._timers.reload = self._scheduler.schedule_once(
                config.retry_delay_seconds,
                lambda: self._dispatch(sid, self._reload),
            )
        else:
            self._timers.cancel_all()

    def _reload(self) -> None:
        session = self._require_session()
        if session.state != SessionState.RETRYING:
            return
        self._begin_session(session.retry_count, "automatic retry")

    # --- health ---

    def _poll_health(self) -> None:
        session = self._require_session()
        probe = self._health_probe
        if probe is None or session.state not in POLLING_STATES:
            return
        if self._timers.health_probe is not None and self._timers.health_probe.active:
            return
        sid = session.session_id

        async def _probe() -> object:
            return await probe.check_health()

        self._timers.health_probe = self._scheduler.spawn(
            _probe(),
            on_result=lambda result: self._dispatch(
                sid, lambda: self._apply_health(coerce_health_status(result))
            ),
            on_error=lambda exc: self._dispatch(
                sid, lambda: self._apply_probe_failure(exc)
            ),
        )

    def _apply_health(self, status: HealthStatus) -> None:
        session = self._require_session()
        if status != self._last_health:
            logger.info("Health changed: %s -> %s", self._last_health.value, status.value)
        self._last_health = status
        session.health_status = status

    def _apply_probe_failure(self, exc: Exception) -> None:
        logger.warning("Health probe failed: %s", exc)
        self._apply_health(HealthStatus.UNHEALTHY)

    # --- observation ---

    def _on_session_transition(
        self,
        session: LoadingSession,
        previous: SessionState,
        target: SessionState,
        reason: str,
    ) -> None:
        self._record(session.session_id, previous, target, reason)

    def _record(
        self,
        session_id: str,
        previous: SessionState | None,
        target: SessionState,
        reason: str,
    ) -> None:
        self._transitions.append(
            TransitionRecord(
                session_id=session_id,
                from_state=previous,
                to_state=target,
                at=self._scheduler.now(),
                reason=reason,
            )
        )
        logger.info(
            "Session %s: %s -> %s (%s)",
            session_id[:8],
            previous.value if previous is not None else "-",
            target.value,
            reason,
        )
        self._publish()

    def _publish(self) -> None:
        if self._closed or self._session is None or self._config is None:
            return
        view = self._build_view(self._session, self._config)
        if view == self._last_view:
            return
        self._last_view = view
        for callback in list(self._subscribers):
            try:
                callback(view)
            except Exception:
                logger.exception("View-state subscriber failed")

    def _build_view(self, session: LoadingSession, config: LoadConfig) -> LoadViewState:
        now = self._scheduler.now()
        loading = session.state == SessionState.LOADING
        return LoadViewState(
            state=session.state,
            progress_percent=session.progress_percent,
            current_phase=session.current_phase,
            health_status=session.health_status,
            network_class=session.network_class,
            retry_count=session.retry_count,
            remaining_seconds=session.remaining_seconds(now),
            page_name=config.page_name,
            session_id=session.session_id,
            max_retries=config.max_retries,
            timeout_seconds=config.timeout_seconds,
            elapsed_seconds=session.elapsed(now),
            slow_connection=session.network is not None and session.network.is_slow,
            almost_there=(
                config.enable_advanced_monitoring
                and loading
                and session.progress_percent > 80
            ),
            network=session.network if config.show_network_diagnostics else None,
            auto_retry_enabled=config.enable_retry_strategies,
            show_progress=config.show_progress,
            average_load_seconds=self._average_load_seconds,
        )

    def _require_session(self) -> LoadingSession:
        if self._session is None:
            raise OrchestratorStateError("No active session")
        return self._session

    def _require_supervisor(self) -> TimeoutSupervisor:
        if self._supervisor is None:
            raise OrchestratorStateError("Orchestrator has not been started")
        return self._supervisor

    def _require_config(self) -> LoadConfig:
        if self._config is None:
            raise OrchestratorStateError("Orchestrator has not been started")
        return self._config


class SessionHandle:
    """Consumer-facing handle returned by ``LoadOrchestrator.start``."""

    def __init__(self, orchestrator: LoadOrchestrator) -> None:
        self._orchestrator = orchestrator

    @property
    def view_state(self) -> LoadViewState | None:
        return self._orchestrator.view_state

    @property
    def session_id(self) -> str | None:
        session = self._orchestrator.session
        return session.session_id if session is not None else None

    @property
    def transitions(self) -> tuple[TransitionRecord, ...]:
        return self._orchestrator.transitions

    @property
    def closed(self) -> bool:
        return self._orchestrator.closed

    def subscribe(self, callback: ViewSubscriber) -> Callable[[], None]:
        return self._orchestrator.subscribe(callback)

    def retry(self) -> bool:
        return self._orchestrator.retry()

    def complete(self, session_id: str | None = None) -> CompletionOutcome:
        """Report completion; see ``LoadOrchestrator.complete`` for outcomes.

        Calls made from a subscriber are DEFERRED, not IGNORED: they apply
        as soon as the current publish finishes.
        """
        return self._orchestrator.complete(session_id)

    def cancel(self) -> None:
        self._orchestrator.cancel()

    def force_reload(self) -> None:
        self._orchestrator.force_reload()

    def go_home(self) -> None:
        self._orchestrator.go_home()
