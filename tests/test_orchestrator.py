"""Tests for the load orchestrator on a simulated clock."""

from __future__ import annotations

import random
from typing import Any

import pytest

from loadwatch.models.phases import TIMEOUT_PHASE
from loadwatch.models.session import SessionState
from loadwatch.models.view_state import LoadViewState
from loadwatch.monitoring.health import HealthStatus
from loadwatch.monitoring.network import (
    NetworkClass,
    NetworkCondition,
    StaticNetworkReader,
)
from loadwatch.orchestration.navigation import LoggingNavigator
from loadwatch.orchestration.orchestrator import (
    LoadOrchestrator,
    OrchestratorStateError,
    SessionHandle,
)
from loadwatch.orchestration.progress import ProgressEstimator
from loadwatch.orchestration.types import CompletionOutcome, LoadConfig
from loadwatch.runtime.load_history import LoadHistory
from loadwatch.runtime.scheduler import ManualScheduler


class FakeProbe:
    """Health probe answering synchronously with a configurable status."""

    def __init__(self, status: HealthStatus | Exception = HealthStatus.HEALTHY) -> None:
        self.status = status
        self.calls = 0

    async def check_health(self) -> dict[str, str]:
        self.calls += 1
        if isinstance(self.status, Exception):
            raise self.status
        return {"overall": self.status.value}


class Harness:
    def __init__(
        self,
        probe: FakeProbe | None = None,
        network: NetworkCondition | None = None,
        history: LoadHistory | None = None,
        **config: Any,
    ) -> None:
        self.scheduler = ManualScheduler()
        self.navigator = LoggingNavigator()
        self.orchestrator = LoadOrchestrator(
            self.scheduler,
            health_probe=probe,
            network_reader=StaticNetworkReader(network),
            navigator=self.navigator,
            estimator=ProgressEstimator(rng=random.Random(7)),
            history=history,
        )
        self.views: list[LoadViewState] = []
        self.handle: SessionHandle = self.orchestrator.start(LoadConfig(**config))
        self.handle.subscribe(self.views.append)

    def advance(self, seconds: float, step: float = 0.05) -> None:
        target = self.scheduler.now() + seconds
        while self.scheduler.now() < target:
            self.scheduler.advance_to(min(self.scheduler.now() + step, target))

    def states(self) -> list[tuple[SessionState | None, SessionState]]:
        return [(t.from_state, t.to_state) for t in self.handle.transitions]

    @property
    def view(self) -> LoadViewState:
        view = self.handle.view_state
        assert view is not None
        return view


# --- testable properties ---


def test_progress_is_monotonic_and_below_100_while_loading() -> None:
    h = Harness(probe=FakeProbe(), timeout_seconds=10.0, max_retries=0)

    h.advance(9.9)

    loading = [v for v in h.views if v.state == SessionState.LOADING]
    assert len(loading) > 20
    values = [v.progress_percent for v in loading]
    assert values == sorted(values)
    assert all(value < 100 for value in values)
    assert max(values) <= 95


def test_progress_never_leads_elapsed_time_by_more_than_margin() -> None:
    h = Harness(timeout_seconds=20.0, max_retries=0)

    h.advance(5.0)

    for view in h.views:
        expected = 100 * view.elapsed_seconds / view.timeout_seconds
        assert view.progress_percent <= expected + 10 + 1e-6


def test_phase_index_is_monotonic_and_reaches_last_phase() -> None:
    h = Harness(timeout_seconds=5.0, max_retries=0)
    phases = [p.name for p in LoadConfig().phases]

    h.advance(4.9)

    seen = [phases.index(v.current_phase.name) for v in h.views if v.is_loading]
    assert seen == sorted(seen)
    assert seen[0] == 0
    assert seen[-1] == len(phases) - 1


def test_timeout_sets_progress_to_100_and_timeout_phase() -> None:
    h = Harness(timeout_seconds=1.0, max_retries=0)

    h.advance(1.0)

    timed_out = [v for v in h.views if v.state == SessionState.TIMED_OUT]
    assert len(timed_out) == 1
    assert timed_out[0].progress_percent == 100
    assert timed_out[0].current_phase == TIMEOUT_PHASE


def test_timeout_fires_exactly_once_and_not_early() -> None:
    h = Harness(timeout_seconds=2.0, max_retries=0)

    h.advance(1.99)
    assert h.view.state == SessionState.LOADING

    h.advance(10.0)
    fired = [t for t in h.handle.transitions if t.to_state == SessionState.TIMED_OUT]
    assert len(fired) == 1
    assert fired[0].at >= 2.0


def test_retry_budget_is_respected_under_persistent_timeouts() -> None:
    h = Harness(
        probe=FakeProbe(),
        timeout_seconds=1.0,
        max_retries=3,
        retry_delay_seconds=0.5,
    )

    h.advance(60.0)

    retries = [t for t in h.handle.transitions if t.to_state == SessionState.RETRYING]
    assert len(retries) == 3
    assert h.view.state == SessionState.GIVEN_UP
    assert h.view.retry_count == 3


def test_cancel_stops_all_events_and_timers() -> None:
    h = Harness(probe=FakeProbe(), timeout_seconds=1.0)
    h.advance(0.3)
    events = len(h.views)

    h.handle.cancel()
    h.advance(30.0)

    assert len(h.views) == events
    assert h.scheduler.active_count == 0


def test_cancel_is_idempotent_and_later_commands_are_noops() -> None:
    h = Harness(timeout_seconds=1.0)

    h.handle.cancel()
    h.handle.cancel()

    assert h.handle.retry() is False
    assert h.handle.complete() == CompletionOutcome.IGNORED
    h.handle.force_reload()
    assert h.navigator.requests == []


# --- scenarios ---


def test_single_timeout_without_retries() -> None:
    h = Harness(probe=FakeProbe(), timeout_seconds=1.0, max_retries=0)

    h.advance(5.0)

    assert h.states() == [
        (None, SessionState.LOADING),
        (SessionState.LOADING, SessionState.TIMED_OUT),
        (SessionState.TIMED_OUT, SessionState.GIVEN_UP),
    ]
    timeout = h.handle.transitions[1]
    assert timeout.at == pytest.approx(1.0)


def test_healthy_backend_gets_two_automatic_retries_then_gives_up() -> None:
    h = Harness(
        probe=FakeProbe(HealthStatus.HEALTHY),
        timeout_seconds=0.5,
        max_retries=2,
        retry_only_if_healthy=True,
    )

    h.advance(20.0)

    assert h.states() == [
        (None, SessionState.LOADING),
        (SessionState.LOADING, SessionState.TIMED_OUT),
        (SessionState.TIMED_OUT, SessionState.RETRYING),
        (SessionState.RETRYING, SessionState.LOADING),
        (SessionState.LOADING, SessionState.TIMED_OUT),
        (SessionState.TIMED_OUT, SessionState.RETRYING),
        (SessionState.RETRYING, SessionState.LOADING),
        (SessionState.LOADING, SessionState.TIMED_OUT),
        (SessionState.TIMED_OUT, SessionState.GIVEN_UP),
    ]
    session_ids = {t.session_id for t in h.handle.transitions}
    assert len(session_ids) == 3


def test_reload_waits_for_retry_delay() -> None:
    h = Harness(
        probe=FakeProbe(),
        timeout_seconds=0.5,
        max_retries=1,
        retry_delay_seconds=3.0,
    )

    h.advance(3.4)
    assert h.view.state == SessionState.RETRYING

    h.advance(0.2)
    assert h.view.state == SessionState.LOADING
    reload = h.handle.transitions[-1]
    assert reload.at == pytest.approx(3.5)


def test_disabled_retry_strategies_give_up_immediately() -> None:
    h = Harness(
        probe=FakeProbe(),
        timeout_seconds=1.0,
        max_retries=5,
        enable_retry_strategies=False,
    )

    h.advance(10.0)

    assert [to for _, to in h.states()] == [
        SessionState.LOADING,
        SessionState.TIMED_OUT,
        SessionState.GIVEN_UP,
    ]


def test_manual_retry_from_given_up_resets_retry_count() -> None:
    h = Harness(probe=FakeProbe(), timeout_seconds=0.5, max_retries=1)
    h.advance(10.0)
    assert h.view.state == SessionState.GIVEN_UP
    assert h.view.retry_count == 1
    old_session = h.handle.session_id

    assert h.handle.retry() is True

    assert h.view.state == SessionState.LOADING
    assert h.view.retry_count == 0
    assert h.handle.session_id != old_session
    last = h.handle.transitions[-1]
    assert last.from_state == SessionState.GIVEN_UP
    assert last.reason == "manual retry"
    assert h.orchestrator.session is not None
    assert h.orchestrator.session.started_at == pytest.approx(10.0)


# --- health gating ---


def test_unhealthy_backend_blocks_automatic_retry() -> None:
    h = Harness(probe=FakeProbe(HealthStatus.UNHEALTHY), timeout_seconds=1.0)

    h.advance(5.0)

    assert h.view.state == SessionState.GIVEN_UP
    assert h.handle.transitions[-1].reason == "backend unhealthy"


def test_probe_failure_is_treated_as_unhealthy() -> None:
    probe = FakeProbe(RuntimeError("connection refused"))
    h = Harness(probe=probe, timeout_seconds=1.0)

    h.advance(0.1)
    assert h.view.health_status == HealthStatus.UNHEALTHY

    h.advance(5.0)
    assert h.view.state == SessionState.GIVEN_UP


def test_retry_when_unhealthy_ignores_health() -> None:
    h = Harness(
        probe=FakeProbe(HealthStatus.DEGRADED),
        timeout_seconds=1.0,
        max_retries=1,
        retry_only_if_healthy=False,
    )

    h.advance(10.0)

    assert [to for _, to in h.states()].count(SessionState.RETRYING) == 1


def test_without_probe_health_stays_unknown_and_gate_blocks_retry() -> None:
    h = Harness(timeout_seconds=1.0)

    h.advance(5.0)

    assert h.view.health_status == HealthStatus.UNKNOWN
    assert h.view.state == SessionState.GIVEN_UP


def test_health_is_polled_immediately_and_on_interval() -> None:
    probe = FakeProbe()
    h = Harness(probe=probe, timeout_seconds=30.0, health_poll_seconds=5.0)

    h.advance(0.05)
    assert probe.calls == 1
    h.advance(10.0)
    assert probe.calls == 3


def test_health_polling_stops_after_giving_up() -> None:
    probe = FakeProbe(HealthStatus.UNHEALTHY)
    h = Harness(probe=probe, timeout_seconds=1.0, health_poll_seconds=1.0)
    h.advance(1.5)
    calls = probe.calls

    h.advance(20.0)

    assert probe.calls == calls
    assert h.scheduler.active_count == 0


def test_health_carries_over_to_reloaded_session() -> None:
    h = Harness(probe=FakeProbe(), timeout_seconds=1.0, retry_delay_seconds=0.5)

    h.advance(1.5)

    assert h.view.state == SessionState.LOADING
    assert h.view.retry_count == 1
    assert h.view.health_status == HealthStatus.HEALTHY


# --- completion ---


def test_complete_moves_to_completed_and_cancels_timers() -> None:
    h = Harness(probe=FakeProbe(), timeout_seconds=5.0)
    h.advance(1.0)

    assert h.handle.complete() == CompletionOutcome.COMPLETED

    assert h.view.state == SessionState.COMPLETED
    assert h.view.progress_percent == 100
    assert h.scheduler.active_count == 0
    events = len(h.views)
    h.advance(20.0)
    assert len(h.views) == events


def test_complete_for_stale_session_is_ignored() -> None:
    h = Harness(probe=FakeProbe(), timeout_seconds=0.5, retry_delay_seconds=0.1)
    stale = h.handle.session_id
    h.advance(0.7)
    assert h.handle.session_id != stale

    assert h.handle.complete(stale) == CompletionOutcome.IGNORED
    assert h.view.state == SessionState.LOADING


def test_complete_after_timeout_is_ignored() -> None:
    h = Harness(timeout_seconds=1.0, max_retries=0)
    h.advance(2.0)

    assert h.handle.complete() == CompletionOutcome.IGNORED
    assert h.view.state == SessionState.GIVEN_UP


# --- callbacks and subscribers ---


def test_on_timeout_failure_does_not_block_transition() -> None:
    def _explode() -> None:
        raise RuntimeError("boom")

    h = Harness(timeout_seconds=1.0, max_retries=0, on_timeout=_explode)

    h.advance(2.0)

    assert h.view.state == SessionState.GIVEN_UP


def test_on_timeout_may_reenter_with_manual_retry() -> None:
    holder: dict[str, SessionHandle] = {}
    calls: list[int] = []

    def _retry_once() -> None:
        calls.append(1)
        if len(calls) == 1:
            holder["handle"].retry()

    scheduler = ManualScheduler()
    orchestrator = LoadOrchestrator(scheduler)
    holder["handle"] = orchestrator.start(
        LoadConfig(timeout_seconds=1.0, max_retries=0, on_timeout=_retry_once)
    )

    scheduler.advance(1.0)

    states = [t.to_state for t in orchestrator.transitions]
    assert states == [
        SessionState.LOADING,
        SessionState.TIMED_OUT,
        SessionState.GIVEN_UP,
        SessionState.LOADING,
    ]
    assert orchestrator.session is not None
    assert orchestrator.session.state == SessionState.LOADING


def test_cancel_from_on_timeout_stops_before_retry_decision() -> None:
    holder: dict[str, SessionHandle] = {}
    history = LoadHistory()
    scheduler = ManualScheduler()
    orchestrator = LoadOrchestrator(
        scheduler, health_probe=FakeProbe(), history=history
    )
    holder["handle"] = orchestrator.start(
        LoadConfig(
            page_name="Docs",
            timeout_seconds=1.0,
            max_retries=2,
            on_timeout=lambda: holder["handle"].cancel(),
        )
    )

    scheduler.advance(0.0)
    scheduler.advance(1.0)

    assert orchestrator.closed
    assert scheduler.active_count == 0
    assert [t.to_state for t in orchestrator.transitions] == [
        SessionState.LOADING,
        SessionState.TIMED_OUT,
    ]
    assert history.snapshot("Docs").runs == 0

    scheduler.advance(30.0)
    assert len(orchestrator.transitions) == 2


def test_force_reload_from_on_timeout_hands_off_without_retrying() -> None:
    holder: dict[str, SessionHandle] = {}
    navigator = LoggingNavigator()
    scheduler = ManualScheduler()
    orchestrator = LoadOrchestrator(
        scheduler, health_probe=FakeProbe(), navigator=navigator
    )
    holder["handle"] = orchestrator.start(
        LoadConfig(
            timeout_seconds=1.0, on_timeout=lambda: holder["handle"].force_reload()
        )
    )

    scheduler.advance(0.0)
    scheduler.advance(1.0)

    assert scheduler.active_count == 0
    assert [r.action for r in navigator.requests] == ["reload"]
    assert orchestrator.transitions[-1].to_state == SessionState.TIMED_OUT


def test_subscriber_cancel_on_retrying_does_not_arm_reload() -> None:
    h = Harness(probe=FakeProbe(), timeout_seconds=1.0, retry_delay_seconds=0.5)

    def _cancel_on_retry(view: LoadViewState) -> None:
        if view.state == SessionState.RETRYING:
            h.handle.cancel()

    h.handle.subscribe(_cancel_on_retry)
    h.advance(1.0)

    assert h.handle.closed
    assert h.scheduler.active_count == 0
    h.advance(5.0)
    assert h.states()[-1] == (SessionState.TIMED_OUT, SessionState.RETRYING)


def test_complete_from_subscriber_is_deferred_then_applied() -> None:
    h = Harness(timeout_seconds=5.0)
    outcomes: list[CompletionOutcome] = []

    def _complete_once(view: LoadViewState) -> None:
        if not outcomes and view.state == SessionState.LOADING:
            outcomes.append(h.handle.complete())

    h.handle.subscribe(_complete_once)
    h.advance(0.2)

    assert outcomes == [CompletionOutcome.DEFERRED]
    assert h.view.state == SessionState.COMPLETED


def test_subscriber_failure_is_isolated() -> None:
    h = Harness(timeout_seconds=1.0, max_retries=0)

    def _broken(view: LoadViewState) -> None:
        raise ValueError("render failed")

    h.handle.subscribe(_broken)
    h.advance(2.0)

    assert h.view.state == SessionState.GIVEN_UP
    assert h.views[-1].state == SessionState.GIVEN_UP


def test_unsubscribe_stops_delivery_without_touching_timers() -> None:
    h = Harness(timeout_seconds=10.0)
    received: list[LoadViewState] = []
    timers = h.scheduler.active_count

    unsubscribe = h.handle.subscribe(received.append)
    assert h.scheduler.active_count == timers
    h.advance(0.5)
    unsubscribe()
    count = len(received)
    h.advance(0.5)

    assert count > 0
    assert len(received) == count


def test_subscribers_see_timed_out_before_retrying() -> None:
    h = Harness(probe=FakeProbe(), timeout_seconds=0.5, max_retries=1)

    h.advance(1.0)

    states = [v.state for v in h.views]
    assert SessionState.TIMED_OUT in states
    assert states.index(SessionState.TIMED_OUT) < states.index(SessionState.RETRYING)


# --- navigation ---


def test_force_reload_hands_off_with_cache_busting_marker() -> None:
    h = Harness(timeout_seconds=5.0)

    h.handle.force_reload()

    request = h.navigator.last_request
    assert request is not None
    assert request.action == "reload"
    assert request.marker is not None and request.marker.startswith("force=")
    assert h.handle.closed
    assert h.scheduler.active_count == 0
    assert h.handle.retry() is False


def test_go_home_does_not_change_state() -> None:
    h = Harness(timeout_seconds=5.0)

    h.handle.go_home()

    assert h.navigator.last_request is not None
    assert h.navigator.last_request.action == "home"
    assert h.view.state == SessionState.LOADING


# --- network and view-state ---


def test_slow_network_scales_progress_and_flags_view() -> None:
    slow = NetworkCondition(NetworkClass.SLOW_2G, downlink_mbps=0.04, rtt_ms=2100)
    h = Harness(network=slow, timeout_seconds=30.0, show_network_diagnostics=True)

    h.advance(0.2)

    assert h.view.network_class == NetworkClass.SLOW_2G
    assert h.view.slow_connection
    assert h.view.network == slow


def test_network_is_hidden_without_diagnostics_flag() -> None:
    fast = NetworkCondition(NetworkClass.FOUR_G, downlink_mbps=10, rtt_ms=50)
    h = Harness(network=fast, timeout_seconds=30.0)

    assert h.view.network_class == NetworkClass.FOUR_G
    assert h.view.network is None


def test_network_is_not_read_without_advanced_monitoring() -> None:
    fast = NetworkCondition(NetworkClass.FOUR_G)
    h = Harness(network=fast, enable_advanced_monitoring=False)

    assert h.view.network_class == NetworkClass.UNKNOWN


def test_almost_there_flag_requires_progress_above_80() -> None:
    h = Harness(timeout_seconds=20.0, max_retries=0)

    h.advance(8.0)
    assert not h.view.almost_there

    h.advance(8.0)
    assert h.view.progress_percent > 80
    assert h.view.almost_there


def test_show_progress_false_keeps_progress_at_zero() -> None:
    h = Harness(timeout_seconds=5.0, show_progress=False)

    h.advance(2.0)

    assert h.view.progress_percent == 0
    assert h.view.current_phase.name != LoadConfig().phases[0].name


def test_remaining_seconds_counts_down() -> None:
    h = Harness(timeout_seconds=30.0)

    assert h.view.remaining_seconds == 30
    h.advance(12.0)
    assert h.view.remaining_seconds == 18


# --- history ---


def test_outcomes_are_recorded_in_history() -> None:
    history = LoadHistory()
    h = Harness(history=history, timeout_seconds=1.0, max_retries=0, page_name="Docs")
    h.advance(2.0)
    h.handle.retry()
    h.advance(0.5)
    h.handle.complete()

    snapshot = history.snapshot("Docs")
    assert snapshot.runs == 2
    assert snapshot.timeout_count == 1
    assert snapshot.success_count == 1


def test_average_load_time_comes_from_history() -> None:
    history = LoadHistory()
    history.record("Docs", 4.0, timed_out=False)
    history.record("Docs", 6.0, timed_out=False)

    h = Harness(history=history, page_name="Docs")

    assert h.view.average_load_seconds == pytest.approx(5.0)


def test_average_load_time_ignores_timed_out_sessions() -> None:
    history = LoadHistory()
    h = Harness(history=history, timeout_seconds=1.0, max_retries=0, page_name="Docs")
    h.advance(2.0)
    h.handle.retry()
    h.advance(0.5)
    h.handle.complete()

    later = Harness(history=history, page_name="Docs")

    assert later.view.average_load_seconds == pytest.approx(0.5)


# --- lifecycle errors ---


def test_start_twice_raises() -> None:
    h = Harness()

    with pytest.raises(OrchestratorStateError):
        h.orchestrator.start(LoadConfig())


def test_commands_before_start_raise() -> None:
    orchestrator = LoadOrchestrator(ManualScheduler())

    with pytest.raises(OrchestratorStateError):
        orchestrator.retry()
    assert orchestrator.view_state is None
