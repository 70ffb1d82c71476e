"""Timeout/retry supervisor: the lifecycle state machine of a session.

The supervisor owns every state change of a ``LoadingSession``::

    LOADING -> TIMED_OUT -> RETRYING   (orchestrator reloads after a delay)
                         -> GIVEN_UP   (terminal)
    LOADING -> COMPLETED               (terminal, external signal)

It never schedules reloads or touches other timers itself; the orchestrator
reacts to the ``RetryDecision`` it returns.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeAlias

from loadwatch.models.phases import COMPLETED_PHASE, TIMEOUT_PHASE
from loadwatch.models.session import LoadingSession, SessionState
from loadwatch.runtime.retry_policy import RetryDecision, RetryPolicy
from loadwatch.runtime.scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

TransitionHook: TypeAlias = Callable[[LoadingSession, SessionState, SessionState, str], None]


class TimeoutSupervisor:
    """Applies deadline, completion and retry transitions to sessions."""

    def __init__(
        self,
        scheduler: Scheduler,
        policy: RetryPolicy,
        *,
        page_name: str = "Page",
        on_timeout: Callable[[], None] | None = None,
        on_transition: TransitionHook | None = None,
        is_active: Callable[[], bool] | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._is_active = is_active
        self.policy = policy
        self._page_name = page_name
        self._on_timeout = on_timeout
        self._on_transition = on_transition

    def arm_deadline(
        self, session: LoadingSession, fire: Callable[[], None]
    ) -> ScheduledTask:
        """Schedule *fire* for the moment the session's budget runs out."""
        remaining = session.timeout_seconds - session.elapsed(self._scheduler.now())
        return self._scheduler.schedule_once(max(0.0, remaining), fire)

    def deadline_reached(self, session: LoadingSession) -> bool:
        return session.elapsed(self._scheduler.now()) >= session.timeout_seconds

    def handle_deadline(self, session: LoadingSession) -> RetryDecision | None:
        """Fire the timeout transition if it is due and has not fired yet.

        Returns the retry decision taken, or None when nothing happened
        (wrong state, already fired, or the deadline is not reached yet).
        Also returns None after TIMED_OUT when the host tore everything down
        from ``on_timeout`` or a subscriber; no decision is taken then.
        """
        if session.state != SessionState.LOADING or session.timeout_fired:
            return None
        if not self.deadline_reached(session):
            return None

        session.timeout_fired = True
        session.progress_percent = 100.0
        session.current_phase = TIMEOUT_PHASE
        elapsed = session.elapsed(self._scheduler.now())
        self._transition(
            session,
            SessionState.TIMED_OUT,
            f"no completion after {elapsed:.1f}s",
        )
        logger.info(
            "%s timed out after %.1fs (session %s, retries %d/%d)",
            self._page_name,
            elapsed,
            session.session_id,
            session.retry_count,
            self.policy.max_retries,
        )
        if self._still_active():
            self._notify_timeout()
        if not self._still_active():
            logger.info(
                "Session %s torn down during timeout handling", session.session_id
            )
            return None

        decision = self.policy.decide(session.retry_count, session.health_status)
        if decision.should_retry:
            session.retry_count += 1
            self._transition(session, SessionState.RETRYING, decision.reason)
        else:
            self._transition(session, SessionState.GIVEN_UP, decision.reason)
        return decision

    def complete(self, session: LoadingSession) -> bool:
        """Mark the session as loaded. Only valid while loading."""
        if session.state != SessionState.LOADING:
            logger.debug(
                "Ignoring completion for session %s in state %s",
                session.session_id,
                session.state.value,
            )
            return False
        session.progress_percent = 100.0
        session.current_phase = COMPLETED_PHASE
        self._transition(session, SessionState.COMPLETED, "resource loaded")
        return True

    def _transition(
        self, session: LoadingSession, target: SessionState, reason: str
    ) -> None:
        previous = session.state
        session.transition(target, at=self._scheduler.now(), reason=reason)
        if self._on_transition is not None:
            self._on_transition(session, previous, target, reason)

    def _still_active(self) -> bool:
        return self._is_active is None or self._is_active()

    def _notify_timeout(self) -> None:
        if self._on_timeout is None:
            return
        try:
            self._on_timeout()
        except Exception:
            logger.exception("on_timeout callback failed for %s", self._page_name)
