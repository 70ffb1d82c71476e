"""Logical timer scheduler shared by the orchestrator and its tests.

The orchestrator never touches ``asyncio`` timers directly. It asks a
``Scheduler`` for one-shot and repeating callbacks and for background
coroutines, which keeps the state machine host-agnostic. ``LoopScheduler``
binds to a running asyncio loop (including a textual app's loop);
``ManualScheduler`` is a simulated clock advanced explicitly by tests.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeAlias, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Callback: TypeAlias = Callable[[], None]


class SchedulerError(RuntimeError):
    """Raised when a scheduler is asked to do something it cannot support."""


class ScheduledTask(Protocol):
    """Handle for a scheduled timer or background coroutine."""

    @property
    def active(self) -> bool: ...

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Timer and task primitives consumed by the orchestrator."""

    def now(self) -> float: ...

    def schedule_once(self, delay: float, callback: Callback) -> ScheduledTask: ...

    def schedule_repeating(
        self, interval: float, callback: Callback
    ) -> ScheduledTask: ...

    def spawn(
        self,
        coro: Coroutine[Any, Any, T],
        on_result: Callable[[T], None],
        on_error: Callable[[Exception], None],
    ) -> ScheduledTask: ...


def _validate_interval(interval: float) -> None:
    if interval <= 0:
        raise ValueError(f"Repeating interval must be positive, got {interval}")


# --- asyncio-backed scheduler ---


class _LoopTimer:
    """One-shot or repeating timer built on ``loop.call_later``."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        delay: float,
        callback: Callback,
        *,
        interval: float | None = None,
    ) -> None:
        self._loop = loop
        self._callback = callback
        self._interval = interval
        self._active = True
        self._handle = loop.call_later(max(0.0, delay), self._fire)

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._handle.cancel()

    def _fire(self) -> None:
        if not self._active:
            return
        if self._interval is not None:
            # Re-arm first so the callback may cancel its own timer.
            self._handle = self._loop.call_later(self._interval, self._fire)
        else:
            self._active = False
        self._callback()


class _LoopTask:
    """Handle wrapping an ``asyncio.Task`` spawned by the scheduler."""

    def __init__(self, task: asyncio.Task[Any]) -> None:
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()


class LoopScheduler:
    """Scheduler bound to an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self._loop.time()

    def schedule_once(self, delay: float, callback: Callback) -> ScheduledTask:
        return _LoopTimer(self._loop, delay, callback)

    def schedule_repeating(self, interval: float, callback: Callback) -> ScheduledTask:
        _validate_interval(interval)
        return _LoopTimer(self._loop, interval, callback, interval=interval)

    def spawn(
        self,
        coro: Coroutine[Any, Any, T],
        on_result: Callable[[T], None],
        on_error: Callable[[Exception], None],
    ) -> ScheduledTask:
        task = self._loop.create_task(coro)

        def _done(finished: asyncio.Task[T]) -> None:
            if finished.cancelled():
                return
            exc = finished.exception()
            if exc is None:
                on_result(finished.result())
            elif isinstance(exc, Exception):
                on_error(exc)
            else:
                logger.error("Spawned task aborted with %r", exc)

        task.add_done_callback(_done)
        return _LoopTask(task)


# --- simulated clock ---


@dataclass(order=True)
class _Entry:
    due: float
    seq: int
    callback: Callback = field(compare=False)
    interval: float | None = field(default=None, compare=False)
    cancelled: bool = field(default=False, compare=False)
    done: bool = field(default=False, compare=False)


class _ManualTask:
    """Handle for an entry queued on a ``ManualScheduler``."""

    def __init__(self, entry: _Entry, on_cancel: Callback | None = None) -> None:
        self._entry = entry
        self._on_cancel = on_cancel

    @property
    def active(self) -> bool:
        return not (self._entry.cancelled or self._entry.done)

    def cancel(self) -> None:
        if not self.active:
            return
        self._entry.cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()


class ManualScheduler:
    """Deterministic scheduler driven by ``advance()``.

    Spawned coroutines run to completion synchronously when their turn comes.
    They may ``await`` other plain coroutines, but anything that suspends on
    real I/O raises ``SchedulerError``.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._heap: list[_Entry] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    @property
    def active_count(self) -> int:
        """Number of timers and tasks still waiting to fire."""
        return sum(1 for entry in self._heap if not entry.cancelled)

    def schedule_once(self, delay: float, callback: Callback) -> ScheduledTask:
        return _ManualTask(self._push(max(0.0, delay), callback))

    def schedule_repeating(self, interval: float, callback: Callback) -> ScheduledTask:
        _validate_interval(interval)
        return _ManualTask(self._push(interval, callback, interval=interval))

    def spawn(
        self,
        coro: Coroutine[Any, Any, T],
        on_result: Callable[[T], None],
        on_error: Callable[[Exception], None],
    ) -> ScheduledTask:
        def _run() -> None:
            try:
                result = _drive(coro)
            except SchedulerError:
                raise
            except Exception as exc:
                on_error(exc)
                return
            on_result(result)

        entry = self._push(0.0, _run)
        return _ManualTask(entry, on_cancel=coro.close)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every entry that falls due."""
        if seconds < 0:
            raise ValueError("Cannot advance the clock backwards")
        self.advance_to(self._now + seconds)

    def advance_to(self, target: float) -> None:
        """Move the clock to the absolute time *target*."""
        if target < self._now:
            raise ValueError("Cannot advance the clock backwards")
        while self._heap and self._heap[0].due <= target:
            entry = heapq.heappop(self._heap)
            if entry.cancelled:
                continue
            self._now = max(self._now, entry.due)
            if entry.interval is not None:
                entry.due += entry.interval
                entry.seq = next(self._counter)
                heapq.heappush(self._heap, entry)
            else:
                entry.done = True
            entry.callback()
        self._now = target

    def _push(
        self, delay: float, callback: Callback, *, interval: float | None = None
    ) -> _Entry:
        entry = _Entry(
            due=self._now + delay,
            seq=next(self._counter),
            callback=callback,
            interval=interval,
        )
        heapq.heappush(self._heap, entry)
        return entry


def _drive(coro: Coroutine[Any, Any, T]) -> T:
    while True:
        try:
            yielded = coro.send(None)
        except StopIteration as stop:
            return stop.value  # type: ignore[no-any-return]
        if yielded is not None:
            coro.close()
            raise SchedulerError(
                "ManualScheduler cannot drive a coroutine awaiting real I/O"
            )
