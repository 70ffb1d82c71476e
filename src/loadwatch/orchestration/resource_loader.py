"""Drive the real resource fetch for each loading session.

``ResourceLoader`` listens to a ``SessionHandle`` and starts one fetch per
loading session. A successful fetch sends the completion signal for that
session only; a failed one is logged and left for the deadline to handle.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeAlias

from loadwatch.models.session import TERMINAL_STATES, SessionState
from loadwatch.models.view_state import LoadViewState
from loadwatch.orchestration.orchestrator import SessionHandle

logger = logging.getLogger(__name__)

Fetch: TypeAlias = Callable[[], Awaitable[object]]


class ResourceLoader:
    """Runs ``fetch()`` for every new loading session on the running loop."""

    def __init__(self, fetch: Fetch) -> None:
        self._fetch = fetch
        self._handle: SessionHandle | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._task: asyncio.Task[None] | None = None
        self._session_id: str | None = None
        self.failures: list[BaseException] = []

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def attach(self, handle: SessionHandle) -> None:
        """Start following *handle*. Must be called with a running loop."""
        self.detach()
        self._handle = handle
        self._unsubscribe = handle.subscribe(self._on_view)
        view = handle.view_state
        if view is not None:
            self._on_view(view)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._cancel_fetch()
        self._handle = None
        self._session_id = None

    def _on_view(self, view: LoadViewState) -> None:
        if view.state in TERMINAL_STATES:
            self._cancel_fetch()
            return
        if view.state != SessionState.LOADING or view.session_id == self._session_id:
            return
        self._cancel_fetch()
        self._session_id = view.session_id
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(view.session_id))

    async def _run(self, session_id: str) -> None:
        try:
            await self._fetch()
        except Exception as exc:
            self.failures.append(exc)
            logger.warning("Fetch for session %s failed: %s", session_id[:8], exc)
            return
        handle = self._handle
        if handle is not None and not handle.closed:
            handle.complete(session_id)

    def _cancel_fetch(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
