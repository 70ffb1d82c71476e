"""Per-page load duration history used to tune timeouts."""

from __future__ import annotations

import atexit
import json
import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loadwatch.config.paths import get_paths

logger = logging.getLogger(__name__)
HISTORY_SCHEMA_VERSION = 1

# Headroom over the slowest observed load; timeouts add up to another 0.5x.
BASE_HEADROOM = 1.5
MAX_TIMEOUT_HEADROOM = 0.5


@dataclass(frozen=True, slots=True)
class LoadStatsSnapshot:
    """Snapshot of load behavior for one page."""

    page: str
    runs: int
    timeout_count: int
    success_count: int
    # Successful loads only; timed-out runs stop at the budget, not at load time.
    average_seconds: float | None
    max_duration_seconds: float
    p90_duration_seconds: float | None


@dataclass
class _PageLoads:
    runs: int = 0
    timeouts: int = 0
    durations: deque[float] = field(default_factory=deque)
    successes: deque[float] = field(default_factory=deque)

    @property
    def timeout_rate(self) -> float:
        return self.timeouts / self.runs if self.runs else 0.0


class LoadHistory:
    """Remembers how long each page took to load and how often it timed out."""

    def __init__(self, max_samples_per_page: int = 20) -> None:
        self._max_samples_per_page = max_samples_per_page
        self._pages: dict[str, _PageLoads] = {}

    @property
    def max_samples_per_page(self) -> int:
        return self._max_samples_per_page

    @property
    def pages(self) -> list[str]:
        """Pages with at least one recorded run, sorted."""
        return sorted(self._pages)

    def _page(self, page: str) -> _PageLoads:
        loads = self._pages.get(page)
        if loads is None:
            loads = _PageLoads(
                durations=deque(maxlen=self._max_samples_per_page),
                successes=deque(maxlen=self._max_samples_per_page),
            )
            self._pages[page] = loads
        return loads

    def record(self, page: str, duration_seconds: float, timed_out: bool) -> None:
        """Record the outcome of one loading session."""
        loads = self._page(page)
        loads.runs += 1
        duration = max(0.0, duration_seconds)
        loads.durations.append(duration)
        if timed_out:
            loads.timeouts += 1
        else:
            loads.successes.append(duration)

    def recommended_timeout_seconds(
        self,
        page: str,
        fallback_seconds: float,
        *,
        ceiling_seconds: float,
    ) -> float:
        """Suggest a load budget from the slowest retained sample.

        Never returns less than *fallback_seconds* or more than
        *ceiling_seconds* (unless the fallback itself is higher).
        """
        loads = self._pages.get(page)
        if loads is None or not loads.durations:
            return fallback_seconds
        headroom = BASE_HEADROOM + min(loads.timeout_rate, MAX_TIMEOUT_HEADROOM)
        suggested = max(loads.durations) * headroom
        return max(fallback_seconds, min(suggested, ceiling_seconds))

    def snapshot(self, page: str) -> LoadStatsSnapshot:
        loads = self._pages.get(page) or _PageLoads()
        samples = list(loads.durations)
        successes = list(loads.successes)
        return LoadStatsSnapshot(
            page=page,
            runs=loads.runs,
            timeout_count=loads.timeouts,
            success_count=max(0, loads.runs - loads.timeouts),
            average_seconds=sum(successes) / len(successes) if successes else None,
            max_duration_seconds=max(samples, default=0.0),
            p90_duration_seconds=_percentile(samples, 0.9),
        )

    # --- persistence ---

    def to_dict(self) -> dict[str, object]:
        return {
            "schema_version": HISTORY_SCHEMA_VERSION,
            "max_samples_per_page": self._max_samples_per_page,
            "pages": {
                page: {
                    "runs": loads.runs,
                    "timeouts": loads.timeouts,
                    "durations": list(loads.durations),
                    "success_durations": list(loads.successes),
                }
                for page, loads in sorted(self._pages.items())
            },
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        max_samples_per_page: int = 20,
    ) -> "LoadHistory":
        """Rebuild history from ``to_dict`` output, skipping malformed pages."""
        raw_limit = data.get("max_samples_per_page")
        if isinstance(raw_limit, int) and raw_limit > 0:
            max_samples_per_page = raw_limit
        history = cls(max_samples_per_page=max_samples_per_page)

        raw_pages = data.get("pages")
        if not isinstance(raw_pages, dict):
            return history
        for page, payload in raw_pages.items():
            if isinstance(page, str) and isinstance(payload, dict):
                history._restore_page(page, payload)
        return history

    def _restore_page(self, page: str, payload: dict[str, Any]) -> None:
        loads = self._page(page)
        runs = payload.get("runs")
        timeouts = payload.get("timeouts")
        if isinstance(runs, int) and runs >= 0:
            loads.runs = runs
        if isinstance(timeouts, int) and timeouts >= 0:
            loads.timeouts = timeouts
        loads.durations.extend(_samples(payload.get("durations")))
        loads.successes.extend(_samples(payload.get("success_durations")))

    def merge(self, other: "LoadHistory") -> None:
        """Adopt every page recorded in *other*."""
        for page, loads in other._pages.items():
            target = self._page(page)
            target.runs = loads.runs
            target.timeouts = loads.timeouts
            target.durations.clear()
            target.durations.extend(loads.durations)
            target.successes.clear()
            target.successes.extend(loads.successes)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

    @classmethod
    def load(
        cls,
        path: Path,
        *,
        max_samples_per_page: int = 20,
    ) -> "LoadHistory":
        """Read history from *path*; a missing or corrupt file gives an empty one."""
        if not path.exists():
            return cls(max_samples_per_page=max_samples_per_page)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Failed to load load history %s: %s", path, exc)
            return cls(max_samples_per_page=max_samples_per_page)
        if not isinstance(raw, dict):
            return cls(max_samples_per_page=max_samples_per_page)
        return cls.from_dict(raw, max_samples_per_page=max_samples_per_page)


class PersistentLoadHistory(LoadHistory):
    """Load history that writes itself back to disk every few records."""

    def __init__(
        self,
        *,
        storage_path: Path,
        max_samples_per_page: int = 20,
        autosave_every: int = 5,
    ) -> None:
        super().__init__(max_samples_per_page=max_samples_per_page)
        self._storage_path = storage_path
        self._autosave_every = max(1, autosave_every)
        self._unsaved = 0

    @classmethod
    def open(
        cls,
        storage_path: Path,
        *,
        max_samples_per_page: int = 20,
        autosave_every: int = 5,
    ) -> "PersistentLoadHistory":
        stored = LoadHistory.load(
            storage_path, max_samples_per_page=max_samples_per_page
        )
        history = cls(
            storage_path=storage_path,
            max_samples_per_page=stored.max_samples_per_page,
            autosave_every=autosave_every,
        )
        history.merge(stored)
        return history

    def record(self, page: str, duration_seconds: float, timed_out: bool) -> None:
        super().record(page, duration_seconds, timed_out)
        self._unsaved += 1
        if self._unsaved >= self._autosave_every:
            self.flush()

    def flush(self) -> None:
        """Write pending records. Write failures are logged, not raised."""
        if self._unsaved == 0 and self._storage_path.exists():
            return
        try:
            self.save(self._storage_path)
        except OSError as exc:
            logger.warning(
                "Failed to persist load history %s: %s", self._storage_path, exc
            )
            return
        self._unsaved = 0


def _samples(raw: object) -> list[float]:
    if not isinstance(raw, list):
        return []
    return [max(0.0, float(value)) for value in raw if isinstance(value, (int, float))]


def _percentile(values: Iterable[float], q: float) -> float | None:
    ordered = sorted(values)
    if not ordered:
        return None
    return ordered[int((len(ordered) - 1) * q)]


_shared_history: PersistentLoadHistory | None = None


def get_load_history() -> LoadHistory:
    """Shared history backed by the state-dir file, flushed at exit."""
    global _shared_history
    if _shared_history is None:
        paths = get_paths()
        paths.ensure_global_dirs()
        _shared_history = PersistentLoadHistory.open(
            paths.load_history, autosave_every=1
        )
        atexit.register(_shared_history.flush)
    return _shared_history
