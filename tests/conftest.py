from __future__ import annotations

import copy
from collections.abc import Iterator
from pathlib import Path

import pytest

from loadwatch.config.paths import reset_paths
from loadwatch.config.settings import settings


@pytest.fixture(autouse=True)
def isolate_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Prevent tests from persisting settings to disk."""
    original_data = copy.deepcopy(settings._data)

    def _noop_save() -> None:
        return None

    monkeypatch.setattr(settings, "_save", _noop_save)
    try:
        yield
    finally:
        settings._data = original_data


@pytest.fixture(autouse=True)
def isolate_xdg_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Point XDG directories at a per-test temp dir."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    reset_paths()
    try:
        yield
    finally:
        reset_paths()


@pytest.fixture
def anyio_backend() -> str:
    """The project runs on asyncio (scheduler and Textual); pin anyio to it."""
    return "asyncio"
