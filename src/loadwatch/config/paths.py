"""XDG locations used by loadwatch.

- Config: $XDG_CONFIG_HOME/loadwatch (default: ~/.config/loadwatch)
- State: $XDG_STATE_HOME/loadwatch (default: ~/.local/state/loadwatch)
- Cache: $XDG_CACHE_HOME/loadwatch (default: ~/.cache/loadwatch)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

APP_DIR = "loadwatch"


def _xdg_home(variable: str, *fallback: str) -> Path:
    return Path(os.environ.get(variable) or Path.home().joinpath(*fallback))


@dataclass(frozen=True)
class LoadwatchPaths:
    """Resolved config, state and cache directories for one process."""

    config_home: Path = field(
        default_factory=lambda: _xdg_home("XDG_CONFIG_HOME", ".config")
    )
    state_home: Path = field(
        default_factory=lambda: _xdg_home("XDG_STATE_HOME", ".local", "state")
    )
    cache_home: Path = field(
        default_factory=lambda: _xdg_home("XDG_CACHE_HOME", ".cache")
    )

    @property
    def global_config_dir(self) -> Path:
        return self.config_home / APP_DIR

    @property
    def global_settings(self) -> Path:
        """~/.config/loadwatch/settings.json"""
        return self.global_config_dir / "settings.json"

    @property
    def global_state_dir(self) -> Path:
        return self.state_home / APP_DIR

    @property
    def global_cache_dir(self) -> Path:
        return self.cache_home / APP_DIR

    @property
    def load_history(self) -> Path:
        """~/.local/state/loadwatch/load-history.json"""
        return self.global_state_dir / "load-history.json"

    @property
    def debug_log(self) -> Path:
        """~/.local/state/loadwatch/debug.log"""
        return self.global_state_dir / "debug.log"

    def ensure_global_dirs(self) -> None:
        for directory in (
            self.global_config_dir,
            self.global_state_dir,
            self.global_cache_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)


_paths: LoadwatchPaths | None = None


def get_paths() -> LoadwatchPaths:
    """Return the process-wide paths, resolving XDG variables on first use."""
    global _paths
    if _paths is None:
        _paths = LoadwatchPaths()
    return _paths


def reset_paths() -> None:
    """Forget the resolved paths so the next call re-reads the environment."""
    global _paths
    _paths = None
