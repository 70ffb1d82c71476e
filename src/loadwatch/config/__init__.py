"""Configuration management for loadwatch."""
from __future__ import annotations

from loadwatch.config.paths import LoadwatchPaths, get_paths, reset_paths
from loadwatch.config.settings import Settings, get_settings_path, settings

__all__ = [
    "LoadwatchPaths",
    "Settings",
    "get_paths",
    "get_settings_path",
    "reset_paths",
    "settings",
]
