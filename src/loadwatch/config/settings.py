"""Persisted user settings for loadwatch."""

import json
import logging
import os
from pathlib import Path
from typing import Any

from loadwatch.config.paths import get_paths

logger = logging.getLogger(__name__)


def get_settings_path() -> Path:
    return get_paths().global_settings


def detect_terminal_theme() -> str:
    """Pick a textual theme from ``COLORFGBG``; dark unless the bg is light."""
    colorfgbg = os.environ.get("COLORFGBG", "")
    background = colorfgbg.rsplit(";", 1)[-1]
    if background.isdigit() and int(background) >= 7:
        return "textual-light"
    return "textual-dark"


def _coerce_float(raw: Any, default: float, *, minimum: float = 0.0) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if value < minimum:
        return default
    return value


class Settings:
    """JSON-backed settings; the orchestrator's knobs live under one section."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        path = get_settings_path()
        if not path.exists():
            self._data = {}
            return
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable settings %s: %s", path, exc)
            loaded = {}
        self._data = loaded if isinstance(loaded, dict) else {}

    def _save(self) -> None:
        path = get_settings_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
            logger.info("Saved settings to %s", path)
        except OSError as e:
            logger.error("Failed to save settings: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a top-level value and persist immediately."""
        self._data[key] = value
        self._save()

    @property
    def theme(self) -> str:
        """Saved textual theme, or one guessed from the terminal."""
        saved = self._data.get("theme")
        if saved:
            return str(saved)
        return detect_terminal_theme()

    @theme.setter
    def theme(self, value: str) -> None:
        self.set("theme", value)

    # --- Orchestrator Settings ---

    def _get_orchestrator_settings(self) -> dict[str, Any]:
        raw = self._data.get("orchestrator", {})
        if isinstance(raw, dict):
            return raw
        return {}

    def _set_orchestrator_value(self, key: str, value: Any) -> None:
        orchestrator = self._get_orchestrator_settings()
        orchestrator[key] = value
        self.set("orchestrator", orchestrator)

    @property
    def timeout_seconds(self) -> float:
        """Seconds before a loading session is declared timed out."""
        raw = self._get_orchestrator_settings().get("timeout_seconds", 30.0)
        value = _coerce_float(raw, 30.0)
        return value if value > 0 else 30.0

    @timeout_seconds.setter
    def timeout_seconds(self, value: float) -> None:
        if value <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._set_orchestrator_value("timeout_seconds", float(value))

    @property
    def max_retries(self) -> int:
        """Automatic retry budget per load goal."""
        raw = self._get_orchestrator_settings().get("max_retries", 2)
        try:
            retries = int(raw)
        except (TypeError, ValueError):
            return 2
        return max(0, retries)

    @max_retries.setter
    def max_retries(self, value: int) -> None:
        self._set_orchestrator_value("max_retries", max(0, int(value)))

    @property
    def retry_delay_seconds(self) -> float:
        """Delay between a timeout and the automatic reload."""
        raw = self._get_orchestrator_settings().get("retry_delay_seconds", 3.0)
        return _coerce_float(raw, 3.0)

    @retry_delay_seconds.setter
    def retry_delay_seconds(self, value: float) -> None:
        self._set_orchestrator_value("retry_delay_seconds", max(0.0, float(value)))

    @property
    def retry_only_if_healthy(self) -> bool:
        """Whether automatic retries require a healthy backend."""
        raw = self._get_orchestrator_settings().get("retry_only_if_healthy", True)
        return bool(raw)

    @retry_only_if_healthy.setter
    def retry_only_if_healthy(self, value: bool) -> None:
        self._set_orchestrator_value("retry_only_if_healthy", bool(value))

    @property
    def enable_retry_strategies(self) -> bool:
        """Whether automatic retries are attempted at all."""
        raw = self._get_orchestrator_settings().get("enable_retry_strategies", True)
        return bool(raw)

    @enable_retry_strategies.setter
    def enable_retry_strategies(self, value: bool) -> None:
        self._set_orchestrator_value("enable_retry_strategies", bool(value))

    @property
    def show_network_diagnostics(self) -> bool:
        """Whether detailed network readings are exposed to the view."""
        raw = self._get_orchestrator_settings().get("show_network_diagnostics", False)
        return bool(raw)

    @show_network_diagnostics.setter
    def show_network_diagnostics(self, value: bool) -> None:
        self._set_orchestrator_value("show_network_diagnostics", bool(value))

    @property
    def health_poll_seconds(self) -> float:
        """Interval between health probes while loading."""
        raw = self._get_orchestrator_settings().get("health_poll_seconds", 5.0)
        value = _coerce_float(raw, 5.0)
        return value if value > 0 else 5.0

    @health_poll_seconds.setter
    def health_poll_seconds(self, value: float) -> None:
        if value <= 0:
            raise ValueError("health_poll_seconds must be positive")
        self._set_orchestrator_value("health_poll_seconds", float(value))

    @property
    def health_check_timeout_seconds(self) -> float:
        """Per-check timeout used by the health monitor."""
        raw = self._get_orchestrator_settings().get(
            "health_check_timeout_seconds", 5.0
        )
        value = _coerce_float(raw, 5.0)
        return value if value > 0 else 5.0

    @health_check_timeout_seconds.setter
    def health_check_timeout_seconds(self, value: float) -> None:
        if value <= 0:
            raise ValueError("health_check_timeout_seconds must be positive")
        self._set_orchestrator_value("health_check_timeout_seconds", float(value))


# Global settings instance
settings = Settings()
