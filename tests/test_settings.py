"""Tests for persisted orchestrator settings and config construction."""

from __future__ import annotations

import pytest

from loadwatch.config.paths import get_paths
from loadwatch.config.settings import settings
from loadwatch.models.phases import DEFAULT_PHASES
from loadwatch.orchestration.types import LoadConfig


def test_orchestrator_defaults() -> None:
    settings._data = {}

    assert settings.timeout_seconds == 30.0
    assert settings.max_retries == 2
    assert settings.retry_delay_seconds == 3.0
    assert settings.retry_only_if_healthy is True
    assert settings.enable_retry_strategies is True
    assert settings.show_network_diagnostics is False
    assert settings.health_poll_seconds == 5.0
    assert settings.health_check_timeout_seconds == 5.0


def test_setters_store_under_orchestrator_section() -> None:
    settings._data = {}

    settings.timeout_seconds = 12
    settings.max_retries = 4

    assert settings._data["orchestrator"] == {"timeout_seconds": 12.0, "max_retries": 4}


def test_malformed_values_fall_back_to_defaults() -> None:
    settings._data = {
        "orchestrator": {
            "timeout_seconds": "soon",
            "max_retries": None,
            "retry_delay_seconds": -1,
            "health_poll_seconds": 0,
        }
    }

    assert settings.timeout_seconds == 30.0
    assert settings.max_retries == 2
    assert settings.retry_delay_seconds == 3.0
    assert settings.health_poll_seconds == 5.0


def test_non_dict_section_is_ignored() -> None:
    settings._data = {"orchestrator": ["bad"]}

    assert settings.max_retries == 2


def test_invalid_timeout_setter_raises() -> None:
    with pytest.raises(ValueError):
        settings.timeout_seconds = 0


def test_load_config_from_settings_applies_overrides() -> None:
    settings._data = {"orchestrator": {"timeout_seconds": 45, "max_retries": 1}}

    config = LoadConfig.from_settings(settings, page_name="Reports", max_retries=3)

    assert config.page_name == "Reports"
    assert config.timeout_seconds == 45.0
    assert config.max_retries == 3
    assert config.phases == DEFAULT_PHASES


@pytest.mark.parametrize(
    "kwargs",
    [
        {"timeout_seconds": 0},
        {"max_retries": -1},
        {"retry_delay_seconds": -1},
        {"progress_tick_seconds": 0},
        {"phases": ()},
    ],
)
def test_invalid_load_config_is_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        LoadConfig(**kwargs)  # type: ignore[arg-type]


def test_retry_policy_mirrors_config() -> None:
    policy = LoadConfig(max_retries=5, enable_retry_strategies=False).retry_policy

    assert policy.max_retries == 5
    assert policy.enabled is False


def test_paths_follow_xdg_environment() -> None:
    paths = get_paths()

    assert paths.global_settings.name == "settings.json"
    assert paths.load_history.parent == paths.global_state_dir
    assert paths.global_state_dir.parts[-2:] == ("state", "loadwatch")
