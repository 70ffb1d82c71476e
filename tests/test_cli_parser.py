from __future__ import annotations

from pathlib import Path

import pytest

from loadwatch.cli.parser import parse_args


def test_parse_args_without_command() -> None:
    args = parse_args([])
    assert args.command is None
    assert args.workdir is None


def test_parse_args_watch_defaults() -> None:
    args = parse_args(["watch", "https://app.example/reports"])
    assert args.command == "watch"
    assert args.url == "https://app.example/reports"
    assert args.health_url == []
    assert args.timeout is None
    assert args.headless is False
    assert args.no_retry is False


def test_parse_args_watch_overrides() -> None:
    args = parse_args(
        [
            "-w",
            "/tmp/lw",
            "watch",
            "https://app.example",
            "--health-url",
            "https://api.example/health",
            "--health-url",
            "https://db.example/health",
            "--page",
            "Reports",
            "--timeout",
            "12.5",
            "--max-retries",
            "4",
            "--retry-delay",
            "1",
            "--retry-when-unhealthy",
            "--network-diagnostics",
            "--adaptive-timeout",
            "--headless",
        ]
    )
    assert args.workdir == Path("/tmp/lw")
    assert args.health_url == ["https://api.example/health", "https://db.example/health"]
    assert args.page == "Reports"
    assert args.timeout == 12.5
    assert args.max_retries == 4
    assert args.retry_delay == 1.0
    assert args.retry_when_unhealthy is True
    assert args.network_diagnostics is True
    assert args.adaptive_timeout is True
    assert args.headless is True


def test_parse_args_probe_requires_url() -> None:
    with pytest.raises(SystemExit):
        _ = parse_args(["probe"])


def test_parse_args_probe_many_urls() -> None:
    args = parse_args(["probe", "http://a/health", "http://b/health", "--timeout", "2"])
    assert args.urls == ["http://a/health", "http://b/health"]
    assert args.timeout == 2.0


def test_parse_args_history_page_is_optional() -> None:
    assert parse_args(["history"]).page is None
    assert parse_args(["history", "Reports"]).page == "Reports"


def test_parse_args_rejects_non_numeric_timeout() -> None:
    with pytest.raises(SystemExit):
        _ = parse_args(["watch", "http://a", "--timeout", "soon"])
