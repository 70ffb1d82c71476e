from __future__ import annotations

import sys

import pytest

from loadwatch import main as main_module


def test_main_exits_with_command_status(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr(main_module, "setup_logging", lambda: calls.append("logging"))
    monkeypatch.setattr(sys, "argv", ["loadwatch", "history"])

    with pytest.raises(SystemExit) as excinfo:
        main_module.main()

    assert excinfo.value.code == 0
    assert calls == ["logging"]


def test_main_without_command_exits_with_usage_status(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(main_module, "setup_logging", lambda: None)
    monkeypatch.setattr(sys, "argv", ["loadwatch"])

    with pytest.raises(SystemExit) as excinfo:
        main_module.main()

    assert excinfo.value.code == 2
