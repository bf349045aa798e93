from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from taskmaster_dashboard.config.settings import DashboardSettings, get_settings


def test_defaults(monkeypatch: Any) -> None:
    for name in list(os.environ):
        if name.startswith("TASKMASTER_DASHBOARD_"):
            monkeypatch.delenv(name)

    settings = get_settings()

    assert settings.host == "127.0.0.1"
    assert settings.port == 8844
    assert settings.cli_command == ("npx", "task-master-ai")
    assert DashboardSettings.TASKMASTER_DIR == ".taskmaster"


def test_environment_overrides(monkeypatch: Any, tmp_path: Path) -> None:
    monkeypatch.setenv("TASKMASTER_DASHBOARD_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("TASKMASTER_DASHBOARD_PORT", "9000")
    monkeypatch.setenv("TASKMASTER_DASHBOARD_CLI_COMMAND", "task-master --json")
    monkeypatch.setenv(
        "TASKMASTER_DASHBOARD_CLAUDE_CONFIG",
        os.pathsep.join([str(tmp_path / "a.json"), str(tmp_path / "b.json")]),
    )
    monkeypatch.setenv("TASKMASTER_DASHBOARD_PROJECTS_DIR", str(tmp_path / "projects"))

    settings = get_settings()

    assert settings.state_dir == tmp_path / "state"
    assert settings.port == 9000
    assert settings.cli_command == ("task-master", "--json")
    assert settings.claude_config_paths == (tmp_path / "a.json", tmp_path / "b.json")
    assert settings.claude_projects_dir == tmp_path / "projects"


def test_invalid_numbers_are_ignored(monkeypatch: Any) -> None:
    monkeypatch.setenv("TASKMASTER_DASHBOARD_PORT", "http")
    monkeypatch.setenv("TASKMASTER_DASHBOARD_CLI_TIMEOUT", "")

    settings = get_settings()

    assert settings.port == 8844
    assert settings.cli_timeout_seconds == 300


def test_keepalive_is_at_least_one_second(monkeypatch: Any) -> None:
    monkeypatch.setenv("TASKMASTER_DASHBOARD_SSE_KEEPALIVE", "0")

    assert get_settings().sse_keepalive_seconds == 1
