from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from mocks import FakeCli, write_claude_config
from taskmaster_dashboard.config.settings import DashboardSettings
from taskmaster_dashboard.domain.models import InstallationStatus
from taskmaster_dashboard.notifications.hub import NotificationHub
from taskmaster_dashboard.web import api as api_module
from taskmaster_dashboard.web.api import TaskMasterApi


@pytest.fixture()
def settings(tmp_path: Path) -> DashboardSettings:
    return DashboardSettings(
        state_dir=tmp_path / "state",
        claude_config_paths=(tmp_path / "claude.json",),
        claude_projects_dir=tmp_path / "claude-projects",
        sse_keepalive_seconds=1,
    )


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    path = tmp_path / "work" / "app"
    path.mkdir(parents=True)
    return path


@pytest.fixture()
def api(settings: DashboardSettings, project: Path, monkeypatch: Any) -> TaskMasterApi:
    monkeypatch.setattr(
        api_module,
        "check_installation",
        lambda binary="task-master": InstallationStatus(is_installed=True, install_path="/bin/task-master", version="1.0"),
    )
    instance = TaskMasterApi(settings, cli=FakeCli(), hub=NotificationHub())
    instance.store.upsert_project("app", project)
    return instance


@pytest.fixture()
def mcp_configured(settings: DashboardSettings) -> Path:
    return write_claude_config(
        settings.claude_config_paths[0],
        {"mcpServers": {"task-master-ai": {"command": "npx", "args": ["-y", "task-master-ai"]}}},
    )
