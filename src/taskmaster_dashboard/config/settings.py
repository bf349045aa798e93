from __future__ import annotations

from dataclasses import dataclass, field
import os
import shlex
from pathlib import Path
from typing import ClassVar, Tuple


def _default_claude_config_paths() -> Tuple[Path, ...]:
    home = Path.home()
    return (home / ".claude.json", home / ".claude" / "settings.json")


@dataclass
class DashboardSettings:
    """
    Central configuration for the dashboard backend.

    Every request reads these values; nothing below is cached between requests.
    """

    state_dir: Path = Path.home() / ".taskmaster_dashboard"
    host: str = "127.0.0.1"
    port: int = 8844
    cli_command: Tuple[str, ...] = ("npx", "task-master-ai")
    init_command: Tuple[str, ...] = ("npx", "task-master", "init")
    cli_binary: str = "task-master"
    cli_timeout_seconds: int = 300
    claude_config_paths: Tuple[Path, ...] = field(default_factory=_default_claude_config_paths)
    claude_projects_dir: Path = Path.home() / ".claude" / "projects"
    sse_keepalive_seconds: int = 15

    TASKMASTER_DIR: ClassVar[str] = ".taskmaster"
    TASKS_FILE: ClassVar[str] = "tasks/tasks.json"
    CONFIG_FILE: ClassVar[str] = "config.json"
    DOCS_DIR: ClassVar[str] = "docs"


def _int_env(name: str) -> int | None:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def get_settings() -> DashboardSettings:
    settings = DashboardSettings()

    state_dir = os.getenv("TASKMASTER_DASHBOARD_STATE_DIR")
    if state_dir:
        settings.state_dir = Path(state_dir).expanduser()

    host = os.getenv("TASKMASTER_DASHBOARD_HOST")
    if host:
        settings.host = host

    port = _int_env("TASKMASTER_DASHBOARD_PORT")
    if port is not None:
        settings.port = port

    raw_command = os.getenv("TASKMASTER_DASHBOARD_CLI_COMMAND")
    if raw_command:
        settings.cli_command = tuple(shlex.split(raw_command))

    raw_init = os.getenv("TASKMASTER_DASHBOARD_INIT_COMMAND")
    if raw_init:
        settings.init_command = tuple(shlex.split(raw_init))

    binary = os.getenv("TASKMASTER_DASHBOARD_CLI_BINARY")
    if binary:
        settings.cli_binary = binary

    timeout = _int_env("TASKMASTER_DASHBOARD_CLI_TIMEOUT")
    if timeout is not None:
        settings.cli_timeout_seconds = timeout

    # os.pathsep separated, same convention as PATH.
    claude_config = os.getenv("TASKMASTER_DASHBOARD_CLAUDE_CONFIG")
    if claude_config:
        settings.claude_config_paths = tuple(
            Path(item).expanduser() for item in claude_config.split(os.pathsep) if item
        )

    projects_dir = os.getenv("TASKMASTER_DASHBOARD_PROJECTS_DIR")
    if projects_dir:
        settings.claude_projects_dir = Path(projects_dir).expanduser()

    keepalive = _int_env("TASKMASTER_DASHBOARD_SSE_KEEPALIVE")
    if keepalive is not None:
        settings.sse_keepalive_seconds = max(1, keepalive)

    return settings
