from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..config.settings import DashboardSettings
from ..core.normalize import iter_all_tasks, normalize
from ..core.reconcile import summarize_tasks
from ..domain.models import InstallationStatus, NormalizedTasks, TaskMasterFolderStatus, iso


LOG = logging.getLogger(__name__)

KEY_FILES = (DashboardSettings.TASKS_FILE, DashboardSettings.CONFIG_FILE)


class TaskFileError(ValueError):
    """
    Raised when `tasks.json` exists but is not valid JSON.
    """


def taskmaster_dir(project_path: Path) -> Path:
    return Path(project_path) / DashboardSettings.TASKMASTER_DIR


def tasks_file(project_path: Path) -> Path:
    return taskmaster_dir(project_path) / DashboardSettings.TASKS_FILE


def _readable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.R_OK)


def read_tasks_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise TaskFileError(f"Invalid JSON in {path.name}: {exc}") from exc


def detect_taskmaster_folder(project_path: Path) -> TaskMasterFolderStatus:
    """
    Inspect `<project>/.taskmaster` and report what is there.

    I/O failures never escape: they become `has_taskmaster=False` with the
    error text in `reason`.
    """
    folder = taskmaster_dir(project_path)
    try:
        if not folder.exists():
            return TaskMasterFolderStatus(has_taskmaster=False, reason=".taskmaster directory not found")
        if not folder.is_dir():
            return TaskMasterFolderStatus(has_taskmaster=False, reason=".taskmaster exists but is not a directory")

        files = {name: _readable(folder / name) for name in KEY_FILES}
        has_essential_files = files[DashboardSettings.TASKS_FILE]

        metadata: Optional[dict] = None
        if has_essential_files:
            path = folder / DashboardSettings.TASKS_FILE
            try:
                raw = read_tasks_json(path)
                modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
                metadata = summarize_tasks(iter_all_tasks(raw), last_modified=iso(modified)).to_dict()
            except (TaskFileError, UnicodeDecodeError) as exc:
                LOG.warning("Failed to parse tasks.json in %s: %s", project_path, exc)
                metadata = {"error": "Failed to parse tasks.json"}

        return TaskMasterFolderStatus(
            has_taskmaster=True,
            has_essential_files=has_essential_files,
            files=files,
            metadata=metadata,
            path=str(folder),
        )
    except OSError as exc:
        LOG.error("Error detecting TaskMaster folder in %s: %s", project_path, exc)
        return TaskMasterFolderStatus(has_taskmaster=False, reason=f"Error checking directory: {exc}")


def load_project_tasks(project_path: Path) -> Optional[NormalizedTasks]:
    """
    Read and normalize the project's tasks file; `None` when it does not exist.
    """
    path = tasks_file(project_path)
    if not path.exists():
        return None
    return normalize(read_tasks_json(path))


def check_installation(binary: str = "task-master", timeout_seconds: int = 15) -> InstallationStatus:
    install_path = shutil.which(binary)
    if not install_path:
        return InstallationStatus(is_installed=False, reason="TaskMaster CLI not found in PATH")

    version = "unknown"
    try:
        completed = subprocess.run(
            [install_path, "--version"],
            text=True,
            capture_output=True,
            timeout=timeout_seconds,
        )
        if completed.returncode == 0 and completed.stdout.strip():
            version = completed.stdout.strip()
    except (OSError, subprocess.TimeoutExpired) as exc:
        LOG.debug("Could not read %s version: %s", binary, exc)

    return InstallationStatus(is_installed=True, install_path=install_path, version=version)
