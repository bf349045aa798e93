from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..domain.models import Project
from ..persistence.store import JsonStore


LOG = logging.getLogger(__name__)

# Only the head of each session log is scanned for a recorded cwd.
_MAX_LINES_PER_SESSION = 200


class ProjectNotFoundError(LookupError):
    pass


def decode_project_name(name: str) -> str:
    """Claude stores projects as the cwd with every "/" turned into "-"."""
    return name.replace("-", "/")


def _sessions_newest_first(project_dir: Path) -> List[Path]:
    stamped: List[Tuple[float, Path]] = []
    for session in project_dir.glob("*.jsonl"):
        try:
            stamped.append((session.stat().st_mtime, session))
        except OSError as exc:
            LOG.debug("Skipping vanished session %s: %s", session, exc)
    stamped.sort(key=lambda item: item[0], reverse=True)
    return [session for _, session in stamped]


def _session_cwd(project_dir: Path) -> Optional[str]:
    for session in _sessions_newest_first(project_dir):
        try:
            with session.open(encoding="utf-8") as handle:
                for index, line in enumerate(handle):
                    if index >= _MAX_LINES_PER_SESSION:
                        break
                    try:
                        entry = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if isinstance(entry, dict) and isinstance(entry.get("cwd"), str) and entry["cwd"]:
                        return entry["cwd"]
        except OSError as exc:
            LOG.debug("Skipping unreadable session %s: %s", session, exc)
    return None


class ProjectRegistry:
    """
    Maps project names used in URLs to directories on disk.

    Manual entries from the store win over Claude's own project folders.
    """

    def __init__(self, store: JsonStore, claude_projects_dir: Path) -> None:
        self.store = store
        self.claude_projects_dir = Path(claude_projects_dir)

    def _claude_projects(self) -> Dict[str, Project]:
        found: Dict[str, Project] = {}
        if not self.claude_projects_dir.is_dir():
            return found
        for entry in sorted(self.claude_projects_dir.iterdir()):
            if not entry.is_dir():
                continue
            path = _session_cwd(entry) or decode_project_name(entry.name)
            found[entry.name] = Project(
                name=entry.name,
                path=path,
                display_name=Path(path).name or entry.name,
                source="claude",
            )
        return found

    def list_projects(self) -> List[Project]:
        projects = self._claude_projects()
        for name, entry in self.store.load_projects().items():
            projects[name] = Project(
                name=name,
                path=str(entry["path"]),
                display_name=str(entry.get("displayName") or Path(entry["path"]).name),
                source="manual",
            )
        return list(projects.values())

    def get(self, name: str) -> Project:
        manual = self.store.load_projects().get(name)
        if manual:
            return Project(
                name=name,
                path=str(manual["path"]),
                display_name=str(manual.get("displayName") or Path(manual["path"]).name),
                source="manual",
            )
        project_dir = self.claude_projects_dir / name
        if name and Path(name).name == name and project_dir.is_dir():
            path = _session_cwd(project_dir) or decode_project_name(name)
            return Project(name=name, path=path, display_name=Path(path).name or name, source="claude")
        raise ProjectNotFoundError(f'Project "{name}" does not exist')

    def resolve(self, name: str) -> Path:
        return Path(self.get(name).path)
