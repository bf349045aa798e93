from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional


LOG = logging.getLogger(__name__)


class JsonStore:
    """
    Small JSON persistence for dashboard state the UI would otherwise keep in
    browser storage: user preferences and manually registered projects.

    Files stay human-editable so they can be inspected outside the tool.
    """

    def __init__(self, root: Path) -> None:
        self._lock = Lock()
        self.root = root

    @property
    def root(self) -> Path:
        return self._root

    @root.setter
    def root(self, value: Path) -> None:
        self._root = Path(value)
        self.preferences_file = self._root / "preferences.json"
        self.projects_file = self._root / "projects.json"

    def _read(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        with self._lock:
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
                LOG.warning("Ignoring unreadable %s: %s", path, exc)
                return {}
        return raw if isinstance(raw, dict) else {}

    def _write(self, path: Path, data: Dict[str, Any]) -> None:
        with self._lock:
            self._root.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    # --- Preferences ------------------------------------------------------
    def load_preferences(self) -> Dict[str, Any]:
        return self._read(self.preferences_file)

    def get_tasks_enabled(self) -> Optional[bool]:
        """The explicit user choice, or `None` when the user never set one."""
        value = self.load_preferences().get("tasks_enabled")
        return value if isinstance(value, bool) else None

    def set_tasks_enabled(self, enabled: bool) -> None:
        prefs = self.load_preferences()
        prefs["tasks_enabled"] = bool(enabled)
        self._write(self.preferences_file, prefs)

    # --- Manual projects ---------------------------------------------------
    def load_projects(self) -> Dict[str, Dict[str, Any]]:
        raw = self._read(self.projects_file)
        return {str(name): entry for name, entry in raw.items() if isinstance(entry, dict) and entry.get("path")}

    def upsert_project(self, name: str, path: Path, display_name: Optional[str] = None) -> None:
        projects = self.load_projects()
        projects[name] = {"path": str(path), "displayName": display_name or Path(path).name}
        self._write(self.projects_file, projects)

    def remove_project(self, name: str) -> bool:
        projects = self.load_projects()
        if name not in projects:
            return False
        del projects[name]
        self._write(self.projects_file, projects)
        return True


def effective_tasks_enabled(store: JsonStore, cli_installed: bool) -> bool:
    """
    Tasks are on by default, but stay off when the CLI is missing unless the
    user explicitly enabled them.
    """
    explicit = store.get_tasks_enabled()
    if explicit is not None:
        return explicit
    return cli_installed
