from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator

import pytest

from taskmaster_dashboard.persistence.store import JsonStore
from taskmaster_dashboard.services.projects import ProjectNotFoundError, ProjectRegistry, decode_project_name


@pytest.fixture()
def registry(tmp_path: Path) -> ProjectRegistry:
    return ProjectRegistry(JsonStore(tmp_path / "state"), tmp_path / "claude-projects")


def test_decode_project_name() -> None:
    assert decode_project_name("-home-ann-app") == "/home/ann/app"


def test_empty_registry(registry: ProjectRegistry) -> None:
    assert registry.list_projects() == []
    with pytest.raises(ProjectNotFoundError):
        registry.get("missing")


def test_claude_project_uses_session_cwd(registry: ProjectRegistry, tmp_path: Path) -> None:
    project_dir = registry.claude_projects_dir / "-work-my-app"
    project_dir.mkdir(parents=True)
    session = project_dir / "session.jsonl"
    session.write_text(
        "not json\n" + json.dumps({"type": "summary"}) + "\n" + json.dumps({"cwd": "/work/my-app"}) + "\n",
        encoding="utf-8",
    )

    project = registry.get("-work-my-app")

    assert project.path == "/work/my-app"
    assert project.display_name == "my-app"
    assert project.source == "claude"


def test_claude_project_falls_back_to_decoded_name(registry: ProjectRegistry) -> None:
    (registry.claude_projects_dir / "-srv-api").mkdir(parents=True)

    [project] = registry.list_projects()

    assert project.path == "/srv/api"
    assert project.display_name == "api"


def test_manual_entry_overrides_claude_project(registry: ProjectRegistry, tmp_path: Path) -> None:
    (registry.claude_projects_dir / "-srv-api").mkdir(parents=True)
    registry.store.upsert_project("-srv-api", tmp_path / "real-api", display_name="Real API")
    registry.store.upsert_project("extra", tmp_path / "extra")

    projects = {item.name: item for item in registry.list_projects()}

    assert projects["-srv-api"].path == str(tmp_path / "real-api")
    assert projects["-srv-api"].source == "manual"
    assert projects["extra"].display_name == "extra"
    assert registry.resolve("extra") == tmp_path / "extra"


def test_get_rejects_path_like_names(registry: ProjectRegistry) -> None:
    registry.claude_projects_dir.mkdir(parents=True)

    with pytest.raises(ProjectNotFoundError):
        registry.get("../state")


def test_session_removed_during_scan_is_skipped(registry: ProjectRegistry, monkeypatch: Any) -> None:
    project_dir = registry.claude_projects_dir / "-work-app"
    project_dir.mkdir(parents=True)
    (project_dir / "live.jsonl").write_text(json.dumps({"cwd": "/work/app"}) + "\n", encoding="utf-8")
    real_glob = Path.glob

    def glob_with_vanished(self: Path, pattern: str) -> Iterator[Path]:
        yield from real_glob(self, pattern)
        yield self / "vanished.jsonl"

    monkeypatch.setattr(Path, "glob", glob_with_vanished)

    [project] = registry.list_projects()

    assert project.path == "/work/app"
