from __future__ import annotations

from pathlib import Path

from taskmaster_dashboard.persistence.store import JsonStore, effective_tasks_enabled


def test_tasks_enabled_round_trip(tmp_path: Path) -> None:
    store = JsonStore(tmp_path / "state")

    assert store.get_tasks_enabled() is None
    store.set_tasks_enabled(False)

    assert JsonStore(tmp_path / "state").get_tasks_enabled() is False


def test_effective_tasks_enabled_follows_installation_until_set(tmp_path: Path) -> None:
    store = JsonStore(tmp_path)

    assert effective_tasks_enabled(store, cli_installed=True) is True
    assert effective_tasks_enabled(store, cli_installed=False) is False

    store.set_tasks_enabled(True)
    assert effective_tasks_enabled(store, cli_installed=False) is True

    store.set_tasks_enabled(False)
    assert effective_tasks_enabled(store, cli_installed=True) is False


def test_unreadable_preferences_are_ignored(tmp_path: Path) -> None:
    store = JsonStore(tmp_path)
    store.preferences_file.write_text("{oops", encoding="utf-8")

    assert store.load_preferences() == {}
    assert store.get_tasks_enabled() is None


def test_manual_projects(tmp_path: Path) -> None:
    store = JsonStore(tmp_path / "state")
    project = tmp_path / "app"

    store.upsert_project("app", project)
    store.upsert_project("other", tmp_path / "other", display_name="Other One")

    projects = store.load_projects()
    assert projects["app"] == {"path": str(project), "displayName": "app"}
    assert projects["other"]["displayName"] == "Other One"
    assert store.remove_project("app") is True
    assert store.remove_project("app") is False
    assert list(store.load_projects()) == ["other"]


def test_root_can_be_moved(tmp_path: Path) -> None:
    store = JsonStore(tmp_path / "a")
    store.root = tmp_path / "b"

    store.set_tasks_enabled(True)

    assert (tmp_path / "b" / "preferences.json").exists()


def test_undecodable_or_unreadable_state_is_ignored(tmp_path: Path) -> None:
    store = JsonStore(tmp_path)
    store.projects_file.write_bytes(b"\xff\xfe{}")
    store.preferences_file.mkdir()

    assert store.load_projects() == {}
    assert store.load_preferences() == {}
    assert effective_tasks_enabled(store, cli_installed=True) is True
