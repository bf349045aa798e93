from __future__ import annotations

import os
import time
from datetime import date
from pathlib import Path

import pytest

from taskmaster_dashboard.services.prd import PrdError, PrdNotFoundError, PrdRepository
from taskmaster_dashboard.services.templates import get_template, list_templates


def test_write_read_delete(tmp_path: Path) -> None:
    repo = PrdRepository(tmp_path)

    saved = repo.write("prd.txt", "# Product")

    assert saved.name == "prd.txt"
    assert saved.path == os.path.join(".taskmaster", "docs", "prd.txt")
    assert saved.size == len("# Product")
    info, content = repo.read("prd.txt")
    assert content == "# Product"
    assert info.name == "prd.txt"

    repo.delete("prd.txt")
    with pytest.raises(PrdNotFoundError):
        repo.read("prd.txt")


@pytest.mark.parametrize("name", ["notes.pdf", "../evil.txt", "a/b.md", "", "bad?.txt"])
def test_write_rejects_bad_names(tmp_path: Path, name: str) -> None:
    with pytest.raises(PrdError):
        PrdRepository(tmp_path).write(name, "x")


def test_read_rejects_traversal(tmp_path: Path) -> None:
    with pytest.raises(PrdError):
        PrdRepository(tmp_path).read("../secret.txt")


def test_delete_missing_file(tmp_path: Path) -> None:
    with pytest.raises(PrdNotFoundError):
        PrdRepository(tmp_path).delete("nope.md")


def test_list_is_newest_first_and_filters_suffix(tmp_path: Path) -> None:
    repo = PrdRepository(tmp_path)
    assert repo.list() == []

    older = repo.write("old.md", "a")
    newer = repo.write("new.txt", "b")
    (repo.docs_dir / "image.png").write_bytes(b"\x89PNG")
    now = time.time()
    os.utime(repo.docs_dir / older.name, (now - 100, now - 100))
    os.utime(repo.docs_dir / newer.name, (now, now))

    assert [item.name for item in repo.list()] == ["new.txt", "old.md"]


def test_apply_template_substitutes_customizations(tmp_path: Path) -> None:
    repo = PrdRepository(tmp_path)

    template, saved = repo.apply_template(
        "web-app",
        "app.md",
        {"Your App Name": "Acme Portal", "Your Name": "Ann"},
        today=date(2024, 5, 1),
    )

    _, content = repo.read(saved.name)
    assert template.id == "web-app"
    assert "**Product Name:** Acme Portal" in content
    assert "**Author:** Ann" in content
    assert "2024-05-01" in content
    assert "[Your App Name]" not in content


def test_apply_unknown_template(tmp_path: Path) -> None:
    with pytest.raises(PrdNotFoundError):
        PrdRepository(tmp_path).apply_template("nope")


def test_templates_catalog() -> None:
    ids = [item.id for item in list_templates()]

    assert ids == ["web-app", "api", "mobile-app", "data-analysis"]
    assert get_template("unknown") is None
    assert "{date}" not in get_template("api", date(2024, 1, 2)).content  # type: ignore[union-attr]
