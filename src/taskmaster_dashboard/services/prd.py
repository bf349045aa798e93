from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from ..config.settings import DashboardSettings
from ..core.placeholders import apply_placeholders
from ..domain.models import PrdFile, PrdTemplate
from .templates import get_template


LOG = logging.getLogger(__name__)

PRD_FILENAME = re.compile(r"^[\w\-. ]+\.(txt|md)$")
PRD_SUFFIXES = (".txt", ".md")


class PrdError(ValueError):
    """Invalid PRD request: bad filename or unknown template."""


class PrdNotFoundError(LookupError):
    pass


def _ts(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class PrdRepository:
    """
    PRD documents stored under `<project>/.taskmaster/docs`.
    """

    def __init__(self, project_path: Path) -> None:
        self.project_path = Path(project_path)
        self.docs_dir = self.project_path / DashboardSettings.TASKMASTER_DIR / DashboardSettings.DOCS_DIR

    def _describe(self, path: Path) -> PrdFile:
        stats = path.stat()
        # st_birthtime only exists on some platforms.
        created = getattr(stats, "st_birthtime", stats.st_ctime)
        return PrdFile(
            name=path.name,
            path=str(path.relative_to(self.project_path)),
            size=stats.st_size,
            modified=_ts(stats.st_mtime),
            created=_ts(created),
        )

    def path_for(self, file_name: str) -> Path:
        if not file_name or Path(file_name).name != file_name or file_name in {".", ".."}:
            raise PrdError(f'Invalid PRD file name "{file_name}"')
        return self.docs_dir / file_name

    def list(self) -> List[PrdFile]:
        if not self.docs_dir.is_dir():
            return []
        files = [
            self._describe(path)
            for path in self.docs_dir.iterdir()
            if path.is_file() and path.suffix in PRD_SUFFIXES
        ]
        files.sort(key=lambda item: item.modified, reverse=True)
        return files

    def read(self, file_name: str) -> Tuple[PrdFile, str]:
        path = self.path_for(file_name)
        if not path.is_file():
            raise PrdNotFoundError(f'File "{file_name}" does not exist')
        return self._describe(path), path.read_text(encoding="utf-8")

    def write(self, file_name: str, content: str) -> PrdFile:
        if not PRD_FILENAME.match(file_name or ""):
            raise PrdError(
                "Filename must end with .txt or .md and contain only alphanumeric characters, "
                "spaces, dots, and dashes"
            )
        self.docs_dir.mkdir(parents=True, exist_ok=True)
        path = self.docs_dir / file_name
        path.write_text(content, encoding="utf-8")
        LOG.info("Saved PRD %s (%d bytes)", path, len(content))
        return self._describe(path)

    def delete(self, file_name: str) -> None:
        path = self.path_for(file_name)
        if not path.exists():
            raise PrdNotFoundError(f'File "{file_name}" does not exist')
        path.unlink()
        LOG.info("Deleted PRD %s", path)

    def apply_template(
        self,
        template_id: str,
        file_name: str = "prd.txt",
        customizations: Optional[Mapping[str, object]] = None,
        today: Optional[date] = None,
    ) -> Tuple[PrdTemplate, PrdFile]:
        template = get_template(template_id, today)
        if template is None:
            raise PrdNotFoundError(f'Template "{template_id}" does not exist')
        content = apply_placeholders(template.content, customizations)
        return template, self.write(file_name, content)
