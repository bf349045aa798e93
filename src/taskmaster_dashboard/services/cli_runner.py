from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..domain.models import TaskId


LOG = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description", "priority", "details")


class TaskMasterCliError(RuntimeError):
    """
    Raised when the TaskMaster CLI exits non-zero, times out, or cannot be started.
    """

    def __init__(self, message: str, *, code: Optional[int] = None, output: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.output = output


@dataclass
class CliResult:
    args: List[str]
    returncode: int
    stdout: str
    stderr: str


class TaskMasterCli:
    """
    Adapter around the external `task-master` command.

    The dashboard never edits `tasks.json` itself; every mutation goes through
    one of these methods so the CLI stays the only writer.
    """

    def __init__(
        self,
        command: Sequence[str] = ("npx", "task-master-ai"),
        *,
        init_command: Sequence[str] = ("npx", "task-master", "init"),
        next_command: Sequence[str] = ("task-master", "next"),
        timeout_seconds: int = 300,
    ) -> None:
        if not command:
            raise ValueError("TaskMaster command must not be empty.")
        self.command = list(command)
        self.init_command = list(init_command)
        self.next_command = list(next_command)
        self.timeout_seconds = timeout_seconds

    def _run(self, args: Sequence[str], cwd: Path, *, stdin: str = "") -> CliResult:
        argv = list(args)
        LOG.info("Running %s in %s", " ".join(argv), cwd)
        try:
            completed = subprocess.run(
                argv,
                cwd=str(cwd),
                input=stdin,
                text=True,
                capture_output=True,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired as exc:
            raise TaskMasterCliError(f"{argv[0]} timed out after {self.timeout_seconds}s") from exc
        except OSError as exc:
            raise TaskMasterCliError(f"Failed to start {argv[0]}: {exc}") from exc

        stdout = completed.stdout or ""
        stderr = completed.stderr or ""
        if completed.returncode != 0:
            LOG.error("TaskMaster command failed (%s): %s", completed.returncode, stderr.strip())
            raise TaskMasterCliError(
                stderr.strip() or stdout.strip() or f"{argv[0]} exited with code {completed.returncode}",
                code=completed.returncode,
                output=stdout,
            )
        return CliResult(args=argv, returncode=completed.returncode, stdout=stdout, stderr=stderr)

    # ------------------------------------------------------------------ Commands
    def init(self, project_path: Path) -> CliResult:
        # Answer the interactive setup prompts.
        return self._run(self.init_command, project_path, stdin="yes\n")

    def add_task(
        self,
        project_path: Path,
        *,
        prompt: Optional[str] = None,
        title: Optional[str] = None,
        description: Optional[str] = None,
        priority: Optional[str] = "medium",
        dependencies: Optional[str] = None,
    ) -> CliResult:
        if not prompt and not (title and description):
            raise ValueError('Either "prompt" or both "title" and "description" are required')

        args = [*self.command, "add-task"]
        if prompt:
            args += ["--prompt", prompt, "--research"]
        else:
            args += ["--prompt", f'Create a task titled "{title}" with description: {description}']
        if priority:
            args += ["--priority", priority]
        if dependencies:
            args += ["--dependencies", str(dependencies)]
        return self._run(args, project_path)

    def set_status(self, project_path: Path, task_id: TaskId, status: str) -> CliResult:
        return self._run([*self.command, "set-status", f"--id={task_id}", f"--status={status}"], project_path)

    def update_task(self, project_path: Path, task_id: TaskId, **fields: Any) -> CliResult:
        prompt = build_update_prompt(fields)
        if not prompt:
            raise ValueError("No task fields to update")
        return self._run([*self.command, "update-task", f"--id={task_id}", f"--prompt={prompt}"], project_path)

    def parse_prd(
        self,
        project_path: Path,
        prd_path: Path,
        *,
        num_tasks: Optional[int] = None,
        append: bool = False,
    ) -> CliResult:
        args = [*self.command, "parse-prd", str(prd_path)]
        if num_tasks:
            args += ["--num-tasks", str(num_tasks)]
        if append:
            args.append("--append")
        args.append("--research")
        return self._run(args, project_path)

    def next_task(self, project_path: Path) -> Optional[Dict[str, Any]]:
        result = self._run(self.next_command, project_path)
        text = result.stdout.strip()
        if not text:
            return None
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            return {"message": text}
        return parsed if isinstance(parsed, dict) else {"message": text, "data": parsed}


def build_update_prompt(fields: Dict[str, Any]) -> str:
    updates = [f'{name}: "{fields[name]}"' for name in UPDATABLE_FIELDS if fields.get(name)]
    if not updates:
        return ""
    return f"Update task with the following changes: {', '.join(updates)}"
