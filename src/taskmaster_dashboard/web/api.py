from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional

from ..config.settings import DashboardSettings, get_settings
from ..core.reconcile import completion_percentage, reconcile
from ..domain.models import (
    McpServerStatus,
    NormalizedTasks,
    Project,
    ProjectDetection,
    ProjectStatus,
    TaskStatus,
    iso,
    utcnow,
)
from ..notifications.hub import NotificationHub
from ..persistence.store import JsonStore, effective_tasks_enabled
from ..services.cli_runner import UPDATABLE_FIELDS, TaskMasterCli, TaskMasterCliError
from ..services.detection import (
    TaskFileError,
    check_installation,
    detect_taskmaster_folder,
    load_project_tasks,
    taskmaster_dir,
)
from ..services.mcp_detector import detect_taskmaster_mcp_server, get_all_mcp_servers
from ..services.prd import PrdError, PrdNotFoundError, PrdRepository
from ..services.projects import ProjectNotFoundError, ProjectRegistry
from ..services.templates import list_templates


LOG = logging.getLogger(__name__)

NEXT_TASK_STATUSES = {TaskStatus.PENDING.value, TaskStatus.IN_PROGRESS.value}


class ApiError(Exception):
    """
    An HTTP error response: status code plus JSON payload.
    """

    def __init__(self, status: int, error: str, message: str = "", **extra: Any) -> None:
        super().__init__(message or error)
        self.status = status
        self.payload: Dict[str, Any] = {"error": error, "message": message, **extra}


def _now() -> str:
    return iso(utcnow())


def _status_counts(result: NormalizedTasks) -> Dict[str, int]:
    counts = {status.value: 0 for status in TaskStatus}
    counts.update(result.tasks_by_status)
    return counts


class TaskMasterApi:
    """
    Request handlers for the dashboard. Every call recomputes state from disk;
    nothing is cached between requests.
    """

    def __init__(
        self,
        settings: Optional[DashboardSettings] = None,
        *,
        store: Optional[JsonStore] = None,
        registry: Optional[ProjectRegistry] = None,
        cli: Optional[TaskMasterCli] = None,
        hub: Optional[NotificationHub] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store or JsonStore(self.settings.state_dir)
        self.registry = registry or ProjectRegistry(self.store, self.settings.claude_projects_dir)
        self.cli = cli or TaskMasterCli(
            self.settings.cli_command,
            init_command=self.settings.init_command,
            next_command=(self.settings.cli_binary, "next"),
            timeout_seconds=self.settings.cli_timeout_seconds,
        )
        self.hub = hub or NotificationHub()
        self._mcp_lock = Lock()
        self._last_mcp_configured: Optional[bool] = None

    # ------------------------------------------------------------------ Helpers
    def _project(self, project_name: str) -> Project:
        try:
            return self.registry.get(project_name)
        except ProjectNotFoundError as exc:
            raise ApiError(404, "Project not found", str(exc)) from exc

    def _project_path(self, project_name: str) -> Path:
        return Path(self._project(project_name).path)

    def _detect_mcp(self) -> McpServerStatus:
        status = detect_taskmaster_mcp_server(self.settings.claude_config_paths)
        with self._mcp_lock:
            previous = self._last_mcp_configured
            self._last_mcp_configured = status.configured
        if previous is not None and previous != status.configured:
            self.hub.broadcast_mcp_status(status.to_dict())
        return status

    def _detection(self, project: Project, mcp: McpServerStatus) -> ProjectDetection:
        folder = detect_taskmaster_folder(Path(project.path))
        return ProjectDetection(
            project_name=project.name,
            display_name=project.display_name,
            project_path=project.path,
            status=reconcile(folder.present, mcp.configured),
            taskmaster=folder,
            mcp=mcp,
        )

    def _cli_failure(self, error: str, exc: TaskMasterCliError) -> ApiError:
        return ApiError(500, error, str(exc), code=exc.code)

    # ------------------------------------------------------------------ Status
    def installation_status(self) -> Dict[str, Any]:
        installation = check_installation(self.settings.cli_binary)
        mcp = self._detect_mcp()
        return {
            "success": True,
            "installation": installation.to_dict(),
            "mcpServer": mcp.to_dict(),
            "isReady": installation.is_installed and mcp.has_mcp_server,
        }

    def detect(self, project_name: str) -> Dict[str, Any]:
        project = self._project(project_name)
        if not os.access(project.path, os.R_OK) or not Path(project.path).is_dir():
            raise ApiError(
                404,
                "Project path not accessible",
                f"{project.path} is not a readable directory",
                projectName=project_name,
                projectPath=project.path,
            )

        detection = self._detection(project, self._detect_mcp())
        self.hub.broadcast_project_update(project_name, detection.taskmaster.to_dict())
        return detection.to_dict()

    def detect_all(self) -> Dict[str, Any]:
        projects = self.registry.list_projects()
        mcp = self._detect_mcp()

        def _one(project: Project) -> Dict[str, Any]:
            try:
                return self._detection(project, mcp).to_dict()
            except Exception as exc:
                LOG.error("Detection failed for %s: %s", project.name, exc)
                return {
                    "projectName": project.name,
                    "displayName": project.display_name,
                    "status": "error",
                    "error": str(exc),
                }

        with ThreadPoolExecutor(max_workers=8) as pool:
            results: List[Dict[str, Any]] = list(pool.map(_one, projects))

        def _count(status: str) -> int:
            return sum(1 for item in results if item.get("status") == status)

        return {
            "projects": results,
            "summary": {
                "total": len(results),
                "fullyConfigured": _count(ProjectStatus.FULLY_CONFIGURED.value),
                "taskmasterOnly": _count(ProjectStatus.TASKMASTER_ONLY.value),
                "mcpOnly": _count(ProjectStatus.MCP_ONLY.value),
                "notConfigured": _count(ProjectStatus.NOT_CONFIGURED.value),
                "errors": _count("error"),
            },
            "timestamp": _now(),
        }

    # ------------------------------------------------------------------ Tasks
    def _load_tasks(self, project_path: Path) -> Optional[NormalizedTasks]:
        try:
            return load_project_tasks(project_path)
        except (TaskFileError, UnicodeDecodeError) as exc:
            raise ApiError(500, "Failed to parse tasks file", str(exc)) from exc

    def tasks(self, project_name: str) -> Dict[str, Any]:
        project_path = self._project_path(project_name)
        result = self._load_tasks(project_path)
        if result is None:
            return {"projectName": project_name, "tasks": [], "message": "No tasks.json file found"}

        payload = result.to_dict()
        return {
            "projectName": project_name,
            "projectPath": str(project_path),
            "tasks": payload["tasks"],
            "currentTag": result.current_tag,
            "totalTasks": result.total,
            "tasksByStatus": _status_counts(result),
            "completionPercentage": completion_percentage(result.done_count, result.total),
            "timestamp": _now(),
        }

    def next_task(self, project_name: str) -> Dict[str, Any]:
        project_path = self._project_path(project_name)
        try:
            next_task = self.cli.next_task(project_path)
            return {
                "projectName": project_name,
                "projectPath": str(project_path),
                "nextTask": next_task,
                "timestamp": _now(),
            }
        except TaskMasterCliError as exc:
            LOG.warning("task-master next failed, using local fallback: %s", exc)

        result = self._load_tasks(project_path)
        candidate = None
        if result is not None:
            candidate = next((task for task in result.tasks if task.status in NEXT_TASK_STATUSES), None)
        return {
            "projectName": project_name,
            "projectPath": str(project_path),
            "nextTask": candidate.to_dict() if candidate else None,
            "fallback": True,
            "message": "Used fallback method (CLI not available)",
            "timestamp": _now(),
        }

    def init(self, project_name: str) -> Dict[str, Any]:
        project_path = self._project_path(project_name)
        if taskmaster_dir(project_path).exists():
            raise ApiError(400, "TaskMaster already initialized", "TaskMaster is already configured for this project")
        try:
            result = self.cli.init(project_path)
        except TaskMasterCliError as exc:
            raise self._cli_failure("Failed to initialize TaskMaster", exc) from exc

        self.hub.broadcast_project_update(project_name, {"hasTaskmaster": True, "status": "initialized"})
        self.hub.broadcast_update("initialization", {"projectName": project_name})
        return {
            "projectName": project_name,
            "projectPath": str(project_path),
            "message": "TaskMaster initialized successfully",
            "output": result.stdout,
            "timestamp": _now(),
        }

    def add_task(self, project_name: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        prompt = body.get("prompt")
        title = body.get("title")
        description = body.get("description")
        if not prompt and not (title and description):
            raise ApiError(
                400,
                "Missing required parameters",
                'Either "prompt" or both "title" and "description" are required',
            )
        project_path = self._project_path(project_name)
        try:
            result = self.cli.add_task(
                project_path,
                prompt=prompt,
                title=title,
                description=description,
                priority=body.get("priority") or "medium",
                dependencies=body.get("dependencies"),
            )
        except TaskMasterCliError as exc:
            raise self._cli_failure("Failed to add task", exc) from exc

        self.hub.broadcast_tasks_update(project_name)
        return {
            "projectName": project_name,
            "projectPath": str(project_path),
            "message": "Task added successfully",
            "output": result.stdout,
            "timestamp": _now(),
        }

    def update_task(self, project_name: str, task_id: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        status = body.get("status")
        fields = {name: body.get(name) for name in UPDATABLE_FIELDS if body.get(name)}
        if not status and not fields:
            raise ApiError(400, "Missing required parameters", "Provide a status or at least one field to update")
        if status and status not in {item.value for item in TaskStatus}:
            LOG.info("Passing non-standard status %r through to the CLI", status)

        project_path = self._project_path(project_name)
        outputs: List[str] = []
        try:
            if fields:
                outputs.append(self.cli.update_task(project_path, task_id, **fields).stdout)
            if status:
                outputs.append(self.cli.set_status(project_path, task_id, status).stdout)
        except TaskMasterCliError as exc:
            if not outputs:
                error = "Failed to update task" if fields else "Failed to update task status"
                raise self._cli_failure(error, exc) from exc
            # The field update already reached tasks.json; only the status change failed.
            raise ApiError(
                500,
                "Failed to update task status",
                str(exc),
                code=exc.code,
                partial=True,
                output="".join(outputs),
            ) from exc
        finally:
            if outputs:
                self.hub.broadcast_tasks_update(project_name)

        return {
            "projectName": project_name,
            "projectPath": str(project_path),
            "taskId": task_id,
            "message": "Task updated successfully" if fields else "Task status updated successfully",
            "output": "".join(outputs),
            "timestamp": _now(),
        }

    def parse_prd(self, project_name: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        file_name = body.get("fileName") or "prd.txt"
        append = bool(body.get("append", False))
        num_tasks = body.get("numTasks")
        if num_tasks is not None:
            try:
                num_tasks = int(num_tasks)
            except (TypeError, ValueError) as exc:
                raise ApiError(400, "Invalid parameter", "numTasks must be an integer") from exc

        project_path = self._project_path(project_name)
        repo = PrdRepository(project_path)
        try:
            prd_path = repo.path_for(file_name)
        except PrdError as exc:
            raise ApiError(400, "Invalid filename", str(exc)) from exc
        if not prd_path.is_file():
            raise ApiError(404, "PRD file not found", f'File "{file_name}" does not exist in .taskmaster/docs/')

        try:
            result = self.cli.parse_prd(project_path, prd_path, num_tasks=num_tasks, append=append)
        except TaskMasterCliError as exc:
            raise self._cli_failure("Failed to parse PRD", exc) from exc

        self.hub.broadcast_tasks_update(project_name)
        return {
            "projectName": project_name,
            "projectPath": str(project_path),
            "prdFile": file_name,
            "message": "PRD parsed and tasks generated successfully",
            "output": result.stdout,
            "timestamp": _now(),
        }

    # ------------------------------------------------------------------ PRDs
    def list_prds(self, project_name: str) -> Dict[str, Any]:
        project_path = self._project_path(project_name)
        repo = PrdRepository(project_path)
        if not repo.docs_dir.is_dir():
            return {"projectName": project_name, "prdFiles": [], "message": "No .taskmaster/docs directory found"}
        return {
            "projectName": project_name,
            "projectPath": str(project_path),
            "prdFiles": [item.to_dict() for item in repo.list()],
            "timestamp": _now(),
        }

    def save_prd(self, project_name: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        file_name = body.get("fileName")
        content = body.get("content")
        if not file_name or not content:
            raise ApiError(400, "Missing required fields", "fileName and content are required")
        project_path = self._project_path(project_name)
        try:
            saved = PrdRepository(project_path).write(str(file_name), str(content))
        except PrdError as exc:
            raise ApiError(400, "Invalid filename", str(exc)) from exc
        described = saved.to_dict()
        return {
            "projectName": project_name,
            "projectPath": str(project_path),
            "fileName": saved.name,
            "filePath": saved.path,
            "size": saved.size,
            "created": described["created"],
            "modified": described["modified"],
            "message": "PRD file saved successfully",
            "timestamp": _now(),
        }

    def read_prd(self, project_name: str, file_name: str) -> Dict[str, Any]:
        project_path = self._project_path(project_name)
        try:
            info, content = PrdRepository(project_path).read(file_name)
        except PrdError as exc:
            raise ApiError(400, "Invalid filename", str(exc)) from exc
        except PrdNotFoundError as exc:
            raise ApiError(404, "PRD file not found", str(exc)) from exc
        described = info.to_dict()
        return {
            "projectName": project_name,
            "projectPath": str(project_path),
            "fileName": info.name,
            "filePath": info.path,
            "content": content,
            "size": info.size,
            "created": described["created"],
            "modified": described["modified"],
            "timestamp": _now(),
        }

    def delete_prd(self, project_name: str, file_name: str) -> Dict[str, Any]:
        project_path = self._project_path(project_name)
        try:
            PrdRepository(project_path).delete(file_name)
        except PrdError as exc:
            raise ApiError(400, "Invalid filename", str(exc)) from exc
        except PrdNotFoundError as exc:
            raise ApiError(404, "PRD file not found", str(exc)) from exc
        return {
            "projectName": project_name,
            "projectPath": str(project_path),
            "fileName": file_name,
            "message": "PRD file deleted successfully",
            "timestamp": _now(),
        }

    def prd_templates(self) -> Dict[str, Any]:
        return {"templates": [item.to_dict() for item in list_templates()], "timestamp": _now()}

    def apply_template(self, project_name: str, body: Mapping[str, Any]) -> Dict[str, Any]:
        template_id = body.get("templateId")
        if not template_id:
            raise ApiError(400, "Missing required parameter", "templateId is required")
        file_name = body.get("fileName") or "prd.txt"
        customizations = body.get("customizations") or {}
        if not isinstance(customizations, Mapping):
            raise ApiError(400, "Invalid parameter", "customizations must be an object")

        project_path = self._project_path(project_name)
        try:
            template, saved = PrdRepository(project_path).apply_template(str(template_id), str(file_name), customizations)
        except PrdNotFoundError as exc:
            raise ApiError(404, "Template not found", str(exc)) from exc
        except PrdError as exc:
            raise ApiError(400, "Invalid filename", str(exc)) from exc

        return {
            "projectName": project_name,
            "projectPath": str(project_path),
            "templateId": template.id,
            "templateName": template.name,
            "fileName": saved.name,
            "filePath": saved.path,
            "message": "PRD template applied successfully",
            "timestamp": _now(),
        }

    # ------------------------------------------------------------------ MCP / misc
    def mcp_server(self) -> Dict[str, Any]:
        return self._detect_mcp().to_dict()

    def all_mcp_servers(self) -> Dict[str, Any]:
        return get_all_mcp_servers(self.settings.claude_config_paths)

    def projects(self) -> Dict[str, Any]:
        return {"projects": [item.to_dict() for item in self.registry.list_projects()], "timestamp": _now()}

    def tasks_settings(self) -> Dict[str, Any]:
        installed = check_installation(self.settings.cli_binary).is_installed
        return {
            "tasksEnabled": effective_tasks_enabled(self.store, installed),
            "explicit": self.store.get_tasks_enabled() is not None,
            "isTaskMasterInstalled": installed,
        }

    def set_tasks_settings(self, body: Mapping[str, Any]) -> Dict[str, Any]:
        enabled = body.get("tasksEnabled")
        if not isinstance(enabled, bool):
            raise ApiError(400, "Invalid parameter", "tasksEnabled must be a boolean")
        self.store.set_tasks_enabled(enabled)
        return self.tasks_settings()
