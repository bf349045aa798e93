from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union


TaskId = Union[int, str]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds")


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    DONE = "done"
    DEFERRED = "deferred"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProjectStatus(str, Enum):
    FULLY_CONFIGURED = "fully-configured"
    TASKMASTER_ONLY = "taskmaster-only"
    MCP_ONLY = "mcp-only"
    NOT_CONFIGURED = "not-configured"


@dataclass
class Subtask:
    """
    One task record as written by the TaskMaster CLI, with every field defaulted.

    `status` and `priority` keep the literal string from the file so values the
    CLI adds later survive a round trip through the dashboard.
    """

    id: Optional[TaskId] = None
    title: str = "Untitled Task"
    description: str = ""
    details: str = ""
    test_strategy: str = ""
    status: str = TaskStatus.PENDING.value
    priority: str = TaskPriority.MEDIUM.value
    dependencies: List[TaskId] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "dependencies": list(self.dependencies),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "details": self.details,
            "testStrategy": self.test_strategy,
        }


@dataclass
class Task(Subtask):
    subtasks: List[Subtask] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["subtasks"] = [subtask.to_dict() for subtask in self.subtasks]
        return payload


@dataclass
class NormalizedTasks:
    tasks: List[Task] = field(default_factory=list)
    current_tag: str = "master"
    tasks_by_status: Dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.tasks)

    @property
    def done_count(self) -> int:
        return self.tasks_by_status.get(TaskStatus.DONE.value, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tasks": [task.to_dict() for task in self.tasks],
            "currentTag": self.current_tag,
            "tasksByStatus": dict(self.tasks_by_status),
        }


@dataclass
class TaskMetadata:
    task_count: int = 0
    subtask_count: int = 0
    completed: int = 0
    pending: int = 0
    in_progress: int = 0
    review: int = 0
    completion_percentage: int = 0
    last_modified: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taskCount": self.task_count,
            "subtaskCount": self.subtask_count,
            "completed": self.completed,
            "pending": self.pending,
            "inProgress": self.in_progress,
            "review": self.review,
            "completionPercentage": self.completion_percentage,
            "lastModified": self.last_modified,
        }


@dataclass
class TaskMasterFolderStatus:
    has_taskmaster: bool
    has_essential_files: bool = False
    files: Dict[str, bool] = field(default_factory=dict)
    metadata: Optional[Dict[str, Any]] = None
    path: Optional[str] = None
    reason: Optional[str] = None

    @property
    def present(self) -> bool:
        # A folder without a readable tasks file does not count.
        return self.has_taskmaster and self.has_essential_files

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasTaskmaster": self.has_taskmaster,
            "hasEssentialFiles": self.has_essential_files,
            "files": dict(self.files),
            "metadata": self.metadata,
            "path": self.path,
            "reason": self.reason,
        }


@dataclass
class McpServerStatus:
    has_mcp_server: bool
    is_configured: bool = False
    has_api_keys: bool = False
    has_config: bool = False
    scope: Optional[str] = None
    config: Dict[str, Any] = field(default_factory=dict)
    config_path: Optional[str] = None
    available_servers: List[str] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def configured(self) -> bool:
        return self.has_mcp_server and self.is_configured

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasMCPServer": self.has_mcp_server,
            "isConfigured": self.is_configured,
            "hasApiKeys": self.has_api_keys,
            "hasConfig": self.has_config,
            "scope": self.scope,
            "config": dict(self.config),
            "configPath": self.config_path,
            "availableServers": list(self.available_servers),
            "reason": self.reason,
        }


@dataclass
class InstallationStatus:
    is_installed: bool
    install_path: Optional[str] = None
    version: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isInstalled": self.is_installed,
            "installPath": self.install_path,
            "version": self.version,
            "reason": self.reason,
        }


@dataclass
class ProjectDetection:
    project_name: str
    project_path: str
    status: ProjectStatus
    taskmaster: TaskMasterFolderStatus
    mcp: McpServerStatus
    display_name: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectName": self.project_name,
            "displayName": self.display_name,
            "projectPath": self.project_path,
            "status": self.status.value,
            "taskmaster": self.taskmaster.to_dict(),
            "mcp": self.mcp.to_dict(),
            "timestamp": iso(self.timestamp),
        }


@dataclass
class Project:
    name: str
    path: str
    display_name: str
    source: str = "claude"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "displayName": self.display_name,
            "source": self.source,
        }


@dataclass
class PrdFile:
    name: str
    path: str
    size: int
    modified: datetime
    created: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "size": self.size,
            "modified": iso(self.modified),
            "created": iso(self.created),
        }


@dataclass
class PrdTemplate:
    id: str
    name: str
    description: str
    category: str
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "content": self.content,
        }
