from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional

from ..domain.models import ProjectStatus, TaskMetadata, TaskStatus


_STATUS_TABLE: dict[tuple[bool, bool], ProjectStatus] = {
    (True, True): ProjectStatus.FULLY_CONFIGURED,
    (True, False): ProjectStatus.TASKMASTER_ONLY,
    (False, True): ProjectStatus.MCP_ONLY,
    (False, False): ProjectStatus.NOT_CONFIGURED,
}


def reconcile(taskmaster_present: bool, mcp_configured: bool) -> ProjectStatus:
    """
    Combine the two independent checks into one coarse project status.

    `taskmaster_present` means the `.taskmaster` folder exists *and* its tasks
    file is readable. Upstream failures arrive here as `False`.
    """
    return _STATUS_TABLE[(bool(taskmaster_present), bool(mcp_configured))]


def completion_percentage(done: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up so 2/8 -> 25 and 1/8 -> 13, not Python's banker's rounding.
    ratio = Decimal(done) / Decimal(total) * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def summarize_tasks(tasks: Iterable[Mapping], last_modified: Optional[str] = None) -> TaskMetadata:
    """
    Aggregate counts over raw task records (all tags), used by folder detection.
    """
    counts: dict[str, int] = {}
    total = 0
    subtask_total = 0
    for task in tasks:
        if not isinstance(task, Mapping):
            continue
        total += 1
        status = str(task.get("status") or TaskStatus.PENDING.value)
        counts[status] = counts.get(status, 0) + 1
        subtasks = task.get("subtasks")
        if isinstance(subtasks, list):
            subtask_total += sum(1 for item in subtasks if isinstance(item, Mapping))

    done = counts.get(TaskStatus.DONE.value, 0)
    return TaskMetadata(
        task_count=total,
        subtask_count=subtask_total,
        completed=done,
        pending=counts.get(TaskStatus.PENDING.value, 0),
        in_progress=counts.get(TaskStatus.IN_PROGRESS.value, 0),
        review=counts.get(TaskStatus.REVIEW.value, 0),
        completion_percentage=completion_percentage(done, total),
        last_modified=last_modified,
    )
