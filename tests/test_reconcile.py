from __future__ import annotations

import pytest

from taskmaster_dashboard.core.reconcile import completion_percentage, reconcile, summarize_tasks
from taskmaster_dashboard.domain.models import ProjectStatus


@pytest.mark.parametrize(
    ("taskmaster_present", "mcp_configured", "expected"),
    [
        (True, True, ProjectStatus.FULLY_CONFIGURED),
        (True, False, ProjectStatus.TASKMASTER_ONLY),
        (False, True, ProjectStatus.MCP_ONLY),
        (False, False, ProjectStatus.NOT_CONFIGURED),
    ],
)
def test_reconcile_truth_table(taskmaster_present: bool, mcp_configured: bool, expected: ProjectStatus) -> None:
    assert reconcile(taskmaster_present, mcp_configured) is expected


def test_reconcile_values_match_wire_names() -> None:
    assert reconcile(True, True).value == "fully-configured"
    assert reconcile(False, False).value == "not-configured"


def test_completion_percentage_with_no_tasks_is_zero() -> None:
    assert completion_percentage(0, 0) == 0
    assert completion_percentage(3, 0) == 0


def test_completion_percentage_rounds_half_up() -> None:
    assert completion_percentage(1, 8) == 13
    assert completion_percentage(1, 3) == 33
    assert completion_percentage(2, 3) == 67
    assert completion_percentage(1, 1) == 100


def test_summarize_counts_statuses_and_subtasks() -> None:
    tasks = [
        {"id": 1, "status": "done", "subtasks": [{"id": 1}, {"id": 2}]},
        {"id": 2, "status": "in-progress"},
        {"id": 3, "status": "review"},
        {"id": 4},
        "not-a-task",
    ]

    summary = summarize_tasks(tasks, last_modified="2024-01-01T00:00:00+00:00")

    assert summary.task_count == 4
    assert summary.subtask_count == 2
    assert summary.completed == 1
    assert summary.in_progress == 1
    assert summary.review == 1
    assert summary.pending == 1
    assert summary.completion_percentage == 25
    assert summary.to_dict()["lastModified"] == "2024-01-01T00:00:00+00:00"


def test_summarize_empty_list() -> None:
    summary = summarize_tasks([])

    assert summary.task_count == 0
    assert summary.completion_percentage == 0


def test_reconcile_is_repeatable() -> None:
    for taskmaster_present in (True, False):
        for mcp_configured in (True, False):
            first = reconcile(taskmaster_present, mcp_configured)
            assert reconcile(taskmaster_present, mcp_configured) is first
