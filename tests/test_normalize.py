from __future__ import annotations

import json

from taskmaster_dashboard.core.normalize import (
    Empty,
    FlatList,
    TaggedMap,
    TasksField,
    iter_all_tasks,
    normalize,
    parse_shape,
)
from taskmaster_dashboard.core.reconcile import completion_percentage


def test_empty_list_normalizes_to_empty_master() -> None:
    result = normalize([])

    assert result.tasks == []
    assert result.current_tag == "master"
    assert result.tasks_by_status == {}


def test_tasks_field_applies_defaults() -> None:
    result = normalize({"tasks": [{"id": 1, "title": "A"}]})

    assert result.current_tag == "master"
    assert len(result.tasks) == 1
    task = result.tasks[0]
    assert task.id == 1
    assert task.title == "A"
    assert task.status == "pending"
    assert task.priority == "medium"
    assert task.dependencies == []
    assert task.subtasks == []
    assert task.description == ""
    assert result.tasks_by_status == {"pending": 1}


def test_missing_title_defaults_to_untitled() -> None:
    result = normalize([{"id": 7}])

    assert result.tasks[0].title == "Untitled Task"


def test_master_tag_wins_even_when_empty() -> None:
    result = normalize({"featureX": {"tasks": [{"id": 2}]}, "master": {"tasks": []}})

    assert result.current_tag == "master"
    assert result.tasks == []


def test_first_tag_used_without_master() -> None:
    result = normalize({"onlyTag": {"tasks": [{"id": 5, "status": "done"}]}})

    assert result.current_tag == "onlyTag"
    assert completion_percentage(result.done_count, result.total) == 100


def test_first_tag_follows_document_order() -> None:
    raw = json.loads('{"zeta": {"tasks": [{"id": 1}]}, "alpha": {"tasks": [{"id": 2}, {"id": 3}]}}')

    result = normalize(raw)

    assert result.current_tag == "zeta"
    assert [task.id for task in result.tasks] == [1]


def test_unusable_input_degrades_to_empty() -> None:
    for raw in (None, 42, "text", {"meta": {"version": 1}}, {"tasks": "nope"}):
        result = normalize(raw)
        assert result.tasks == []
        assert result.current_tag == "master"


def test_parse_shape_variants() -> None:
    assert isinstance(parse_shape([]), FlatList)
    assert isinstance(parse_shape({"tasks": []}), TasksField)
    assert isinstance(parse_shape({"master": {"tasks": []}}), TaggedMap)
    assert isinstance(parse_shape({}), Empty)


def test_unknown_status_is_kept_and_counted() -> None:
    result = normalize([{"id": 1, "status": "blocked"}, {"id": 2, "status": "done"}, {"id": 3, "status": "blocked"}])

    assert result.tasks[0].status == "blocked"
    assert result.tasks_by_status == {"blocked": 2, "done": 1}


def test_subtasks_are_normalized() -> None:
    result = normalize(
        [
            {
                "id": 1,
                "title": "Parent",
                "subtasks": [{"id": "1.1", "title": "Child", "status": "done"}, {"id": "1.2"}, "junk"],
            }
        ]
    )

    subtasks = result.tasks[0].subtasks
    assert [item.id for item in subtasks] == ["1.1", "1.2"]
    assert subtasks[0].status == "done"
    assert subtasks[1].title == "Untitled Task"
    assert subtasks[1].status == "pending"


def test_non_object_entries_are_skipped() -> None:
    result = normalize([{"id": 1}, None, "x", 3])

    assert [task.id for task in result.tasks] == [1]


def test_to_dict_uses_camel_case_fields() -> None:
    payload = normalize([{"id": 1, "testStrategy": "unit", "createdAt": "2024-01-01"}]).to_dict()

    task = payload["tasks"][0]
    assert payload["currentTag"] == "master"
    assert task["testStrategy"] == "unit"
    assert task["createdAt"] == "2024-01-01"
    assert task["updatedAt"] is None


def test_normalize_is_idempotent() -> None:
    raw = {"tasks": [{"id": 1, "title": "A", "subtasks": [{"id": 1}]}, {"id": 2, "status": "done"}]}

    first = normalize(raw)
    second = normalize(first.to_dict())

    assert second.to_dict() == first.to_dict()


def test_iter_all_tasks_spans_every_tag() -> None:
    raw = {"master": {"tasks": [{"id": 1}]}, "feature": {"tasks": [{"id": 2}, {"id": 3}]}}

    assert [task["id"] for task in iter_all_tasks(raw)] == [1, 2, 3]
