"""
Normalization of the TaskMaster `tasks.json` file.

The CLI has written three layouts over time:

* a bare list of tasks (legacy),
* an object with a top-level ``tasks`` list,
* a map of tag name to ``{"tasks": [...]}`` (multi-tag workspaces).

`parse_shape` resolves the layout once into one of the variants below; every
other function works on the resolved variant instead of re-sniffing the JSON.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from ..domain.models import NormalizedTasks, Subtask, Task, TaskPriority, TaskStatus


LOG = logging.getLogger(__name__)

DEFAULT_TAG = "master"


@dataclass(frozen=True)
class FlatList:
    tasks: List[Any]
    tag: str = DEFAULT_TAG


@dataclass(frozen=True)
class TasksField:
    tasks: List[Any]
    tag: str = DEFAULT_TAG


@dataclass(frozen=True)
class TaggedMap:
    tag: str
    tasks: List[Any]
    # Every tag holding a tasks list, in document order.
    tags: Dict[str, List[Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class Empty:
    tasks: List[Any] = field(default_factory=list)
    tag: str = DEFAULT_TAG


TaskFileShape = Union[FlatList, TasksField, TaggedMap, Empty]


def _tag_tasks(value: Any) -> Optional[List[Any]]:
    if isinstance(value, Mapping) and isinstance(value.get("tasks"), list):
        return value["tasks"]
    return None


def parse_shape(raw: Any) -> TaskFileShape:
    """
    Resolve the file layout. First match wins:

    1. a list is the legacy flat layout;
    2. an object with a ``tasks`` list;
    3. the ``master`` tag, even when its list is empty;
    4. the first tag in document order that holds a ``tasks`` list;
    5. nothing usable, an empty result.
    """
    if isinstance(raw, list):
        return FlatList(tasks=raw)
    if not isinstance(raw, Mapping):
        return Empty()
    if isinstance(raw.get("tasks"), list):
        return TasksField(tasks=raw["tasks"])

    # json.loads keeps insertion order, so "first tag" is the first in the file.
    tags: Dict[str, List[Any]] = {}
    for key, value in raw.items():
        tasks = _tag_tasks(value)
        if tasks is not None:
            tags[str(key)] = tasks

    if DEFAULT_TAG in tags:
        return TaggedMap(tag=DEFAULT_TAG, tasks=tags[DEFAULT_TAG], tags=tags)
    if tags:
        first = next(iter(tags))
        return TaggedMap(tag=first, tasks=tags[first], tags=tags)
    return Empty()


def iter_all_tasks(raw: Any) -> Iterator[Any]:
    """Yield raw task records from every tag, for whole-file metadata."""
    shape = parse_shape(raw)
    if isinstance(shape, TaggedMap):
        for tasks in shape.tags.values():
            yield from tasks
        return
    yield from shape.tasks


def _text(record: Mapping, *keys: str) -> str:
    for key in keys:
        value = record.get(key)
        if value:
            return str(value)
    return ""


def _optional_text(record: Mapping, *keys: str) -> Optional[str]:
    value = _text(record, *keys)
    return value or None


def _list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else []


def _common_fields(record: Mapping) -> Dict[str, Any]:
    return {
        "id": record.get("id"),
        "title": _text(record, "title") or "Untitled Task",
        "description": _text(record, "description"),
        "details": _text(record, "details"),
        "test_strategy": _text(record, "testStrategy", "test_strategy"),
        "status": _text(record, "status") or TaskStatus.PENDING.value,
        "priority": _text(record, "priority") or TaskPriority.MEDIUM.value,
        "dependencies": _list(record.get("dependencies")),
        "created_at": _optional_text(record, "createdAt", "created"),
        "updated_at": _optional_text(record, "updatedAt", "updated"),
    }


def normalize_task(record: Mapping) -> Task:
    subtasks = [
        Subtask(**_common_fields(item))
        for item in _list(record.get("subtasks"))
        if isinstance(item, Mapping)
    ]
    return Task(subtasks=subtasks, **_common_fields(record))


def count_by_status(tasks: List[Task]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for task in tasks:
        counts[task.status] = counts.get(task.status, 0) + 1
    return counts


def normalize(raw: Any) -> NormalizedTasks:
    """
    Turn parsed `tasks.json` content into one canonical task list.

    Never raises for malformed content; anything unusable degrades to an empty
    list under the ``master`` tag.
    """
    shape = parse_shape(raw)
    tasks: List[Task] = []
    for record in shape.tasks:
        if not isinstance(record, Mapping):
            LOG.debug("Skipping non-object task entry in tag %s: %r", shape.tag, record)
            continue
        tasks.append(normalize_task(record))

    return NormalizedTasks(
        tasks=tasks,
        current_tag=shape.tag,
        tasks_by_status=count_by_status(tasks),
    )
