"""Flat task list -> sorted parent/child tree.

Works on anything shaped like a ``ProjectTask`` (ORM rows, schemas or
plain objects) and never raises: malformed input is logged and yields an
empty tree.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from app.services.common import parse_date

logger = logging.getLogger(__name__)


@dataclass
class TaskNode:
    task: Any
    children: list["TaskNode"] = field(default_factory=list)


def _as_int(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def sibling_sort_key(task) -> tuple:
    """Sort key that orders siblings.

    Tasks with a days-from-anchor value come first (by that value), then
    tasks with only a due date (by date), then undated tasks alphabetically.
    Stored sort position breaks ties between dated tasks; title and id
    make the order total.
    """
    days = _as_int(getattr(task, "days_from_anchor", None))
    due: date | None = parse_date(getattr(task, "due_date", None))
    sort_order = _as_int(getattr(task, "sort_order", None)) or 0
    title = (getattr(task, "title", None) or "").casefold()
    tie = (title, str(getattr(task, "id", "")))
    if days is not None:
        return (0, days, sort_order, *tie)
    if due is not None:
        return (1, due.toordinal(), sort_order, *tie)
    return (2, 0, 0, *tie)


def _sort(nodes: list[TaskNode]) -> list[TaskNode]:
    stack = [nodes]
    while stack:
        level = stack.pop()
        level.sort(key=lambda node: sibling_sort_key(node.task))
        stack.extend(node.children for node in level if node.children)
    return nodes


def _build(tasks: Iterable) -> list[TaskNode]:
    nodes = [TaskNode(task) for task in tasks if task is not None]
    by_id: dict[Any, TaskNode] = {}
    for node in nodes:
        task_id = getattr(node.task, "id", None)
        if task_id is not None:
            by_id.setdefault(task_id, node)

    parent_of: dict[int, TaskNode | None] = {}
    for node in nodes:
        parent_id = getattr(node.task, "parent_task_id", None)
        parent = by_id.get(parent_id) if parent_id is not None else None
        if parent is None or parent is node:
            parent_of[id(node)] = None
            continue
        # Parents outside the child's milestone are out of scope.
        if getattr(parent.task, "milestone_id", None) != getattr(node.task, "milestone_id", None):
            parent_of[id(node)] = None
            continue
        parent_of[id(node)] = parent

    # Break parent cycles by promoting the first node found on each. A node
    # that only leads into a cycle keeps its parent.
    for node in nodes:
        seen = {id(node)}
        current = parent_of.get(id(node))
        while current is not None:
            if current is node:
                parent_of[id(node)] = None
                break
            if id(current) in seen:
                break
            seen.add(id(current))
            current = parent_of.get(id(current))

    roots: list[TaskNode] = []
    for node in nodes:
        parent = parent_of[id(node)]
        if parent is None:
            roots.append(node)
        else:
            parent.children.append(node)
    return _sort(roots)


def build_task_tree(tasks: Iterable | None) -> list[TaskNode]:
    if tasks is None:
        return []
    try:
        return _build(tasks)
    except Exception:
        logger.exception("task_tree_build_failed")
        return []


def build_milestone_trees(milestones: Iterable, tasks: Iterable) -> list[tuple[Any, list[TaskNode]]]:
    """Group tasks by milestone and build one tree per group.

    Milestones keep their sort order; tasks without a (known) milestone
    form a trailing group keyed by ``None``.
    """
    try:
        ordered = sorted(
            milestones,
            key=lambda m: (_as_int(getattr(m, "sort_order", None)) or 0, str(getattr(m, "title", ""))),
        )
        buckets: dict[Any, list] = {getattr(m, "id", None): [] for m in ordered}
        loose: list = []
        for task in tasks:
            if task is None:
                continue
            bucket = buckets.get(getattr(task, "milestone_id", None))
            if bucket is None:
                loose.append(task)
            else:
                bucket.append(task)
    except Exception:
        logger.exception("milestone_tree_build_failed")
        return []

    groups = [(milestone, build_task_tree(buckets[getattr(milestone, "id", None)])) for milestone in ordered]
    if loose:
        groups.append((None, build_task_tree(loose)))
    return groups
