from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping

from .collation import ja_sort_key
from .domain import AssignedTask, Assignment, Task

_DIGITS = re.compile(r"\d+")


def task_no_from_name(name: str) -> int | None:
    match = _DIGITS.search(name or "")
    return int(match.group(0)) if match else None


def to_task_no(task: Task) -> int | float | None:
    """課題番号。明示値 -> 名前中の最初の数字列 -> None(末尾)。"""

    if task.task_no is not None:
        return task.task_no
    return task_no_from_name(task.name)


def task_sort_key(task: Task) -> tuple[int | float, tuple[str, str]]:
    task_no = to_task_no(task)
    return (math.inf if task_no is None else task_no, ja_sort_key(task.name))


def sort_tasks_by_task_no(tasks: Iterable[Task]) -> list[Task]:
    return sorted(tasks, key=task_sort_key)


def resolve_assigned_tasks(
    season_tasks: Iterable[Task], assignments: Iterable[Assignment]
) -> list[AssignedTask]:
    """カテゴリに割り当てられた有効な課題を課題番号順で返す。

    無効化された割り当て、削除済み課題を指す割り当ては黙って除外する。
    課題番号は 課題の値 -> 割り当ての値 -> 課題名の数字 の順で決まる。
    """

    task_by_id = {task.id: task for task in season_tasks}
    merged: list[AssignedTask] = []
    seen: set[str] = set()

    for assignment in assignments:
        if assignment.enabled is False:
            continue
        task = task_by_id.get(assignment.task_id)
        if task is None or task.id in seen:
            continue
        seen.add(task.id)

        task_no = task.task_no
        if task_no is None:
            task_no = assignment.task_no
        if task_no is None:
            task_no = task_no_from_name(task.name)

        merged.append(AssignedTask(**task.model_dump(exclude={"task_no"}), task_no=task_no))

    return sorted(merged, key=task_sort_key)


def build_task_by_score_key(tasks: Iterable[Task]) -> dict[str, Task]:
    """採点キー(課題ID または旧データの課題名)から課題を引く辞書。"""

    lookup: dict[str, Task] = {}
    for task in tasks:
        if task.id:
            lookup[task.id] = task
        if task.name:
            lookup[task.name] = task
    return lookup


def is_task_cleared(score_map: Mapping[str, bool] | None, task: Task | None) -> bool:
    if not score_map or task is None:
        return False
    if task.id and task.id in score_map:
        return bool(score_map[task.id])
    if task.name and task.name in score_map:
        return bool(score_map[task.name])
    return False
