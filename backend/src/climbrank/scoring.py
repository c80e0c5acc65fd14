from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from .domain import ClearedTask, Task
from .tasks import build_task_by_score_key

logger = logging.getLogger(__name__)


def normalize_scores(
    score_map: Mapping[str, bool] | None, assigned_tasks: Iterable[Task]
) -> tuple[ClearedTask, ...]:
    """採点マップを完登した課題の一覧に正規化する。

    キーは課題ID・課題名のどちらでもよい(旧データ互換)。同じ課題を指す
    キーが複数あっても1回だけ数える。どの課題にも解決できないキーは
    キー自体を課題IDとみなし1点として数える。
    """

    if not score_map:
        return ()

    task_by_score_key = build_task_by_score_key(assigned_tasks)
    counted: set[str] = set()
    cleared: list[ClearedTask] = []

    for score_key, is_cleared in score_map.items():
        if not is_cleared:
            continue

        task = task_by_score_key.get(score_key)
        canonical_id = task.id if task is not None else score_key
        if canonical_id in counted:
            continue
        counted.add(canonical_id)

        if task is None:
            logger.debug("unresolved score key %r counted as 1 point", score_key)
            cleared.append(ClearedTask(task_id=score_key, name=score_key, points=1))
        else:
            cleared.append(
                ClearedTask(task_id=task.id, name=task.name, points=task.points, grade=task.grade)
            )

    return tuple(cleared)


def summarize_clears(cleared: Iterable[ClearedTask]) -> tuple[int, int]:
    """(合計点, 完登数)"""

    total_points = 0
    clear_count = 0
    for item in cleared:
        total_points += item.points
        clear_count += 1
    return total_points, clear_count
