from __future__ import annotations

from collections.abc import Iterable, Sequence

from .collation import ja_sort_key
from .domain import (
    Category,
    CategoryClearSummary,
    Participant,
    ParticipantDetail,
    ScoreRecord,
    ScoreSheet,
    ScoreSheetTask,
    Season,
    SeasonCategoryInput,
    SeasonClearSummary,
)
from .ranking import NAMELESS, NO_MEMBER_NO
from .scoring import normalize_scores, summarize_clears
from .tasks import is_task_cleared, resolve_assigned_tasks
from .timestamps import to_datetime


def build_participant_detail(
    participant: Participant,
    seasons: Sequence[Season],
    categories: Sequence[Category],
    inputs: Iterable[SeasonCategoryInput],
    scope_season_ids: Iterable[str],
    season_scope: str,
) -> ParticipantDetail:
    """参加者1人について、シーズン・カテゴリごとの完登課題と得点をまとめる。"""

    scope = set(scope_season_ids)
    by_pair = {(item.season_id, item.category_id): item for item in inputs}
    name_by_id = {c.id: c.name or c.id for c in categories}
    target_category_ids = (
        [participant.category_id] if participant.category_id else [c.id for c in categories]
    )

    season_rows: list[SeasonClearSummary] = []
    for season in seasons:
        if season.id not in scope:
            continue

        summaries: list[CategoryClearSummary] = []
        for category_id in target_category_ids:
            item = by_pair.get((season.id, category_id))
            if item is None:
                continue
            record = next((r for r in item.records if r.participant_id == participant.id), None)
            if record is None:
                continue

            assigned_tasks = resolve_assigned_tasks(item.season_tasks, item.assignments)
            cleared = sorted(
                normalize_scores(record.scores, assigned_tasks),
                key=lambda t: ja_sort_key(t.name),
            )
            total_points, clear_count = summarize_clears(cleared)
            summaries.append(
                CategoryClearSummary(
                    category_id=category_id,
                    category_name=name_by_id.get(category_id, category_id),
                    total_points=total_points,
                    clear_count=clear_count,
                    updated_at=to_datetime(record.updated_at),
                    cleared_tasks=cleared,
                )
            )

        season_rows.append(
            SeasonClearSummary(
                season_id=season.id,
                season_name=season.name or season.id,
                categories=summaries,
                total_points=sum(s.total_points for s in summaries),
                total_clears=sum(s.clear_count for s in summaries),
            )
        )

    return ParticipantDetail(
        participant_id=participant.id,
        name=participant.name or NAMELESS,
        member_no=participant.member_no or NO_MEMBER_NO,
        category_id=participant.category_id,
        season_scope=season_scope,
        seasons=season_rows,
        total_points=sum(s.total_points for s in season_rows),
        total_clears=sum(s.total_clears for s in season_rows),
    )


def build_score_sheet(
    participant: Participant,
    item: SeasonCategoryInput,
    record: ScoreRecord | None = None,
) -> ScoreSheet:
    """1つの (シーズン, カテゴリ) について参加者の採点シートを作る。

    記録が無ければ全課題が未完登のシートになる。合計は順位表と同じ規則
    (課題名で保存された旧データの読み替え、不明キーは1点)で数える。
    """

    if record is None:
        record = next((r for r in item.records if r.participant_id == participant.id), None)
    scores = record.scores if record is not None else {}
    saved_name = record.participant_name if record is not None else None

    assigned_tasks = resolve_assigned_tasks(item.season_tasks, item.assignments)
    total_points, clear_count = summarize_clears(normalize_scores(scores, assigned_tasks))

    return ScoreSheet(
        season_id=item.season_id,
        category_id=item.category_id,
        participant_id=participant.id,
        participant_name=saved_name or participant.name or NAMELESS,
        updated_at=to_datetime(record.updated_at) if record is not None else None,
        tasks=[
            ScoreSheetTask(
                task_id=task.id,
                name=task.name,
                task_no=task.task_no,
                points=task.points,
                grade=task.grade,
                is_bonus=task.is_bonus,
                cleared=is_task_cleared(scores, task),
            )
            for task in assigned_tasks
        ],
        total_points=total_points,
        clear_count=clear_count,
    )
