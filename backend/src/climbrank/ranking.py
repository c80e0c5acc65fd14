from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .collation import ja_sort_key
from .domain import AggregateRow, Category, Participant, ScoreRecord, Season, SeasonCategoryInput
from .scoring import normalize_scores, summarize_clears
from .tasks import resolve_assigned_tasks
from .timestamps import to_epoch_ms

logger = logging.getLogger(__name__)

ALL_SEASONS = "all"
NAMELESS = "名無し"
NO_MEMBER_NO = "-"


@dataclass
class _Accumulator:
    participant_id: str
    name: str
    member_no: str
    total_points: int = 0
    clear_count: int = 0
    latest_updated_at: int = 0


def resolve_scope(seasons: Iterable[Season], selected: str | None) -> list[str]:
    """集計対象のシーズンID。"all" なら全シーズン、それ以外は指定の1件。"""

    if selected == ALL_SEASONS:
        return [season.id for season in seasons]
    return [selected] if selected else []


def rank_key(row: _Accumulator | AggregateRow) -> tuple[int, int, tuple[str, str]]:
    return (-row.total_points, -row.clear_count, ja_sort_key(row.name))


def assign_competition_ranks(rows: Sequence[_Accumulator | AggregateRow]) -> list[int]:
    """ソート済みの行に順位を振る。

    (合計点, 完登数) が同じ行は同順位、次の行は先頭からの位置になる(例: 1,1,3)。
    """

    ranks: list[int] = []
    last: tuple[int, int] | None = None
    current_rank = 0

    for index, row in enumerate(rows):
        pair = (row.total_points, row.clear_count)
        if pair != last:
            current_rank = index + 1
            last = pair
        ranks.append(current_rank)

    return ranks


def compute_rankings(
    categories: Sequence[Category],
    participants: Sequence[Participant],
    inputs: Iterable[SeasonCategoryInput],
    scope_season_ids: Iterable[str],
) -> dict[str, list[AggregateRow]]:
    """カテゴリごとの順位表を計算する。

    入力はすべて取得済みのデータで、I/O は行わない。参照切れ(未知の参加者や
    課題)はエラーにせず、代替の表示名や1点扱いで集計を続ける。
    """

    accumulators = _seed(categories, participants)
    participant_by_id = {p.id: p for p in participants}
    scope = set(scope_season_ids)

    for item in inputs:
        if item.season_id not in scope:
            continue
        assigned_tasks = resolve_assigned_tasks(item.season_tasks, item.assignments)
        by_participant = accumulators.setdefault(item.category_id, {})

        for record in item.records:
            row = by_participant.get(record.participant_id)
            if row is None:
                row = _fallback_row(record, participant_by_id.get(record.participant_id))
                by_participant[record.participant_id] = row

            total_points, clear_count = summarize_clears(
                normalize_scores(record.scores, assigned_tasks)
            )
            row.total_points += total_points
            row.clear_count += clear_count
            row.latest_updated_at = max(row.latest_updated_at, to_epoch_ms(record.updated_at))

    return {
        category_id: _rank(by_participant.values())
        for category_id, by_participant in accumulators.items()
    }


def _seed(
    categories: Sequence[Category], participants: Sequence[Participant]
) -> dict[str, dict[str, _Accumulator]]:
    accumulators: dict[str, dict[str, _Accumulator]] = {}
    for category in categories:
        accumulators[category.id] = {
            p.id: _Accumulator(
                participant_id=p.id,
                name=p.name or NAMELESS,
                member_no=p.member_no or NO_MEMBER_NO,
            )
            for p in participants
            if p.category_id == category.id
        }
    return accumulators


def _fallback_row(record: ScoreRecord, participant: Participant | None) -> _Accumulator:
    name = (participant.name if participant else "") or record.participant_name
    if not name:
        name = f"ID:{record.participant_id}"
        logger.debug("no name for participant %s, using placeholder", record.participant_id)
    member_no = (participant.member_no if participant else "") or NO_MEMBER_NO
    return _Accumulator(participant_id=record.participant_id, name=name, member_no=member_no)


def _rank(rows: Iterable[_Accumulator]) -> list[AggregateRow]:
    sorted_rows = sorted(rows, key=rank_key)
    ranks = assign_competition_ranks(sorted_rows)
    return [
        AggregateRow(
            participant_id=row.participant_id,
            name=row.name,
            member_no=row.member_no,
            total_points=row.total_points,
            clear_count=row.clear_count,
            latest_updated_at=row.latest_updated_at,
            rank=rank,
        )
        for row, rank in zip(sorted_rows, ranks)
    ]
