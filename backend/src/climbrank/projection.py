from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Mapping, Sequence

from .domain import AggregateRow, Category, RankingCsvRow, RankingGroup, Season
from .ranking import ALL_SEASONS

RANKING_CSV_HEADERS = [
    "seasonScope",
    "categoryId",
    "categoryName",
    "rank",
    "participantId",
    "participantName",
    "memberNo",
    "totalPoints",
    "clearCount",
]


def season_scope_label(seasons: Iterable[Season], selected: str) -> str:
    if selected == ALL_SEASONS:
        return ALL_SEASONS
    for season in seasons:
        if season.id == selected:
            return season.name or selected
    return selected


def _ordered_category_ids(
    rankings: Mapping[str, Sequence[AggregateRow]], categories: Sequence[Category]
) -> list[str]:
    ids = [c.id for c in categories]
    known = set(ids)
    ids.extend(cid for cid in rankings if cid not in known)
    return ids


def _matches(row: AggregateRow, needle: str) -> bool:
    return needle in row.name.casefold() or needle in row.member_no.casefold()


def group_rankings(
    rankings: Mapping[str, Sequence[AggregateRow]],
    categories: Sequence[Category],
    query: str | None = None,
    category_id: str | None = None,
) -> list[RankingGroup]:
    """画面表示用にカテゴリ単位でまとめる。query は名前/会員番号の部分一致。"""

    name_by_id = {c.id: c.name or c.id for c in categories}
    needle = (query or "").strip().casefold()
    groups: list[RankingGroup] = []

    for cid in _ordered_category_ids(rankings, categories):
        if category_id and cid != category_id:
            continue
        rows = list(rankings.get(cid, []))
        if needle:
            rows = [row for row in rows if _matches(row, needle)]
        groups.append(
            RankingGroup(category_id=cid, category_name=name_by_id.get(cid, cid), rows=rows)
        )

    return groups


def flatten_rankings(
    rankings: Mapping[str, Sequence[AggregateRow]],
    categories: Sequence[Category],
    season_scope: str,
) -> list[RankingCsvRow]:
    name_by_id = {c.id: c.name or c.id for c in categories}
    flat: list[RankingCsvRow] = []

    for cid in _ordered_category_ids(rankings, categories):
        for row in rankings.get(cid, []):
            flat.append(
                RankingCsvRow(
                    season_scope=season_scope,
                    category_id=cid,
                    category_name=name_by_id.get(cid, cid),
                    rank=row.rank,
                    participant_id=row.participant_id,
                    participant_name=row.name,
                    member_no=row.member_no,
                    total_points=row.total_points,
                    clear_count=row.clear_count,
                )
            )

    return flat


def write_ranking_csv(rows: Iterable[RankingCsvRow]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=RANKING_CSV_HEADERS, lineterminator="\r\n")
    writer.writeheader()
    for row in rows:
        writer.writerow(row.model_dump(by_alias=True))
    return buf.getvalue()
