from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import timezone, tzinfo

from .detail import build_participant_detail, build_score_sheet
from .domain import (
    AggregateRow,
    Category,
    Event,
    Participant,
    ParticipantDetail,
    RankingCsvRow,
    RankingGroup,
    ScoreRecord,
    ScoreSheet,
    Season,
    SeasonCategoryInput,
    SeasonView,
)
from .errors import AggregationError, NotFoundError
from .projection import flatten_rankings, group_rankings, season_scope_label, write_ranking_csv
from .ranking import ALL_SEASONS, compute_rankings, resolve_scope
from .seasons import season_views
from .store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankingSnapshot:
    event: Event
    seasons: list[Season]
    categories: list[Category]
    season_scope: str
    rankings: dict[str, list[AggregateRow]]


class RankingService:
    """Store からの取得(並行)と純粋な集計処理をつなぐ。

    取得はシーズン×カテゴリごとに独立しているので一斉に投げて待ち合わせる。
    1件でも失敗したら AggregationError とし、部分的な順位表は返さない。
    """

    def __init__(self, store: Store, tz: tzinfo | None = None) -> None:
        self.store = store
        self.tz = tz or timezone.utc

    async def seasons(self, event_id: str) -> list[SeasonView]:
        await self._require_event(event_id)
        seasons = await asyncio.to_thread(self.store.list_seasons, event_id)
        return season_views(seasons, tz=self.tz)

    async def rankings(self, event_id: str, season: str = ALL_SEASONS) -> RankingSnapshot:
        event, seasons, categories, participants = await self._load_directory(event_id)
        _require_season(seasons, season)
        scope = resolve_scope(seasons, season)
        inputs = await self._fetch_inputs(event_id, scope, [c.id for c in categories])
        rankings = compute_rankings(categories, participants, inputs, scope)

        logger.info(
            "computed rankings event=%s scope=%s seasons=%d categories=%d rows=%d",
            event_id,
            season,
            len(scope),
            len(rankings),
            sum(len(rows) for rows in rankings.values()),
        )
        return RankingSnapshot(
            event=event,
            seasons=seasons,
            categories=categories,
            season_scope=season_scope_label(seasons, season),
            rankings=rankings,
        )

    async def grouped(
        self,
        event_id: str,
        season: str = ALL_SEASONS,
        query: str | None = None,
        category_id: str | None = None,
    ) -> list[RankingGroup]:
        snapshot = await self.rankings(event_id, season)
        return group_rankings(snapshot.rankings, snapshot.categories, query, category_id)

    async def flat_rows(self, event_id: str, season: str = ALL_SEASONS) -> list[RankingCsvRow]:
        snapshot = await self.rankings(event_id, season)
        return flatten_rankings(snapshot.rankings, snapshot.categories, snapshot.season_scope)

    async def csv(self, event_id: str, season: str = ALL_SEASONS) -> str:
        return write_ranking_csv(await self.flat_rows(event_id, season))

    async def participant_detail(
        self, event_id: str, participant_id: str, season: str = ALL_SEASONS
    ) -> ParticipantDetail:
        _event, seasons, categories, participants = await self._load_directory(event_id)
        participant = _find_participant(participants, participant_id)
        _require_season(seasons, season)
        scope = resolve_scope(seasons, season)
        category_ids = (
            [participant.category_id] if participant.category_id else [c.id for c in categories]
        )
        inputs = await self._fetch_inputs(event_id, scope, category_ids)
        return build_participant_detail(
            participant,
            seasons,
            categories,
            inputs,
            scope,
            season_scope_label(seasons, season),
        )

    async def score_sheet(
        self, event_id: str, season_id: str, category_id: str, participant_id: str
    ) -> ScoreSheet:
        _event, seasons, categories, participants = await self._load_directory(event_id)
        # 採点は個別シーズン単位。"all" は受け付けない
        if not any(s.id == season_id for s in seasons):
            raise NotFoundError("season", season_id)
        if not any(c.id == category_id for c in categories):
            raise NotFoundError("category", category_id)
        participant = _find_participant(participants, participant_id)
        [item] = await self._fetch_inputs(event_id, [season_id], [category_id])
        return build_score_sheet(participant, item)

    async def put_scores(
        self,
        event_id: str,
        season_id: str,
        category_id: str,
        participant_id: str,
        scores: dict[str, bool],
        participant_name: str | None = None,
    ) -> ScoreRecord:
        if await asyncio.to_thread(self.store.get_event, event_id) is None:
            raise NotFoundError("event", event_id)
        seasons, categories, participants = await asyncio.gather(
            asyncio.to_thread(self.store.list_seasons, event_id),
            asyncio.to_thread(self.store.list_categories, event_id),
            asyncio.to_thread(self.store.list_participants, event_id),
        )
        _require_season(seasons, season_id)
        if not any(c.id == category_id for c in categories):
            raise NotFoundError("category", category_id)
        participant = _find_participant(participants, participant_id)

        record = await asyncio.to_thread(
            self.store.put_scores,
            event_id,
            season_id,
            category_id,
            participant_id,
            scores,
            participant_name or participant.name or None,
        )
        logger.info(
            "saved scores event=%s season=%s category=%s participant=%s clears=%d",
            event_id,
            season_id,
            category_id,
            participant_id,
            sum(1 for v in scores.values() if v),
        )
        return record

    async def _require_event(self, event_id: str) -> Event:
        try:
            event = await asyncio.to_thread(self.store.get_event, event_id)
        except Exception as exc:
            logger.exception("failed to load event %s", event_id)
            raise AggregationError("ranking computation failed") from exc
        if event is None:
            raise NotFoundError("event", event_id)
        return event

    async def _load_directory(
        self, event_id: str
    ) -> tuple[Event, list[Season], list[Category], list[Participant]]:
        event = await self._require_event(event_id)
        try:
            seasons, categories, participants = await asyncio.gather(
                asyncio.to_thread(self.store.list_seasons, event_id),
                asyncio.to_thread(self.store.list_categories, event_id),
                asyncio.to_thread(self.store.list_participants, event_id),
            )
        except Exception as exc:
            logger.exception("failed to load directory for event %s", event_id)
            raise AggregationError("ranking computation failed") from exc
        return event, seasons, categories, participants

    async def _fetch_inputs(
        self, event_id: str, season_ids: Sequence[str], category_ids: Sequence[str]
    ) -> list[SeasonCategoryInput]:
        try:
            task_lists = await asyncio.gather(
                *(
                    asyncio.to_thread(self.store.fetch_season_tasks, event_id, season_id)
                    for season_id in season_ids
                )
            )
            tasks_by_season = dict(zip(season_ids, task_lists))

            async def fetch_pair(season_id: str, category_id: str) -> SeasonCategoryInput:
                assignments, records = await asyncio.gather(
                    asyncio.to_thread(
                        self.store.fetch_category_assignments, event_id, season_id, category_id
                    ),
                    asyncio.to_thread(
                        self.store.fetch_score_records, event_id, season_id, category_id
                    ),
                )
                return SeasonCategoryInput(
                    season_id=season_id,
                    category_id=category_id,
                    season_tasks=tasks_by_season[season_id],
                    assignments=assignments,
                    records=records,
                )

            return list(
                await asyncio.gather(
                    *(
                        fetch_pair(season_id, category_id)
                        for season_id in season_ids
                        for category_id in category_ids
                    )
                )
            )
        except Exception as exc:
            logger.exception("fetch failed while aggregating event %s", event_id)
            raise AggregationError("ranking computation failed") from exc


def _require_season(seasons: Sequence[Season], season: str) -> None:
    if season != ALL_SEASONS and not any(s.id == season for s in seasons):
        raise NotFoundError("season", season)


def _find_participant(participants: Sequence[Participant], participant_id: str) -> Participant:
    for p in participants:
        if p.id == participant_id:
            return p
    raise NotFoundError("participant", participant_id)
