from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from mangum import Mangum

from .config import Settings, setup_logging
from .domain import (
    ParticipantDetail,
    PutScoresRequest,
    RankingGroup,
    ScoreRecord,
    ScoreSheet,
    SeasonView,
)
from .errors import AggregationError, NotFoundError
from .ranking import ALL_SEASONS
from .service import RankingService
from .store import Store, build_store

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, store: Store | None = None) -> FastAPI:
    if settings is None:
        repo_root = Path(__file__).resolve().parents[3]
        settings = Settings.load(repo_root)
    setup_logging(settings.log_level)

    app = FastAPI(title="ClimbRank")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if store is None:
        store = build_store(settings)
    logger.info("store backend: %s", type(store).__name__)
    service = RankingService(store, settings.tzinfo)
    app.state.service = service

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/api/events/{event_id}/seasons", response_model=list[SeasonView])
    async def list_seasons(event_id: str):
        try:
            return await service.seasons(event_id)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except AggregationError:
            raise HTTPException(status_code=503, detail="failed to load seasons")

    @app.get("/api/events/{event_id}/rankings", response_model=list[RankingGroup])
    async def rankings(
        event_id: str,
        season: str = Query(default=ALL_SEASONS, min_length=1),
        q: str | None = Query(default=None, max_length=100),
        category: str | None = Query(default=None),
    ):
        try:
            return await service.grouped(event_id, season, q, category)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except AggregationError:
            raise HTTPException(status_code=503, detail="ranking computation failed")

    @app.get("/api/events/{event_id}/rankings.csv")
    async def rankings_csv(event_id: str, season: str = Query(default=ALL_SEASONS, min_length=1)):
        try:
            body = await service.csv(event_id, season)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except AggregationError:
            raise HTTPException(status_code=503, detail="ranking computation failed")
        filename = f"rankings_{event_id}_{season}.csv"
        return Response(
            content=body,
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.get(
        "/api/events/{event_id}/participants/{participant_id}/detail",
        response_model=ParticipantDetail,
    )
    async def participant_detail(
        event_id: str,
        participant_id: str,
        season: str = Query(default=ALL_SEASONS, min_length=1),
    ):
        try:
            return await service.participant_detail(event_id, participant_id, season)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except AggregationError:
            raise HTTPException(status_code=503, detail="participant detail computation failed")

    @app.get(
        "/api/events/{event_id}/seasons/{season_id}/categories/{category_id}"
        "/participants/{participant_id}/scores",
        response_model=ScoreSheet,
    )
    async def get_score_sheet(
        event_id: str,
        season_id: str,
        category_id: str,
        participant_id: str,
    ):
        try:
            return await service.score_sheet(event_id, season_id, category_id, participant_id)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except AggregationError:
            raise HTTPException(status_code=503, detail="failed to load scores")

    @app.put(
        "/api/events/{event_id}/seasons/{season_id}/categories/{category_id}"
        "/participants/{participant_id}/scores",
        response_model=ScoreRecord,
    )
    async def put_scores(
        event_id: str,
        season_id: str,
        category_id: str,
        participant_id: str,
        req: PutScoresRequest,
    ):
        try:
            return await service.put_scores(
                event_id, season_id, category_id, participant_id, req.scores, req.participant_name
            )
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))

    return app


app = create_app()
handler = Mangum(app)
