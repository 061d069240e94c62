"""
Game endpoints: single and batch lookup, submission for ingestion,
per-facet similar games and pairwise facet comparison.
"""

import asyncio
import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session as DBSession

from app.api.deps import get_game_catalog, get_similarity_matcher
from app.core.config import settings
from app.core.exceptions import NotFound, UpstreamError, ValidationError
from app.db.deps import get_db
from app.db.models.submission import GameSubmission
from app.models.schemas import (
    BatchGamesOut,
    BatchGamesRequest,
    CompareOut,
    GameOut,
    SimilarGameOut,
    SimilarGamesOut,
    SubmitGameOut,
    SubmitGameRequest,
)
from app.services.content_providers import SqlGameCatalog
from app.services.similarity_matcher import SimilarityMatcher
from app.utils.app_ids import app_id_from_steam_url, require_app_id, unique_app_ids

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/batch", response_model=BatchGamesOut)
def get_games_batch(payload: BatchGamesRequest, catalog: SqlGameCatalog = Depends(get_game_catalog)):
    appids = unique_app_ids(payload.appids, cap=settings.BATCH_MAX_APPIDS)
    if not appids:
        raise ValidationError("No valid app IDs provided after parsing")
    found = catalog.get_games(appids)
    # Keep request order, silently skip unknown ids
    return {"games": [found[appid] for appid in appids if appid in found]}


@router.post("/submit", response_model=SubmitGameOut, status_code=202)
def submit_game(payload: SubmitGameRequest, db: DBSession = Depends(get_db)):
    appid = app_id_from_steam_url(payload.steam_url)
    submission = GameSubmission(
        appid=appid,
        steam_url=payload.steam_url.strip(),
        skip_suggestions=payload.skip_suggestions,
    )
    try:
        db.add(submission)
        db.commit()
    except DBAPIError as e:
        db.rollback()
        raise UpstreamError("Could not record submission: " + e.__class__.__name__) from e
    logger.info("[Submit] Queued app %s for ingestion", appid)
    return {"appid": appid, "status": "pending"}


@router.get("/{appid}", response_model=GameOut)
def get_game(appid: str, catalog: SqlGameCatalog = Depends(get_game_catalog)):
    game_id = require_app_id(appid)
    game = catalog.get_game(game_id)
    if game is None:
        raise NotFound(f"Game {game_id} not found")
    return game


@router.get("/{appid}/similar", response_model=SimilarGamesOut)
async def get_similar_games(
    appid: str,
    facet: str = Query("aesthetic"),
    limit: int = Query(settings.SIMILARITY_DEFAULT_LIMIT),
    threshold: float = Query(settings.SIMILARITY_DEFAULT_THRESHOLD),
    matcher: SimilarityMatcher = Depends(get_similarity_matcher),
    catalog: SqlGameCatalog = Depends(get_game_catalog),
):
    game_id = require_app_id(appid)
    try:
        candidates = await matcher.find_similar(game_id, facet, threshold, limit)
    except NotFound as e:
        # A list lookup: a game without this facet's embedding just has no neighbours
        logger.info("[Similar] %s", e.message)
        candidates = []
    games = await asyncio.to_thread(catalog.get_games, [c.game_id for c in candidates])
    results = [
        SimilarGameOut(
            appid=c.game_id,
            title=games[c.game_id].title,
            header_image=games[c.game_id].header_image,
            similarity=c.score,
        )
        for c in candidates
        if c.game_id in games
    ]
    return SimilarGamesOut(games=results, facet=facet.strip().lower(), count=len(results))


@router.get("/{appid}/compare/{other_appid}", response_model=CompareOut)
async def compare_games(
    appid: str,
    other_appid: str,
    facet: str = Query(...),
    matcher: SimilarityMatcher = Depends(get_similarity_matcher),
):
    game_id, other_id = require_app_id(appid), require_app_id(other_appid)
    similarity, model_id = await matcher.compare(game_id, other_id, facet)
    return CompareOut(
        appid=game_id,
        other_appid=other_id,
        facet=facet.strip().lower(),
        model_id=model_id,
        similarity=similarity,
    )
