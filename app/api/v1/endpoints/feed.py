"""
Composed feed endpoint.

Without `seed` the home feed is returned; with it, games related to the
seed. Preferences come in with the request (onboarding stores them
elsewhere) and are never read from ambient state.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from app.api.deps import get_feed_composer
from app.core.config import settings
from app.models.schemas import FeedPage, FeedRequest, UserPreferences
from app.services.feed_composer import FeedComposer
from app.utils.app_ids import require_app_id

router = APIRouter()


@router.get("", response_model=FeedPage)
async def get_feed(
    seed: Optional[str] = None,
    cursor: Optional[str] = None,
    limit: int = settings.FEED_PAGE_SIZE,
    genres: List[str] = Query(default=[]),
    themes: List[str] = Query(default=[]),
    facets: List[str] = Query(default=[]),
    composer: FeedComposer = Depends(get_feed_composer),
):
    request = FeedRequest(
        seed_game_id=require_app_id(seed) if seed else None,
        page_size=limit,
        cursor=cursor or None,
        preferences=UserPreferences(favorite_genres=genres, preferred_themes=themes),
        facets=facets or None,
    )
    return await composer.compose_feed(request)
