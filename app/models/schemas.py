"""
Defines Pydantic models for validation of requests and responses.

Includes the request-scoped value objects the engine passes around
(UserPreferences, SimilarityCandidate), the FeedItem tagged union and the
API payloads for games, similarity and feed endpoints.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from app.core.config import settings


class UserPreferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    favorite_genres: frozenset[str] = frozenset()
    preferred_themes: frozenset[str] = frozenset()

    @field_validator("favorite_genres", "preferred_themes", mode="before")
    @classmethod
    def normalise(cls, value):
        if value is None:
            return frozenset()
        return frozenset(v.strip().lower() for v in value if v and v.strip())


class SimilarityCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    game_id: int
    facet: str
    score: float = Field(ge=0.0, le=1.0)
    source_game_id: int


class GameOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    appid: int
    title: str
    short_description: Optional[str] = None
    long_description: Optional[str] = None
    header_image: Optional[str] = None
    screenshots: List[str] = []
    videos: List[str] = []
    tags: List[str] = []
    genres: List[str] = []
    developers: List[str] = []
    updated_at: Optional[datetime] = None

    @field_validator("screenshots", "videos", "tags", "genres", "developers", mode="before")
    @classmethod
    def none_to_list(cls, value):
        return value or []

    def tag_set(self):
        return set(self.tags) | set(self.genres)


# ---- Feed items -----------------------------------------------------------

class GameFind(BaseModel):
    kind: Literal["game_find"] = "game_find"
    score: float
    provenance_game_id: int
    game: GameOut
    # Absent for home-feed finds, which are ranked by recency instead of similarity
    candidate: Optional[SimilarityCandidate] = None

    @computed_field
    @property
    def key(self) -> str:
        return f"game:{self.game.appid}"


class EnrichmentItem(BaseModel):
    kind: Literal["enrichment"] = "enrichment"
    score: float
    provenance_game_id: int
    enrichment_id: int
    content_type: Literal["video", "article", "image", "audio", "snippet"]
    source_name: Optional[str] = None
    title: Optional[str] = None
    url: Optional[str] = None
    text: Optional[str] = None
    thumbnail_url: Optional[str] = None
    extra: Dict[str, Any] = {}
    created_at: Optional[datetime] = None

    @computed_field
    @property
    def key(self) -> str:
        return f"enrichment:{self.enrichment_id}"


class CollectionPinItem(BaseModel):
    kind: Literal["collection_pin"] = "collection_pin"
    score: float = 0.0
    provenance_game_id: Optional[int] = None
    collection_id: int
    title: str
    slug: str
    description: Optional[str] = None
    position: int
    preview_game_ids: List[int] = []

    @computed_field
    @property
    def key(self) -> str:
        return f"collection:{self.collection_id}"


FeedItem = Annotated[Union[GameFind, EnrichmentItem, CollectionPinItem], Field(discriminator="kind")]


class FeedRequest(BaseModel):
    seed_game_id: Optional[int] = None
    page_size: Optional[int] = None  # None = whole feed in one page
    cursor: Optional[str] = None
    preferences: UserPreferences = UserPreferences()
    facets: Optional[List[str]] = None


class FeedPage(BaseModel):
    items: List[FeedItem]
    next_cursor: Optional[str] = None


# ---- Games API --------------------------------------------------------------

class BatchGamesRequest(BaseModel):
    appids: List[Union[int, str]] = Field(min_length=1, max_length=settings.BATCH_MAX_RAW_ENTRIES)


class BatchGamesOut(BaseModel):
    games: List[GameOut]


class SubmitGameRequest(BaseModel):
    steam_url: str = Field(min_length=1)
    skip_suggestions: bool = False


class SubmitGameOut(BaseModel):
    appid: int
    status: str


class SimilarGameOut(BaseModel):
    appid: int
    title: str
    header_image: Optional[str] = None
    similarity: float


class SimilarGamesOut(BaseModel):
    games: List[SimilarGameOut]
    facet: str
    count: int


class CompareOut(BaseModel):
    appid: int
    other_appid: int
    facet: str
    model_id: str
    similarity: float
