"""
Feed composition.

Merges the content streams of one request into a single ordered,
deduplicated, paginated feed:

1. gather streams concurrently (pinned collections, one similarity query per
   facet and the seed's enrichments in "related" mode, recent catalog games
   in "home" mode);
2. score: similarity (or recency rank) plus a capped personalization bonus;
3. dedup by identity key, keeping the best-scored occurrence;
4. sort: pins first by position, then score desc, identity key asc;
5. slice the page strictly after the cursor's sort key.

A failing stream contributes nothing; the request only fails when every
stream it attempted failed.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from app.core.config import settings
from app.core.exceptions import ComposeFailed, UpstreamError, ValidationError
from app.db.models.enums import PinContextEnum
from app.models.schemas import (
    CollectionPinItem,
    EnrichmentItem,
    FeedPage,
    FeedRequest,
    GameFind,
    GameOut,
    SimilarityCandidate,
)
from app.services.personalization import PersonalizationProfile
from app.services.similarity_matcher import SimilarityMatcher, normalize_facet
from app.utils.app_ids import require_app_id
from app.utils.cursor import SortKey, decode_cursor, encode_cursor
from app.utils.error_handler import StreamResult, settle_stream

logger = logging.getLogger(__name__)

PIN_TIER = 0
CONTENT_TIER = 1


def sort_key(item) -> SortKey:
    if isinstance(item, CollectionPinItem):
        return (PIN_TIER, float(item.position), item.key)
    if isinstance(item, (GameFind, EnrichmentItem)):
        return (CONTENT_TIER, -item.score, item.key)
    raise TypeError(f"Unknown feed item type: {type(item).__name__}")


def dedupe(items) -> List:
    """Keep one item per identity key: the best-ranked one, first seen on ties."""
    best: Dict[str, object] = {}
    for item in items:
        current = best.get(item.key)
        if current is None or sort_key(item) < sort_key(current):
            best[item.key] = item
    return list(best.values())


def paginate(ordered: List, page_size: Optional[int], after: Optional[SortKey]):
    remaining = [item for item in ordered if sort_key(item) > after] if after else ordered
    page = remaining if page_size is None else remaining[:page_size]
    next_cursor = encode_cursor(sort_key(page[-1])) if page and len(remaining) > len(page) else None
    return page, next_cursor


class FeedComposer:
    def __init__(
        self,
        matcher: SimilarityMatcher,
        catalog,
        pins,
        enrichments,
        facets: Sequence[str] = settings.FEED_FACETS,
        threshold: float = settings.FEED_THRESHOLD,
        candidates_per_facet: int = settings.FEED_CANDIDATES_PER_FACET,
        home_pool_size: int = settings.FEED_HOME_POOL_SIZE,
        enrichment_score: float = settings.FEED_ENRICHMENT_SCORE,
        personalization_bonus: float = settings.PERSONALIZATION_BONUS,
        personalization_cap: float = settings.PERSONALIZATION_CAP,
        max_page_size: int = settings.FEED_MAX_PAGE_SIZE,
    ):
        self.matcher = matcher
        self.catalog = catalog
        self.pins = pins
        self.enrichments = enrichments
        self.facets = [normalize_facet(f) for f in facets]
        self.threshold = threshold
        self.candidates_per_facet = candidates_per_facet
        self.home_pool_size = home_pool_size
        self.enrichment_score = enrichment_score
        self.personalization_bonus = personalization_bonus
        self.personalization_cap = personalization_cap
        self.max_page_size = max_page_size

    def _page_size(self, page_size) -> Optional[int]:
        if page_size is None:
            return None
        if not isinstance(page_size, int) or not 1 <= page_size <= self.max_page_size:
            raise ValidationError(f"page size must be between 1 and {self.max_page_size}")
        return page_size

    def _facets(self, requested) -> List[str]:
        if not requested:
            return list(self.facets)
        return list(dict.fromkeys(normalize_facet(f) for f in requested))

    async def compose_feed(self, request: FeedRequest) -> FeedPage:
        page_size = self._page_size(request.page_size)
        after = decode_cursor(request.cursor) if request.cursor else None
        seed = require_app_id(request.seed_game_id) if request.seed_game_id is not None else None
        profile = PersonalizationProfile(
            request.preferences, self.personalization_bonus, self.personalization_cap
        )

        if seed is None:
            streams = await self._home_streams()
        else:
            streams = await self._related_streams(seed, self._facets(request.facets))

        if streams and all(stream.failed for stream in streams):
            raise ComposeFailed("Every feed stream failed: " + ", ".join(s.name for s in streams))

        items = await self._score(seed, streams, profile)
        pins = dedupe(item for stream in streams if stream.name == "pins" for item in stream.items)
        ordered = sorted(pins + dedupe(items), key=sort_key)
        page, next_cursor = paginate(ordered, page_size, after)

        logger.info(
            "[Feed] seed=%s streams=%s total=%d page=%d more=%s",
            seed, [f"{s.name}{'!' if s.failed else ''}" for s in streams], len(ordered), len(page), bool(next_cursor),
        )
        return FeedPage(items=page, next_cursor=next_cursor)

    async def _gather(self, named_calls) -> List[StreamResult]:
        # Child tasks are cancelled with the request; partial results are dropped
        names = [name for name, _ in named_calls]
        outcomes = await asyncio.gather(*(call for _, call in named_calls), return_exceptions=True)
        return [settle_stream(name, outcome) for name, outcome in zip(names, outcomes)]

    async def _home_streams(self) -> List[StreamResult]:
        return await self._gather([
            ("pins", asyncio.to_thread(self.pins.pinned, PinContextEnum.HOME)),
            ("recent", asyncio.to_thread(self.catalog.recent_games, self.home_pool_size)),
        ])

    async def _related_streams(self, seed: int, facets: List[str]) -> List[StreamResult]:
        calls = [("pins", asyncio.to_thread(self.pins.pinned, PinContextEnum.RELATED))]
        calls += [
            (f"facet:{facet}", self.matcher.find_similar(seed, facet, self.threshold, self.candidates_per_facet))
            for facet in facets
        ]
        calls.append(("enrichment", asyncio.to_thread(self.enrichments.for_game, seed)))
        return await self._gather(calls)

    async def _score(self, seed: Optional[int], streams: List[StreamResult], profile: PersonalizationProfile) -> List:
        items = []
        recent = next((s for s in streams if s.name == "recent"), None)
        if recent is not None:
            pool = recent.items
            for rank, game in enumerate(pool):
                base = 1.0 - rank / len(pool)
                items.append(GameFind(
                    score=base + profile.bonus_for(game.tag_set()),
                    provenance_game_id=game.appid,
                    game=game,
                ))

        facet_streams = [s for s in streams if s.name.startswith("facet:")]
        candidates: List[SimilarityCandidate] = [c for s in facet_streams for c in s.items]
        enrichment = next((s for s in streams if s.name == "enrichment"), None)
        enrichment_items = enrichment.items if enrichment is not None else []
        if not candidates and not enrichment_items:
            return items

        wanted = {c.game_id for c in candidates}
        if seed is not None:
            wanted.add(seed)
        try:
            games: Dict[int, GameOut] = await asyncio.to_thread(self.catalog.get_games, sorted(wanted))
        except UpstreamError as e:
            logger.warning("[Feed] Catalog lookup failed, dropping similarity finds: %s", e.message)
            for stream in facet_streams:
                stream.failed = True
                stream.items = []
            if streams and all(stream.failed for stream in streams):
                raise ComposeFailed("Every feed stream failed") from e
            games = {}
            candidates = []

        for candidate in candidates:
            game = games.get(candidate.game_id)
            if game is None:
                continue
            items.append(GameFind(
                score=candidate.score + profile.bonus_for(game.tag_set()),
                provenance_game_id=candidate.source_game_id,
                game=game,
                candidate=candidate,
            ))

        seed_game = games.get(seed) if seed is not None else None
        bonus = profile.bonus_for(seed_game.tag_set()) if seed_game is not None else 0.0
        for item in enrichment_items:
            items.append(item.model_copy(update={"score": self.enrichment_score + bonus}))
        return items
