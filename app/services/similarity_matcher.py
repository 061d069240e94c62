"""
Facet-scoped similarity matching.

Given a source game and a facet, ask the embedding store for the nearest
games in that facet's embedding space and return them as ranked
SimilarityCandidates. Vectors from different facets or model versions are
never compared: their spaces are not geometrically related.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.core.config import settings
from app.core.exceptions import IncompatibleFacet, NotFound, UpstreamError, ValidationError
from app.db.models.vibe_embedding import VibeEmbedding
from app.models.schemas import SimilarityCandidate
from app.services.embedding_store import EmbeddingStore, cosine_similarity
from app.utils.app_ids import require_app_id

logger = logging.getLogger(__name__)


def normalize_facet(facet) -> str:
    # Facets are an open set; only the spelling is normalised
    if not isinstance(facet, str) or not facet.strip():
        raise ValidationError("Facet must be a non-empty string")
    return facet.strip().lower()


def rank_candidates(
    source_game_id: int,
    facet: str,
    scored: Iterable[Tuple[int, float]],
    threshold: float,
    limit: int,
) -> List[SimilarityCandidate]:
    """Drop the source game and sub-threshold scores, order by score desc then id asc, truncate."""
    best: Dict[int, float] = {}
    for game_id, score in scored:
        game_id = int(game_id)
        score = min(1.0, max(0.0, float(score)))
        if game_id == source_game_id or score < threshold:
            continue
        if score > best.get(game_id, -1.0):
            best[game_id] = score
    ordered = sorted(best.items(), key=lambda pair: (-pair[1], pair[0]))[:limit]
    return [
        SimilarityCandidate(game_id=game_id, facet=facet, score=score, source_game_id=source_game_id)
        for game_id, score in ordered
    ]


class SimilarityMatcher:
    def __init__(
        self,
        store: EmbeddingStore,
        max_limit: int = settings.SIMILARITY_MAX_LIMIT,
        upstream_retries: int = 1,
    ):
        self.store = store
        self.max_limit = max_limit
        self.upstream_retries = upstream_retries

    async def _call_store(self, fn, *args):
        # Store reads are idempotent: retry straight away, at most `upstream_retries` times
        attempts = 1 + self.upstream_retries
        for attempt in range(1, attempts + 1):
            try:
                return await asyncio.to_thread(fn, *args)
            except UpstreamError as e:
                if attempt >= attempts:
                    logger.error("[Matcher] %s failed after %d attempts: %s", fn.__name__, attempt, e)
                    raise
                logger.warning("[Matcher] %s failed (attempt %d), retrying: %s", fn.__name__, attempt, e)

    def _validate(self, threshold, limit) -> Tuple[float, int]:
        try:
            threshold = float(threshold)
            limit = int(limit)
        except (TypeError, ValueError) as e:
            raise ValidationError("threshold must be a number and limit an integer") from e
        if not 0.0 <= threshold <= 1.0:
            raise ValidationError("threshold must be between 0 and 1")
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        return threshold, min(limit, self.max_limit)

    async def find_similar(
        self,
        source_game_id,
        facet: str,
        threshold: float = settings.SIMILARITY_DEFAULT_THRESHOLD,
        limit: int = settings.SIMILARITY_DEFAULT_LIMIT,
        model_id: Optional[str] = None,
    ) -> List[SimilarityCandidate]:
        source_game_id = require_app_id(source_game_id)
        facet = normalize_facet(facet)
        threshold, limit = self._validate(threshold, limit)

        source = await self._call_store(self.store.get_embedding, source_game_id, facet, model_id)
        if source is None:
            raise NotFound(f"Game {source_game_id} has no '{facet}' embedding")
        return await self.find_similar_to_embedding(source, facet, threshold, limit, model_id=model_id)

    async def find_similar_to_embedding(
        self,
        source: VibeEmbedding,
        facet: str,
        threshold: float = settings.SIMILARITY_DEFAULT_THRESHOLD,
        limit: int = settings.SIMILARITY_DEFAULT_LIMIT,
        model_id: Optional[str] = None,
    ) -> List[SimilarityCandidate]:
        facet = normalize_facet(facet)
        threshold, limit = self._validate(threshold, limit)
        if normalize_facet(source.facet) != facet:
            raise IncompatibleFacet(f"Cannot match a '{source.facet}' embedding against facet '{facet}'")
        if model_id and source.model_id != model_id:
            raise IncompatibleFacet(f"Cannot match a {source.model_id} embedding against model {model_id}")

        # One extra row covers the source game showing up as its own neighbour
        scored = await self._call_store(
            self.store.query_similar, facet, source.model_id, source.embedding, threshold, limit + 1
        )
        candidates = rank_candidates(source.appid, facet, scored, threshold, limit)
        logger.info("[Matcher] game=%s facet=%s -> %d candidates", source.appid, facet, len(candidates))
        return candidates

    async def find_similar_many(
        self,
        source_game_id,
        facets: Sequence[str],
        threshold: float = settings.SIMILARITY_DEFAULT_THRESHOLD,
        limit: int = settings.SIMILARITY_DEFAULT_LIMIT,
        model_id: Optional[str] = None,
        return_exceptions: bool = False,
    ) -> Dict[str, object]:
        """
        Run one independent query per facet, concurrently.

        With return_exceptions=True a failing facet maps to its exception
        instead of failing the whole call.
        """
        unique_facets = list(dict.fromkeys(normalize_facet(f) for f in facets))
        results = await asyncio.gather(
            *(self.find_similar(source_game_id, f, threshold, limit, model_id) for f in unique_facets),
            return_exceptions=return_exceptions,
        )
        return dict(zip(unique_facets, results))

    async def compare(self, game_id, other_game_id, facet: str) -> Tuple[float, str]:
        """Similarity of two games' current embeddings for one facet."""
        game_id = require_app_id(game_id)
        other_game_id = require_app_id(other_game_id)
        facet = normalize_facet(facet)
        first, second = await asyncio.gather(
            self._call_store(self.store.get_embedding, game_id, facet, None),
            self._call_store(self.store.get_embedding, other_game_id, facet, None),
        )
        for appid, row in ((game_id, first), (other_game_id, second)):
            if row is None:
                raise NotFound(f"Game {appid} has no '{facet}' embedding")
        if first.model_id != second.model_id:
            raise IncompatibleFacet(
                f"Game {game_id} uses {first.model_id} but game {other_game_id} uses {second.model_id}"
            )
        score = min(1.0, max(0.0, cosine_similarity(first.embedding, second.embedding)))
        return score, first.model_id
