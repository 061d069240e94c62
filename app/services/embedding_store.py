"""
Embedding store access.

The feed engine never builds its own vector index: it asks a store for the
nearest games of a facet+model space and reads back (appid, score) pairs.
PgVectorEmbeddingStore runs the query in Postgres with pgvector's cosine
distance; InMemoryEmbeddingStore does the same over a list of rows and is
used for local runs and tests.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np
from scipy.spatial.distance import cosine
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import UpstreamError
from app.db.deps import session_scope
from app.db.models.vibe_embedding import VibeEmbedding
from app.db.session import SessionLocal

logger = logging.getLogger(__name__)

ScoredGame = Tuple[int, float]


class EmbeddingStore(Protocol):
    def get_embedding(self, game_id: int, facet: str, model_id: Optional[str] = None) -> Optional[VibeEmbedding]:
        ...

    def query_similar(
        self, facet: str, model_id: str, vector: Sequence[float], threshold: float, limit: int
    ) -> List[ScoredGame]:
        ...


@dataclass(frozen=True)
class FacetScaling:
    """
    Temperature scaling of raw cosine similarity.

    Raw similarities of one facet tend to bunch around a centre value;
    scaled = (raw - center) * temperature + center, clamped to [0, 1].
    The transform is monotonic, so ranking by raw distance is unchanged.
    """
    center: float = 0.0
    temperature: float = 1.0

    def __post_init__(self):
        if self.temperature <= 0:
            raise ValueError(f"temperature must be positive, got {self.temperature}")

    def scale(self, raw: float) -> float:
        return float(min(1.0, max(0.0, (raw - self.center) * self.temperature + self.center)))

    def raw_threshold(self, threshold: float) -> float:
        # Lowest raw similarity whose scaled value still reaches `threshold`
        if threshold <= 0:
            return -1.0
        return (threshold - self.center) / self.temperature + self.center


IDENTITY_SCALING = FacetScaling()
DEFAULT_SCALING = FacetScaling(center=0.7, temperature=2.0)


def to_vector(v):
    if v is None:
        return None
    v = np.asarray(v, dtype=float)
    if v.ndim == 2:
        return v.flatten()
    if v.ndim == 1:
        return v
    return None


def cosine_similarity(a, b) -> float:
    a, b = to_vector(a), to_vector(b)
    if a is None or b is None or a.shape != b.shape:
        raise ValueError("Vectors must be one-dimensional and of equal length")
    if not np.any(a) or not np.any(b):
        return 0.0
    return 1.0 - float(cosine(a, b))


class PgVectorEmbeddingStore:
    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        scaling: Optional[Dict[str, Tuple[float, float]]] = None,
    ):
        self.session_factory = session_factory or SessionLocal
        params = settings.FACET_SCALING if scaling is None else scaling
        self.scaling = {facet: FacetScaling(c, t) for facet, (c, t) in params.items()}

    def scaling_for(self, facet: str) -> FacetScaling:
        return self.scaling.get(facet, DEFAULT_SCALING)

    def get_embedding(self, game_id, facet, model_id=None):
        try:
            with session_scope(self.session_factory) as db:
                query = db.query(VibeEmbedding).filter(
                    VibeEmbedding.appid == game_id,
                    VibeEmbedding.facet == facet,
                )
                if model_id:
                    query = query.filter(VibeEmbedding.model_id == model_id)
                row = query.order_by(VibeEmbedding.created_at.desc()).first()
                if row is not None:
                    db.expunge(row)
                return row
        except DBAPIError as e:
            logger.error("[EmbeddingStore] Lookup failed for game %s facet %s: %s", game_id, facet, e)
            raise UpstreamError(f"Embedding store unavailable: {e.__class__.__name__}") from e

    def query_similar(self, facet, model_id, vector, threshold, limit):
        scaling = self.scaling_for(facet)
        raw_threshold = scaling.raw_threshold(threshold)
        query_vector = [float(x) for x in to_vector(vector)]
        try:
            with session_scope(self.session_factory) as db:
                # Only the newest embedding per game is current for this facet+model
                latest = (
                    db.query(VibeEmbedding.id)
                    .filter(VibeEmbedding.facet == facet, VibeEmbedding.model_id == model_id)
                    .distinct(VibeEmbedding.appid)
                    .order_by(VibeEmbedding.appid, VibeEmbedding.created_at.desc())
                    .subquery()
                )
                distance = VibeEmbedding.embedding.cosine_distance(query_vector)
                rows = (
                    db.query(VibeEmbedding.appid, (1 - distance).label("similarity"))
                    .filter(VibeEmbedding.id.in_(select(latest.c.id)))
                    .filter((1 - distance) >= raw_threshold)
                    .order_by(distance, VibeEmbedding.appid)
                    .limit(limit)
                    .all()
                )
        except DBAPIError as e:
            logger.error("[EmbeddingStore] Similarity query failed for facet %s: %s", facet, e)
            raise UpstreamError(f"Embedding store unavailable: {e.__class__.__name__}") from e

        return [(int(appid), scaling.scale(float(similarity))) for appid, similarity in rows]


class InMemoryEmbeddingStore:
    def __init__(self, embeddings: Optional[List[VibeEmbedding]] = None, scaling: Optional[Dict[str, FacetScaling]] = None):
        self._rows: List[VibeEmbedding] = []
        self.scaling = scaling or {}
        for row in embeddings or []:
            self.add(row)

    def add(self, embedding: VibeEmbedding):
        self._rows.append(embedding)

    def _current(self, facet, model_id=None):
        # Newest row per game; rows without created_at count as older than any dated row
        current = {}
        for order, row in enumerate(self._rows):
            if row.facet != facet or (model_id and row.model_id != model_id):
                continue
            rank = (row.created_at is not None, row.created_at.timestamp() if row.created_at else 0.0, order)
            best = current.get(row.appid)
            if best is None or rank > best[0]:
                current[row.appid] = (rank, row)
        return {appid: row for appid, (_, row) in current.items()}

    def get_embedding(self, game_id, facet, model_id=None):
        return self._current(facet, model_id).get(game_id)

    def query_similar(self, facet, model_id, vector, threshold, limit):
        scaling = self.scaling.get(facet, IDENTITY_SCALING)
        scored = []
        for appid, row in self._current(facet, model_id).items():
            score = scaling.scale(cosine_similarity(vector, row.embedding))
            if score >= threshold:
                scored.append((appid, score))
        scored.sort(key=lambda pair: (-pair[1], pair[0]))
        return scored[:limit]
