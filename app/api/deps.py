"""
FastAPI dependency providers for the engine's services.

Services are built once per process; tests swap them through
`app.dependency_overrides`.
"""

from functools import lru_cache

from app.services.content_providers import SqlEnrichments, SqlGameCatalog, SqlPinnedCollections
from app.services.embedding_store import PgVectorEmbeddingStore
from app.services.feed_composer import FeedComposer
from app.services.similarity_matcher import SimilarityMatcher


@lru_cache
def get_embedding_store() -> PgVectorEmbeddingStore:
    return PgVectorEmbeddingStore()


@lru_cache
def get_game_catalog() -> SqlGameCatalog:
    return SqlGameCatalog()


@lru_cache
def get_similarity_matcher() -> SimilarityMatcher:
    return SimilarityMatcher(get_embedding_store())


@lru_cache
def get_feed_composer() -> FeedComposer:
    return FeedComposer(
        matcher=get_similarity_matcher(),
        catalog=get_game_catalog(),
        pins=SqlPinnedCollections(),
        enrichments=SqlEnrichments(),
    )
