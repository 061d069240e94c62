import asyncio
from datetime import datetime, timedelta

import pytest

from app.core.config import _facet_scaling
from app.core.exceptions import IncompatibleFacet, NotFound, UpstreamError, ValidationError
from app.db.models.vibe_embedding import VibeEmbedding
from app.services.embedding_store import FacetScaling, InMemoryEmbeddingStore, cosine_similarity
from app.services.similarity_matcher import SimilarityMatcher, rank_candidates


def emb(appid, facet, vector, model_id="bge", created_at=None):
    return VibeEmbedding(appid=appid, facet=facet, model_id=model_id, embedding=vector, created_at=created_at)


class ScriptedStore:
    """Returns canned neighbours; can fail the first `failures` queries."""

    def __init__(self, neighbours, failures=0):
        self.neighbours = neighbours
        self.failures = failures
        self.query_calls = 0

    def get_embedding(self, game_id, facet, model_id=None):
        if game_id == 404:
            return None
        return emb(game_id, facet, [1.0, 0.0])

    def query_similar(self, facet, model_id, vector, threshold, limit):
        self.query_calls += 1
        if self.query_calls <= self.failures:
            raise UpstreamError("store down")
        return [pair for pair in self.neighbours if pair[1] >= threshold][:limit]


def test_ties_are_broken_by_game_id():
    store = ScriptedStore([(20, 0.9), (10, 0.9), (30, 0.5)])
    matcher = SimilarityMatcher(store)

    result = asyncio.run(matcher.find_similar(1, "tone", threshold=0.4, limit=10))

    assert [c.game_id for c in result] == [10, 20, 30]
    assert [c.score for c in result] == [0.9, 0.9, 0.5]
    assert all(c.facet == "tone" and c.source_game_id == 1 for c in result)


def test_rank_candidates_drops_source_and_low_scores():
    ranked = rank_candidates(1, "tone", [(1, 1.0), (2, 0.3), (3, 0.7), (3, 0.8), (4, 1.2)], threshold=0.5, limit=10)
    assert [(c.game_id, c.score) for c in ranked] == [(4, 1.0), (3, 0.8)]


def test_results_are_deterministic_and_within_threshold():
    store = ScriptedStore([(5, 0.7), (3, 0.7), (8, 0.61), (9, 0.2)])
    matcher = SimilarityMatcher(store)

    first = asyncio.run(matcher.find_similar(1, "aesthetic", threshold=0.6, limit=10))
    second = asyncio.run(matcher.find_similar(1, "aesthetic", threshold=0.6, limit=10))

    assert first == second
    assert all(c.score >= 0.6 for c in first)
    assert [c.game_id for c in first] == [3, 5, 8]


def test_missing_source_embedding_is_not_found():
    matcher = SimilarityMatcher(ScriptedStore([]))
    with pytest.raises(NotFound):
        asyncio.run(matcher.find_similar(404, "tone"))


@pytest.mark.parametrize("kwargs", [
    {"source_game_id": 0},
    {"source_game_id": "abc"},
    {"threshold": 1.5},
    {"limit": 0},
    {"facet": "  "},
])
def test_invalid_input_is_rejected(kwargs):
    matcher = SimilarityMatcher(ScriptedStore([]))
    args = {"source_game_id": 1, "facet": "tone", "threshold": 0.5, "limit": 5}
    args.update(kwargs)
    with pytest.raises(ValidationError):
        asyncio.run(matcher.find_similar(**args))


def test_limit_is_capped():
    store = ScriptedStore([(i, 0.9) for i in range(2, 100)])
    matcher = SimilarityMatcher(store, max_limit=50)
    result = asyncio.run(matcher.find_similar(1, "tone", threshold=0.1, limit=500))
    assert len(result) == 50


def test_upstream_error_is_retried_once():
    store = ScriptedStore([(2, 0.9)], failures=1)
    result = asyncio.run(SimilarityMatcher(store).find_similar(1, "tone"))
    assert [c.game_id for c in result] == [2]
    assert store.query_calls == 2


def test_upstream_error_after_retry_propagates():
    store = ScriptedStore([(2, 0.9)], failures=2)
    with pytest.raises(UpstreamError):
        asyncio.run(SimilarityMatcher(store).find_similar(1, "tone"))
    assert store.query_calls == 2


def test_facet_mismatch_is_incompatible():
    matcher = SimilarityMatcher(ScriptedStore([]))
    source = emb(1, "tone", [1.0, 0.0])
    with pytest.raises(IncompatibleFacet):
        asyncio.run(matcher.find_similar_to_embedding(source, "aesthetic"))
    with pytest.raises(IncompatibleFacet):
        asyncio.run(matcher.find_similar_to_embedding(source, "tone", model_id="other-model"))


def test_in_memory_store_matches_within_facet_and_model():
    store = InMemoryEmbeddingStore([
        emb(1, "aesthetic", [1.0, 0.0]),
        emb(2, "aesthetic", [0.9, 0.1]),
        emb(3, "aesthetic", [0.0, 1.0]),
        emb(4, "mechanics", [1.0, 0.0]),
        emb(5, "aesthetic", [1.0, 0.0], model_id="old-model"),
    ])
    result = asyncio.run(SimilarityMatcher(store).find_similar(1, "Aesthetic", threshold=0.5, limit=10))
    assert [c.game_id for c in result] == [2]


def test_newest_embedding_is_current():
    now = datetime(2026, 1, 1)
    store = InMemoryEmbeddingStore([
        emb(1, "tone", [1.0, 0.0], created_at=now),
        emb(2, "tone", [1.0, 0.0], created_at=now - timedelta(days=1)),
        emb(2, "tone", [0.0, 1.0], created_at=now),
    ])
    assert store.get_embedding(2, "tone").embedding == [0.0, 1.0]
    result = asyncio.run(SimilarityMatcher(store).find_similar(1, "tone", threshold=0.5))
    assert result == []


def test_facet_scaling_spreads_scores():
    scaling = FacetScaling(center=0.7, temperature=2.0)
    assert scaling.scale(0.7) == pytest.approx(0.7)
    assert scaling.scale(0.8) == pytest.approx(0.9)
    assert scaling.scale(0.95) == 1.0
    assert scaling.raw_threshold(0.9) == pytest.approx(0.8)

    store = InMemoryEmbeddingStore(
        [emb(1, "tone", [1.0, 0.0]), emb(2, "tone", [0.8, 0.6])],
        scaling={"tone": scaling},
    )
    result = asyncio.run(SimilarityMatcher(store).find_similar(1, "tone", threshold=0.5))
    assert result[0].score == pytest.approx(0.9)


@pytest.mark.parametrize("temperature", [0, -1.5])
def test_facet_scaling_rejects_non_positive_temperature(temperature):
    with pytest.raises(ValueError):
        FacetScaling(center=0.7, temperature=temperature)


def test_facet_scaling_env_rejects_non_positive_temperature(monkeypatch):
    monkeypatch.setenv("FACET_SCALING", '{"Aesthetic": [0.7, 2.0], "Mechanics": [0.8, 0]}')
    with pytest.raises(ValueError, match="Mechanics"):
        _facet_scaling()

    monkeypatch.setenv("FACET_SCALING", '{"Aesthetic": [0.7, 2.0]}')
    assert _facet_scaling() == {"aesthetic": (0.7, 2.0)}


def test_find_similar_many_isolates_failures():
    store = InMemoryEmbeddingStore([
        emb(1, "aesthetic", [1.0, 0.0]),
        emb(2, "aesthetic", [1.0, 0.1]),
    ])
    results = asyncio.run(
        SimilarityMatcher(store).find_similar_many(1, ["aesthetic", "mechanics", "AESTHETIC"], return_exceptions=True)
    )
    assert list(results) == ["aesthetic", "mechanics"]
    assert [c.game_id for c in results["aesthetic"]] == [2]
    assert isinstance(results["mechanics"], NotFound)


def test_compare():
    store = InMemoryEmbeddingStore([
        emb(1, "tone", [1.0, 0.0]),
        emb(2, "tone", [0.6, 0.8]),
        emb(3, "tone", [1.0, 0.0], model_id="other-model"),
    ])
    matcher = SimilarityMatcher(store)

    score, model_id = asyncio.run(matcher.compare(1, 2, "tone"))
    assert score == pytest.approx(0.6)
    assert model_id == "bge"

    with pytest.raises(IncompatibleFacet):
        asyncio.run(matcher.compare(1, 3, "tone"))
    with pytest.raises(NotFound):
        asyncio.run(matcher.compare(1, 99, "tone"))


def test_cosine_similarity_edge_cases():
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
    with pytest.raises(ValueError):
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])
