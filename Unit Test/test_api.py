import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_feed_composer, get_game_catalog, get_similarity_matcher
from app.db.deps import get_db
from app.db.models.vibe_embedding import VibeEmbedding
from app.main import create_app
from app.models.schemas import GameOut
from app.services.embedding_store import InMemoryEmbeddingStore
from app.services.feed_composer import FeedComposer
from app.services.rate_limiter import RateLimiter
from app.services.similarity_matcher import SimilarityMatcher


class FrozenClock:
    now = 0.0

    def __call__(self):
        return self.now


class DummyCatalog:
    def __init__(self):
        self.games = {i: GameOut(appid=i, title=f"Game {i}", tags=["Roguelike"]) for i in range(1, 6)}

    def get_game(self, appid):
        return self.games.get(appid)

    def get_games(self, appids):
        return {a: self.games[a] for a in appids if a in self.games}

    def recent_games(self, limit):
        return list(self.games.values())[:limit]


class DummyPins:
    def pinned(self, context):
        return []


class DummyEnrichments:
    def for_game(self, appid):
        return []


class DummyDB:
    def __init__(self):
        self.added = []
        self.committed = False

    def add(self, obj):
        self.added.append(obj)

    def commit(self):
        self.committed = True

    def rollback(self):
        pass


def embedding(appid, vector, facet="aesthetic"):
    return VibeEmbedding(appid=appid, facet=facet, model_id="bge", embedding=vector)


@pytest.fixture
def db():
    return DummyDB()


@pytest.fixture
def client(db):
    app = create_app(rate_limiter=RateLimiter(max_requests=60, window_ms=60_000, clock=FrozenClock()), sweep=False)
    catalog = DummyCatalog()
    store = InMemoryEmbeddingStore([
        embedding(1, [1.0, 0.0]),
        embedding(2, [0.9, 0.1]),
        embedding(3, [0.7, 0.7]),
        embedding(4, [0.0, 1.0]),
    ])
    matcher = SimilarityMatcher(store)
    feed = FeedComposer(matcher, catalog, DummyPins(), DummyEnrichments(), facets=["aesthetic"], threshold=0.5)

    app.dependency_overrides[get_game_catalog] = lambda: catalog
    app.dependency_overrides[get_similarity_matcher] = lambda: matcher
    app.dependency_overrides[get_feed_composer] = lambda: feed
    app.dependency_overrides[get_db] = lambda: db
    with TestClient(app) as test_client:
        yield test_client


def test_get_game(client):
    res = client.get("/api/v1/games/2")
    assert res.status_code == 200
    assert res.json()["title"] == "Game 2"


def test_get_game_invalid_and_missing(client):
    assert client.get("/api/v1/games/abc").status_code == 400
    assert client.get("/api/v1/games/0").status_code == 400
    res = client.get("/api/v1/games/999")
    assert res.status_code == 404
    assert "999" in res.json()["detail"]


def test_batch_dedupes_and_keeps_order(client):
    res = client.post("/api/v1/games/batch", json={"appids": ["3", 1, 3, "abc", -2, 999, 2]})
    assert res.status_code == 200
    assert [g["appid"] for g in res.json()["games"]] == [3, 1, 2]
    assert res.headers["X-RateLimit-Remaining"] == "59"


def test_batch_with_no_valid_ids(client):
    res = client.post("/api/v1/games/batch", json={"appids": ["abc", -1]})
    assert res.status_code == 400


def test_batch_rejects_oversized_payload(client):
    res = client.post("/api/v1/games/batch", json={"appids": list(range(1, 102))})
    assert res.status_code == 422


def test_rate_limit_headers_and_429(client):
    headers = {"x-forwarded-for": "1.2.3.4"}
    remaining = []
    for _ in range(60):
        res = client.post("/api/v1/games/batch", json={"appids": [1]}, headers=headers)
        assert res.status_code == 200
        remaining.append(int(res.headers["X-RateLimit-Remaining"]))
    assert remaining == list(range(59, -1, -1))

    res = client.post("/api/v1/games/batch", json={"appids": [1]}, headers=headers)
    assert res.status_code == 429
    assert res.headers["Retry-After"] == "60"
    assert res.headers["X-RateLimit-Remaining"] == "0"

    # other clients and unlimited paths are unaffected
    assert client.post("/api/v1/games/batch", json={"appids": [1]}, headers={"x-forwarded-for": "5.6.7.8"}).status_code == 200
    res = client.get("/api/v1/games/1", headers=headers)
    assert res.status_code == 200
    assert "X-RateLimit-Remaining" not in res.headers


def test_submit_game(client, db):
    res = client.post("/api/v1/games/submit", json={"steam_url": "https://store.steampowered.com/app/1145360/Hades/"})
    assert res.status_code == 202
    assert res.json() == {"appid": 1145360, "status": "pending"}
    assert db.committed
    assert db.added[0].appid == 1145360


def test_submit_game_invalid_url(client):
    res = client.post("/api/v1/games/submit", json={"steam_url": "https://example.com/game"})
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid Steam URL or app ID"


def test_similar_games(client):
    res = client.get("/api/v1/games/1/similar", params={"facet": "Aesthetic", "threshold": 0.5})
    assert res.status_code == 200
    body = res.json()
    assert body["facet"] == "aesthetic"
    assert [g["appid"] for g in body["games"]] == [2, 3]
    assert body["count"] == 2


def test_similar_games_without_embedding_is_empty(client):
    res = client.get("/api/v1/games/5/similar")
    assert res.status_code == 200
    assert res.json() == {"games": [], "facet": "aesthetic", "count": 0}


def test_similar_games_invalid_id(client):
    assert client.get("/api/v1/games/abc/similar").status_code == 400


def test_compare_without_embedding_is_not_found(client):
    res = client.get("/api/v1/games/1/compare/5", params={"facet": "aesthetic"})
    assert res.status_code == 404


def test_compare_games(client):
    res = client.get("/api/v1/games/1/compare/4", params={"facet": "aesthetic"})
    assert res.status_code == 200
    assert res.json()["similarity"] == pytest.approx(0.0)
    assert res.json()["model_id"] == "bge"


def test_feed_pages_through(client):
    res = client.get("/api/v1/feed", params={"seed": "1", "limit": 1, "genres": ["roguelike"]})
    assert res.status_code == 200
    body = res.json()
    assert [item["key"] for item in body["items"]] == ["game:2"]
    assert body["items"][0]["kind"] == "game_find"
    assert body["next_cursor"]

    res = client.get(
        "/api/v1/feed", params={"seed": "1", "limit": 1, "genres": ["roguelike"], "cursor": body["next_cursor"]}
    )
    assert [item["key"] for item in res.json()["items"]] == ["game:3"]
    assert res.json()["next_cursor"] is None


def test_feed_rejects_bad_cursor(client):
    res = client.get("/api/v1/feed", params={"cursor": "%%%"})
    assert res.status_code == 400


def test_home_feed(client):
    res = client.get("/api/v1/feed")
    assert res.status_code == 200
    assert len(res.json()["items"]) == 5
