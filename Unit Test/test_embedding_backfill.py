import numpy as np
import pytest

from app.core.exceptions import UpstreamError
from app.db.models.enums import SourceTypeEnum
from app.db.models.game import Game
from app.services import embedding_backfill
from app.services.embedding_backfill import build_facet_documents, embed_game, meaningful_tags
from app.services.embedding_producer import SentenceTransformerProducer


class DummyProducer:
    model_id = "dummy-model"

    def __init__(self):
        self.batches = []

    def encode(self, texts):
        self.batches.append(list(texts))
        return [[float(len(t)), 1.0] for t in texts]


class DummyModel:
    def __init__(self, fail=False):
        self.fail = fail

    def encode(self, texts, normalize_embeddings=False):
        if self.fail:
            raise RuntimeError("CUDA out of memory")
        assert normalize_embeddings
        return np.ones((len(texts), 3))


class DummyDB:
    def __init__(self):
        self.added = []
        self.commits = 0

    def add_all(self, rows):
        self.added.extend(rows)

    def commit(self):
        self.commits += 1


def hades():
    return Game(
        appid=1145360,
        title="Hades",
        short_description="Hack and slash out of the Underworld.",
        long_description="A god-like rogue-like dungeon crawler.",
        tags=["Roguelike", "Hand-drawn", "Steam Cloud", "Single-player", "Story Rich"],
        genres=["Action"],
    )


def test_generic_tags_are_dropped():
    assert meaningful_tags(["Roguelike", "Steam Cloud", "single-player", "", "2D"]) == ["Roguelike"]


def test_documents_use_facet_specific_tags():
    docs = build_facet_documents(hades(), ["aesthetic", "mechanics", "narrative", "tone"])

    assert docs["aesthetic"].startswith("Hades. aesthetic: Hand-drawn")
    assert "mechanics: Roguelike" in docs["mechanics"]
    assert "narrative: Story Rich" in docs["narrative"]
    assert "A god-like rogue-like dungeon crawler." in docs["narrative"]
    # unknown facets fall back to every meaningful tag
    assert "tone: Roguelike, Hand-drawn, Story Rich, Action" in docs["tone"]
    assert all("Steam Cloud" not in doc for doc in docs.values())


def test_embed_game_builds_one_row_per_facet():
    producer = DummyProducer()
    rows = embed_game(hades(), producer, ["aesthetic", "mechanics"])

    assert [r.facet for r in rows] == ["aesthetic", "mechanics"]
    assert len(producer.batches) == 1
    assert all(r.model_id == "dummy-model" and r.appid == 1145360 for r in rows)
    assert rows[0].source_type == SourceTypeEnum.TEXT
    assert rows[0].embedding == [float(len(rows[0].source_data["document"])), 1.0]


def test_backfill_commits_per_game(monkeypatch):
    games = [hades(), Game(appid=413150, title="Stardew Valley", tags=["Farming Sim", "Pixel Graphics"])]
    monkeypatch.setattr(embedding_backfill, "games_missing_embeddings", lambda db, model_id, facets, limit: games)
    db = DummyDB()

    done = embedding_backfill.backfill_embeddings(db, DummyProducer(), ["aesthetic", "mechanics"])

    assert done == 2
    assert db.commits == 2
    assert sorted({r.appid for r in db.added}) == [413150, 1145360]


def test_sentence_transformer_producer():
    producer = SentenceTransformerProducer("bge-test", model=DummyModel())
    vectors = producer.encode(["a", "b"])
    assert vectors == [[1.0, 1.0, 1.0], [1.0, 1.0, 1.0]]
    assert producer.model_id == "bge-test"

    failing = SentenceTransformerProducer("bge-test", model=DummyModel(fail=True))
    with pytest.raises(UpstreamError):
        failing.encode(["a"])
