"""
Builds per-facet text documents for a game and persists their embeddings.

Each facet gets its own document so that, for example, two pixel-art games
end up close in "aesthetic" space even when they play nothing alike.
Generic storefront tags ("Steam Cloud", "Single-player"...) say nothing
about a game's vibe and are dropped first.
"""

import logging
from typing import Dict, List, Optional, Protocol, Sequence

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.models.enums import SourceTypeEnum
from app.db.models.game import Game
from app.db.models.vibe_embedding import VibeEmbedding

logger = logging.getLogger(__name__)

GENERIC_TAGS = {
    "steam achievements", "steam cloud", "steam trading cards", "steam workshop",
    "steam leaderboards", "family sharing", "save anytime", "subtitle options",
    "adjustable text size", "adjustable difficulty", "camera comfort",
    "playable without timed input", "remote play on tablet", "remote play on phone",
    "remote play on tv", "partial controller support", "full controller support",
    "includes level editor", "in-app purchases", "stats", "cross-platform multiplayer",
    "online co-op", "lan co-op", "online pvp", "local pvp", "single-player",
    "multi-player", "co-op", "pvp",
}

FACET_KEYWORDS = {
    "aesthetic": [
        "pixel", "low poly", "cel", "hand-drawn", "voxel", "2d", "3d", "retro", "anime",
        "comic", "noir", "minimalist", "cozy", "colorful", "stylized", "photorealistic",
        "isometric", "cyber", "steampunk", "post-apocalyptic",
    ],
    "atmosphere": [
        "atmospheric", "dark", "horror", "relaxing", "cozy", "cute", "wholesome", "psychological",
        "surreal", "lonely", "melancholic", "funny", "emotional", "tense", "mystery",
    ],
    "mechanics": [
        "rogue", "deckbuilder", "card", "shooter", "fps", "metroidvania", "platformer", "soulslike",
        "survival", "strategy", "tactics", "turn-based", "puzzle", "stealth", "simulation",
        "builder", "management", "craft", "sandbox", "open world", "rpg", "fighting", "rhythm",
    ],
    "narrative": [
        "story rich", "visual novel", "narrative", "mystery", "thriller", "choices matter",
        "multiple endings", "branching", "detective", "romance", "dialogue", "lore",
    ],
    "dynamics": [
        "fast-paced", "fast paced", "action", "bullet hell", "arcade", "difficult", "casual",
        "idle", "real-time", "turn-based", "short", "replay value", "competitive", "chill",
    ],
}


class EmbeddingProducer(Protocol):
    model_id: str

    def encode(self, texts: Sequence[str]) -> List[List[float]]:
        ...


def meaningful_tags(tags) -> List[str]:
    return [t for t in (tags or []) if t and len(t) > 2 and t.strip().lower() not in GENERIC_TAGS]


def build_facet_documents(game: Game, facets: Sequence[str] = settings.FEED_FACETS) -> Dict[str, str]:
    tags = meaningful_tags(list(game.tags or []) + list(game.genres or []))
    description = " ".join(d for d in (game.short_description, game.long_description) if d)

    documents = {}
    for facet in facets:
        keywords = FACET_KEYWORDS.get(facet, [])
        facet_tags = [t for t in tags if any(k in t.lower() for k in keywords)] if keywords else tags
        parts = [game.title]
        if facet_tags:
            parts.append(f"{facet}: " + ", ".join(facet_tags))
        elif tags:
            parts.append("tags: " + ", ".join(tags))
        if facet in ("atmosphere", "narrative") and game.long_description:
            parts.append(game.long_description)
        elif description:
            parts.append(game.short_description or description)
        documents[facet] = ". ".join(p.strip() for p in parts if p and p.strip())
    return documents


def embed_game(game: Game, producer: EmbeddingProducer, facets: Sequence[str] = settings.FEED_FACETS) -> List[VibeEmbedding]:
    documents = build_facet_documents(game, facets)
    ordered = list(documents)
    vectors = producer.encode([documents[f] for f in ordered])
    return [
        VibeEmbedding(
            appid=game.appid,
            facet=facet,
            model_id=producer.model_id,
            embedding=vector,
            source_type=SourceTypeEnum.TEXT,
            source_data={"document": documents[facet]},
        )
        for facet, vector in zip(ordered, vectors)
    ]


def games_missing_embeddings(db: Session, model_id: str, facets: Sequence[str], limit: Optional[int] = None) -> List[Game]:
    covered = (
        select(VibeEmbedding.appid)
        .where(VibeEmbedding.model_id == model_id, VibeEmbedding.facet.in_(list(facets)))
        .group_by(VibeEmbedding.appid)
        .having(func.count(distinct(VibeEmbedding.facet)) >= len(set(facets)))
    )
    query = db.query(Game).filter(~Game.appid.in_(covered)).order_by(Game.appid)
    if limit:
        query = query.limit(limit)
    return query.all()


def backfill_embeddings(db: Session, producer: EmbeddingProducer, facets: Sequence[str] = settings.FEED_FACETS, limit: Optional[int] = None) -> int:
    """Embed every game lacking a full set of facets for the producer's model. Returns games embedded."""
    games = games_missing_embeddings(db, producer.model_id, facets, limit)
    logger.info("[Backfill] %d games need %s embeddings", len(games), producer.model_id)
    done = 0
    for game in games:
        rows = embed_game(game, producer, facets)
        db.add_all(rows)
        db.commit()
        done += 1
        logger.info("[Backfill] %s (%s): %d facets", game.title, game.appid, len(rows))
    return done
