"""
Seeds a local database with a handful of games, a pinned collection and
some enrichment rows, then embeds the games so the feed has something to
rank. Safe to re-run: existing rows are left alone.
"""

from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.db import models
from app.db.models.enums import EnrichmentTypeEnum, PinContextEnum
from app.services.embedding_backfill import backfill_embeddings
from app.services.embedding_producer import SentenceTransformerProducer

SEED_GAMES = [
    dict(appid=1145360, title="Hades", short_description="Defy the god of the dead as you hack and slash out of the Underworld.",
         tags=["Roguelike", "Action", "Hand-drawn", "Fast-Paced", "Mythology", "Story Rich"], genres=["Action", "Indie", "RPG"]),
    dict(appid=413150, title="Stardew Valley", short_description="Inherit your grandfather's old farm plot and build a new life.",
         tags=["Farming Sim", "Pixel Graphics", "Relaxing", "Cozy", "Life Sim"], genres=["Indie", "RPG", "Simulation"]),
    dict(appid=504230, title="Celeste", short_description="Help Madeline survive her inner demons on her journey to the top of Celeste Mountain.",
         tags=["Precision Platformer", "Pixel Graphics", "Difficult", "Emotional", "Great Soundtrack"], genres=["Action", "Adventure", "Indie"]),
    dict(appid=367520, title="Hollow Knight", short_description="Forge your own path in an epic action adventure through a ruined kingdom of insects.",
         tags=["Metroidvania", "Souls-like", "Hand-drawn", "Atmospheric", "Difficult"], genres=["Action", "Adventure", "Indie"]),
    dict(appid=1794680, title="Vampire Survivors", short_description="Mow down thousands of night creatures and survive until dawn.",
         tags=["Roguelite", "Bullet Hell", "Pixel Graphics", "Casual", "Arcade"], genres=["Action", "Casual", "Indie"]),
]

def seed_games(db: Session):
    if db.query(models.Game).count() == 0:
        db.add_all([models.Game(**game) for game in SEED_GAMES])
        db.commit()
        print(f"✅ Seeded {len(SEED_GAMES)} games.")

def seed_collections(db: Session):
    if db.query(models.Collection).count() == 0:
        collection = models.Collection(title="Pixel gems", slug="pixel-gems", description="Small games, big pixels.", published=True)
        db.add(collection)
        db.flush()
        for position, appid in enumerate([413150, 504230, 1794680]):
            db.add(models.CollectionGame(collection_id=collection.id, appid=appid, position=position))
        db.add(models.CollectionPin(collection_id=collection.id, context=PinContextEnum.HOME, position=0))
        db.commit()
        print(f"✅ Seeded collection: {collection.title}")

def seed_enrichments(db: Session):
    if db.query(models.GameEnrichment).count() == 0:
        db.add_all([
            models.GameEnrichment(appid=1145360, content_type=EnrichmentTypeEnum.VIDEO_URL, source_name="YouTube",
                                  content_json={"url": "https://www.youtube.com/watch?v=mD8x5xLHRho", "title": "Hades launch trailer"}),
            models.GameEnrichment(appid=1145360, content_type=EnrichmentTypeEnum.TEXT_SNIPPET, source_name="Editorial",
                                  content_json={"text": "Every failed run pushes the story forward."}),
        ])
        db.commit()
        print("✅ Seeded enrichments.")

def run_seed(embed: bool = True):
    db = SessionLocal()
    try:
        seed_games(db)
        seed_collections(db)
        seed_enrichments(db)
        if embed:
            embedded = backfill_embeddings(db, SentenceTransformerProducer())
            print(f"✅ Embedded {embedded} games.")
    finally:
        db.close()

if __name__ == "__main__":
    run_seed()
