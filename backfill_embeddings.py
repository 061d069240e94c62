"""
backfill_embeddings.py

Embeds every game that is missing one of the configured facets for the
current embedding model.

    python backfill_embeddings.py --limit 100
"""

import argparse

from app.core import logging_config  # noqa: F401
from app.core.config import settings
from app.db.session import SessionLocal
from app.services.embedding_backfill import backfill_embeddings
from app.services.embedding_producer import SentenceTransformerProducer

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Backfill vibe embeddings")
    parser.add_argument("--limit", type=int, default=None)
    parser.add_argument("--model", default=settings.EMBEDDING_MODEL)
    parser.add_argument("--facets", default=",".join(settings.FEED_FACETS))
    args = parser.parse_args()

    db = SessionLocal()
    try:
        facets = [f.strip().lower() for f in args.facets.split(",") if f.strip()]
        done = backfill_embeddings(db, SentenceTransformerProducer(args.model), facets, args.limit)
        print(f"✅ Embedded {done} games.")
    finally:
        db.close()
