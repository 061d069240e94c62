"""
create_tables.py

Run this script once to create all database tables defined in SQLAlchemy models.
It enables the pgvector extension first, then uses Base.metadata.create_all
with the configured engine.

You should run this after setting up your database URL in `.env`.
For managed environments prefer the Alembic migrations in `alembic/`.
"""

from sqlalchemy import text

from app.db.base import Base
from app.db.session import engine

# Ensure all models are imported before calling create_all
from app.db import models  # noqa: F401

def init_db():
    print("📦 Enabling pgvector and creating all database tables...")
    with engine.begin() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
    Base.metadata.create_all(bind=engine)
    print("✅ Done.")

if __name__ == "__main__":
    init_db()
