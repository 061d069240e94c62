"""
Creates SQLAlchemy database engine and session factory.

Request handlers get sessions through `app.db.deps.get_db`; the feed's
content providers open their own short-lived sessions from `SessionLocal`
because they run concurrently in worker threads.
"""

# app/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.core.config import settings

engine = create_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO, future=True, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
