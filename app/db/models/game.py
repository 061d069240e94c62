# app/db/models/game.py
"""
SQLAlchemy model for catalog games.

Rows are written by the ingestion collaborator; the feed engine only reads
them. `extra` keeps the raw catalog payload that has no dedicated column.
"""

from sqlalchemy import Column, Integer, String, Text, JSON, ARRAY, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base

# Game Table
class Game(Base):
    __tablename__ = "games"

    appid = Column(Integer, primary_key=True, autoincrement=False)
    title = Column(String, nullable=False)
    short_description = Column(Text, nullable=True)
    long_description = Column(Text, nullable=True)
    header_image = Column(String, nullable=True)
    screenshots = Column(ARRAY(String), nullable=True, default=[])
    videos = Column(ARRAY(String), nullable=True, default=[])
    tags = Column(ARRAY(String), nullable=True, default=[])  # store/community tags, e.g. "Roguelike"
    genres = Column(ARRAY(String), nullable=True, default=[])
    developers = Column(ARRAY(String), nullable=True, default=[])
    extra = Column(JSON, nullable=True, default={})  # unstructured catalog data

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    embeddings = relationship("VibeEmbedding", back_populates="game", cascade="all, delete-orphan")
    enrichments = relationship("GameEnrichment", back_populates="game", cascade="all, delete-orphan")

    def tag_set(self):
        return set(self.tags or []) | set(self.genres or [])
