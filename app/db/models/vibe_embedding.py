# app/db/models/vibe_embedding.py
"""
SQLAlchemy model for per-facet "vibe" embeddings.

A game can hold several rows per facet; the newest row for a facet+model
pair is the current one used for matching, older rows are history.
Vectors are stored with pgvector and searched with cosine distance.
"""

from uuid import uuid4
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, JSON, Index, Enum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pgvector.sqlalchemy import Vector
from app.core.config import settings
from app.db.base import Base
from app.db.models.enums import SourceTypeEnum

class VibeEmbedding(Base):
    __tablename__ = "vibe_embeddings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    appid = Column(Integer, ForeignKey("games.appid", ondelete="CASCADE"), nullable=False, index=True)
    facet = Column(String, nullable=False, index=True)  # open set, e.g. "aesthetic", "mechanics"
    model_id = Column(String, nullable=False)
    embedding = Column(Vector(settings.EMBEDDING_DIM), nullable=False)
    source_type = Column(Enum(SourceTypeEnum), nullable=False, default=SourceTypeEnum.TEXT)
    source_data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    game = relationship("Game", back_populates="embeddings")

    __table_args__ = (
        Index("ix_vibe_embeddings_lookup", "appid", "facet", "model_id", "created_at"),
    )
