# app/db/models/enrichment.py

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, JSON, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base
from app.db.models.enums import EnrichmentTypeEnum

# Supplementary content attached to a game (clips, articles, snippets...)
class GameEnrichment(Base):
    __tablename__ = "game_enrichments"

    id = Column(Integer, primary_key=True)
    appid = Column(Integer, ForeignKey("games.appid", ondelete="CASCADE"), nullable=False, index=True)
    content_type = Column(Enum(EnrichmentTypeEnum), nullable=False)
    source_name = Column(String, nullable=True)  # e.g. "YouTube", "RockPaperShotgun"
    content_json = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    game = relationship("Game", back_populates="enrichments")
