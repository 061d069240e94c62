# app/db/models/collection.py
"""
Curated collections and where they are pinned.

A pin places a published collection in a feed context ("home" or
"related") at a fixed position; pinned collections always lead the feed.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base
from app.db.models.enums import PinContextEnum

class Collection(Base):
    __tablename__ = "collections"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    published = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    games = relationship("CollectionGame", back_populates="collection", order_by="CollectionGame.position")
    pins = relationship("CollectionPin", back_populates="collection")


class CollectionGame(Base):
    __tablename__ = "collection_games"

    collection_id = Column(Integer, ForeignKey("collections.id", ondelete="CASCADE"), primary_key=True)
    appid = Column(Integer, ForeignKey("games.appid", ondelete="CASCADE"), primary_key=True)
    position = Column(Integer, nullable=False, default=0)

    collection = relationship("Collection", back_populates="games")


class CollectionPin(Base):
    __tablename__ = "collection_pins"

    id = Column(Integer, primary_key=True)
    collection_id = Column(Integer, ForeignKey("collections.id", ondelete="CASCADE"), nullable=False)
    context = Column(Enum(PinContextEnum), nullable=False, default=PinContextEnum.HOME)
    position = Column(Integer, nullable=False, default=0)

    collection = relationship("Collection", back_populates="pins")
