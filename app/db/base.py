"""
Defines the SQLAlchemy declarative base class.

Games, vibe embeddings, collections, enrichments and submissions all
inherit from this base.
"""

# app/db/base.py
from sqlalchemy.orm import declarative_base

Base = declarative_base()
