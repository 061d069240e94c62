# app/db/models/submission.py

from uuid import uuid4
from sqlalchemy import Column, Integer, String, DateTime, Boolean, Enum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from app.db.base import Base
from app.db.models.enums import SubmissionStatusEnum

# Games queued for the ingestion worker
class GameSubmission(Base):
    __tablename__ = "game_submissions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    appid = Column(Integer, nullable=False, index=True)
    steam_url = Column(String, nullable=True)
    skip_suggestions = Column(Boolean, default=False)
    status = Column(Enum(SubmissionStatusEnum), default=SubmissionStatusEnum.PENDING)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())
