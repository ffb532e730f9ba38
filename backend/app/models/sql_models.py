from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, String, Text
from sqlalchemy.orm import declarative_base

from ..db.base import utcnow

# Base class for SQLAlchemy models
Base = declarative_base()


def generate_uuid():
    return str(uuid4())


class Prompt(Base):
    """SQLAlchemy model for the daily prompt; one row per calendar date."""

    __tablename__ = "daily_prompts"

    # The date string (YYYY-MM-DD) doubles as the primary key
    id = Column(String(10), primary_key=True)
    question = Column(Text, nullable=False)
    date = Column(String(10), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<Prompt(id='{self.id}', expires_at='{self.expires_at}')>"


class AudioResponse(Base):
    """SQLAlchemy model for approved, published audio responses."""

    __tablename__ = "audio_responses"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    prompt_id = Column(String(10), nullable=False, index=True)
    # Base64 audio exactly as submitted
    audio_data = Column(Text, nullable=False)
    transcription = Column(Text, nullable=False, default="")
    duration = Column(Float, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    flags = Column(JSON, default=list)
    escalated = Column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<AudioResponse(id='{self.id}', prompt_id='{self.prompt_id}', escalated={self.escalated})>"


class ModerationQueueEntry(Base):
    """SQLAlchemy model for rejected submissions awaiting human review."""

    __tablename__ = "moderation_queue"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    prompt_id = Column(String(10), nullable=False, index=True)
    transcription = Column(Text, nullable=False, default="")
    # Full verdict: approved, flags, escalated, reason
    moderation_result = Column(JSON, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<ModerationQueueEntry(id='{self.id}', prompt_id='{self.prompt_id}')>"


class EscalatedResponse(Base):
    """SQLAlchemy model for published responses flagged for crisis review."""

    __tablename__ = "escalated_responses"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    # Not unique: redelivery of the created event may add a second row
    response_id = Column(String(36), nullable=False, index=True)
    prompt_id = Column(String(10), nullable=False)
    transcription = Column(Text, nullable=False, default="")
    flags = Column(JSON, default=list)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<EscalatedResponse(id='{self.id}', response_id='{self.response_id}')>"
