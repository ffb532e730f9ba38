from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer


def as_utc(v: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to the naive timestamps read back from the database."""
    if v is None:
        return None
    return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v.astimezone(timezone.utc)


class RecordBase(BaseModel):
    """Base model for records read from the database."""

    model_config = ConfigDict(from_attributes=True)


class PromptRecord(RecordBase):
    id: str
    question: str
    date: str
    created_at: datetime
    expires_at: datetime

    @field_serializer("created_at", "expires_at", when_used="always")
    def _serialize_datetimes(self, v: datetime) -> str:
        return as_utc(v).isoformat()

    def is_expired(self, now: datetime) -> bool:
        return as_utc(now) > as_utc(self.expires_at)


class PublishedResponse(RecordBase):
    id: str
    prompt_id: str
    audio_data: str
    transcription: str = ""
    duration: float
    created_at: datetime
    flags: List[str] = Field(default_factory=list)
    escalated: bool = False


class SubmissionOutcome(BaseModel):
    """Result of one pipeline run: exactly one of accepted/rejected."""

    accepted: bool
    response_id: Optional[str] = None
    escalated: bool = False
    reason: Optional[str] = None
    flags: List[str] = Field(default_factory=list)