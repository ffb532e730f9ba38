from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from ....core.errors import ModerationRejection, ValidationError
from ....models.records import as_utc
from ....orchestration import pipeline as pipeline_mod
from ....services import responses as response_services

router = APIRouter(prefix="/responses", tags=["responses"])


class SubmitResponseBody(BaseModel):
    # Optional here so missing fields surface as our own 400, not a schema error
    prompt_id: Optional[str] = Field(None, alias="promptId")
    audio_data: Optional[str] = Field(None, alias="audioData")
    duration: Optional[float] = None

    model_config = ConfigDict(populate_by_name=True)


class SubmitResponseResult(BaseModel):
    success: bool
    responseId: str
    escalated: bool


class RandomResponse(BaseModel):
    id: str
    audioData: str
    duration: float
    createdAt: str


@router.post("", response_model=SubmitResponseResult)
async def submit_response(body: SubmitResponseBody):
    """Transcribe, moderate and publish (or queue) an audio answer."""
    pipeline = pipeline_mod.get_submission_pipeline()
    outcome = await pipeline.submit(body.prompt_id, body.audio_data, body.duration)
    if not outcome.accepted:
        raise ModerationRejection(outcome.reason, outcome.escalated)
    return SubmitResponseResult(success=True, responseId=outcome.response_id, escalated=outcome.escalated)


@router.get("/random", response_model=RandomResponse)
def get_random_response(prompt_id: Optional[str] = Query(None, alias="promptId")):
    if not prompt_id:
        raise ValidationError("promptId is required")
    picked = response_services.get_response_store().pick_random(prompt_id)
    return RandomResponse(
        id=picked.id,
        audioData=picked.audio_data,
        duration=picked.duration,
        createdAt=as_utc(picked.created_at).isoformat(),
    )
