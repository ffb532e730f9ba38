from fastapi import APIRouter
from pydantic import BaseModel

from ....services import prompts as prompt_services

router = APIRouter(prefix="/prompts", tags=["prompts"])


class CurrentPromptResponse(BaseModel):
    id: str
    question: str
    date: str
    expiresAt: str


@router.get("/current", response_model=CurrentPromptResponse)
def get_current_prompt():
    """Return today's prompt, creating it on the first request of the day."""
    prompt = prompt_services.get_prompt_service().get_or_create_daily_prompt()
    data = prompt.model_dump()
    return CurrentPromptResponse(
        id=prompt.id,
        question=prompt.question,
        date=prompt.date,
        expiresAt=data["expires_at"],
    )
