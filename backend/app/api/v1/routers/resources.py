from fastapi import APIRouter

from ....orchestration.triage import crisis_resources
from ....services import prompts as prompt_services

router = APIRouter(tags=["resources"])


@router.get("/crisis-resources")
async def get_crisis_resources():
    return crisis_resources()


@router.get("/stats")
def get_stats():
    """Admin counters for today's prompt."""
    return prompt_services.get_prompt_service().stats()
