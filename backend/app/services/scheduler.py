import asyncio
import logging
from datetime import datetime
from typing import Optional

from .prompts import PromptService
from .responses import ResponseStore

logger = logging.getLogger(__name__)


def generate_daily_prompt(prompts: Optional[PromptService] = None) -> Optional[str]:
    """Scheduled job: make sure today's prompt exists. Safe to run repeatedly."""
    try:
        logger.info("Generating new daily prompt...")
        prompt = (prompts or PromptService()).get_or_create_daily_prompt()
        logger.info("Daily prompt %s ready", prompt.id)
        return prompt.id
    except Exception as e:
        logger.error("Error generating daily prompt: %s", e, exc_info=True)
        return None


def cleanup_expired_content(now: Optional[datetime] = None, store: Optional[ResponseStore] = None) -> int:
    """Scheduled job: remove expired prompts and their content."""
    try:
        logger.info("Cleaning up expired content...")
        count = (store or ResponseStore()).sweep_expired(now)
        logger.info("Cleaned up %d expired prompts", count)
        return count
    except Exception as e:
        logger.error("Error cleaning up expired content: %s", e, exc_info=True)
        return 0


def reconcile_escalations(store: Optional[ResponseStore] = None) -> int:
    """Scheduled job: write review records for escalations whose delivery was lost."""
    try:
        count = (store or ResponseStore()).reconcile_escalations()
        if count:
            logger.warning("Recorded %d missed escalations", count)
        return count
    except Exception as e:
        logger.error("Error reconciling escalations: %s", e, exc_info=True)
        return 0


async def run_scheduler(
    interval_s: float,
    prompts: Optional[PromptService] = None,
    store: Optional[ResponseStore] = None,
) -> None:
    """Run the jobs every ``interval_s`` seconds until cancelled.

    Escalations are reconciled before the sweep so a missed record is written
    while its response still exists.
    """
    while True:
        await asyncio.to_thread(reconcile_escalations, store)
        await asyncio.to_thread(cleanup_expired_content, None, store)
        await asyncio.to_thread(generate_daily_prompt, prompts)
        await asyncio.sleep(interval_s)
