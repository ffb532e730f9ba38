import json
import logging
import os
import random
from datetime import date as date_cls, datetime, timedelta
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from ..config import Settings, get_settings
from ..core.errors import ExpiredError, NotFoundError
from ..db import base as db_base
from ..db.base import utcnow
from ..models.records import PromptRecord, as_utc

logger = logging.getLogger(__name__)

_DEFAULT_QUESTIONS = os.path.join(os.path.dirname(os.path.dirname(__file__)), "rules", "questions.json")


@lru_cache(maxsize=4)
def load_questions(path: Optional[str] = None) -> List[str]:
    with open(path or _DEFAULT_QUESTIONS, "r", encoding="utf-8") as f:
        data = json.load(f)
    questions = [q.strip() for q in (data.get("questions") or []) if q and q.strip()]
    if not questions:
        raise ValueError(f"No questions configured in {path or _DEFAULT_QUESTIONS}")
    return questions


def date_key(day: Optional[date_cls] = None) -> str:
    """Calendar date (UTC) used as the prompt id, e.g. ``2024-05-01``."""
    return (day or utcnow().date()).isoformat()


class PromptService:
    """Daily prompt lookup, lazy creation, and submission-window checks."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factory: Optional[Callable] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings or get_settings()
        self._session_factory = session_factory
        self._rng = rng or random.Random()

    def _session(self):
        factory = self._session_factory or db_base.get_session_factory()
        return factory()

    def _pick_question(self) -> str:
        return self._rng.choice(load_questions(self.settings.QUESTIONS_PATH))

    def get_prompt(self, prompt_id: str) -> Optional[PromptRecord]:
        from ..models.sql_models import Prompt as SQLPrompt
        db = self._session()
        try:
            row = db.get(SQLPrompt, prompt_id)
            return PromptRecord.model_validate(row) if row else None
        finally:
            db.close()

    def get_or_create_daily_prompt(self, day: Optional[date_cls] = None) -> PromptRecord:
        """Return the prompt for ``day`` (today by default), creating it once.

        Concurrent first-of-day callers race on the primary key; the loser
        rolls back and reads the winner's row, so every caller sees the same
        prompt.
        """
        from ..models.sql_models import Prompt as SQLPrompt
        key = date_key(day)
        db = self._session()
        try:
            row = db.get(SQLPrompt, key)
            if row is not None:
                return PromptRecord.model_validate(row)

            created_at = utcnow()
            row = SQLPrompt(
                id=key,
                question=self._pick_question(),
                date=key,
                created_at=created_at,
                expires_at=created_at + timedelta(hours=self.settings.PROMPT_TTL_HOURS),
            )
            db.add(row)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                existing = db.get(SQLPrompt, key)
                if existing is None:
                    raise
                logger.info("Prompt %s created concurrently; using existing row", key)
                return PromptRecord.model_validate(existing)
            db.refresh(row)
            logger.info("Created daily prompt %s", key)
            return PromptRecord.model_validate(row)
        finally:
            db.close()

    def require_open_prompt(self, prompt_id: str, now: Optional[datetime] = None) -> PromptRecord:
        prompt = self.get_prompt(prompt_id)
        if prompt is None:
            raise NotFoundError("Prompt not found")
        if prompt.is_expired(as_utc(now or utcnow())):
            raise ExpiredError()
        return prompt

    def stats(self, day: Optional[date_cls] = None) -> Dict[str, Any]:
        from ..models.sql_models import AudioResponse, Prompt as SQLPrompt
        key = date_key(day)
        db = self._session()
        try:
            today = db.get(SQLPrompt, key)
            responses_today = db.query(AudioResponse).filter(AudioResponse.prompt_id == key).count()
            return {
                "totalPrompts": db.query(SQLPrompt).count(),
                "currentPrompt": today.question if today else "None",
                "responsesToday": responses_today,
                # No user identity is stored; one response per user is assumed
                "totalUsers": responses_today,
            }
        finally:
            db.close()


def get_prompt_service() -> PromptService:
    """Dependency for getting the prompt service."""
    return PromptService()
