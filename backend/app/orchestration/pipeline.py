import asyncio
import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings, get_settings
from ..core.errors import InternalError, ValidationError
from ..core.events import RESPONSE_CREATED, EventBus, ResponseCreated
from ..models.records import SubmissionOutcome
from ..policies.validator import decode_audio, validate_submission
from ..safety.decision import moderate
from ..services.prompts import PromptService
from ..services.responses import ResponseStore
from .classify import ModerationClassifier
from .escalation import EscalationNotifier
from .transcribe import Transcriber

logger = logging.getLogger(__name__)


class SubmissionPipeline:
    """Transcribe, moderate and route one audio submission.

    Each call is independent; the only shared state is the database. An
    approved submission becomes a published response and emits
    ``response.created``; anything else lands in the moderation queue.
    """

    def __init__(
        self,
        settings: Settings,
        transcriber: Transcriber,
        classifier: ModerationClassifier,
        prompts: PromptService,
        store: ResponseStore,
        events: EventBus,
    ):
        self.settings = settings
        self.transcriber = transcriber
        self.classifier = classifier
        self.prompts = prompts
        self.store = store
        self.events = events

    async def _persist(self, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except SQLAlchemyError as e:
            logger.error("Persisting submission outcome failed: %s", e, exc_info=True)
            raise InternalError() from e

    async def _transcribe(self, audio: bytes) -> str:
        try:
            return await self.transcriber.transcribe(audio)
        except Exception as e:
            logger.error("Transcriber raised; continuing with empty transcript: %s", e, exc_info=True)
            return ""

    async def submit(
        self,
        prompt_id: Any,
        audio_data: Any,
        duration: Any = None,
        now: Optional[datetime] = None,
    ) -> SubmissionOutcome:
        ok, errs = validate_submission(prompt_id, audio_data, duration)
        if not ok:
            logger.info("Rejected malformed submission: %s", "; ".join(errs))
            raise ValidationError()

        await asyncio.to_thread(self.prompts.require_open_prompt, prompt_id, now)

        audio = decode_audio(audio_data)
        if not audio:
            raise ValidationError()

        transcription = await self._transcribe(audio)
        if not transcription:
            logger.info("No transcript for submission to %s; moderating empty text", prompt_id)

        verdict = await moderate(transcription, self.classifier, self.settings.LEXICON_PATH)

        if not verdict.approved:
            await self._persist(self.store.save_rejected, prompt_id, transcription, verdict)
            logger.info("Submission to %s rejected: flags=%s", prompt_id, verdict.flag_values())
            return SubmissionOutcome(
                accepted=False,
                escalated=verdict.escalated,
                reason=verdict.reason,
                flags=verdict.flag_values(),
            )

        published = await self._persist(
            self.store.save_published,
            prompt_id,
            audio_data,
            transcription,
            float(duration) if duration else float(self.settings.DEFAULT_DURATION_S),
            verdict,
        )
        self.events.publish(
            RESPONSE_CREATED,
            ResponseCreated(
                response_id=published.id,
                prompt_id=published.prompt_id,
                transcription=published.transcription,
                flags=list(published.flags),
                escalated=published.escalated,
            ),
        )
        logger.info("Published response %s for %s", published.id, prompt_id)
        return SubmissionOutcome(
            accepted=True,
            response_id=published.id,
            escalated=published.escalated,
            flags=list(published.flags),
        )


def build_pipeline(settings: Optional[Settings] = None, **overrides) -> SubmissionPipeline:
    """Wire a pipeline from settings; keyword overrides replace collaborators."""
    settings = settings or get_settings()
    store = overrides.pop("store", None) or ResponseStore()
    events = overrides.pop("events", None)
    if events is None:
        events = EventBus(max_attempts=settings.ESCALATION_MAX_ATTEMPTS)
        EscalationNotifier(store).register(events)
    return SubmissionPipeline(
        settings=settings,
        transcriber=overrides.pop("transcriber", None) or Transcriber(settings),
        classifier=overrides.pop("classifier", None) or ModerationClassifier(settings),
        prompts=overrides.pop("prompts", None) or PromptService(settings),
        store=store,
        events=events,
    )


@lru_cache()
def get_submission_pipeline() -> SubmissionPipeline:
    """Dependency for getting the shared submission pipeline."""
    return build_pipeline()
