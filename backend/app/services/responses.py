import logging
import random
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import select

from ..core.errors import NotFoundError
from ..core.events import ResponseCreated
from ..db import base as db_base
from ..db.base import utcnow
from ..models.moderation import ModerationVerdict
from ..models.records import PublishedResponse, as_utc
from ..models.sql_models import generate_uuid

logger = logging.getLogger(__name__)


class ResponseStore:
    """Persistence for submission outcomes, escalations and expiry cleanup."""

    def __init__(self, session_factory: Optional[Callable] = None, rng: Optional[random.Random] = None):
        self._session_factory = session_factory
        self._rng = rng or random.Random()

    def _session(self):
        factory = self._session_factory or db_base.get_session_factory()
        return factory()

    def save_published(
        self,
        prompt_id: str,
        audio_data: str,
        transcription: str,
        duration: float,
        verdict: ModerationVerdict,
    ) -> PublishedResponse:
        from ..models.sql_models import AudioResponse
        db = self._session()
        try:
            row = AudioResponse(
                id=generate_uuid(),
                prompt_id=prompt_id,
                audio_data=audio_data,
                transcription=transcription,
                duration=duration,
                created_at=utcnow(),
                flags=verdict.flag_values(),
                escalated=verdict.escalated,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return PublishedResponse.model_validate(row)
        finally:
            db.close()

    def save_rejected(self, prompt_id: str, transcription: str, verdict: ModerationVerdict) -> str:
        from ..models.sql_models import ModerationQueueEntry
        db = self._session()
        try:
            row = ModerationQueueEntry(
                id=generate_uuid(),
                prompt_id=prompt_id,
                transcription=transcription,
                moderation_result=verdict.to_dict(),
                timestamp=utcnow(),
            )
            db.add(row)
            db.commit()
            return row.id
        finally:
            db.close()

    def list_for_prompt(self, prompt_id: str) -> List[PublishedResponse]:
        from ..models.sql_models import AudioResponse
        db = self._session()
        try:
            rows = db.query(AudioResponse).filter(AudioResponse.prompt_id == prompt_id).all()
            return [PublishedResponse.model_validate(r) for r in rows]
        finally:
            db.close()

    def pick_random(self, prompt_id: str) -> PublishedResponse:
        responses = self.list_for_prompt(prompt_id)
        if not responses:
            raise NotFoundError("No responses available")
        return self._rng.choice(responses)

    def record_escalation(self, event: ResponseCreated) -> Optional[str]:
        """Write one review record for an escalated response; no-op otherwise.

        Not deduplicated: a redelivered event adds another row.
        """
        if not event.escalated:
            return None
        from ..models.sql_models import EscalatedResponse
        db = self._session()
        try:
            row = EscalatedResponse(
                id=generate_uuid(),
                response_id=event.response_id,
                prompt_id=event.prompt_id,
                transcription=event.transcription,
                flags=list(event.flags),
                timestamp=utcnow(),
            )
            db.add(row)
            db.commit()
            return row.id
        finally:
            db.close()

    def unrecorded_escalations(self) -> List[ResponseCreated]:
        """Escalated published responses that have no review record yet."""
        from ..models.sql_models import AudioResponse, EscalatedResponse
        db = self._session()
        try:
            recorded = select(EscalatedResponse.response_id)
            rows = (
                db.query(AudioResponse)
                .filter(AudioResponse.escalated.is_(True), AudioResponse.id.not_in(recorded))
                .order_by(AudioResponse.created_at)
                .all()
            )
            return [
                ResponseCreated(
                    response_id=r.id,
                    prompt_id=r.prompt_id,
                    transcription=r.transcription or "",
                    flags=list(r.flags or []),
                    escalated=True,
                )
                for r in rows
            ]
        finally:
            db.close()

    def reconcile_escalations(self) -> int:
        """Record every escalation whose created-event delivery never landed.

        Returns the number of records written.
        """
        missing = self.unrecorded_escalations()
        for event in missing:
            logger.warning("Recording missed escalation for response %s", event.response_id)
            self.record_escalation(event)
        return len(missing)

    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        """Delete prompts whose expiry is at or before ``now`` plus everything
        published or queued against them, in a single transaction.

        Escalation records are kept as the review trail. Returns the number of
        prompts removed.
        """
        from ..models.sql_models import AudioResponse, ModerationQueueEntry, Prompt
        cutoff = as_utc(now or utcnow()).replace(tzinfo=None)
        db = self._session()
        try:
            expired_ids = [
                pid for (pid,) in db.query(Prompt.id).filter(Prompt.expires_at <= cutoff).all()
            ]
            if not expired_ids:
                return 0
            db.query(AudioResponse).filter(AudioResponse.prompt_id.in_(expired_ids)).delete(
                synchronize_session=False
            )
            db.query(ModerationQueueEntry).filter(ModerationQueueEntry.prompt_id.in_(expired_ids)).delete(
                synchronize_session=False
            )
            db.query(Prompt).filter(Prompt.id.in_(expired_ids)).delete(synchronize_session=False)
            db.commit()
            return len(expired_ids)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def get_response_store() -> ResponseStore:
    """Dependency for getting the response store."""
    return ResponseStore()
