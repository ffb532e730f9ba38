import sys
from datetime import timedelta
from pathlib import Path

# Ensure repository root is on sys.path so 'import backend' works
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Force pytest-anyio to use asyncio backend (avoid requiring 'trio')
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from backend.app.config import Settings
from backend.app.core.events import EventBus
from backend.app.db.base import utcnow
from backend.app.models.sql_models import Base, Prompt
from backend.tests.stubs import StubClassifier, StubTranscriber


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return Settings(_env_file=None, OPENAI_API_KEY="", SCHEDULER_ENABLED=False)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    try:
        yield factory
    finally:
        engine.dispose()


@pytest.fixture
def add_prompt(session_factory):
    """Insert a prompt row directly; ``expires_in`` may be negative."""

    def _add(prompt_id: str, expires_in: timedelta = timedelta(hours=12), question: str = "How are you?"):
        db = session_factory()
        try:
            now = utcnow()
            db.add(Prompt(
                id=prompt_id,
                question=question,
                date=prompt_id,
                created_at=now - timedelta(hours=1),
                expires_at=now + expires_in,
            ))
            db.commit()
        finally:
            db.close()
        return prompt_id

    return _add


@pytest.fixture
def make_pipeline(settings, session_factory):
    from backend.app.orchestration.escalation import EscalationNotifier
    from backend.app.orchestration.pipeline import build_pipeline
    from backend.app.services.prompts import PromptService
    from backend.app.services.responses import ResponseStore

    def _make(text: str = "", transcriber=None, classifier=None):
        store = ResponseStore(session_factory=session_factory)
        events = EventBus(max_attempts=3, retry_delay_s=0)
        EscalationNotifier(store).register(events)
        return build_pipeline(
            settings,
            transcriber=transcriber or StubTranscriber(text),
            classifier=classifier or StubClassifier(),
            prompts=PromptService(settings, session_factory=session_factory),
            store=store,
            events=events,
        )

    return _make
