import base64
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from backend.app.db import base as db_base
from backend.app.db.base import utcnow
from backend.app.main import app
from backend.app.models.moderation import ClassifierResult
from backend.app.models.sql_models import Prompt
from backend.tests.stubs import StubClassifier

AUDIO = base64.b64encode(b"fake-audio").decode("ascii")


class Transcripts:
    """Mutable transcript source so one test can drive several submissions."""

    def __init__(self):
        self.next_text = ""

    async def transcribe(self, audio: bytes) -> str:
        return self.next_text


@pytest.fixture()
async def client(monkeypatch, tmp_path, settings):
    from backend.app.orchestration import pipeline as pipeline_mod

    db_base.reconfigure(f"sqlite:///{tmp_path / 'api.db'}")
    db_base.init_db()

    transcripts = Transcripts()
    pipeline = pipeline_mod.build_pipeline(settings, transcriber=transcripts, classifier=StubClassifier())
    monkeypatch.setattr(pipeline_mod, "get_submission_pipeline", lambda: pipeline)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as c:
            c.transcripts = transcripts
            c.pipeline = pipeline
            yield c
    finally:
        await pipeline.events.drain()
        # Explicit cleanup to emulate lifespan shutdown
        db_base.SessionLocal.remove()
        db_base.engine.dispose()
        # Close logging file handlers to avoid unclosed file warnings
        import logging
        root_logger = logging.getLogger()
        for h in list(root_logger.handlers):
            h.flush()
            h.close()
            root_logger.removeHandler(h)


def _insert_prompt(prompt_id: str, expires_in: timedelta):
    db = db_base.SessionLocal()
    try:
        now = utcnow()
        db.add(Prompt(id=prompt_id, question="q", date=prompt_id, created_at=now, expires_at=now + expires_in))
        db.commit()
    finally:
        db.close()


@pytest.mark.anyio
async def test_current_prompt_is_stable(client):
    r1 = await client.get("/api/v1/prompts/current")
    r2 = await client.get("/api/v1/prompts/current")
    assert r1.status_code == 200, r1.text
    assert r1.json() == r2.json()
    body = r1.json()
    assert set(body) == {"id", "question", "date", "expiresAt"}
    assert body["id"] == body["date"]


@pytest.mark.anyio
async def test_submit_and_fetch_random(client):
    prompt = (await client.get("/api/v1/prompts/current")).json()
    client.transcripts.next_text = "the rain on my window"

    res = await client.post("/api/v1/responses", json={"promptId": prompt["id"], "audioData": AUDIO, "duration": 6})
    assert res.status_code == 200, res.text
    data = res.json()
    assert data["success"] is True
    assert data["escalated"] is False

    rnd = await client.get("/api/v1/responses/random", params={"promptId": prompt["id"]})
    assert rnd.status_code == 200, rnd.text
    body = rnd.json()
    assert body["id"] == data["responseId"]
    assert body["audioData"] == AUDIO
    assert body["duration"] == 6
    assert "createdAt" in body

    stats = (await client.get("/api/v1/stats")).json()
    assert stats["responsesToday"] == 1
    assert stats["totalPrompts"] == 1
    assert stats["currentPrompt"] == prompt["question"]


@pytest.mark.anyio
async def test_rejection_payload_reports_escalation(client):
    prompt = (await client.get("/api/v1/prompts/current")).json()
    client.transcripts.next_text = "I can't go on"
    res = await client.post("/api/v1/responses", json={"promptId": prompt["id"], "audioData": AUDIO})
    assert res.status_code == 422
    assert res.json() == {
        "error": "Content not approved",
        "reason": "Content violates community guidelines",
        "escalated": True,
    }


@pytest.mark.anyio
async def test_error_status_codes_are_distinct(client):
    _insert_prompt("2001-01-01", timedelta(hours=-1))
    _insert_prompt("2001-01-02", timedelta(hours=1))

    missing = await client.post("/api/v1/responses", json={"promptId": "2001-01-02"})
    not_found = await client.post("/api/v1/responses", json={"promptId": "1990-01-01", "audioData": AUDIO})
    expired = await client.post("/api/v1/responses", json={"promptId": "2001-01-01", "audioData": AUDIO})
    bad_audio = await client.post("/api/v1/responses", json={"promptId": "2001-01-02", "audioData": "%%%"})

    assert (missing.status_code, missing.json()) == (400, {"error": "Missing required fields"})
    assert (not_found.status_code, not_found.json()) == (404, {"error": "Prompt not found"})
    assert (expired.status_code, expired.json()) == (410, {"error": "Prompt has expired"})
    assert (bad_audio.status_code, bad_audio.json()) == (400, {"error": "Invalid audio encoding"})


@pytest.mark.anyio
async def test_random_response_errors(client):
    assert (await client.get("/api/v1/responses/random")).status_code == 400
    res = await client.get("/api/v1/responses/random", params={"promptId": "2001-01-01"})
    assert res.status_code == 404
    assert res.json() == {"error": "No responses available"}


@pytest.mark.anyio
async def test_internal_failures_are_generic(client, monkeypatch):
    async def boom(*args, **kwargs):
        raise RuntimeError("database password is hunter2")

    monkeypatch.setattr(client.pipeline, "submit", boom)
    res = await client.post("/api/v1/responses", json={"promptId": "x", "audioData": AUDIO})
    assert res.status_code == 500
    assert res.json() == {"error": "Internal server error"}


@pytest.mark.anyio
async def test_crisis_resources(client):
    res = await client.get("/api/v1/crisis-resources")
    assert res.status_code == 200
    names = [r["name"] for r in res.json()["resources"]]
    assert names == [
        "988 Suicide & Crisis Lifeline",
        "Crisis Text Line",
        "International Association for Suicide Prevention",
    ]


@pytest.mark.anyio
async def test_classifier_flag_via_api(client):
    client.pipeline.classifier = StubClassifier(result=ClassifierResult(available=True, flagged=True))
    prompt = (await client.get("/api/v1/prompts/current")).json()
    client.transcripts.next_text = "a perfectly calm sentence"
    res = await client.post("/api/v1/responses", json={"promptId": prompt["id"], "audioData": AUDIO})
    assert res.status_code == 422
    assert res.json()["escalated"] is False


@pytest.mark.anyio
async def test_infinite_duration_is_rejected(client):
    prompt = (await client.get("/api/v1/prompts/current")).json()
    client.transcripts.next_text = "the rain on my window"
    raw = '{"promptId": "%s", "audioData": "%s", "duration": Infinity}' % (prompt["id"], AUDIO)

    res = await client.post("/api/v1/responses", content=raw, headers={"Content-Type": "application/json"})
    assert (res.status_code, res.json()) == (400, {"error": "Missing required fields"})

    rnd = await client.get("/api/v1/responses/random", params={"promptId": prompt["id"]})
    assert rnd.status_code == 404
