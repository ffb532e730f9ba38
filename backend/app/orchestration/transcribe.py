import asyncio
import logging
from typing import Optional

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)


class Transcriber:
    """Speech-to-text adapter (OpenAI audio transcriptions).

    Returns "" when the audio yields no text or the service fails; an empty
    transcript means "no extractable content", not an error.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.api_key = (settings.OPENAI_API_KEY or "").strip()
        self.base_url = settings.OPENAI_BASE_URL.rstrip("/")
        self.model = settings.TRANSCRIPTION_MODEL
        self.language = settings.TRANSCRIPTION_LANGUAGE
        self.timeout = float(settings.TRANSCRIPTION_TIMEOUT_S)
        self._client = client

    async def _post(self, audio: bytes) -> str:
        url = f"{self.base_url}/audio/transcriptions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        files = {"file": ("response.webm", audio, "audio/webm")}
        data = {"model": self.model, "language": self.language, "response_format": "json"}
        if self._client is not None:
            resp = await self._client.post(url, headers=headers, files=files, data=data, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, headers=headers, files=files, data=data)
        resp.raise_for_status()
        body = resp.json()
        return str((body or {}).get("text") or "")

    async def transcribe(self, audio: bytes) -> str:
        if not audio:
            return ""
        if not self.api_key:
            logger.warning("Transcription skipped: OPENAI_API_KEY not configured")
            return ""
        try:
            text = await asyncio.wait_for(self._post(audio), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Transcription timed out after %.1fs", self.timeout)
            return ""
        except Exception as e:
            logger.error("Transcription error: %s", e, exc_info=True)
            return ""
        return text.strip()
