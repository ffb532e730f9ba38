import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import Settings
from ..core.errors import DependencyUnavailable
from ..models.moderation import ClassifierResult

logger = logging.getLogger(__name__)


def _flagged_categories(result: Dict[str, Any]) -> List[str]:
    cats = result.get("categories") or {}
    if not isinstance(cats, dict):
        return []
    return sorted(name for name, hit in cats.items() if hit)


class ModerationClassifier:
    """Adapter for the OpenAI moderation endpoint.

    ``classify`` never raises for upstream problems: a missing key, HTTP
    error, malformed body or timeout all come back as an unavailable result.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.api_key = (settings.OPENAI_API_KEY or "").strip()
        self.base_url = settings.OPENAI_BASE_URL.rstrip("/")
        self.model = settings.MODERATION_MODEL
        self.timeout = float(settings.CLASSIFIER_TIMEOUT_S)
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _post(self, text: str) -> Dict[str, Any]:
        payload = {"model": self.model, "input": text or ""}
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        url = f"{self.base_url}/moderations"
        if self._client is not None:
            resp = await self._client.post(url, json=payload, headers=headers, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(url, json=payload, headers=headers)
        resp.raise_for_status()
        return resp.json()

    async def _call(self, text: str) -> ClassifierResult:
        try:
            data = await asyncio.wait_for(self._post(text), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise DependencyUnavailable("moderation call timed out") from e
        except Exception as e:
            raise DependencyUnavailable(f"moderation call failed: {e}") from e

        results = data.get("results") if isinstance(data, dict) else None
        if not results or not isinstance(results[0], dict):
            raise DependencyUnavailable("moderation returned no results")
        first = results[0]
        return ClassifierResult(
            available=True,
            flagged=bool(first.get("flagged", False)),
            categories=_flagged_categories(first),
        )

    async def classify(self, text: str) -> ClassifierResult:
        if not self.configured:
            return ClassifierResult.unavailable("not configured")
        try:
            return await self._call(text)
        except DependencyUnavailable as e:
            logger.warning("Moderation classifier unavailable: %s", e)
            return ClassifierResult.unavailable(str(e))
