import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Set

logger = logging.getLogger(__name__)

RESPONSE_CREATED = "response.created"

Handler = Callable[[Any], None]


@dataclass(frozen=True)
class ResponseCreated:
    """Payload emitted after a published response is committed."""

    response_id: str
    prompt_id: str
    transcription: str
    flags: List[str] = field(default_factory=list)
    escalated: bool = False


class EventBus:
    """In-process named events with at-least-once, fire-and-forget delivery.

    Each handler runs in a worker thread on its own task; a failing handler
    is retried up to ``max_attempts`` times, so handlers must tolerate being
    called more than once for the same payload.
    """

    def __init__(self, max_attempts: int = 3, retry_delay_s: float = 0.1):
        self.max_attempts = max(1, int(max_attempts))
        self.retry_delay_s = retry_delay_s
        self._subscribers: Dict[str, List[Handler]] = defaultdict(list)
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, event: str, handler: Handler) -> None:
        self._subscribers[event].append(handler)

    def publish(self, event: str, payload: Any) -> None:
        handlers = list(self._subscribers.get(event, []))
        if not handlers:
            return
        loop = asyncio.get_running_loop()
        for handler in handlers:
            task = loop.create_task(self._deliver(event, handler, payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, event: str, handler: Handler, payload: Any) -> None:
        name = getattr(handler, "__qualname__", repr(handler))
        for attempt in range(1, self.max_attempts + 1):
            try:
                await asyncio.to_thread(handler, payload)
                return
            except Exception as e:
                logger.warning(
                    "Handler %s failed for %s (attempt %d/%d): %s",
                    name, event, attempt, self.max_attempts, e,
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay_s * attempt)
        logger.error("Giving up delivering %s to %s after %d attempts", event, name, self.max_attempts)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every in-flight delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
