import logging
from typing import Optional

from ..core.events import RESPONSE_CREATED, EventBus, ResponseCreated
from ..services.responses import ResponseStore

logger = logging.getLogger(__name__)


class EscalationNotifier:
    """Writes a review record for every published response marked escalated.

    Subscribed to ``response.created``; redelivery may produce a duplicate
    record for the same response id, which reviewers tolerate.
    """

    def __init__(self, store: Optional[ResponseStore] = None):
        self.store = store or ResponseStore()

    def register(self, bus: EventBus) -> None:
        bus.subscribe(RESPONSE_CREATED, self.handle)

    def handle(self, event: ResponseCreated) -> Optional[str]:
        if not event.escalated:
            return None
        logger.warning("Escalated response detected: %s", event.response_id)
        return self.store.record_escalation(event)
