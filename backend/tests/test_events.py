import threading

import pytest

from backend.app.core.events import RESPONSE_CREATED, EventBus, ResponseCreated
from backend.app.orchestration.escalation import EscalationNotifier


class RecordingStore:
    def __init__(self, failures: int = 0):
        self.failures = failures
        self.records = []
        self._lock = threading.Lock()

    def record_escalation(self, event):
        with self._lock:
            if self.failures:
                self.failures -= 1
                raise RuntimeError("db unavailable")
            self.records.append(event.response_id)
            return f"esc-{len(self.records)}"


def _event(escalated: bool = True) -> ResponseCreated:
    return ResponseCreated("r-1", "2024-05-01", "nobody cares", ["SELF_HARM_RISK"], escalated)


@pytest.mark.anyio
async def test_notifier_records_escalated_response():
    store = RecordingStore()
    bus = EventBus(retry_delay_s=0)
    EscalationNotifier(store).register(bus)

    bus.publish(RESPONSE_CREATED, _event())
    bus.publish(RESPONSE_CREATED, _event(escalated=False))
    await bus.drain()

    assert store.records == ["r-1"]
    assert bus.pending == 0


@pytest.mark.anyio
async def test_failed_delivery_is_retried():
    store = RecordingStore(failures=2)
    bus = EventBus(max_attempts=3, retry_delay_s=0)
    EscalationNotifier(store).register(bus)

    bus.publish(RESPONSE_CREATED, _event())
    await bus.drain()
    assert store.records == ["r-1"]


@pytest.mark.anyio
async def test_delivery_gives_up_after_max_attempts():
    store = RecordingStore(failures=5)
    bus = EventBus(max_attempts=2, retry_delay_s=0)
    EscalationNotifier(store).register(bus)

    bus.publish(RESPONSE_CREATED, _event())
    await bus.drain()
    assert store.records == []
    assert store.failures == 3


@pytest.mark.anyio
async def test_redelivery_duplicates_are_tolerated():
    store = RecordingStore()
    bus = EventBus(retry_delay_s=0)
    EscalationNotifier(store).register(bus)

    bus.publish(RESPONSE_CREATED, _event())
    bus.publish(RESPONSE_CREATED, _event())
    await bus.drain()
    assert store.records == ["r-1", "r-1"]


@pytest.mark.anyio
async def test_publish_without_subscribers_is_noop():
    bus = EventBus()
    bus.publish("unknown.event", object())
    assert bus.pending == 0
