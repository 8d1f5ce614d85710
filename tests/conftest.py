import threading
from typing import Any, Dict, List

import pytest
from dotenv import load_dotenv

from smsgate.infrastructure.channel.in_memory import InMemoryChannel
from smsgate.infrastructure.consumer.consumer import EventConsumer
from smsgate.infrastructure.dispatcher.dispatcher import Dispatcher
from smsgate.infrastructure.emitter.emitter import EventEmitter
from smsgate.services.message_store import MessageStore, RetrievalService
from smsgate.tools.blocklist.gate import BlocklistGate, InMemoryBlocklistStore
from smsgate.tools.delivery.interface import DeliveryError
from smsgate.tools.persistence.adapters.in_memory_adapter import InMemoryAdapter
from smsgate.tools.persistence.service import PersistenceService

# .env values never override what the shell already exported
load_dotenv(override=False)

TOPIC = "sms_events"
GROUP = "sms-storage-group"


class RecordingDelivery:
    """Delivery stub that records every call; set `fail_with` to make sends fail."""

    def __init__(self, fail_with: Exception | None = None):
        self.fail_with = fail_with
        self.calls: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def send(self, recipient, body, meta=None):
        with self._lock:
            self.calls.append({"recipient": recipient, "body": body})
        if self.fail_with is not None:
            raise self.fail_with
        return {"status": "SENT", "provider_id": f"stub-{len(self.calls)}"}


@pytest.fixture
def channel():
    ch = InMemoryChannel()
    yield ch
    ch.close()


@pytest.fixture
def gate():
    return BlocklistGate(InMemoryBlocklistStore())


@pytest.fixture
def delivery():
    return RecordingDelivery()


@pytest.fixture
def failing_delivery():
    return RecordingDelivery(fail_with=DeliveryError("carrier rejected number"))


@pytest.fixture
def adapter():
    return InMemoryAdapter()


@pytest.fixture
def persistence(adapter):
    return PersistenceService(adapter, read_allowlist=["sms_recipients"], write_allowlist=["sms_recipients"])


@pytest.fixture
def message_store(persistence):
    return MessageStore(persistence)


@pytest.fixture
def retrieval(persistence):
    return RetrievalService(persistence)


@pytest.fixture
def emitter(channel):
    em = EventEmitter(channel, TOPIC, partitions=1, timeout_seconds=1.0)
    yield em
    em.close()


@pytest.fixture
def dispatcher(gate, delivery, emitter):
    return Dispatcher(gate, delivery, emitter)


@pytest.fixture
def consumer(channel, message_store):
    c = EventConsumer(channel, message_store, TOPIC, group=GROUP, consumer_name="test-consumer", block_ms=0)
    yield c
    c.stop(timeout=2.0)
