import json
import threading
import time

import pytest

from smsgate.infrastructure.channel.in_memory import InMemoryChannel
from smsgate.infrastructure.channel.interface import ChannelTransportError, partition_for
from smsgate.infrastructure.emitter.emitter import EventEmitter, PublishError, PublishErrorKind
from smsgate.utils.events import OutcomeRecord, Status


class _FailingChannel(InMemoryChannel):
    def publish(self, topic, partition, payload):
        raise ChannelTransportError("connection refused")


class _SlowChannel(InMemoryChannel):
    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def publish(self, topic, partition, payload):
        self.entered.set()
        self.release.wait(5)
        return super().publish(topic, partition, payload)


def test_publish_returns_entry_id_and_writes_json(emitter, channel):
    rec = OutcomeRecord.create("+1555", "hi", Status.DELIVERED)
    entry_id = emitter.publish(rec)
    entries = channel.entries("sms_events", 0)
    assert entries[0][0] == entry_id
    assert json.loads(entries[0][1])["eventId"] == rec.correlation_id


def test_publish_routes_by_recipient_partition():
    ch = InMemoryChannel()
    em = EventEmitter(ch, "sms_events", partitions=4)
    try:
        for r in ("+1", "+2", "+3", "+4", "+5"):
            em.publish(OutcomeRecord.create(r, "m", Status.DELIVERED))
        for r in ("+1", "+2", "+3", "+4", "+5"):
            payloads = [json.loads(p)["phoneNumber"] for _, p in ch.entries("sms_events", partition_for(r, 4))]
            assert r in payloads
    finally:
        em.close()


def test_transport_failure_is_wrapped_with_cause():
    em = EventEmitter(_FailingChannel(), "sms_events")
    try:
        with pytest.raises(PublishError) as exc:
            em.publish(OutcomeRecord.create("+1555", "hi", Status.FAILED))
    finally:
        em.close()
    assert exc.value.kind is PublishErrorKind.TRANSPORT_FAILURE
    assert isinstance(exc.value.__cause__, ChannelTransportError)
    assert "connection refused" in str(exc.value)


def test_unacknowledged_publish_times_out():
    ch = _SlowChannel()
    em = EventEmitter(ch, "sms_events", timeout_seconds=0.05)
    try:
        with pytest.raises(PublishError) as exc:
            em.publish(OutcomeRecord.create("+1555", "hi", Status.DELIVERED))
        assert exc.value.kind is PublishErrorKind.TIMEOUT
    finally:
        ch.release.set()
        em.close()


def test_publish_after_close_is_cancelled(channel):
    em = EventEmitter(channel, "sms_events")
    em.close()
    with pytest.raises(PublishError) as exc:
        em.publish(OutcomeRecord.create("+1555", "hi", Status.DELIVERED))
    assert exc.value.kind is PublishErrorKind.CANCELLED
    assert channel.entries("sms_events", 0) == []


def test_queued_publish_is_cancelled_when_emitter_closes():
    ch = _SlowChannel()
    em = EventEmitter(ch, "sms_events", timeout_seconds=5, max_workers=1)
    outcomes = {}

    def send(name):
        try:
            em.publish(OutcomeRecord.create("+1555", name, Status.DELIVERED))
            outcomes[name] = "ok"
        except PublishError as e:
            outcomes[name] = e.kind

    first = threading.Thread(target=send, args=("first",))
    first.start()
    assert ch.entered.wait(2)
    # the single worker is busy, so the second publish waits in the queue
    second = threading.Thread(target=send, args=("second",))
    second.start()
    deadline = time.monotonic() + 2
    while em._executor._work_queue.qsize() == 0 and time.monotonic() < deadline:
        time.sleep(0.01)

    em.close()
    ch.release.set()
    first.join(2)
    second.join(2)
    assert outcomes == {"first": "ok", "second": PublishErrorKind.CANCELLED}
    assert [json.loads(p)["message"] for _, p in ch.entries("sms_events", 0)] == ["first"]
