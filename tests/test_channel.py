import time
from unittest.mock import MagicMock

import pytest
import redis

from smsgate.infrastructure.channel.adapters.redis_streams_channel import RedisStreamsChannel
from smsgate.infrastructure.channel.in_memory import InMemoryChannel
from smsgate.infrastructure.channel.interface import ChannelError, ChannelTransportError, partition_for
from smsgate.tools.redis.client import RedisClient

STREAM = "sms_events:0"


def test_partition_for_is_stable_and_in_range():
    for n in (1, 2, 7):
        for r in ("+1555", "+1111111111", "+447700900123"):
            p = partition_for(r, n)
            assert 0 <= p < n
            assert partition_for(r, n) == p
    assert partition_for("+1555", 1) == 0


def test_group_delivery_pending_and_ack():
    ch = InMemoryChannel()
    ch.ensure_group("sms_events", 1, "g")
    id1 = ch.publish("sms_events", 0, "a")
    id2 = ch.publish("sms_events", 0, "b")

    res = ch.read_group("g", "c1", {STREAM: ">"})
    assert res == [(STREAM, [(id1, "a"), (id2, "b")])]
    # delivered once per group
    assert ch.read_group("g", "c1", {STREAM: ">"}) == []
    # still pending until acked, visible again with "0"
    assert ch.read_group("g", "c1", {STREAM: "0"}) == [(STREAM, [(id1, "a"), (id2, "b")])]

    ch.ack(STREAM, "g", id1)
    assert ch.read_group("g", "c1", {STREAM: "0"}) == [(STREAM, [(id2, "b")])]
    # another consumer does not see c1's pending entries
    assert ch.read_group("g", "c2", {STREAM: "0"}) == []


def test_independent_groups_each_see_every_entry():
    ch = InMemoryChannel()
    ch.publish("sms_events", 0, "a")
    assert len(ch.read_group("g1", "c", {STREAM: ">"})[0][1]) == 1
    assert len(ch.read_group("g2", "c", {STREAM: ">"})[0][1]) == 1


def test_read_respects_count_and_preserves_order():
    ch = InMemoryChannel()
    for i in range(5):
        ch.publish("sms_events", 0, str(i))
    first = ch.read_group("g", "c", {STREAM: ">"}, count=3)
    second = ch.read_group("g", "c", {STREAM: ">"}, count=3)
    assert [p for _, p in first[0][1]] == ["0", "1", "2"]
    assert [p for _, p in second[0][1]] == ["3", "4"]


def test_blocking_read_times_out_empty():
    ch = InMemoryChannel()
    started = time.monotonic()
    assert ch.read_group("g", "c", {STREAM: ">"}, block_ms=50) == []
    assert time.monotonic() - started >= 0.04


def test_partition_lease_is_exclusive_until_released():
    ch = InMemoryChannel()
    assert ch.acquire_partition("sms_events", "g", 0, "a", ttl_seconds=30)
    assert not ch.acquire_partition("sms_events", "g", 0, "b", ttl_seconds=30)
    # re-acquiring an owned lease is fine
    assert ch.acquire_partition("sms_events", "g", 0, "a", ttl_seconds=30)
    assert ch.renew_partition("sms_events", "g", 0, "a", ttl_seconds=30)
    assert not ch.renew_partition("sms_events", "g", 0, "b", ttl_seconds=30)

    ch.release_partition("sms_events", "g", 0, "b")  # not the owner: no effect
    assert not ch.acquire_partition("sms_events", "g", 0, "b", ttl_seconds=30)
    ch.release_partition("sms_events", "g", 0, "a")
    assert ch.acquire_partition("sms_events", "g", 0, "b", ttl_seconds=30)


def test_partition_lease_expires():
    ch = InMemoryChannel()
    assert ch.acquire_partition("sms_events", "g", 0, "a", ttl_seconds=0)
    assert ch.acquire_partition("sms_events", "g", 0, "b", ttl_seconds=30)


def test_claim_key_once():
    ch = InMemoryChannel()
    assert ch.claim_key("ops:idemp:g:1", 60)
    assert not ch.claim_key("ops:idemp:g:1", 60)
    ch.release_key("ops:idemp:g:1")
    assert ch.claim_key("ops:idemp:g:1", 60)


# --- Redis Streams adapter (redis-py mocked) --------------------------------

def _redis_channel():
    raw = MagicMock()
    return RedisStreamsChannel(RedisClient(namespace="t", client=raw)), raw


def test_redis_publish_writes_data_field_on_partition_stream():
    ch, raw = _redis_channel()
    raw.xadd.return_value = "1-0"
    assert ch.publish("sms_events", 1, '{"x":1}') == "1-0"
    raw.xadd.assert_called_once_with("t:sms_events:1", {"data": '{"x":1}'}, maxlen=None, approximate=True)


def test_redis_ensure_group_tolerates_busygroup():
    ch, raw = _redis_channel()
    raw.xgroup_create.side_effect = redis.exceptions.ResponseError("BUSYGROUP Consumer Group name already exists")
    ch.ensure_group("sms_events", 2, "g")
    assert raw.xgroup_create.call_count == 2


def test_redis_read_group_strips_namespace_and_extracts_payload():
    ch, raw = _redis_channel()
    raw.xreadgroup.return_value = [("t:sms_events:0", [("1-0", {"data": "p"}), ("2-0", {})])]
    res = ch.read_group("g", "c", {STREAM: ">"}, count=10, block_ms=100)
    assert res == [(STREAM, [("1-0", "p"), ("2-0", None)])]
    raw.xreadgroup.assert_called_once_with("g", "c", {"t:sms_events:0": ">"}, count=10, block=100)


def test_redis_pending_read_never_blocks():
    ch, raw = _redis_channel()
    raw.xreadgroup.return_value = []
    ch.read_group("g", "c", {STREAM: "0"}, count=10, block_ms=1000)
    raw.xreadgroup.assert_called_once_with("g", "c", {"t:sms_events:0": "0"}, count=10, block=None)


def test_redis_connection_errors_become_transport_errors():
    ch, raw = _redis_channel()
    raw.xreadgroup.side_effect = redis.exceptions.ConnectionError("refused")
    with pytest.raises(ChannelTransportError):
        ch.read_group("g", "c", {STREAM: ">"})
    raw.xack.side_effect = redis.exceptions.ResponseError("NOGROUP")
    with pytest.raises(ChannelError) as exc:
        ch.ack(STREAM, "g", "1-0")
    assert not isinstance(exc.value, ChannelTransportError)


def test_redis_lease_uses_set_nx_with_owner():
    ch, raw = _redis_channel()
    raw.set.return_value = True
    assert ch.acquire_partition("sms_events", "g", 0, "c1", 30)
    raw.set.assert_called_once_with("t:ops:lease:sms_events:g:0", "c1", nx=True, ex=30)

    raw.set.return_value = None
    raw.get.return_value = "other"
    assert not ch.acquire_partition("sms_events", "g", 0, "c1", 30)
    assert not ch.renew_partition("sms_events", "g", 0, "c1", 30)


def test_claim_pending_moves_other_consumers_entries():
    ch = InMemoryChannel()
    ch.ensure_group("sms_events", 1, "g")
    id1 = ch.publish("sms_events", 0, "a")
    ch.read_group("g", "old", {STREAM: ">"})

    assert ch.claim_pending(STREAM, "g", "new") == 1
    assert ch.pending(STREAM, "g") == {id1: "new"}
    assert ch.read_group("g", "new", {STREAM: "0"}) == [(STREAM, [(id1, "a")])]
    assert ch.read_group("g", "old", {STREAM: "0"}) == []
    assert ch.claim_pending(STREAM, "g", "new") == 0


def test_redis_claim_pending_pages_through_xautoclaim():
    ch, raw = _redis_channel()
    raw.xautoclaim.side_effect = [["5-0", ["1-0", "2-0"], []], ["0-0", ["5-0"], []]]
    assert ch.claim_pending(STREAM, "g", "c2") == 3
    first, second = raw.xautoclaim.call_args_list
    assert first.args == ("t:sms_events:0", "g", "c2", 0)
    assert first.kwargs["start_id"] == "0-0" and first.kwargs["justid"] is True
    assert second.kwargs["start_id"] == "5-0"
