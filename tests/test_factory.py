from unittest.mock import patch

import pytest

from smsgate.config.settings import Settings
from smsgate.factory import build_delivery, build_sender_context, build_store_context
from smsgate.infrastructure.channel.adapters.redis_streams_channel import RedisStreamsChannel
from smsgate.infrastructure.channel.in_memory import InMemoryChannel
from smsgate.tools.delivery.adapters.noop_adapter import NoOpDeliveryAdapter
from smsgate.tools.delivery.adapters.twilio_adapter import TwilioDeliveryAdapter
from smsgate.tools.persistence.service import build_service


def test_sender_context_seeds_blocklist():
    ctx = build_sender_context(Settings(channel_kind="memory", blocklist_seed=["+1111111111", "+2"]))
    try:
        assert ctx.gate.is_blocked("+1111111111")
        assert ctx.gate.is_blocked("+2")
        assert isinstance(ctx.channel, InMemoryChannel)
        assert isinstance(ctx.dispatcher.delivery, NoOpDeliveryAdapter)
    finally:
        ctx.close()


def test_redis_sender_context_shares_one_connection():
    with patch("smsgate.tools.redis.client.redis.Redis.from_url") as from_url:
        ctx = build_sender_context(Settings(channel_kind="redis", blocklist_seed=[]))
    assert from_url.call_count == 1
    assert isinstance(ctx.channel, RedisStreamsChannel)
    assert ctx.channel.redis is ctx.gate.store.redis


def test_sender_redis_calls_are_bounded_by_publish_timeout():
    with patch("smsgate.tools.redis.client.redis.Redis.from_url") as from_url:
        build_sender_context(Settings(channel_kind="redis", blocklist_seed=[], publish_timeout_seconds=2.5))
    assert from_url.call_args.kwargs["socket_timeout"] == 2.5


def test_store_context_uses_settings():
    s = Settings(channel_kind="memory", partitions=3, consumer_name="s1", consumer_dedup=True)
    ctx = build_store_context(s)
    assert ctx.consumer.partitions == 3
    assert ctx.consumer.consumer_name == "s1"
    assert ctx.consumer.dedup is True
    assert ctx.retrieval.get_all("+1") == ([], 0)


def test_build_delivery_twilio():
    s = Settings(delivery_kind="twilio", twilio_account_sid="AC1", twilio_auth_token="t", twilio_from_number="+1")
    with patch("smsgate.tools.delivery.adapters.twilio_adapter.TwilioClient") as client_cls:
        adapter = build_delivery(s)
    assert isinstance(adapter, TwilioDeliveryAdapter)
    client_cls.assert_called_once_with("AC1", "t")


def test_build_service_rejects_unknown_kind():
    with pytest.raises(ValueError):
        build_service("mongo")
    with pytest.raises(RuntimeError):
        build_service("supabase")
