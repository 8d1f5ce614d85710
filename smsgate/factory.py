"""Composition root for the sender and store processes.

Every long-lived handle (Redis connection, channel, persistence adapter) is
built here once and passed down explicitly. Tests build contexts directly
from in-memory parts instead of calling these helpers.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Optional

from smsgate.config.settings import Settings
from smsgate.infrastructure.channel.factory import build_channel
from smsgate.infrastructure.channel.interface import ChannelInterface
from smsgate.infrastructure.consumer.consumer import EventConsumer
from smsgate.infrastructure.dispatcher.dispatcher import Dispatcher
from smsgate.infrastructure.emitter.emitter import EventEmitter
from smsgate.services.message_store import MessageStore, RetrievalService
from smsgate.tools.blocklist.gate import BlocklistGate, InMemoryBlocklistStore, RedisBlocklistStore
from smsgate.tools.delivery.adapters.noop_adapter import NoOpDeliveryAdapter
from smsgate.tools.delivery.interface import DeliveryAdapter
from smsgate.tools.persistence.service import build_service
from smsgate.tools.redis.client import RedisClient

logger = logging.getLogger("smsgate.factory")


@dataclass
class SenderContext:
    gate: BlocklistGate
    dispatcher: Dispatcher
    emitter: Optional[EventEmitter] = None
    channel: Optional[ChannelInterface] = None
    redis: Optional[RedisClient] = None

    def close(self) -> None:
        if self.emitter is not None:
            self.emitter.close()
        if self.channel is not None:
            self.channel.close()
        elif self.redis is not None:
            self.redis.close()


@dataclass
class StoreContext:
    retrieval: RetrievalService
    consumer: Optional[EventConsumer] = None
    store: Optional[MessageStore] = None
    channel: Optional[ChannelInterface] = None

    def close(self) -> None:
        if self.channel is not None:
            self.channel.close()


def build_delivery(settings: Settings) -> DeliveryAdapter:
    if settings.delivery_kind == "twilio":
        # local import keeps the Twilio SDK off the noop path
        from smsgate.tools.delivery.adapters.twilio_adapter import TwilioDeliveryAdapter

        return TwilioDeliveryAdapter(
            settings.twilio_account_sid or "",
            settings.twilio_auth_token or "",
            settings.twilio_from_number or "",
        )
    return NoOpDeliveryAdapter()


def _redis(settings: Settings, socket_timeout: Optional[float] = None) -> RedisClient:
    return RedisClient(url=settings.redis_url, namespace=settings.namespace, socket_timeout=socket_timeout)


def build_sender_context(
    settings: Settings,
    channel: Optional[ChannelInterface] = None,
    delivery: Optional[DeliveryAdapter] = None,
) -> SenderContext:
    """Wire blocklist gate, delivery adapter and emitter into a Dispatcher and seed the blocklist."""
    redis_client: Optional[RedisClient] = None
    if settings.channel_kind == "redis":
        # a hung XADD must fail rather than hold an emitter worker forever
        redis_client = _redis(settings, socket_timeout=settings.publish_timeout_seconds)
        gate = BlocklistGate(RedisBlocklistStore(redis_client))
    else:
        gate = BlocklistGate(InMemoryBlocklistStore())
    if channel is None:
        channel = build_channel(settings.channel_kind, redis_client)

    emitter = EventEmitter(
        channel,
        settings.topic,
        partitions=settings.partitions,
        timeout_seconds=settings.publish_timeout_seconds,
    )
    dispatcher = Dispatcher(gate, delivery or build_delivery(settings), emitter)

    seeded = gate.seed(settings.blocklist_seed)
    logger.info("sender ready topic=%s partitions=%s seeded=%s", settings.topic, settings.partitions, seeded)
    return SenderContext(gate=gate, dispatcher=dispatcher, emitter=emitter, channel=channel, redis=redis_client)


def build_store_context(settings: Settings, channel: Optional[ChannelInterface] = None) -> StoreContext:
    """Wire persistence, MessageStore, RetrievalService and the EventConsumer."""
    if channel is None:
        redis_client = _redis(settings) if settings.channel_kind == "redis" else None
        channel = build_channel(settings.channel_kind, redis_client)

    persistence = build_service(
        settings.persist_kind,
        supabase_url=settings.supabase_url,
        supabase_key=settings.supabase_key,
        tables=[settings.recipients_table],
    )
    store = MessageStore(persistence, table=settings.recipients_table)
    retrieval = RetrievalService(persistence, table=settings.recipients_table)
    consumer = EventConsumer(
        channel,
        store,
        settings.topic,
        partitions=settings.partitions,
        group=settings.consumer_group,
        consumer_name=settings.consumer_name,
        lease_ttl_seconds=settings.lease_ttl_seconds,
        max_partitions=settings.consumer_max_partitions,
        dedup=settings.consumer_dedup,
        dedup_ttl_seconds=settings.dedup_ttl_seconds,
    )
    logger.info(
        "store ready topic=%s group=%s consumer=%s persist=%s dedup=%s",
        settings.topic, settings.consumer_group, settings.consumer_name,
        settings.persist_kind, settings.consumer_dedup,
    )
    return StoreContext(retrieval=retrieval, consumer=consumer, store=store, channel=channel)


__all__ = [
    "SenderContext",
    "StoreContext",
    "build_delivery",
    "build_sender_context",
    "build_store_context",
]
