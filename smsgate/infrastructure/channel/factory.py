from typing import Optional

from smsgate.infrastructure.channel.in_memory import InMemoryChannel
from smsgate.infrastructure.channel.interface import ChannelInterface
from smsgate.tools.redis.client import RedisClient


def build_channel(kind: str = "redis", redis_client: Optional[RedisClient] = None) -> ChannelInterface:
    """Return the durable channel for CHANNEL_KIND.

    `memory` only connects components living in the same process (tests,
    single-process demos); the sender and store processes need `redis`.
    """
    kind = (kind or "redis").lower()
    if kind == "redis":
        from smsgate.infrastructure.channel.adapters.redis_streams_channel import RedisStreamsChannel

        if redis_client is None:
            raise ValueError("redis channel requires a RedisClient")
        return RedisStreamsChannel(redis_client)
    if kind == "memory":
        return InMemoryChannel()
    raise ValueError(f"Unknown channel kind: {kind}")


__all__ = ["build_channel"]
