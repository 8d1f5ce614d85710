"""Redis Streams implementation of ChannelInterface.

- One stream per partition: `<ns>:<topic>:<partition>`
- Payload stored as a single JSON field `data`
- Consumer group created with MKSTREAM from id 0 (BUSYGROUP tolerated)
- Partition leases: `<ns>:ops:lease:<topic>:<group>:<partition>` via SET NX EX,
  value = owning consumer name
- The lease holder takes over all pending entries of its partition with XAUTOCLAIM
"""
from __future__ import annotations

import functools
import logging
from typing import Dict, Optional

import redis

from smsgate.infrastructure.channel.interface import (
    ChannelError,
    ChannelInterface,
    ChannelTransportError,
    ReadResult,
)
from smsgate.tools.redis.client import RedisClient
from smsgate.tools.redis.config import lease_key, stream_key

logger = logging.getLogger("smsgate.channel.redis")


def _wrap_errors(func):
    """Translate redis-py exceptions into channel errors."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError) as e:
            raise ChannelTransportError(f"redis unavailable during {func.__name__}: {e}") from e
        except redis.exceptions.RedisError as e:
            raise ChannelError(f"redis error during {func.__name__}: {e}") from e

    return wrapper


class RedisStreamsChannel(ChannelInterface):
    def __init__(self, client: RedisClient, maxlen: Optional[int] = None):
        self.redis = client
        self.maxlen = maxlen

    @_wrap_errors
    def ensure_group(self, topic: str, partitions: int, group: str) -> None:
        for p in range(partitions):
            created = self.redis.xgroup_create(stream_key(topic, p), group, id="0", mkstream=True)
            if created:
                logger.info("created consumer group %s on %s", group, stream_key(topic, p))

    @_wrap_errors
    def publish(self, topic: str, partition: int, payload: str) -> str:
        return self.redis.xadd(stream_key(topic, partition), {"data": payload}, maxlen=self.maxlen)

    @_wrap_errors
    def read_group(
        self,
        group: str,
        consumer: str,
        streams: Dict[str, str],
        count: Optional[int] = None,
        block_ms: Optional[int] = None,
    ) -> ReadResult:
        # XREADGROUP blocks only when every requested id is ">"
        if any(cursor != ">" for cursor in streams.values()):
            block_ms = None
        res = self.redis.xreadgroup(group, consumer, streams, count=count, block=block_ms)
        return [
            (stream, [(entry_id, (fields or {}).get("data")) for entry_id, fields in entries])
            for stream, entries in res
        ]

    @_wrap_errors
    def ack(self, stream: str, group: str, entry_id: str) -> None:
        self.redis.xack(stream, group, entry_id)

    @_wrap_errors
    def claim_pending(self, stream: str, group: str, consumer: str) -> int:
        return self.redis.xautoclaim_all(stream, group, consumer)

    @_wrap_errors
    def acquire_partition(self, topic: str, group: str, partition: int, owner: str, ttl_seconds: int) -> bool:
        name = lease_key(topic, group, partition)
        if self.redis.set_nx(name, owner, ttl_seconds):
            return True
        # a restarted consumer with the same name picks its own lease back up
        if self.redis.get(name) == owner:
            return self.redis.expire(name, ttl_seconds)
        return False

    @_wrap_errors
    def renew_partition(self, topic: str, group: str, partition: int, owner: str, ttl_seconds: int) -> bool:
        name = lease_key(topic, group, partition)
        if self.redis.get(name) != owner:
            return False
        return self.redis.expire(name, ttl_seconds)

    @_wrap_errors
    def release_partition(self, topic: str, group: str, partition: int, owner: str) -> None:
        name = lease_key(topic, group, partition)
        if self.redis.get(name) == owner:
            self.redis.delete_ns(name)

    @_wrap_errors
    def claim_key(self, name: str, ttl_seconds: int) -> bool:
        return self.redis.set_nx(name, "1", ttl_seconds)

    @_wrap_errors
    def release_key(self, name: str) -> None:
        self.redis.delete_ns(name)

    def close(self) -> None:
        self.redis.close()


__all__ = ["RedisStreamsChannel"]
