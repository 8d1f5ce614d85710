"""Thin redis-py wrapper shared by the blocklist store and the stream channel.

One instance is created by the process composition root and passed to every
component that needs Redis; nothing in smsgate opens its own connection.

Environment variables (used only when no explicit url is passed):
- REDIS_URL (default: redis://localhost:6379/0)
- REDIS_SSL_VERIFY=false relaxes certificate checks for rediss:// URLs
"""
from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Tuple

import redis

StreamEntries = List[Tuple[str, List[Tuple[str, Dict[str, Any]]]]]


class RedisClient:
    """Namespaced access to streams and plain keys."""

    def __init__(
        self,
        url: Optional[str] = None,
        namespace: Optional[str] = None,
        client: Optional[Any] = None,
        socket_timeout: Optional[float] = None,
    ):
        self.ns = namespace if namespace is not None else os.getenv("REDIS_NAMESPACE", "smsgate")
        if client is not None:
            self.client = client
            return
        url = url or os.getenv("REDIS_URL") or "redis://localhost:6379/0"
        ssl_kwargs: Dict[str, Any] = {}
        if url.startswith("rediss://"):
            verify_env = os.getenv("REDIS_SSL_VERIFY", "true").lower()
            if verify_env in ("0", "false", "no"):
                ssl_kwargs["ssl_cert_reqs"] = None
        self.client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            **ssl_kwargs,
        )

    def _chan(self, name: str) -> str:
        """Prefix a key with the namespace."""
        return f"{self.ns}:{name}" if self.ns else name

    # -------------------------
    # Plain keys (no namespace; callers pass full key names)
    # -------------------------

    def exists(self, key: str) -> bool:
        return bool(self.client.exists(key))

    def set(self, key: str, value: str) -> None:
        self.client.set(key, value)

    def delete(self, key: str) -> int:
        return int(self.client.delete(key))

    # -------------------------
    # Namespaced ops keys (leases, idempotency locks)
    # -------------------------

    def set_nx(self, name: str, value: str, ttl_seconds: int) -> bool:
        """SET NX EX on a namespaced key. True if the key was created."""
        return bool(self.client.set(self._chan(name), value, nx=True, ex=ttl_seconds))

    def get(self, name: str) -> Optional[str]:
        return self.client.get(self._chan(name))

    def expire(self, name: str, ttl_seconds: int) -> bool:
        return bool(self.client.expire(self._chan(name), ttl_seconds))

    def delete_ns(self, name: str) -> int:
        return int(self.client.delete(self._chan(name)))

    # -------------------------
    # Streams (XADD / XREADGROUP / XACK)
    # -------------------------

    def xadd(self, stream: str, fields: Dict[str, str], maxlen: Optional[int] = None) -> str:
        """Add an entry to a stream. Returns message ID."""
        return self.client.xadd(self._chan(stream), fields, maxlen=maxlen, approximate=True)

    def xgroup_create(self, stream: str, group: str, id: str = "0-0", mkstream: bool = True) -> bool:
        """Create a consumer group for a stream. Returns False if it exists."""
        try:
            self.client.xgroup_create(self._chan(stream), group, id=id, mkstream=mkstream)
            return True
        except redis.exceptions.ResponseError as e:
            # BUSYGROUP Consumer Group name already exists
            if "BUSYGROUP" in str(e).upper():
                return False
            raise

    def xreadgroup(
        self,
        group: str,
        consumer: str,
        streams: Dict[str, str],
        count: Optional[int] = None,
        block: Optional[int] = None,
    ) -> StreamEntries:
        """Read entries using a consumer group. Stream names in the result are un-namespaced."""
        ns_streams = {self._chan(k): v for k, v in streams.items()}
        res = self.client.xreadgroup(group, consumer, ns_streams, count=count, block=block) or []
        prefix = f"{self.ns}:" if self.ns else ""
        out: StreamEntries = []
        for stream_name, entries in res:
            if prefix and stream_name.startswith(prefix):
                stream_name = stream_name[len(prefix):]
            out.append((stream_name, entries))
        return out

    def xack(self, stream: str, group: str, *message_ids: str) -> int:
        """Acknowledge one or more messages for a consumer group."""
        return int(self.client.xack(self._chan(stream), group, *message_ids))

    def xautoclaim_all(self, stream: str, group: str, consumer: str, count: int = 100) -> int:
        """XAUTOCLAIM every pending entry of a stream (min idle 0) for `consumer`. Returns ids claimed."""
        start = "0-0"
        claimed = 0
        while True:
            res = self.client.xautoclaim(
                self._chan(stream), group, consumer, 0, start_id=start, count=count, justid=True
            )
            # Redis 7 appends a list of deleted ids; 6.2 returns [next, ids]
            start, ids = res[0], res[1]
            claimed += len(ids)
            if start in ("0-0", b"0-0"):
                return claimed

    def ping(self) -> bool:
        return bool(self.client.ping())

    def close(self) -> None:
        self.client.close()


__all__ = ["RedisClient", "StreamEntries"]
