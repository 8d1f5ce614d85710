import itertools
import threading
import time
from typing import Dict, List, Optional, Tuple

from smsgate.infrastructure.channel.interface import ChannelInterface, Entry, ReadResult
from smsgate.tools.redis.config import lease_key, stream_key


class _GroupState:
    def __init__(self) -> None:
        self.delivered = 0  # index of the next never-delivered entry
        self.pending: Dict[str, str] = {}  # entry_id -> consumer


class InMemoryChannel(ChannelInterface):
    """Thread-safe in-memory channel for local development and tests.

    Mirrors the Redis Streams semantics the consumer relies on: per-group
    delivery cursor, pending entries until ack, own-pending re-read with "0",
    pending takeover and TTL leases.
    """

    def __init__(self) -> None:
        self._streams: Dict[str, List[Tuple[str, str]]] = {}
        self._groups: Dict[Tuple[str, str], _GroupState] = {}
        self._keys: Dict[str, Tuple[str, float]] = {}
        self._seq = itertools.count(1)
        self._cond = threading.Condition()
        self.closed = False

    def _group(self, stream: str, group: str) -> _GroupState:
        self._streams.setdefault(stream, [])
        return self._groups.setdefault((stream, group), _GroupState())

    def _key_alive(self, name: str) -> Optional[str]:
        item = self._keys.get(name)
        if item is None:
            return None
        value, expires = item
        if expires <= time.monotonic():
            self._keys.pop(name, None)
            return None
        return value

    # -- streams --
    def ensure_group(self, topic: str, partitions: int, group: str) -> None:
        with self._cond:
            for p in range(partitions):
                self._group(stream_key(topic, p), group)

    def publish(self, topic: str, partition: int, payload: str) -> str:
        stream = stream_key(topic, partition)
        entry_id = f"{int(time.time() * 1000)}-{next(self._seq)}"
        with self._cond:
            self._streams.setdefault(stream, []).append((entry_id, payload))
            self._cond.notify_all()
        return entry_id

    def entries(self, topic: str, partition: int) -> List[Tuple[str, str]]:
        """Test helper: everything ever published to a partition."""
        with self._cond:
            return list(self._streams.get(stream_key(topic, partition), []))

    def pending(self, stream: str, group: str) -> Dict[str, str]:
        with self._cond:
            return dict(self._group(stream, group).pending)

    def _collect(self, group: str, consumer: str, streams: Dict[str, str], count: Optional[int]) -> ReadResult:
        out: ReadResult = []
        for stream, cursor in streams.items():
            state = self._group(stream, group)
            entries = self._streams[stream]
            batch: List[Entry] = []
            if cursor == ">":
                while state.delivered < len(entries) and (count is None or len(batch) < count):
                    entry_id, payload = entries[state.delivered]
                    state.delivered += 1
                    state.pending[entry_id] = consumer
                    batch.append((entry_id, payload))
            else:
                for entry_id, payload in entries[: state.delivered]:
                    if count is not None and len(batch) >= count:
                        break
                    if state.pending.get(entry_id) == consumer:
                        batch.append((entry_id, payload))
            if batch:
                out.append((stream, batch))
        return out

    def read_group(
        self,
        group: str,
        consumer: str,
        streams: Dict[str, str],
        count: Optional[int] = None,
        block_ms: Optional[int] = None,
    ) -> ReadResult:
        deadline = None if block_ms is None else time.monotonic() + block_ms / 1000.0
        with self._cond:
            while True:
                res = self._collect(group, consumer, streams, count)
                # pending re-reads never block, like XREADGROUP with an explicit id
                if res or deadline is None or any(c != ">" for c in streams.values()):
                    return res
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return res
                self._cond.wait(timeout=remaining)

    def ack(self, stream: str, group: str, entry_id: str) -> None:
        with self._cond:
            self._group(stream, group).pending.pop(entry_id, None)

    def claim_pending(self, stream: str, group: str, consumer: str) -> int:
        with self._cond:
            pending = self._group(stream, group).pending
            moved = [entry_id for entry_id, owner in pending.items() if owner != consumer]
            for entry_id in moved:
                pending[entry_id] = consumer
            return len(moved)

    # -- leases and one-shot keys --
    def acquire_partition(self, topic: str, group: str, partition: int, owner: str, ttl_seconds: int) -> bool:
        name = lease_key(topic, group, partition)
        with self._cond:
            holder = self._key_alive(name)
            if holder is None or holder == owner:
                self._keys[name] = (owner, time.monotonic() + ttl_seconds)
                return True
            return False

    def renew_partition(self, topic: str, group: str, partition: int, owner: str, ttl_seconds: int) -> bool:
        name = lease_key(topic, group, partition)
        with self._cond:
            if self._key_alive(name) != owner:
                return False
            self._keys[name] = (owner, time.monotonic() + ttl_seconds)
            return True

    def release_partition(self, topic: str, group: str, partition: int, owner: str) -> None:
        name = lease_key(topic, group, partition)
        with self._cond:
            if self._key_alive(name) == owner:
                self._keys.pop(name, None)

    def claim_key(self, name: str, ttl_seconds: int) -> bool:
        with self._cond:
            if self._key_alive(name) is not None:
                return False
            self._keys[name] = ("1", time.monotonic() + ttl_seconds)
            return True

    def release_key(self, name: str) -> None:
        with self._cond:
            self._keys.pop(name, None)

    def close(self) -> None:
        self.closed = True
        with self._cond:
            self._cond.notify_all()


__all__ = ["InMemoryChannel"]
