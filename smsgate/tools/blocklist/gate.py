from __future__ import annotations

import logging
import threading
from typing import Iterable, Protocol, Set

from smsgate.tools.redis.client import RedisClient
from smsgate.tools.redis.config import blocklist_key

logger = logging.getLogger("smsgate.blocklist")


class BlocklistUnavailableError(RuntimeError):
    """The backing store could not answer; the gate is required-available."""


class BlocklistStore(Protocol):
    """Key-existence store. A present key means blocked; the value is irrelevant."""

    def exists(self, key: str) -> bool: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> int: ...


class InMemoryBlocklistStore:
    """Process-local store for tests and local runs."""

    def __init__(self) -> None:
        self._keys: Set[str] = set()
        self._lock = threading.Lock()

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._keys

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._keys.add(key)

    def delete(self, key: str) -> int:
        with self._lock:
            if key in self._keys:
                self._keys.remove(key)
                return 1
            return 0


class RedisBlocklistStore:
    def __init__(self, redis_client: RedisClient):
        self.redis = redis_client

    def exists(self, key: str) -> bool:
        return self.redis.exists(key)

    def set(self, key: str, value: str) -> None:
        self.redis.set(key, value)

    def delete(self, key: str) -> int:
        return self.redis.delete(key)


class BlocklistGate:
    """Membership test over the set of blocked recipients.

    `block` and `unblock` are idempotent. Any store failure raises
    BlocklistUnavailableError; `is_blocked` never guesses either way.
    """

    def __init__(self, store: BlocklistStore):
        self.store = store

    def is_blocked(self, recipient: str) -> bool:
        try:
            return bool(self.store.exists(blocklist_key(recipient)))
        except Exception as e:
            raise BlocklistUnavailableError(f"blocklist lookup failed for {recipient}: {e}") from e

    def block(self, recipient: str) -> None:
        try:
            self.store.set(blocklist_key(recipient), "1")
        except Exception as e:
            raise BlocklistUnavailableError(f"could not block {recipient}: {e}") from e
        logger.info("blocklist.block recipient=%s", recipient)

    def unblock(self, recipient: str) -> None:
        try:
            self.store.delete(blocklist_key(recipient))
        except Exception as e:
            raise BlocklistUnavailableError(f"could not unblock {recipient}: {e}") from e
        logger.info("blocklist.unblock recipient=%s", recipient)

    def seed(self, recipients: Iterable[str]) -> int:
        """Block every recipient in `recipients`; returns how many were seeded."""
        n = 0
        for r in recipients:
            self.block(r)
            n += 1
        return n


__all__ = [
    "BlocklistGate",
    "BlocklistStore",
    "BlocklistUnavailableError",
    "InMemoryBlocklistStore",
    "RedisBlocklistStore",
]
