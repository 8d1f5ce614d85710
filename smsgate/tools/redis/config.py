"""Key naming for everything smsgate keeps in Redis.

Stream and ops keys are returned WITHOUT the namespace prefix; `RedisClient`
adds it. Blocklist keys are an external contract shared with admin tooling
and are never namespaced.
"""
from __future__ import annotations

BLOCKLIST_PREFIX = "blocklist:"


def blocklist_key(recipient: str) -> str:
    return f"{BLOCKLIST_PREFIX}{recipient}"


def stream_key(topic: str, partition: int) -> str:
    """One stream per partition of a topic."""
    return f"{topic}:{partition}"


def lease_key(topic: str, group: str, partition: int) -> str:
    """Partition ownership lease for a consumer group."""
    return f"ops:lease:{topic}:{group}:{partition}"


def idemp_key(group: str, correlation_id: str) -> str:
    """Idempotency lock for one outcome record within a consumer group."""
    return f"ops:idemp:{group}:{correlation_id}"


def full_key(namespace: str, name: str) -> str:
    """Return the fully namespaced key for display/debug."""
    return f"{namespace}:{name}" if namespace else name


__all__ = [
    "BLOCKLIST_PREFIX",
    "blocklist_key",
    "stream_key",
    "lease_key",
    "idemp_key",
    "full_key",
]
