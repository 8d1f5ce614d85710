from typing import List, Optional, Protocol, Tuple, Dict
import zlib

# (entry_id, payload); payload is None when the entry has no `data` field
Entry = Tuple[str, Optional[str]]
# [(stream, [entry, ...]), ...]
ReadResult = List[Tuple[str, List[Entry]]]


class ChannelError(Exception):
    """Base error raised by durable channel adapters."""


class ChannelTransportError(ChannelError):
    """The channel backend is unreachable (connection refused, reset or timed out).

    Consumers treat this as a reason to back off and resubscribe; everything
    else is a per-call failure.
    """


def partition_for(recipient: str, partitions: int) -> int:
    """Stable recipient -> partition mapping (CRC32, independent of PYTHONHASHSEED)."""
    if partitions <= 1:
        return 0
    return zlib.crc32(recipient.encode("utf-8")) % partitions


class ChannelInterface(Protocol):
    """Ordered, partitioned, at-least-once publish/subscribe channel.

    Each partition of a topic is an independent ordered stream named
    `<topic>:<partition>`. A consumer group sees every entry once; entries
    stay pending for the consumer that read them until acked and can be read
    again by that consumer with id "0" (new entries use ">"). `claim_pending`
    moves another consumer's pending entries over.
    """

    def ensure_group(self, topic: str, partitions: int, group: str) -> None:
        """Create the consumer group on every partition stream (idempotent)."""

    def publish(self, topic: str, partition: int, payload: str) -> str:
        """Append payload to the partition stream and return the entry id once acknowledged."""

    def read_group(
        self,
        group: str,
        consumer: str,
        streams: Dict[str, str],
        count: Optional[int] = None,
        block_ms: Optional[int] = None,
    ) -> ReadResult:
        """Read entries for `consumer`. streams maps stream name -> ">" or "0"."""

    def ack(self, stream: str, group: str, entry_id: str) -> None:
        """Acknowledge an entry (idempotent)."""

    def claim_pending(self, stream: str, group: str, consumer: str) -> int:
        """Reassign every pending entry of the stream to `consumer`. Returns how many moved.

        Called by the lease holder, which owns the partition exclusively, so
        entries left behind by a crashed or renamed consumer are re-read with "0".
        """

    def acquire_partition(self, topic: str, group: str, partition: int, owner: str, ttl_seconds: int) -> bool:
        """Take the exclusive lease on a partition for this group. True if now held by owner."""

    def renew_partition(self, topic: str, group: str, partition: int, owner: str, ttl_seconds: int) -> bool:
        """Extend a held lease. False if the lease was lost."""

    def release_partition(self, topic: str, group: str, partition: int, owner: str) -> None:
        """Drop a held lease so another consumer can take the partition."""

    def claim_key(self, name: str, ttl_seconds: int) -> bool:
        """SET NX EX style one-shot key. True if this call created it."""

    def release_key(self, name: str) -> None:
        ...

    def close(self) -> None:
        ...


__all__ = [
    "ChannelInterface",
    "ChannelError",
    "ChannelTransportError",
    "Entry",
    "ReadResult",
    "partition_for",
]
