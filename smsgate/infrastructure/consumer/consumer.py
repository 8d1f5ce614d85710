"""Event consumer: drains outcome records from the durable channel into the MessageStore.

Failure handling has two classes:

- per-record (undecodable payload, persistence failure): logged, counted,
  acknowledged and skipped; the loop keeps going.
- channel (unreachable, or the group vanished): the supervisor in
  `run_forever` drops its subscription, backs off exponentially and
  resubscribes.

Entries are acknowledged only after the append returns, so a crash between
read and append leaves them pending. Taking a partition lease claims every
entry pending on that partition, whoever read it, and the consumer re-reads
those (id "0") before asking for new ones (">").
"""
from __future__ import annotations

import logging
import os
import threading
from typing import Dict, Optional, Set

import platform_monitoring

from smsgate.infrastructure.channel.interface import ChannelError, ChannelInterface, ChannelTransportError
from smsgate.services.message_store import MessageStore
from smsgate.tools.persistence.exceptions import PersistenceError
from smsgate.tools.redis.config import idemp_key, stream_key
from smsgate.utils.events import OutcomeDecodeError, OutcomeRecord

logger = logging.getLogger("smsgate.consumer")

STORED = "stored"
DUPLICATE = "duplicate"
DECODE_ERROR = "decode_error"
PERSIST_ERROR = "persist_error"


class EventConsumer:
    def __init__(
        self,
        channel: ChannelInterface,
        store: MessageStore,
        topic: str,
        partitions: int = 1,
        group: str = "sms-storage-group",
        consumer_name: Optional[str] = None,
        lease_ttl_seconds: int = 30,
        max_partitions: Optional[int] = None,
        dedup: bool = False,
        dedup_ttl_seconds: int = 86400,
        batch_size: int = 10,
        block_ms: int = 1000,
        backoff_initial: float = 0.5,
        backoff_max: float = 30.0,
    ):
        self.channel = channel
        self.store = store
        self.topic = topic
        self.partitions = partitions
        self.group = group
        self.consumer_name = consumer_name or f"c-{os.getpid()}"
        self.lease_ttl_seconds = lease_ttl_seconds
        self.max_partitions = max_partitions
        self.dedup = dedup
        self.dedup_ttl_seconds = dedup_ttl_seconds
        self.batch_size = batch_size
        self.block_ms = block_ms
        self.backoff_initial = backoff_initial
        self.backoff_max = backoff_max

        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._owned: Set[int] = set()
        self._recovering: Set[int] = set()
        self._subscribed = False
        self._thread: Optional[threading.Thread] = None
        self._hb_thread: Optional[threading.Thread] = None

    # -------- subscription --------
    @property
    def owned_partitions(self) -> Set[int]:
        with self._lock:
            return set(self._owned)

    def subscribe(self) -> None:
        self.channel.ensure_group(self.topic, self.partitions, self.group)
        with self._lock:
            self._owned.clear()
            self._recovering.clear()
        self._subscribed = True
        self._claim_partitions()
        logger.info(
            "consumer %s subscribed topic=%s group=%s partitions=%s",
            self.consumer_name, self.topic, self.group, sorted(self.owned_partitions),
        )

    def _claim_partitions(self) -> None:
        for p in range(self.partitions):
            with self._lock:
                if p in self._owned:
                    continue
                if self.max_partitions is not None and len(self._owned) >= self.max_partitions:
                    return
            if self.channel.acquire_partition(self.topic, self.group, p, self.consumer_name, self.lease_ttl_seconds):
                # the lease makes this consumer the only reader, so whatever a
                # previous holder left pending is ours to finish
                moved = self.channel.claim_pending(stream_key(self.topic, p), self.group, self.consumer_name)
                with self._lock:
                    self._owned.add(p)
                    self._recovering.add(p)
                logger.info("consumer %s took partition %s (claimed %s pending)", self.consumer_name, p, moved)

    def _release_all(self) -> None:
        with self._lock:
            owned, self._owned = set(self._owned), set()
            self._recovering.clear()
        for p in owned:
            try:
                self.channel.release_partition(self.topic, self.group, p, self.consumer_name)
            except ChannelTransportError as e:
                # the lease expires on its own
                logger.warning("could not release partition %s: %s", p, e)

    def _heartbeat_loop(self) -> None:
        interval = max(self.lease_ttl_seconds / 3.0, 0.1)
        while not self._stop.wait(interval):
            for p in sorted(self.owned_partitions):
                try:
                    held = self.channel.renew_partition(
                        self.topic, self.group, p, self.consumer_name, self.lease_ttl_seconds
                    )
                except ChannelTransportError as e:
                    logger.warning("lease renewal for partition %s failed: %s", p, e)
                    continue
                if not held:
                    logger.warning("consumer %s lost partition %s", self.consumer_name, p)
                    with self._lock:
                        self._owned.discard(p)
                        self._recovering.discard(p)

    # -------- processing --------
    def run_once(self, block: bool = True) -> int:
        """One read/process round over the owned partitions. Returns records handled."""
        if not self._subscribed:
            self.subscribe()
        else:
            self._claim_partitions()

        with self._lock:
            owned = sorted(self._owned)
            recovering = set(self._recovering)
        if not owned:
            if block:
                self._stop.wait(self.block_ms / 1000.0)
            return 0

        streams: Dict[str, str] = {
            stream_key(self.topic, p): ("0" if p in recovering else ">") for p in owned
        }
        res = self.channel.read_group(
            self.group,
            self.consumer_name,
            streams,
            count=self.batch_size,
            block_ms=(self.block_ms or None) if block else None,
        )

        returned = {stream for stream, entries in res if entries}
        done = {p for p in recovering if stream_key(self.topic, p) not in returned}
        if done:
            with self._lock:
                self._recovering -= done

        handled = 0
        for stream, entries in res:
            for entry_id, payload in entries:
                # unhandled entries stay pending for the next lease holder
                if self._stop.is_set():
                    return handled
                self.handle(stream, entry_id, payload)
                handled += 1
        return handled

    def handle(self, stream: str, entry_id: str, payload: Optional[str]) -> str:
        """Process one entry and acknowledge it. Returns the outcome label."""
        try:
            record = OutcomeRecord.from_json(payload)
        except OutcomeDecodeError as e:
            logger.warning("skipping undecodable entry %s on %s: %s", entry_id, stream, e)
            platform_monitoring.log_event(
                "consumer.record.decode_error", {"stream": stream, "entry_id": entry_id, "error": str(e)}
            )
            outcome = DECODE_ERROR
        else:
            outcome = self._persist(record, stream, entry_id)

        self.channel.ack(stream, self.group, entry_id)
        platform_monitoring.prometheus_metric("smsgate_consumer_records_total", {"outcome": outcome})
        return outcome

    def _persist(self, record: OutcomeRecord, stream: str, entry_id: str) -> str:
        lock_key = None
        if self.dedup and record.correlation_id:
            lock_key = idemp_key(self.group, record.correlation_id)
            if not self.channel.claim_key(lock_key, self.dedup_ttl_seconds):
                logger.info("duplicate outcome %s skipped (entry %s)", record.correlation_id, entry_id)
                return DUPLICATE
        try:
            self.store.append(record.recipient, record.body, record.status)
        except PersistenceError as e:
            logger.error("dropping outcome for %s (entry %s): %s", record.recipient, entry_id, e)
            platform_monitoring.log_event(
                "consumer.record.persist_error",
                {"stream": stream, "entry_id": entry_id, "correlation_id": record.correlation_id, "error": str(e)},
            )
            if lock_key:
                self.channel.release_key(lock_key)
            return PERSIST_ERROR
        return STORED

    def drain(self, max_rounds: int = 1000) -> int:
        """Process everything currently available without blocking (tests, scripts)."""
        total = 0
        for _ in range(max_rounds):
            # the first round after (re)subscribing only re-reads pending entries
            with self._lock:
                recovery_round = not self._subscribed or bool(self._recovering)
            n = self.run_once(block=False)
            total += n
            if n == 0 and not recovery_round:
                break
        return total

    # -------- lifecycle --------
    def run_forever(self) -> None:
        """Supervised loop: resubscribe with backoff on channel errors until stop()."""
        self._hb_thread = threading.Thread(target=self._heartbeat_loop, name="smsgate-lease-hb", daemon=True)
        self._hb_thread.start()
        backoff = self.backoff_initial
        try:
            while not self._stop.is_set():
                try:
                    self.run_once()
                    backoff = self.backoff_initial
                except ChannelError as e:
                    self._subscribed = False
                    with self._lock:
                        self._owned.clear()
                        self._recovering.clear()
                    logger.warning("channel unavailable, resubscribing in %.1fs: %s", backoff, e)
                    platform_monitoring.log_event(
                        "consumer.resubscribe",
                        {"consumer": self.consumer_name, "backoff_s": backoff, "error": str(e)},
                        level=logging.WARNING,
                    )
                    self._stop.wait(backoff)
                    backoff = min(backoff * 2, self.backoff_max)
        finally:
            self._release_all()
            logger.info("consumer %s stopped", self.consumer_name)

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run_forever, name="smsgate-consumer", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 10.0) -> None:
        """Stop reading; the record being handled finishes first."""
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
        if self._hb_thread:
            self._hb_thread.join(timeout=1.0)


__all__ = ["EventConsumer", "STORED", "DUPLICATE", "DECODE_ERROR", "PERSIST_ERROR"]
