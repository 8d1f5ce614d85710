"""Publishes OutcomeRecords to the durable channel.

`publish` is synchronous: it returns the channel entry id once the channel has
acknowledged the write, or raises PublishError. The wait is bounded by
`timeout_seconds`; the emitter neither buffers nor retries.
"""
from __future__ import annotations

from concurrent.futures import CancelledError, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from enum import Enum
import logging
from typing import Optional

from smsgate.infrastructure.channel.interface import ChannelInterface, partition_for
from smsgate.utils.events import OutcomeRecord

logger = logging.getLogger("smsgate.emitter")

DEFAULT_PUBLISH_TIMEOUT = 5.0


class PublishErrorKind(str, Enum):
    TRANSPORT_FAILURE = "TransportFailure"
    TIMEOUT = "Timeout"
    CANCELLED = "Cancelled"


class PublishError(Exception):
    def __init__(self, kind: PublishErrorKind, message: str):
        super().__init__(message)
        self.kind = kind

    def __str__(self) -> str:
        cause = self.__cause__
        base = f"{self.kind.value}: {self.args[0]}"
        return f"{base} (caused by {cause.__class__.__name__}: {cause})" if cause else base


class EventEmitter:
    def __init__(
        self,
        channel: ChannelInterface,
        topic: str,
        partitions: int = 1,
        timeout_seconds: float = DEFAULT_PUBLISH_TIMEOUT,
        max_workers: int = 4,
    ):
        self.channel = channel
        self.topic = topic
        self.partitions = partitions
        self.timeout_seconds = timeout_seconds
        self._executor: Optional[ThreadPoolExecutor] = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="smsgate-publish"
        )

    def publish(self, record: OutcomeRecord) -> str:
        if self._executor is None:
            raise PublishError(PublishErrorKind.CANCELLED, "emitter is closed")
        partition = partition_for(record.recipient, self.partitions)
        try:
            future = self._executor.submit(self.channel.publish, self.topic, partition, record.to_json())
        except RuntimeError as e:  # submit after shutdown
            raise PublishError(PublishErrorKind.CANCELLED, "emitter is shutting down") from e

        try:
            entry_id = future.result(timeout=self.timeout_seconds)
        except CancelledError as e:
            raise PublishError(PublishErrorKind.CANCELLED, f"publish to {self.topic} was cancelled") from e
        except FutureTimeoutError as e:
            future.cancel()
            raise PublishError(
                PublishErrorKind.TIMEOUT,
                f"publish to {self.topic} not acknowledged within {self.timeout_seconds}s",
            ) from e
        except Exception as e:
            raise PublishError(PublishErrorKind.TRANSPORT_FAILURE, f"publish to {self.topic} failed") from e

        logger.debug(
            "published correlation_id=%s topic=%s partition=%s entry=%s",
            record.correlation_id, self.topic, partition, entry_id,
        )
        return entry_id

    def close(self) -> None:
        executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)


__all__ = ["EventEmitter", "PublishError", "PublishErrorKind", "DEFAULT_PUBLISH_TIMEOUT"]
