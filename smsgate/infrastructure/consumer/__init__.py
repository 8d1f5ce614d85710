from smsgate.infrastructure.consumer.consumer import (
    DECODE_ERROR,
    DUPLICATE,
    PERSIST_ERROR,
    STORED,
    EventConsumer,
)

__all__ = ["DECODE_ERROR", "DUPLICATE", "PERSIST_ERROR", "STORED", "EventConsumer"]
