from smsgate.infrastructure.emitter.emitter import (
    DEFAULT_PUBLISH_TIMEOUT,
    EventEmitter,
    PublishError,
    PublishErrorKind,
)

__all__ = ["DEFAULT_PUBLISH_TIMEOUT", "EventEmitter", "PublishError", "PublishErrorKind"]
