from smsgate.infrastructure.dispatcher.dispatcher import (
    BLOCKED_RESULT,
    Dispatcher,
    delivered_result,
    failed_result,
)

__all__ = ["BLOCKED_RESULT", "Dispatcher", "delivered_result", "failed_result"]
