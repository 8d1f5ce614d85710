import logging
from typing import Dict, Any

from smsgate.tools.delivery.interface import DeliveryError

logger = logging.getLogger("smsgate.delivery")


class NoOpDeliveryAdapter:
    """A no-op delivery adapter for local runs and dry-run mode.

    Always succeeds unless constructed with disabled=True, in which case every
    send fails with DeliveryError.
    """

    def __init__(self, disabled: bool = False):
        self.disabled = disabled

    def send(self, recipient: str, body: str, meta: Dict[str, Any] | None = None) -> Dict[str, Any]:
        if self.disabled:
            raise DeliveryError("delivery disabled")
        logger.info("Sending SMS to %s: %s", recipient, body)
        # echo back minimal provider-like response
        return {"status": "SENT", "to": recipient, "provider_id": "noop-1234", "meta": meta}


__all__ = ["NoOpDeliveryAdapter"]
