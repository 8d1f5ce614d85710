from __future__ import annotations

from typing import Protocol, Dict, Any


class DeliveryError(Exception):
    """The external channel declined or failed to accept a message."""


class DeliveryAdapter(Protocol):
    """Protocol for delivery adapters.

    Implementations must provide a `send` method that accepts a recipient and
    the message body and returns a provider result dict on success. Any failure
    is signalled by raising (DeliveryError preferred, but callers treat every
    exception as a failed delivery).
    """

    def send(self, recipient: str, body: str, meta: Dict[str, Any] | None = None) -> Dict[str, Any]:
        ...


__all__ = ["DeliveryAdapter", "DeliveryError"]
