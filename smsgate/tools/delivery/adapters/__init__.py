"""Delivery adapters: no-op (local/dry-run) and Twilio.

The Twilio adapter is imported lazily by the factory so the SDK is only loaded
when DELIVERY_KIND=twilio.
"""

from smsgate.tools.delivery.adapters.noop_adapter import NoOpDeliveryAdapter

__all__ = ["NoOpDeliveryAdapter"]
