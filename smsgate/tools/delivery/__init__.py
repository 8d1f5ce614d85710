from smsgate.tools.delivery.interface import DeliveryAdapter, DeliveryError

__all__ = ["DeliveryAdapter", "DeliveryError"]
