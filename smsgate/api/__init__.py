from smsgate.api.sender_app import create_sender_app
from smsgate.api.store_app import create_store_app

__all__ = ["create_sender_app", "create_store_app"]
