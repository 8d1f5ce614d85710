from smsgate.services.message_store import MessageStore, RetrievalService, StoredMessage

__all__ = ["MessageStore", "RetrievalService", "StoredMessage"]
