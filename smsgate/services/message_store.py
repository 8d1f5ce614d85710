"""Per-recipient message history on top of PersistenceService.

One row per recipient in the recipients table:

    {"id": "+1555", "messages": [{"message": "hi", "status": "Delivered"}, ...]}

Rows are created by the first append and never deleted.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Tuple, Union

from smsgate.tools.persistence.service import PersistenceService
from smsgate.utils.events import Status

logger = logging.getLogger("smsgate.message_store")

KEY_COLUMN = "id"
MESSAGES_COLUMN = "messages"


@dataclass(frozen=True)
class StoredMessage:
    body: str
    status: str

    def to_dict(self) -> Dict[str, str]:
        return {"message": self.body, "status": self.status}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StoredMessage":
        return cls(body=str(d.get("message", "")), status=str(d.get("status", "")))


class MessageStore:
    def __init__(self, persistence: PersistenceService, table: str = "sms_recipients"):
        self.persistence = persistence
        self.table = table

    def append(self, recipient_id: str, body: str, status: Union[Status, str]) -> None:
        """Append one message to the recipient's history, creating the row if needed.

        Raises PersistenceError on backend failure.
        """
        value = status.value if isinstance(status, Status) else str(status)
        item = StoredMessage(body=body, status=value).to_dict()
        self.persistence.append_to_array(self.table, KEY_COLUMN, recipient_id, MESSAGES_COLUMN, item)
        logger.debug("appended message for %s status=%s", recipient_id, value)


class RetrievalService:
    def __init__(self, persistence: PersistenceService, table: str = "sms_recipients"):
        self.persistence = persistence
        self.table = table

    def get_all(self, recipient_id: str) -> Tuple[List[StoredMessage], int]:
        """Full history and its length; an unknown recipient is ([], 0)."""
        row = self.persistence.read(self.table, recipient_id, id_column=KEY_COLUMN)
        if not row:
            return [], 0
        messages = [StoredMessage.from_dict(m) for m in (row.get(MESSAGES_COLUMN) or []) if isinstance(m, dict)]
        return messages, len(messages)


__all__ = ["MessageStore", "RetrievalService", "StoredMessage"]
