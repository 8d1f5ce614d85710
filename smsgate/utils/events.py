"""Records exchanged between the sender and store processes.

Wire format of an OutcomeRecord (JSON stored in the stream entry's `data` field):

    {"phoneNumber": "+1555", "message": "hi", "status": "Delivered", "eventId": "<uuid4>"}

`eventId` may be absent or null for records produced by older senders.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import json
from typing import Any, Dict, Optional
import uuid


class Status(str, Enum):
    BLOCKED = "Blocked"
    DELIVERED = "Delivered"
    FAILED = "Failed"


class ValidationError(ValueError):
    """A SendRequest is malformed and must not reach the dispatcher."""


class OutcomeDecodeError(ValueError):
    """A stream entry could not be turned into an OutcomeRecord."""


@dataclass(frozen=True)
class SendRequest:
    recipient: str
    body: str

    @classmethod
    def create(cls, recipient: Optional[str], body: Optional[str]) -> "SendRequest":
        """Validate and build a request; both fields must be non-empty after trimming."""
        if recipient is None or not str(recipient).strip():
            raise ValidationError("Phone number is mandatory")
        if body is None or not str(body).strip():
            raise ValidationError("Message is mandatory")
        return cls(recipient=str(recipient).strip(), body=str(body))


@dataclass(frozen=True)
class OutcomeRecord:
    """Immutable fact describing what the dispatcher decided for one SendRequest."""
    recipient: str
    body: str
    status: Status
    correlation_id: Optional[str] = None

    @classmethod
    def create(cls, recipient: str, body: str, status: Status) -> "OutcomeRecord":
        return cls(recipient=recipient, body=body, status=status, correlation_id=str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phoneNumber": self.recipient,
            "message": self.body,
            "status": self.status.value,
            "eventId": self.correlation_id,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OutcomeRecord":
        if not isinstance(d, dict):
            raise OutcomeDecodeError(f"expected a JSON object, got {type(d).__name__}")
        recipient = d.get("phoneNumber")
        body = d.get("message")
        if not isinstance(recipient, str) or not recipient:
            raise OutcomeDecodeError("missing phoneNumber")
        if not isinstance(body, str):
            raise OutcomeDecodeError("missing message")
        try:
            status = Status(d.get("status"))
        except ValueError as e:
            raise OutcomeDecodeError(f"unknown status {d.get('status')!r}") from e
        event_id = d.get("eventId")
        return cls(
            recipient=recipient,
            body=body,
            status=status,
            correlation_id=str(event_id) if event_id else None,
        )

    @classmethod
    def from_json(cls, s: Any) -> "OutcomeRecord":
        if isinstance(s, (bytes, bytearray)):
            s = s.decode("utf-8", errors="replace")
        if not isinstance(s, str):
            raise OutcomeDecodeError("payload is not a string")
        try:
            data = json.loads(s)
        except json.JSONDecodeError as e:
            raise OutcomeDecodeError(f"invalid JSON: {e}") from e
        return cls.from_dict(data)


__all__ = [
    "Status",
    "SendRequest",
    "OutcomeRecord",
    "ValidationError",
    "OutcomeDecodeError",
]
