"""Twilio delivery adapter.

Wraps the official Twilio SDK. Provider errors are re-raised as DeliveryError
with the Twilio error message so the dispatcher can surface it to the caller.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client as TwilioClient

from smsgate.tools.delivery.interface import DeliveryError

logger = logging.getLogger("smsgate.delivery.twilio")


class TwilioDeliveryAdapter:
    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        client: Optional[Any] = None,
    ):
        missing = [
            name
            for name, value in [
                ("account_sid", account_sid),
                ("auth_token", auth_token),
                ("from_number", from_number),
            ]
            if not value
        ]
        if missing:
            raise DeliveryError(f"Missing Twilio settings: {', '.join(missing)}")
        self.from_number = from_number
        self.client = client or TwilioClient(account_sid, auth_token)

    def send(self, recipient: str, body: str, meta: Dict[str, Any] | None = None) -> Dict[str, Any]:
        try:
            resp = self.client.messages.create(to=recipient, from_=self.from_number, body=body)
        except TwilioRestException as e:
            logger.warning("twilio.rejected to=%s code=%s status=%s", recipient, e.code, e.status)
            raise DeliveryError(e.msg or str(e)) from e
        except TwilioException as e:
            raise DeliveryError(str(e)) from e

        sid = getattr(resp, "sid", None)
        status = getattr(resp, "status", None)
        logger.info("twilio.sent sid=%s to=%s status=%s", sid, recipient, status)
        if status in ("failed", "undelivered", "canceled"):
            raise DeliveryError(f"Twilio reported status '{status}' for message {sid}")
        return {"status": "SENT", "provider_id": sid, "provider_status": status, "meta": meta}


__all__ = ["TwilioDeliveryAdapter"]
