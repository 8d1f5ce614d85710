import logging
from typing import Protocol

import platform_monitoring

from smsgate.infrastructure.emitter.emitter import PublishError
from smsgate.tools.blocklist.gate import BlocklistGate
from smsgate.tools.delivery.interface import DeliveryAdapter
from smsgate.utils.events import OutcomeRecord, SendRequest, Status

logger = logging.getLogger("smsgate.dispatcher")

BLOCKED_RESULT = "Failed: Phone number is blacklisted"


def delivered_result(recipient: str) -> str:
    return f"SMS sent to {recipient}"


def failed_result(description: str) -> str:
    return f"Failed to send SMS: {description}"


class Emitter(Protocol):
    def publish(self, record: OutcomeRecord) -> str: ...


class Dispatcher:
    """Blocklist gate -> delivery attempt -> best-effort outcome publish.

    The returned result string depends only on the blocklist decision and the
    delivery outcome. PublishError is logged, counted and discarded; it never
    changes what the caller sees. BlocklistUnavailableError is not caught: a
    gate outage fails the request.
    """

    def __init__(self, gate: BlocklistGate, delivery: DeliveryAdapter, emitter: Emitter):
        self.gate = gate
        self.delivery = delivery
        self.emitter = emitter

    def dispatch(self, request: SendRequest) -> str:
        recipient, body = request.recipient, request.body

        if self.gate.is_blocked(recipient):
            self._record(OutcomeRecord.create(recipient, body, Status.BLOCKED))
            return BLOCKED_RESULT

        try:
            self.delivery.send(recipient, body)
        except Exception as exc:
            description = str(exc) or exc.__class__.__name__
            logger.warning("delivery to %s failed: %s", recipient, description)
            self._record(OutcomeRecord.create(recipient, body, Status.FAILED))
            return failed_result(description)

        self._record(OutcomeRecord.create(recipient, body, Status.DELIVERED))
        return delivered_result(recipient)

    def _record(self, record: OutcomeRecord) -> None:
        platform_monitoring.prometheus_metric("smsgate_dispatch_total", {"status": record.status.value})
        try:
            self.emitter.publish(record)
        except PublishError as err:
            # audit path only; the caller-visible result is already decided
            logger.error("outcome publish failed correlation_id=%s: %s", record.correlation_id, err)
            platform_monitoring.prometheus_metric("smsgate_publish_failures_total", {"kind": err.kind.value})
            platform_monitoring.log_event(
                "dispatcher.publish.error",
                {
                    "correlation_id": record.correlation_id,
                    "status": record.status.value,
                    "kind": err.kind.value,
                    "error": str(err),
                },
            )


__all__ = ["Dispatcher", "BLOCKED_RESULT", "delivered_result", "failed_result"]
