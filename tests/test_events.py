import json

import pytest

from smsgate.utils.events import (
    OutcomeDecodeError,
    OutcomeRecord,
    SendRequest,
    Status,
    ValidationError,
)


def test_send_request_trims_recipient():
    req = SendRequest.create("  +1555 ", "hi")
    assert req.recipient == "+1555"
    assert req.body == "hi"


@pytest.mark.parametrize(
    "recipient,body,reason",
    [
        (None, "hi", "Phone number is mandatory"),
        ("   ", "hi", "Phone number is mandatory"),
        ("+1555", None, "Message is mandatory"),
        ("+1555", "  ", "Message is mandatory"),
    ],
)
def test_send_request_rejects_blank_fields(recipient, body, reason):
    with pytest.raises(ValidationError) as exc:
        SendRequest.create(recipient, body)
    assert str(exc.value) == reason


def test_outcome_record_wire_format():
    rec = OutcomeRecord.create("+1555", "hi", Status.DELIVERED)
    data = json.loads(rec.to_json())
    assert data == {
        "phoneNumber": "+1555",
        "message": "hi",
        "status": "Delivered",
        "eventId": rec.correlation_id,
    }
    assert OutcomeRecord.from_json(rec.to_json()) == rec


def test_each_record_gets_its_own_correlation_id():
    a = OutcomeRecord.create("+1555", "hi", Status.BLOCKED)
    b = OutcomeRecord.create("+1555", "hi", Status.BLOCKED)
    assert a.correlation_id and b.correlation_id
    assert a.correlation_id != b.correlation_id


def test_decode_accepts_bytes_and_missing_event_id():
    raw = b'{"phoneNumber":"+1","message":"m","status":"Failed"}'
    rec = OutcomeRecord.from_json(raw)
    assert rec.status is Status.FAILED
    assert rec.correlation_id is None


@pytest.mark.parametrize(
    "payload",
    [
        None,
        "not json",
        "[1, 2]",
        '{"message":"m","status":"Delivered"}',
        '{"phoneNumber":"+1","message":"m","status":"Queued"}',
    ],
)
def test_decode_errors(payload):
    with pytest.raises(OutcomeDecodeError):
        OutcomeRecord.from_json(payload)
