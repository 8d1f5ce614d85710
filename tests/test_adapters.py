from unittest.mock import MagicMock

import pytest
from twilio.base.exceptions import TwilioRestException

from smsgate.tools.delivery.adapters.noop_adapter import NoOpDeliveryAdapter
from smsgate.tools.delivery.adapters.twilio_adapter import TwilioDeliveryAdapter
from smsgate.tools.delivery.interface import DeliveryError
from smsgate.tools.persistence.adapters import supabase_adapter
from smsgate.tools.persistence.adapters.supabase_adapter import APPEND_FUNCTION, SupabaseAdapter


# --- Supabase ----------------------------------------------------------------

def test_supabase_append_calls_rpc():
    client = MagicMock()
    adapter = SupabaseAdapter("https://x.supabase.co", "key", client=client)
    adapter.append_to_array("sms_recipients", "id", "+1555", "messages", {"message": "hi", "status": "Delivered"})
    client.rpc.assert_called_once_with(
        APPEND_FUNCTION, {"p_key": "+1555", "p_item": {"message": "hi", "status": "Delivered"}}
    )
    client.rpc.return_value.execute.assert_called_once()


def test_supabase_append_refuses_tables_without_a_function():
    client = MagicMock()
    adapter = SupabaseAdapter("https://x.supabase.co", "key", client=client)
    with pytest.raises(ValueError):
        adapter.append_to_array("users", "id", "+1555", "messages", {"message": "hi", "status": "Delivered"})
    client.rpc.assert_not_called()


def test_supabase_read_returns_first_row_or_none():
    client = MagicMock()
    chain = client.table.return_value.select.return_value.eq.return_value.limit.return_value
    chain.execute.return_value = MagicMock(data=[{"id": "+1555", "messages": []}])
    adapter = SupabaseAdapter("https://x.supabase.co", "key", client=client)
    assert adapter.read("sms_recipients", "+1555") == {"id": "+1555", "messages": []}
    client.table.return_value.select.return_value.eq.assert_called_with("id", "+1555")

    chain.execute.return_value = MagicMock(data=[])
    assert adapter.read("sms_recipients", "+1999") is None


def test_supabase_read_falls_back_to_rest(monkeypatch):
    client = MagicMock()
    client.table.side_effect = RuntimeError("sdk broken")
    response = MagicMock(status_code=200)
    response.json.return_value = [{"id": "+1555", "messages": [{"message": "hi", "status": "Blocked"}]}]
    get = MagicMock(return_value=response)
    monkeypatch.setattr(supabase_adapter.requests, "get", get)

    adapter = SupabaseAdapter("https://x.supabase.co/", "key", client=client)
    row = adapter.read("sms_recipients", "+1555")

    assert row["messages"][0]["status"] == "Blocked"
    args, kwargs = get.call_args
    assert args[0] == "https://x.supabase.co/rest/v1/sms_recipients"
    assert kwargs["params"] == {"id": "eq.+1555", "limit": 1}
    assert kwargs["headers"]["apikey"] == "key"


# --- Delivery ----------------------------------------------------------------

def test_noop_adapter():
    assert NoOpDeliveryAdapter().send("+1555", "hi")["status"] == "SENT"
    with pytest.raises(DeliveryError):
        NoOpDeliveryAdapter(disabled=True).send("+1555", "hi")


def test_twilio_send_uses_sdk():
    client = MagicMock()
    client.messages.create.return_value = MagicMock(sid="SM123", status="queued")
    adapter = TwilioDeliveryAdapter("AC1", "token", "+15550000000", client=client)
    res = adapter.send("+1555", "hi")
    client.messages.create.assert_called_once_with(to="+1555", from_="+15550000000", body="hi")
    assert res["provider_id"] == "SM123"


def test_twilio_rejection_becomes_delivery_error():
    client = MagicMock()
    client.messages.create.side_effect = TwilioRestException(
        400, "https://api.twilio.com", msg="The 'To' number is not a valid phone number.", code=21211
    )
    adapter = TwilioDeliveryAdapter("AC1", "token", "+15550000000", client=client)
    with pytest.raises(DeliveryError) as exc:
        adapter.send("+1", "hi")
    assert "not a valid phone number" in str(exc.value)


def test_twilio_failed_status_is_an_error():
    client = MagicMock()
    client.messages.create.return_value = MagicMock(sid="SM9", status="failed")
    adapter = TwilioDeliveryAdapter("AC1", "token", "+15550000000", client=client)
    with pytest.raises(DeliveryError):
        adapter.send("+1555", "hi")


def test_twilio_requires_credentials():
    with pytest.raises(DeliveryError):
        TwilioDeliveryAdapter("", "token", "+1", client=MagicMock())
