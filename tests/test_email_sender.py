"""Test the outbound email client."""
import json

import httpx
import pytest

from core.integrations import EmailMessage, EmailSender


def message(**overrides):
    fields = {"to": "ana@example.com", "subject": "Hello", "text": "Body", "tags": {"category": "test"}}
    fields.update(overrides)
    return EmailMessage(**fields)


@pytest.mark.asyncio
async def test_successful_delivery(email_sender, outbox):
    delivery = await email_sender.send(message())
    assert delivery.success
    assert delivery.status_code == 200

    payload = json.loads(outbox.requests[0].content)
    assert payload["to"] == ["ana@example.com"]
    assert payload["tags"] == [{"name": "category", "value": "test"}]
    assert payload["html"] is None


@pytest.mark.asyncio
async def test_http_error_is_reported_not_raised(email_sender, outbox):
    outbox.fail = True
    delivery = await email_sender.send(message())
    assert not delivery.success
    assert delivery.error == "HTTP 500"


@pytest.mark.asyncio
async def test_transport_failure_is_reported_not_raised():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    sender = EmailSender(api_url="https://email.test/send", transport=httpx.MockTransport(refuse))
    delivery = await sender.send(message())
    assert not delivery.success
    assert "connection refused" in delivery.error


@pytest.mark.asyncio
async def test_unconfigured_sender_skips_delivery():
    sender = EmailSender(api_url="")
    assert not sender.enabled
    delivery = await sender.send(message())
    assert not delivery.success
    assert delivery.error == "email API not configured"


@pytest.mark.asyncio
async def test_delivery_history(email_sender, outbox):
    await email_sender.send(message(subject="first"))
    outbox.fail = True
    await email_sender.send(message(subject="second"))

    history = email_sender.get_deliveries()
    assert {d.subject for d in history} == {"first", "second"}
    assert [d.to_dict()["success"] for d in history if d.subject == "second"] == [False]
    assert len(email_sender.get_deliveries(limit=1)) == 1
