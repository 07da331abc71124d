"""
Tests for channel senders.

aiohttp sessions are replaced with AsyncMock/MagicMock stand-ins.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from ticketrelay.contracts.events import EventKind, EventPayload
from ticketrelay.delivery.config import MessagingChannelConfig, WebhookChannelConfig
from ticketrelay.delivery.sinks.base import OutcomeStatus
from ticketrelay.delivery.sinks.messaging import TwilioMessagingSender, to_whatsapp_address
from ticketrelay.delivery.sinks.webhook import WebhookSender


@pytest.fixture
def sample_payload() -> EventPayload:
    return EventPayload(
        kind=EventKind.TICKET_CREATED,
        subject_id="tkt-1",
        reference="T-20250115-1234",
        message="New ticket T-20250115-1234",
        destination="+919655716000",
        body={"ticketRef": "T-20250115-1234", "ticketId": "tkt-1"},
    )


def mock_response(
    status: int,
    *,
    text: str = "",
    json_data: dict[str, Any] | None = None,
) -> AsyncMock:
    resp = AsyncMock()
    resp.status = status
    resp.text = AsyncMock(return_value=text)
    resp.json = AsyncMock(return_value=json_data or {})
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=None)
    return resp


def mock_session(response: Any = None, *, side_effect: Any = None) -> AsyncMock:
    session = AsyncMock()
    session.post = MagicMock(return_value=response, side_effect=side_effect)
    session.closed = False
    return session


def webhook_config(**overrides: Any) -> WebhookChannelConfig:
    params: dict[str, Any] = {
        "url": "https://n8n.example.com/webhook/ticket-created",
        "api_key": "shared-secret",
    }
    params.update(overrides)
    return WebhookChannelConfig(**params)


def messaging_config(**overrides: Any) -> MessagingChannelConfig:
    params: dict[str, Any] = {
        "account_sid": "AC" + "0" * 32,
        "auth_token": "auth-token",
    }
    params.update(overrides)
    return MessagingChannelConfig(**params)


class TestWebhookSender:
    """Tests for WebhookSender."""

    @pytest.mark.asyncio
    async def test_send_disabled(self, sample_payload: EventPayload) -> None:
        """Disabled sender reports DISABLED and makes no request."""
        sender = WebhookSender(WebhookChannelConfig())
        session = mock_session(mock_response(200))
        sender._session = session

        outcome = await sender.send(sample_payload)

        assert outcome.status is OutcomeStatus.DISABLED
        assert not outcome.success
        assert outcome.error is not None
        assert "not enabled" in outcome.error
        session.post.assert_not_called()

    def test_disabled_without_secret(self) -> None:
        sender = WebhookSender(webhook_config(api_key=""))
        assert sender.enabled is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [200, 201])
    async def test_send_success(self, sample_payload: EventPayload, status: int) -> None:
        sender = WebhookSender(webhook_config())
        session = mock_session(mock_response(status))
        sender._session = session

        outcome = await sender.send(sample_payload)

        assert outcome.success
        assert outcome.status_code == status
        session.post.assert_called_once()

    @pytest.mark.asyncio
    async def test_posts_body_with_api_key_header(self, sample_payload: EventPayload) -> None:
        sender = WebhookSender(webhook_config())
        session = mock_session(mock_response(200))
        sender._session = session

        await sender.send(sample_payload)

        args, kwargs = session.post.call_args
        assert args[0] == "https://n8n.example.com/webhook/ticket-created"
        assert kwargs["json"] == sample_payload.body
        assert kwargs["headers"]["x-api-key"] == "shared-secret"
        assert kwargs["headers"]["Content-Type"] == "application/json"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [202, 204, 400, 401, 500, 503])
    async def test_other_statuses_fail(self, sample_payload: EventPayload, status: int) -> None:
        sender = WebhookSender(webhook_config())
        sender._session = mock_session(mock_response(status, text="nope"))

        outcome = await sender.send(sample_payload)

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.status_code == status
        assert outcome.error == f"HTTP {status}: nope"

    @pytest.mark.asyncio
    async def test_connection_error_fails(self, sample_payload: EventPayload) -> None:
        sender = WebhookSender(webhook_config())
        sender._session = mock_session(side_effect=aiohttp.ClientConnectionError("refused"))

        outcome = await sender.send(sample_payload)

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.error is not None
        assert outcome.error.startswith("Connection error")

    @pytest.mark.asyncio
    async def test_timeout_fails(self, sample_payload: EventPayload) -> None:
        sender = WebhookSender(webhook_config(timeout_s=10.0))
        sender._session = mock_session(side_effect=TimeoutError())

        outcome = await sender.send(sample_payload)

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.error == "Timed out after 10.0s"

    @pytest.mark.asyncio
    async def test_unexpected_exception_caught_at_boundary(
        self, sample_payload: EventPayload
    ) -> None:
        sender = WebhookSender(webhook_config())
        sender._session = mock_session(side_effect=ValueError("bad json"))

        outcome = await sender.send(sample_payload)

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.error == "ValueError: bad json"

    @pytest.mark.asyncio
    async def test_unsigned_webhook_omits_api_key(self, sample_payload: EventPayload) -> None:
        config = webhook_config(api_key="", require_api_key=False, url_setting="N8N_WEBHOOK_URL")
        sender = WebhookSender(config, name="alert_webhook")
        session = mock_session(mock_response(200))
        sender._session = session

        outcome = await sender.send(sample_payload)

        assert outcome.success
        assert outcome.channel == "alert_webhook"
        _, kwargs = session.post.call_args
        assert "x-api-key" not in kwargs["headers"]

    def test_handles_configured_kinds(self) -> None:
        sender = WebhookSender(webhook_config(), kinds=(EventKind.ALERT, EventKind.TICKET_UPDATE))
        assert sender.handles(EventKind.ALERT)
        assert sender.handles(EventKind.TICKET_UPDATE)
        assert not sender.handles(EventKind.TICKET_CREATED)

    def test_handles_all_kinds_by_default(self) -> None:
        sender = WebhookSender(webhook_config())
        assert all(sender.handles(kind) for kind in EventKind)

    def test_name_hides_url(self) -> None:
        sender = WebhookSender(webhook_config())
        assert sender.name == "webhook"
        assert "n8n.example.com" not in repr(sender)
        assert sender.channel_type == "webhook"

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        sender = WebhookSender(webhook_config())
        session = mock_session()
        sender._session = session

        await sender.close()

        session.close.assert_awaited_once()
        assert sender._session is None


class TestTwilioMessagingSender:
    """Tests for TwilioMessagingSender."""

    @pytest.mark.asyncio
    async def test_send_disabled(self, sample_payload: EventPayload) -> None:
        sender = TwilioMessagingSender(MessagingChannelConfig())
        session = mock_session(mock_response(201))
        sender._session = session

        outcome = await sender.send(sample_payload)

        assert outcome.status is OutcomeStatus.DISABLED
        session.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_success_returns_sid(self, sample_payload: EventPayload) -> None:
        sender = TwilioMessagingSender(messaging_config())
        sender._session = mock_session(mock_response(201, json_data={"sid": "SM123"}))

        outcome = await sender.send(sample_payload)

        assert outcome.success
        assert outcome.provider_id == "SM123"
        assert outcome.channel == "twilio_whatsapp"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "json_error",
        [ValueError("Expecting value"), aiohttp.ContentTypeError(MagicMock(), ())],
    )
    async def test_unreadable_accepted_body_still_delivered(
        self, sample_payload: EventPayload, json_error: Exception
    ) -> None:
        """An accepted message is not resent when its response body is unreadable."""
        resp = mock_response(201)
        resp.json = AsyncMock(side_effect=json_error)
        sender = TwilioMessagingSender(messaging_config())
        session = mock_session(resp)
        sender._session = session

        outcome = await sender.send(sample_payload)

        assert outcome.success
        assert outcome.provider_id is None
        assert outcome.status_code == 201
        session.post.assert_called_once()

    @pytest.mark.asyncio
    async def test_non_object_body_has_no_sid(self, sample_payload: EventPayload) -> None:
        sender = TwilioMessagingSender(messaging_config())
        resp = mock_response(200)
        resp.json = AsyncMock(return_value=["SM1"])
        sender._session = mock_session(resp)

        outcome = await sender.send(sample_payload)

        assert outcome.success
        assert outcome.provider_id is None

    @pytest.mark.asyncio
    async def test_form_fields(self, sample_payload: EventPayload) -> None:
        sender = TwilioMessagingSender(messaging_config(from_address="whatsapp:+14155238886"))
        session = mock_session(mock_response(201, json_data={"sid": "SM1"}))
        sender._session = session

        await sender.send(sample_payload)

        args, kwargs = session.post.call_args
        assert args[0] == (
            "https://api.twilio.com/2010-04-01/Accounts/" + "AC" + "0" * 32 + "/Messages.json"
        )
        assert kwargs["data"] == {
            "From": "whatsapp:+14155238886",
            "To": "whatsapp:+919655716000",
            "Body": "New ticket T-20250115-1234",
        }

    @pytest.mark.asyncio
    async def test_provider_error_fails(self, sample_payload: EventPayload) -> None:
        sender = TwilioMessagingSender(messaging_config())
        sender._session = mock_session(mock_response(401, text="Authenticate"))

        outcome = await sender.send(sample_payload)

        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.status_code == 401

    @pytest.mark.asyncio
    async def test_connection_error_fails(self, sample_payload: EventPayload) -> None:
        sender = TwilioMessagingSender(messaging_config())
        sender._session = mock_session(side_effect=aiohttp.ClientConnectionError("dns"))

        outcome = await sender.send(sample_payload)

        assert outcome.status is OutcomeStatus.FAILED

    def test_channel_type(self) -> None:
        sender = TwilioMessagingSender(messaging_config())
        assert sender.channel_type == "messaging"
        assert sender.enabled


class TestToWhatsappAddress:
    def test_adds_prefix(self) -> None:
        assert to_whatsapp_address("+919655716000") == "whatsapp:+919655716000"

    def test_keeps_existing_prefix(self) -> None:
        assert to_whatsapp_address("whatsapp:+14155238886") == "whatsapp:+14155238886"

    def test_strips_whitespace(self) -> None:
        assert to_whatsapp_address(" +1555 ") == "whatsapp:+1555"
