"""
Twilio WhatsApp sender.

Sends the event's text through the Twilio Messages REST API:
POST https://api.twilio.com/2010-04-01/Accounts/{AccountSid}/Messages.json
with form fields From / To / Body and HTTP basic auth.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiohttp

from ticketrelay.delivery.sinks.base import ChannelSender, ChannelType, SendOutcome

if TYPE_CHECKING:
    from ticketrelay.contracts.events import EventPayload
    from ticketrelay.delivery.config import MessagingChannelConfig

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
WHATSAPP_PREFIX = "whatsapp:"

SUCCESS_STATUSES = frozenset({200, 201})


def to_whatsapp_address(address: str) -> str:
    """Add the ``whatsapp:`` prefix Twilio requires, unless already present."""
    address = address.strip()
    if address.startswith(WHATSAPP_PREFIX):
        return address
    return f"{WHATSAPP_PREFIX}{address}"


class TwilioMessagingSender(ChannelSender):
    """Direct messaging-provider channel (Twilio WhatsApp)."""

    def __init__(
        self,
        config: MessagingChannelConfig,
        *,
        api_base: str = TWILIO_API_BASE,
    ) -> None:
        self._config = config
        self._api_base = api_base.rstrip("/")
        self._session: aiohttp.ClientSession | None = None

        if not config.enabled:
            logger.warning(
                "Messaging channel disabled",
                extra={"missing_settings": config.missing},
            )

    @property
    def name(self) -> str:
        return "twilio_whatsapp"

    @property
    def channel_type(self) -> ChannelType:
        return "messaging"

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    @property
    def messages_url(self) -> str:
        return f"{self._api_base}/Accounts/{self._config.account_sid}/Messages.json"

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._config.timeout_s)
            auth = aiohttp.BasicAuth(self._config.account_sid, self._config.auth_token)
            self._session = aiohttp.ClientSession(timeout=timeout, auth=auth)
        return self._session

    @staticmethod
    async def _read_sid(resp: aiohttp.ClientResponse) -> str | None:
        """Message SID from an accepted response, or None if the body is unreadable."""
        # Twilio already accepted the message; a bad body must not cause a resend
        try:
            data = await resp.json(content_type=None)
        except (aiohttp.ClientError, ValueError):
            logger.warning("Twilio accepted message but the response body was unreadable")
            return None
        if not isinstance(data, dict):
            return None
        sid = data.get("sid")
        return sid if isinstance(sid, str) else None

    async def _send(self, payload: EventPayload) -> SendOutcome:
        form = {
            "From": self._config.from_address,
            "To": to_whatsapp_address(payload.destination),
            "Body": payload.message,
        }

        try:
            session = await self._get_session()
            async with session.post(self.messages_url, data=form) as resp:
                status = resp.status

                if status in SUCCESS_STATUSES:
                    sid = await self._read_sid(resp)
                    logger.info(
                        "WhatsApp message sent",
                        extra={"subject_id": payload.subject_id, "sid": sid},
                    )
                    return SendOutcome.delivered(
                        self.name, provider_id=sid, status_code=status
                    )

                error_text = await resp.text()
                return SendOutcome.failed(
                    self.name,
                    f"HTTP {status}: {error_text[:200]}",
                    status_code=status,
                )

        except TimeoutError:
            return SendOutcome.failed(
                self.name, f"Timed out after {self._config.timeout_s}s"
            )
        except aiohttp.ClientError as e:
            return SendOutcome.failed(self.name, f"Connection error: {e}")

    async def close(self) -> None:
        """Close aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
