"""
Webhook sender.

Posts the event's JSON body to an n8n automation webhook, signed with the
shared secret in an ``x-api-key`` header when one is configured.

Each n8n workflow expects one body shape, so a webhook sender only accepts
the event kinds it was built for.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import aiohttp

from ticketrelay.delivery.sinks.base import ChannelSender, ChannelType, SendOutcome

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ticketrelay.contracts.events import EventKind, EventPayload
    from ticketrelay.delivery.config import WebhookChannelConfig

logger = logging.getLogger(__name__)

# Only these count as delivered; other 2xx codes are treated as failures
SUCCESS_STATUSES = frozenset({200, 201})


class WebhookSender(ChannelSender):
    """
    Generic webhook channel.

    One POST per ``send`` with a bounded total timeout. Timeouts, connection
    errors and any status outside SUCCESS_STATUSES are failures.
    """

    def __init__(
        self,
        config: WebhookChannelConfig,
        *,
        name: str = "webhook",
        kinds: Iterable[EventKind] | None = None,
    ) -> None:
        self._config = config
        self._name = name
        self._kinds = frozenset(kinds) if kinds is not None else None
        self._session: aiohttp.ClientSession | None = None

        if not config.enabled:
            logger.warning(
                "Webhook channel disabled",
                extra={"channel": name, "missing_settings": config.missing},
            )

    @property
    def name(self) -> str:
        # Don't expose webhook URL in name
        return self._name

    @property
    def channel_type(self) -> ChannelType:
        return "webhook"

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def handles(self, kind: EventKind) -> bool:
        return self._kinds is None or kind in self._kinds

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._config.timeout_s)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def _send(self, payload: EventPayload) -> SendOutcome:
        headers = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["x-api-key"] = self._config.api_key

        try:
            session = await self._get_session()
            async with session.post(
                self._config.url, json=payload.body, headers=headers
            ) as resp:
                status = resp.status

                if status in SUCCESS_STATUSES:
                    logger.info(
                        "Webhook notification sent",
                        extra={"subject_id": payload.subject_id, "ref": payload.reference},
                    )
                    return SendOutcome.delivered(self.name, status_code=status)

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
