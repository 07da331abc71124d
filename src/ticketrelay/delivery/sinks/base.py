"""
Base channel sender.

A channel sender performs exactly one delivery attempt per ``send`` call.
Retries and fallback are the orchestrator's job.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from ticketrelay.contracts.events import EventKind, EventPayload

logger = logging.getLogger(__name__)

ChannelType = Literal["webhook", "messaging"]


class OutcomeStatus(str, Enum):
    """Result of a single send attempt."""

    DELIVERED = "delivered"
    FAILED = "failed"
    DISABLED = "disabled"  # Channel not configured; no network call made


@dataclass(frozen=True)
class SendOutcome:
    """Result of a single send attempt."""

    status: OutcomeStatus
    channel: str
    provider_id: str | None = None  # e.g. Twilio message SID
    error: str | None = None
    status_code: int | None = None

    @property
    def success(self) -> bool:
        return self.status is OutcomeStatus.DELIVERED

    @classmethod
    def delivered(
        cls,
        channel: str,
        *,
        provider_id: str | None = None,
        status_code: int | None = None,
    ) -> SendOutcome:
        return cls(
            status=OutcomeStatus.DELIVERED,
            channel=channel,
            provider_id=provider_id,
            status_code=status_code,
        )

    @classmethod
    def failed(
        cls,
        channel: str,
        error: str,
        *,
        status_code: int | None = None,
    ) -> SendOutcome:
        return cls(
            status=OutcomeStatus.FAILED,
            channel=channel,
            error=error,
            status_code=status_code,
        )

    @classmethod
    def disabled(cls, channel: str, error: str) -> SendOutcome:
        return cls(status=OutcomeStatus.DISABLED, channel=channel, error=error)


class ChannelSender(ABC):
    """Abstract base class for channel senders.

    Subclasses implement ``_send``; ``send`` wraps it so that no exception
    ever leaves the sender.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique name for this channel."""
        ...

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType:
        ...

    @property
    @abstractmethod
    def enabled(self) -> bool:
        """Whether the required credentials/URL are configured."""
        ...

    @abstractmethod
    async def _send(self, payload: EventPayload) -> SendOutcome:
        """Perform one delivery attempt. May raise."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close any resources held by this sender."""
        ...

    def handles(self, kind: EventKind) -> bool:
        """Whether this channel takes events of ``kind`` (default: all kinds)."""
        return True

    async def send(self, payload: EventPayload) -> SendOutcome:
        """
        Deliver ``payload`` once.

        Returns:
            ``disabled`` without touching the network when not configured,
            otherwise ``delivered`` or ``failed``.
        """
        if not self.enabled:
            return SendOutcome.disabled(self.name, f"{self.name} channel not enabled")

        try:
            return await self._send(payload)
        except Exception as e:
            logger.exception(
                "Channel sender error",
                extra={"channel": self.name, "subject_id": payload.subject_id},
            )
            return SendOutcome.failed(self.name, f"{type(e).__name__}: {e}")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, enabled={self.enabled})"
