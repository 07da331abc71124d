"""
Delivery orchestrator.

Walks an ordered list of enabled channels, running each through the retry
policy, and stops at the first channel that delivers:

    Pending(1) --success--> Delivered(C1)
        | exhausted
    Pending(2) --success--> Delivered(C2)
        | exhausted
      Failed

Channels that do not take the event's kind are skipped. An empty channel
list goes straight to Failed without any attempt. Only one channel is ever
in flight for a given event.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ticketrelay.contracts.events import EventKind
from ticketrelay.delivery.retry import AttemptRecord, RetryPolicy
from ticketrelay.delivery.sinks.messaging import TwilioMessagingSender
from ticketrelay.delivery.sinks.webhook import WebhookSender

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from ticketrelay.contracts.events import EventPayload
    from ticketrelay.delivery.config import DeliveryConfig
    from ticketrelay.delivery.exporter import DeliveryMetricsExporter
    from ticketrelay.delivery.sinks.base import ChannelSender

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelDescriptor:
    """Static description of one channel in the fallback sequence."""

    name: str
    enabled: bool
    position: int  # 1-based position in the fallback order


@dataclass
class DeliveryReport:
    """Terminal result of one delivery call."""

    delivered: bool
    channel: str | None = None  # Channel that delivered, if any
    provider_id: str | None = None
    attempts: list[AttemptRecord] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.delivered

    def attempts_for(self, channel: str) -> list[AttemptRecord]:
        return [a for a in self.attempts if a.channel == channel]


@dataclass
class DeliveryMetrics:
    """In-process delivery counters."""

    total_events: int = 0
    total_delivered: int = 0
    total_failed: int = 0
    total_fallbacks: int = 0
    channel_attempts: dict[str, int] = field(default_factory=dict)
    channel_successes: dict[str, int] = field(default_factory=dict)
    channel_exhaustions: dict[str, int] = field(default_factory=dict)


class DeliveryOrchestrator:
    """
    Deliver one event through the first channel that accepts it.

    Never raises: every call ends in a DeliveryReport.
    """

    def __init__(
        self,
        senders: Sequence[ChannelSender],
        policy: RetryPolicy | None = None,
        *,
        exporter: DeliveryMetricsExporter | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._exporter = exporter
        self._sleep = sleep
        self._metrics = DeliveryMetrics()

        self._descriptors = [
            ChannelDescriptor(name=s.name, enabled=s.enabled, position=i)
            for i, s in enumerate(senders, start=1)
        ]
        self._all_senders = list(senders)
        self._senders = [s for s in senders if s.enabled]

        for sender in self._all_senders:
            if not sender.enabled:
                logger.info("Skipping disabled channel", extra={"channel": sender.name})

        if not self._senders:
            logger.warning("No delivery channels enabled")

    @classmethod
    def from_config(
        cls,
        config: DeliveryConfig,
        *,
        exporter: DeliveryMetricsExporter | None = None,
    ) -> DeliveryOrchestrator:
        """
        Build the default fallback order: the n8n webhook for the event's kind
        first, then WhatsApp.

        New tickets go to the ticket-created workflow; alerts and ticket
        updates go to the alert workflow.

        When notifications are disabled altogether no channel is built.
        """
        senders: list[ChannelSender] = []
        if config.notifications_enabled:
            senders.append(
                WebhookSender(
                    config.webhook, name="webhook", kinds=(EventKind.TICKET_CREATED,)
                )
            )
            senders.append(
                WebhookSender(
                    config.alert_webhook,
                    name="alert_webhook",
                    kinds=(EventKind.ALERT, EventKind.TICKET_UPDATE),
                )
            )
            senders.append(TwilioMessagingSender(config.messaging))
        else:
            logger.info("Notifications disabled by configuration")

        return cls(senders, config.retry, exporter=exporter)

    @property
    def channels(self) -> list[ChannelDescriptor]:
        """Every configured channel, enabled or not, in fallback order."""
        return list(self._descriptors)

    @property
    def active_channels(self) -> list[str]:
        return [s.name for s in self._senders]

    def channels_for(self, kind: EventKind) -> list[str]:
        """Enabled channels that take events of ``kind``, in fallback order."""
        return [s.name for s in self._senders if s.handles(kind)]

    @property
    def metrics(self) -> DeliveryMetrics:
        return self._metrics

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def deliver(self, payload: EventPayload) -> DeliveryReport:
        """
        Deliver ``payload`` via the first channel that succeeds.

        Returns:
            DeliveryReport; ``delivered`` is False when every channel was
            exhausted or none is enabled.
        """
        self._metrics.total_events += 1
        report = DeliveryReport(delivered=False)

        senders = [s for s in self._senders if s.handles(payload.kind)]
        if not senders:
            self._record_final(report, payload)
            return report

        for index, sender in enumerate(senders):
            if index > 0:
                self._metrics.total_fallbacks += 1
                logger.info(
                    "Falling back to next channel",
                    extra={"channel": sender.name, "subject_id": payload.subject_id},
                )

            result = await self._policy.run(
                lambda s=sender: s.send(payload),
                channel=sender.name,
                sleep=self._sleep,
            )
            report.attempts.extend(result.attempts)
            self._record_attempts(sender.name, result.attempts)

            if result.success:
                report.delivered = True
                report.channel = sender.name
                report.provider_id = result.outcome.provider_id
                self._metrics.channel_successes[sender.name] = (
                    self._metrics.channel_successes.get(sender.name, 0) + 1
                )
                self._record_final(report, payload)
                return report

            self._metrics.channel_exhaustions[sender.name] = (
                self._metrics.channel_exhaustions.get(sender.name, 0) + 1
            )
            logger.error(
                "Channel exhausted",
                extra={
                    "channel": sender.name,
                    "attempts": len(result.attempts),
                    "error": result.outcome.error,
                    "subject_id": payload.subject_id,
                },
            )

        self._record_final(report, payload)
        return report

    def _record_attempts(self, channel: str, attempts: list[AttemptRecord]) -> None:
        self._metrics.channel_attempts[channel] = (
            self._metrics.channel_attempts.get(channel, 0) + len(attempts)
        )
        if self._exporter is not None:
            for attempt in attempts:
                self._exporter.record_attempt(attempt)

    def _record_final(self, report: DeliveryReport, payload: EventPayload) -> None:
        if report.delivered:
            self._metrics.total_delivered += 1
            logger.info(
                "Notification delivered",
                extra={
                    "channel": report.channel,
                    "kind": payload.kind.value,
                    "ref": payload.reference,
                    "attempts": len(report.attempts),
                },
            )
        else:
            self._metrics.total_failed += 1
            logger.error(
                "Notification delivery failed on all channels",
                extra={
                    "kind": payload.kind.value,
                    "subject_id": payload.subject_id,
                    "ref": payload.reference,
                    "channels": self.active_channels,
                },
            )
        if self._exporter is not None:
            self._exporter.record_report(report)

    async def close(self) -> None:
        """Close every sender, enabled or not."""
        for sender in self._all_senders:
            try:
                await sender.close()
            except Exception as e:
                logger.error(
                    "Error closing channel",
                    extra={"channel": sender.name, "error": str(e)},
                )
