"""
Notification delivery engine.

Delivers ticket and alert events to external channels (n8n webhook, Twilio
WhatsApp) with per-channel retries and ordered fallback.
"""

from __future__ import annotations

from ticketrelay.delivery.config import (
    DeliveryConfig,
    MessagingChannelConfig,
    WebhookChannelConfig,
)
from ticketrelay.delivery.formatter import NotificationFormatter
from ticketrelay.delivery.orchestrator import (
    ChannelDescriptor,
    DeliveryOrchestrator,
    DeliveryReport,
)
from ticketrelay.delivery.retry import AttemptRecord, RetryPolicy, RetryResult

__all__ = [
    "AttemptRecord",
    "ChannelDescriptor",
    "DeliveryConfig",
    "DeliveryOrchestrator",
    "DeliveryReport",
    "MessagingChannelConfig",
    "NotificationFormatter",
    "RetryPolicy",
    "RetryResult",
    "WebhookChannelConfig",
]
