"""
Channel senders.

One implementation per external delivery channel.
"""

from __future__ import annotations

from ticketrelay.delivery.sinks.base import ChannelSender, OutcomeStatus, SendOutcome
from ticketrelay.delivery.sinks.messaging import TwilioMessagingSender, to_whatsapp_address
from ticketrelay.delivery.sinks.webhook import WebhookSender

__all__ = [
    "ChannelSender",
    "OutcomeStatus",
    "SendOutcome",
    "TwilioMessagingSender",
    "WebhookSender",
    "to_whatsapp_address",
]
