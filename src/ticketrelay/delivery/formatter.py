"""
Message text templates for messaging channels.

Deterministic WhatsApp-flavoured text (``*bold*``, ``_italic_``). The exact
layout is presentation, but every alert text carries severity, type,
entity, timestamp, message and id, and every ticket text carries status,
type, entity, timestamp and id.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ticketrelay.contracts.events import (
        AlertNotice,
        TicketCreatedEvent,
        TicketNotice,
    )

SEVERITY_ICONS = {
    "CRITICAL": "\U0001f534",  # red circle
    "WARNING": "\u26a0\ufe0f",  # warning
    "INFO": "\u2139\ufe0f",  # info
}
DEFAULT_SEVERITY_ICON = "\U0001f4e2"  # loudspeaker

STATUS_ICONS = {
    "open": "\U0001f195",  # NEW
    "in_progress": "\U0001f504",  # arrows
    "resolved": "\u2705",  # green check
    "closed": "\U0001f512",  # lock
}
DEFAULT_STATUS_ICON = "\U0001f3ab"  # ticket

PRIORITY_ICONS = {
    "low": "\U0001f7e2",
    "medium": "\U0001f7e1",
    "high": "\U0001f7e0",
    "urgent": "\U0001f534",
}


def _ts(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%d %H:%M:%S UTC")


def _value(field: object) -> str:
    return str(getattr(field, "value", field))


class NotificationFormatter:
    """Template-based formatter for alert and ticket notifications."""

    def format_alert(self, alert: AlertNotice) -> str:
        """Format an operational alert."""
        severity = _value(alert.severity)
        icon = SEVERITY_ICONS.get(severity, DEFAULT_SEVERITY_ICON)

        lines = [
            f"{icon} *ALERT: {severity}*",
            "",
            f"*Type:* {alert.type}",
            f"*Entity:* {alert.entity_type} {alert.entity_id}",
            f"*Time:* {_ts(alert.ts)}",
            "",
            alert.message,
            "",
            f"_Alert ID: {alert.id}_",
        ]
        return "\n".join(lines)

    def format_ticket(self, ticket: TicketNotice) -> str:
        """Format a ticket status notification."""
        status = _value(ticket.status)
        icon = STATUS_ICONS.get(status, DEFAULT_STATUS_ICON)
        due = _ts(ticket.due_by) if ticket.due_by else "Not set"

        lines = [
            f"{icon} *SUPPORT TICKET: {status.upper()}*",
            "",
            f"*Type:* {ticket.type}",
            f"*Status:* {status}",
            f"*Entity:* {ticket.entity_type} {ticket.entity_id}",
            f"*Created:* {_ts(ticket.ts)}",
            f"*Due By:* {due}",
        ]
        if ticket.assigned_to:
            lines.append(f"*Assigned To:* {ticket.assigned_to}")
        lines.extend(["", f"_Ticket ID: {ticket.id}_"])
        return "\n".join(lines)

    def format_ticket_created(self, event: TicketCreatedEvent) -> str:
        """Format a new customer ticket (messaging fallback for the webhook)."""
        priority = _value(event.priority)
        icon = PRIORITY_ICONS.get(priority, DEFAULT_STATUS_ICON)

        lines = [
            f"{icon} *NEW TICKET {event.ticket_ref}*",
            "",
            f"*Subject:* {event.subject}",
            f"*Priority:* {priority}",
            f"*Customer:* {event.customer_name} ({event.customer_phone})",
            f"*Created:* {_ts(event.created_at)}",
            "",
            event.message,
            "",
            event.ticket_url,
            f"_Ticket ID: {event.ticket_id}_",
        ]
        return "\n".join(lines)
