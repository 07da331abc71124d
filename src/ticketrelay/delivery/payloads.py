"""
Event payload builders.

Each builder turns a domain event into one immutable EventPayload holding
both representations the channels need: the JSON ``body`` for the webhook
and the formatted ``message`` text for the messaging provider.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from ticketrelay.contracts.events import (
    AlertNotice,
    CreateTicketInput,
    EventKind,
    EventPayload,
    TicketCreatedEvent,
    TicketNotice,
)
from ticketrelay.delivery.formatter import NotificationFormatter

if TYPE_CHECKING:
    from ticketrelay.delivery.config import DeliveryConfig

_formatter = NotificationFormatter()


def build_ticket_created_payload(
    *,
    ticket_id: str,
    ticket_ref: str,
    ticket_input: CreateTicketInput,
    config: DeliveryConfig,
    created_at: datetime | None = None,
) -> EventPayload:
    """Payload for a newly created customer support ticket."""
    if created_at is None:
        created_at = datetime.now(UTC)

    event = TicketCreatedEvent(
        ticket_ref=ticket_ref,
        ticket_id=ticket_id,
        ticket_url=config.ticket_url(ticket_ref),
        customer_name=ticket_input.customer_name,
        customer_phone=ticket_input.customer_phone,
        customer_email=ticket_input.customer_email,
        subject=ticket_input.subject,
        message=ticket_input.message,
        priority=ticket_input.priority,
        created_at=created_at,
    )

    return EventPayload(
        kind=EventKind.TICKET_CREATED,
        subject_id=ticket_id,
        reference=ticket_ref,
        message=_formatter.format_ticket_created(event),
        destination=config.target_address,
        metadata={
            "priority": ticket_input.priority.value,
            "created_at": created_at.isoformat(),
        },
        body=event.to_wire(),
    )


def build_alert_payload(
    alert: AlertNotice,
    *,
    destination: str,
    ticket_id: str | None = None,
    sent_at: datetime | None = None,
) -> EventPayload:
    """Payload for an operational alert."""
    if sent_at is None:
        sent_at = datetime.now(UTC)

    text = _formatter.format_alert(alert)
    severity = getattr(alert.severity, "value", alert.severity)

    return EventPayload(
        kind=EventKind.ALERT,
        subject_id=alert.id,
        message=text,
        destination=destination,
        metadata={
            "severity": severity,
            "type": alert.type,
            "alert_ts": alert.ts.isoformat(),
        },
        body={
            "to": destination,
            "message": text,
            "alertId": alert.id,
            "ticketId": ticket_id,
            "timestamp": sent_at.isoformat(),
        },
    )


def build_ticket_update_payload(
    ticket: TicketNotice,
    *,
    destination: str,
    ticket_ref: str | None = None,
    sent_at: datetime | None = None,
) -> EventPayload:
    """Payload for a ticket status change."""
    if sent_at is None:
        sent_at = datetime.now(UTC)

    text = _formatter.format_ticket(ticket)
    status = getattr(ticket.status, "value", ticket.status)

    return EventPayload(
        kind=EventKind.TICKET_UPDATE,
        subject_id=ticket.id,
        reference=ticket_ref,
        message=text,
        destination=destination,
        metadata={"status": status, "type": ticket.type},
        body={
            "to": destination,
            "message": text,
            "ticketId": ticket.id,
            "ticketRef": ticket_ref,
            "status": status,
            "timestamp": sent_at.isoformat(),
        },
    )
