"""Data contracts shared by ticket validation and delivery."""

from ticketrelay.contracts.events import (
    AlertNotice,
    AlertSeverity,
    CreateTicketInput,
    EventKind,
    EventPayload,
    InboundMessageInput,
    Priority,
    Ticket,
    TicketCreatedEvent,
    TicketNotice,
    TicketStatus,
    ValidationResult,
)

__all__ = [
    "AlertNotice",
    "AlertSeverity",
    "CreateTicketInput",
    "EventKind",
    "EventPayload",
    "InboundMessageInput",
    "Priority",
    "Ticket",
    "TicketCreatedEvent",
    "TicketNotice",
    "TicketStatus",
    "ValidationResult",
]
