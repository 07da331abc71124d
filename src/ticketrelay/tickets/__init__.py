"""Ticket identity, input validation and the ticket service facade."""

from ticketrelay.tickets.reference import TICKET_REF_PATTERN, generate_ticket_ref, is_ticket_ref
from ticketrelay.tickets.service import (
    TicketNotFoundError,
    TicketService,
    TicketStore,
    TicketValidationError,
)
from ticketrelay.tickets.validation import (
    validate_create_input,
    validate_inbound_message_input,
)

__all__ = [
    "TICKET_REF_PATTERN",
    "TicketNotFoundError",
    "TicketService",
    "TicketStore",
    "TicketValidationError",
    "generate_ticket_ref",
    "is_ticket_ref",
    "validate_create_input",
    "validate_inbound_message_input",
]
