"""
Ticket service: the entry points the HTTP layer calls.

Ticket writes never depend on notification delivery. The ticket-created
notification runs as a background task after the ticket is persisted; if
every channel fails, the ticket stays.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

from ticketrelay.contracts.events import (
    AlertNotice,
    CreateTicketInput,
    InboundMessageInput,
    Ticket,
    TicketNotice,
    TicketStatus,
)
from ticketrelay.delivery.payloads import (
    build_alert_payload,
    build_ticket_created_payload,
    build_ticket_update_payload,
)
from ticketrelay.tickets.reference import generate_ticket_ref
from ticketrelay.tickets.validation import (
    validate_create_input,
    validate_inbound_message_input,
)

if TYPE_CHECKING:
    from collections.abc import Coroutine

    from ticketrelay.delivery.config import DeliveryConfig
    from ticketrelay.delivery.orchestrator import DeliveryOrchestrator, DeliveryReport

logger = logging.getLogger(__name__)

REOPENABLE_STATUSES = frozenset({TicketStatus.CLOSED, TicketStatus.RESOLVED})


class TicketValidationError(Exception):
    """Raised when request data fails validation. Carries every error."""

    def __init__(self, errors: tuple[str, ...] | list[str]) -> None:
        self.errors = tuple(errors)
        super().__init__("; ".join(self.errors))


class TicketNotFoundError(Exception):
    """Raised when an inbound message references an unknown ticket."""

    def __init__(self, ticket_ref: str) -> None:
        super().__init__(f"Ticket not found: {ticket_ref}")
        self.ticket_ref = ticket_ref


class TicketStore(Protocol):
    """Persistence layer for tickets and their message threads."""

    async def create_ticket(
        self, ticket_input: CreateTicketInput, ticket_ref: str, created_at: datetime
    ) -> Ticket:
        ...

    async def get_ticket_by_ref(self, ticket_ref: str) -> Ticket | None:
        ...

    async def append_message(self, ticket_ref: str, message: InboundMessageInput) -> None:
        ...

    async def update_ticket_status(self, ticket_id: str, status: TicketStatus) -> None:
        ...


class TicketService:
    """Create tickets, record inbound replies and send alert and update notifications."""

    def __init__(
        self,
        store: TicketStore,
        orchestrator: DeliveryOrchestrator,
        config: DeliveryConfig,
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._config = config
        # Strong refs so background deliveries aren't garbage collected
        self._pending: set[asyncio.Task[DeliveryReport]] = set()

    @property
    def pending_deliveries(self) -> int:
        return len(self._pending)

    async def create_ticket(self, raw: Mapping[str, Any]) -> Ticket:
        """
        Validate, persist and announce a customer ticket.

        Raises:
            TicketValidationError: With the full list of field errors.
        """
        result = validate_create_input(raw)
        if result.value is None:
            raise TicketValidationError(result.errors)

        ticket_input = result.value
        created_at = datetime.now(UTC)
        ticket_ref = generate_ticket_ref(created_at)

        ticket = await self._store.create_ticket(ticket_input, ticket_ref, created_at)
        logger.info(
            "Ticket created",
            extra={"ref": ticket.ticket_ref, "priority": ticket.priority.value},
        )

        payload = build_ticket_created_payload(
            ticket_id=ticket.id,
            ticket_ref=ticket.ticket_ref,
            ticket_input=ticket_input,
            config=self._config,
            created_at=created_at,
        )
        self._schedule(self._orchestrator.deliver(payload), ticket.ticket_ref)
        return ticket

    async def record_inbound_message(self, raw: Mapping[str, Any]) -> Ticket:
        """
        Append an inbound channel message (e.g. a WhatsApp reply) to its ticket.

        Closed or resolved tickets are reopened.

        Raises:
            TicketValidationError: With the full list of field errors.
            TicketNotFoundError: If the ticket reference is unknown.
        """
        result = validate_inbound_message_input(raw)
        if result.value is None:
            raise TicketValidationError(result.errors)

        message = result.value
        ticket = await self._store.get_ticket_by_ref(message.ticket_ref)
        if ticket is None:
            raise TicketNotFoundError(message.ticket_ref)

        await self._store.append_message(message.ticket_ref, message)

        if ticket.status in REOPENABLE_STATUSES:
            await self._store.update_ticket_status(ticket.id, TicketStatus.OPEN)
            logger.info("Ticket reopened by inbound message", extra={"ref": ticket.ticket_ref})

        logger.info(
            "Inbound message added to ticket",
            extra={"ref": ticket.ticket_ref, "channel": message.channel},
        )
        return ticket

    async def notify_alert(self, alert: AlertNotice, *, to: str | None = None) -> bool:
        """Deliver an alert notification and wait for the result."""
        payload = build_alert_payload(alert, destination=to or self._config.target_address)
        report = await self._orchestrator.deliver(payload)
        return report.delivered

    async def notify_ticket_update(
        self,
        ticket: TicketNotice,
        *,
        ticket_ref: str | None = None,
        to: str | None = None,
    ) -> bool:
        """Deliver a ticket status-change notification and wait for the result."""
        payload = build_ticket_update_payload(
            ticket,
            destination=to or self._config.target_address,
            ticket_ref=ticket_ref,
        )
        report = await self._orchestrator.deliver(payload)
        return report.delivered

    def _schedule(
        self, delivery: Coroutine[Any, Any, DeliveryReport], ticket_ref: str
    ) -> None:
        task = asyncio.create_task(delivery, name=f"notify:{ticket_ref}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> list[DeliveryReport]:
        """Wait for every background delivery started so far."""
        if not self._pending:
            return []
        return list(await asyncio.gather(*self._pending))
