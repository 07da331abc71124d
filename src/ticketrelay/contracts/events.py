"""
Data contracts for ticketrelay.

Value types passed between ticket validation, payload building and the
delivery engine. All models are frozen: a payload is built once per
triggering event and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

import orjson
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class Priority(str, Enum):
    """Customer ticket priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketStatus(str, Enum):
    """Ticket lifecycle status."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class AlertSeverity(str, Enum):
    """Operational alert severity."""

    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    INFO = "INFO"


class EventKind(str, Enum):
    """What triggered a notification."""

    TICKET_CREATED = "ticket_created"
    TICKET_UPDATE = "ticket_update"
    ALERT = "alert"


class CreateTicketInput(BaseModel):
    """Normalized customer ticket input (output of validation)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    customer_email: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    priority: Priority = Priority.MEDIUM


class InboundMessageInput(BaseModel):
    """Normalized inbound channel message, e.g. a WhatsApp reply relayed by n8n."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ticket_ref: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    sender: str = Field(..., min_length=1, description="Raw 'from' address")
    channel: str = Field(..., min_length=1)
    external_id: str | None = Field(default=None, description="Provider message id")
    media_url: str | None = None


@dataclass(frozen=True)
class ValidationResult(Generic[T]):
    """
    Tagged outcome of input validation.

    Exactly one of ``value`` / ``errors`` is populated: a normalized input
    on success, or a non-empty ordered tuple of error messages on failure.
    """

    value: T | None = None
    errors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if (self.value is None) == (not self.errors):
            raise ValueError("ValidationResult needs exactly one of value or errors")

    @property
    def ok(self) -> bool:
        return self.value is not None

    @classmethod
    def success(cls, value: T) -> ValidationResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, errors: list[str] | tuple[str, ...]) -> ValidationResult[T]:
        return cls(errors=tuple(errors))


class Ticket(BaseModel):
    """Persisted ticket as returned by the store."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1)
    ticket_ref: str = Field(..., min_length=1)
    status: TicketStatus = TicketStatus.OPEN
    subject: str
    customer_name: str
    customer_phone: str
    customer_email: str
    priority: Priority
    created_at: datetime


class TicketCreatedEvent(BaseModel):
    """
    Wire body posted to the ticket-created webhook.

    Attributes are snake_case; serialized keys are camelCase
    (``ticketRef``, ``customerPhone``, ``createdAt`` ...).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    ticket_ref: str
    ticket_id: str
    ticket_url: str
    customer_name: str
    customer_phone: str
    customer_email: str
    subject: str
    message: str
    priority: Priority
    created_at: datetime

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class AlertNotice(BaseModel):
    """Alert fields rendered into a messaging-channel text."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    severity: AlertSeverity | str
    type: str
    message: str
    entity_type: str
    entity_id: str
    ts: datetime


class TicketNotice(BaseModel):
    """Ticket fields rendered into a messaging-channel text."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    type: str
    status: TicketStatus | str
    entity_type: str
    entity_id: str
    ts: datetime
    assigned_to: str | None = None
    due_by: datetime | None = None


class EventPayload(BaseModel):
    """
    Everything needed to deliver one event over any channel.

    Attributes:
        kind: What triggered the notification.
        subject_id: Internal ticket or alert id.
        reference: Human-readable ticket reference (None for alerts).
        message: Pre-formatted text for messaging channels.
        destination: Target address (phone number) for messaging channels.
        metadata: Severity / priority / timestamps.
        body: JSON object posted by webhook channels.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: EventKind
    subject_id: str = Field(..., min_length=1)
    reference: str | None = None
    message: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)
    body: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> bytes:
        """Serialize to JSON bytes using orjson."""
        return orjson.dumps(self.model_dump(mode="json"))

    @classmethod
    def from_json(cls, data: bytes | str) -> EventPayload:
        """Deserialize from JSON."""
        if isinstance(data, str):
            data = data.encode()
        return cls.model_validate(orjson.loads(data))
