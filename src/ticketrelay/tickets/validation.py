"""
Input validation for ticket creation and inbound channel messages.

Both validators collect every violation instead of stopping at the first
one, so a client gets the complete list in a single response.

The email check only looks for an ``@``. That looseness is intentional:
the address is used for display and follow-up, not for routing.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ticketrelay.contracts.events import (
    CreateTicketInput,
    InboundMessageInput,
    Priority,
    ValidationResult,
)

DEFAULT_PRIORITY = Priority.MEDIUM
_PRIORITY_VALUES = tuple(p.value for p in Priority)


def _non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _optional_string(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def validate_create_input(raw: Mapping[str, Any]) -> ValidationResult[CreateTicketInput]:
    """
    Validate and normalize a customer ticket creation request.

    Args:
        raw: Decoded request body (camelCase keys).

    Returns:
        ValidationResult with a trimmed CreateTicketInput (email lower-cased),
        or the full list of field errors.
    """
    errors: list[str] = []

    for field_name in ("customerName", "customerPhone"):
        if not _non_empty_string(raw.get(field_name)):
            errors.append(f"{field_name} is required and must be a non-empty string")

    email = raw.get("customerEmail")
    if not isinstance(email, str) or "@" not in email:
        errors.append("customerEmail is required and must be a valid email")

    for field_name in ("subject", "message"):
        if not _non_empty_string(raw.get(field_name)):
            errors.append(f"{field_name} is required and must be a non-empty string")

    priority = raw.get("priority") or DEFAULT_PRIORITY.value
    if priority not in _PRIORITY_VALUES:
        errors.append(f"priority must be one of: {', '.join(_PRIORITY_VALUES)}")

    if errors:
        return ValidationResult.failure(errors)

    return ValidationResult.success(
        CreateTicketInput(
            customer_name=raw["customerName"].strip(),
            customer_phone=raw["customerPhone"].strip(),
            customer_email=raw["customerEmail"].strip().lower(),
            subject=raw["subject"].strip(),
            message=raw["message"].strip(),
            priority=Priority(priority),
        )
    )


def validate_inbound_message_input(
    raw: Mapping[str, Any],
) -> ValidationResult[InboundMessageInput]:
    """
    Validate and normalize an inbound channel message.

    Required: ticketRef, message, from, channel.
    Optional: externalId, mediaUrl (type-checked only when present).
    """
    errors: list[str] = []

    if not _non_empty_string(raw.get("ticketRef")):
        errors.append("ticketRef is required and must be a string")

    if not _non_empty_string(raw.get("message")):
        errors.append("message is required and must be a non-empty string")

    if not _non_empty_string(raw.get("from")):
        errors.append("from is required and must be a string")

    if not _non_empty_string(raw.get("channel")):
        errors.append("channel is required and must be a string")

    for field_name in ("externalId", "mediaUrl"):
        value = raw.get(field_name)
        if value is not None and not isinstance(value, str):
            errors.append(f"{field_name} must be a string if provided")

    if errors:
        return ValidationResult.failure(errors)

    return ValidationResult.success(
        InboundMessageInput(
            ticket_ref=raw["ticketRef"].strip(),
            message=raw["message"].strip(),
            sender=raw["from"].strip(),
            channel=raw["channel"].strip(),
            external_id=_optional_string(raw.get("externalId")),
            media_url=_optional_string(raw.get("mediaUrl")),
        )
    )
