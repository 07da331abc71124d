"""
Human-readable ticket references.

Format: ``T-YYYYMMDD-XXXX`` (e.g. ``T-20250115-1234``), where the date is the
UTC creation date and ``XXXX`` is a random number in [1000, 9999].

References are advisory, not primary keys: nothing checks them against
storage, and two tickets created on the same day may share one.
"""

from __future__ import annotations

import random
import re
from datetime import UTC, datetime

TICKET_REF_PATTERN = re.compile(r"^T-\d{8}-\d{4}$")

_REF_RANDOM_MIN = 1000
_REF_RANDOM_MAX = 9999


def generate_ticket_ref(
    now: datetime | None = None,
    *,
    rng: random.Random | None = None,
) -> str:
    """
    Generate a ticket reference for a ticket created at ``now``.

    Args:
        now: Creation time (default: current time). Naive values are taken as UTC.
        rng: Optional seeded Random instance for deterministic tests.

    Returns:
        Reference string matching ``TICKET_REF_PATTERN``.
    """
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    else:
        now = now.astimezone(UTC)

    source = rng if rng is not None else random
    suffix = source.randint(_REF_RANDOM_MIN, _REF_RANDOM_MAX)
    return f"T-{now:%Y%m%d}-{suffix}"


def is_ticket_ref(value: str) -> bool:
    """Check whether ``value`` is shaped like a ticket reference."""
    return bool(TICKET_REF_PATTERN.match(value))
