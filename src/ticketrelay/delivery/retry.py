"""
Retry with exponential backoff for single-channel delivery.

Attempt k (1-indexed) that fails waits ``base_delay_ms * 2**(k-1)`` before
attempt k+1. The last attempt returns immediately. No jitter, no cap:
callers with a large ``max_attempts`` must pick a sane ceiling themselves.

Every failure is retried the same way, whether the sender returned a
failed outcome or raised.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ticketrelay.delivery.sinks.base import OutcomeStatus, SendOutcome

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptRecord:
    """One attempt on one channel, kept for logs and metrics."""

    attempt: int
    channel: str
    status: OutcomeStatus
    error: str | None = None
    wait_ms: int = 0  # Delay before the next attempt (0 after the last one)

    @property
    def success(self) -> bool:
        return self.status is OutcomeStatus.DELIVERED


@dataclass
class RetryResult:
    """Final outcome of a retried operation plus every attempt made."""

    outcome: SendOutcome
    attempts: list[AttemptRecord] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.outcome.success


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff policy.

    Attributes:
        max_attempts: Total attempts per channel (>= 1).
        base_delay_ms: Wait after the first failed attempt.
    """

    max_attempts: int = 3
    base_delay_ms: int = 1000

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay_ms < 0:
            raise ValueError(f"base_delay_ms must be >= 0, got {self.base_delay_ms}")

    def delay_ms(self, attempt: int) -> int:
        """
        Wait after failed attempt ``attempt`` (1-indexed).

        Returns 0 for the final attempt, which is never followed by a retry.
        """
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")
        if attempt >= self.max_attempts:
            return 0
        return self.base_delay_ms * 2 ** (attempt - 1)

    async def run(
        self,
        operation: Callable[[], Awaitable[SendOutcome]],
        *,
        channel: str,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> RetryResult:
        """
        Run ``operation`` until it succeeds or attempts are exhausted.

        Args:
            operation: Zero-arg coroutine factory performing one attempt.
            channel: Channel name, for attempt records and logs.
            sleep: Awaitable sleep taking seconds (injectable for tests).

        Returns:
            RetryResult with the first success, or the last failure.
        """
        attempts: list[AttemptRecord] = []
        outcome = SendOutcome.failed(channel, "No attempt made")

        for attempt in range(1, self.max_attempts + 1):
            try:
                outcome = await operation()
            except Exception as e:
                logger.exception(
                    "Channel attempt raised",
                    extra={"channel": channel, "attempt": attempt},
                )
                outcome = SendOutcome.failed(channel, f"{type(e).__name__}: {e}")

            if outcome.success:
                attempts.append(
                    AttemptRecord(attempt=attempt, channel=channel, status=outcome.status)
                )
                return RetryResult(outcome=outcome, attempts=attempts)

            wait_ms = self.delay_ms(attempt)
            attempts.append(
                AttemptRecord(
                    attempt=attempt,
                    channel=channel,
                    status=outcome.status,
                    error=outcome.error,
                    wait_ms=wait_ms,
                )
            )

            if attempt == self.max_attempts:
                break

            logger.warning(
                "Channel attempt failed, retrying",
                extra={
                    "channel": channel,
                    "attempt": attempt,
                    "max_attempts": self.max_attempts,
                    "wait_ms": wait_ms,
                    "error": outcome.error,
                },
            )
            await sleep(wait_ms / 1000)

        return RetryResult(outcome=outcome, attempts=attempts)
