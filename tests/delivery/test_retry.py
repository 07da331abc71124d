"""
Tests for the exponential backoff retry policy.
"""

from __future__ import annotations

import pytest

from ticketrelay.delivery.retry import RetryPolicy
from ticketrelay.delivery.sinks.base import OutcomeStatus, SendOutcome


class FakeSleep:
    """Records requested sleeps instead of waiting."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class ScriptedOperation:
    """Returns a scripted sequence of outcomes (or raises given exceptions)."""

    def __init__(self, script: list[SendOutcome | Exception]) -> None:
        self._script = list(script)
        self.calls = 0

    async def __call__(self) -> SendOutcome:
        item = self._script[min(self.calls, len(self._script) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item


def ok() -> SendOutcome:
    return SendOutcome.delivered("test", provider_id="id-1")


def fail(error: str = "boom") -> SendOutcome:
    return SendOutcome.failed("test", error)


class TestRetryPolicyConfig:
    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_attempts == 3
        assert policy.base_delay_ms == 1000

    def test_invalid_max_attempts(self) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            RetryPolicy(max_attempts=0)

    def test_invalid_base_delay(self) -> None:
        with pytest.raises(ValueError, match="base_delay_ms"):
            RetryPolicy(base_delay_ms=-1)


class TestDelay:
    @pytest.mark.parametrize(
        ("attempt", "expected"),
        [(1, 1000), (2, 2000), (3, 4000), (4, 8000)],
    )
    def test_exponential(self, attempt: int, expected: int) -> None:
        policy = RetryPolicy(max_attempts=5, base_delay_ms=1000)
        assert policy.delay_ms(attempt) == expected

    def test_no_delay_after_final_attempt(self) -> None:
        policy = RetryPolicy(max_attempts=3, base_delay_ms=1000)
        assert policy.delay_ms(3) == 0

    def test_no_cap(self) -> None:
        policy = RetryPolicy(max_attempts=20, base_delay_ms=500)
        assert policy.delay_ms(15) == 500 * 2**14

    def test_invalid_attempt(self) -> None:
        with pytest.raises(ValueError, match="attempt"):
            RetryPolicy().delay_ms(0)


class TestRun:
    @pytest.mark.asyncio
    async def test_first_attempt_success(self) -> None:
        sleep = FakeSleep()
        op = ScriptedOperation([ok()])

        result = await RetryPolicy().run(op, channel="test", sleep=sleep)

        assert result.success
        assert result.outcome.provider_id == "id-1"
        assert op.calls == 1
        assert sleep.calls == []
        assert len(result.attempts) == 1
        assert result.attempts[0].success

    @pytest.mark.asyncio
    async def test_success_on_third_attempt(self) -> None:
        """Two failures then success: 2 failed records, 1 success record."""
        sleep = FakeSleep()
        op = ScriptedOperation([fail(), fail(), ok()])

        result = await RetryPolicy(max_attempts=3).run(op, channel="test", sleep=sleep)

        assert result.success
        assert op.calls == 3
        assert [a.status for a in result.attempts] == [
            OutcomeStatus.FAILED,
            OutcomeStatus.FAILED,
            OutcomeStatus.DELIVERED,
        ]
        assert sleep.calls == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhaustion_waits_between_attempts_only(self) -> None:
        sleep = FakeSleep()
        op = ScriptedOperation([fail("e1"), fail("e2"), fail("e3"), fail("e4")])

        result = await RetryPolicy(max_attempts=4, base_delay_ms=250).run(
            op, channel="test", sleep=sleep
        )

        assert not result.success
        assert op.calls == 4
        # 250, 500, 1000 ms; nothing after the 4th attempt
        assert sleep.calls == [0.25, 0.5, 1.0]
        assert [a.wait_ms for a in result.attempts] == [250, 500, 1000, 0]
        assert result.outcome.error == "e4"

    @pytest.mark.asyncio
    async def test_single_attempt_never_sleeps(self) -> None:
        sleep = FakeSleep()
        op = ScriptedOperation([fail()])

        result = await RetryPolicy(max_attempts=1).run(op, channel="test", sleep=sleep)

        assert not result.success
        assert op.calls == 1
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_exception_treated_as_failure(self) -> None:
        sleep = FakeSleep()
        op = ScriptedOperation([RuntimeError("socket closed"), ok()])

        result = await RetryPolicy().run(op, channel="test", sleep=sleep)

        assert result.success
        assert op.calls == 2
        assert result.attempts[0].error == "RuntimeError: socket closed"

    @pytest.mark.asyncio
    async def test_disabled_outcome_retried_like_failure(self) -> None:
        """The policy does not classify failures."""
        sleep = FakeSleep()
        op = ScriptedOperation([SendOutcome.disabled("test", "not enabled")])

        result = await RetryPolicy(max_attempts=2, base_delay_ms=0).run(
            op, channel="test", sleep=sleep
        )

        assert op.calls == 2
        assert result.outcome.status is OutcomeStatus.DISABLED

    @pytest.mark.asyncio
    async def test_attempt_records_carry_channel(self) -> None:
        op = ScriptedOperation([fail(), ok()])

        result = await RetryPolicy().run(op, channel="webhook", sleep=FakeSleep())

        assert [a.channel for a in result.attempts] == ["webhook", "webhook"]
        assert [a.attempt for a in result.attempts] == [1, 2]
