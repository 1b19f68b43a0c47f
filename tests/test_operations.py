"""Tests for deadline-bounded remote call execution."""

from __future__ import annotations

import asyncio
import time

import pytest
from azure.core.exceptions import HttpResponseError

from trigger_controller.errors import OperationTimeoutError
from trigger_controller.identity import TriggerIdentity
from trigger_controller.operations import Deadline, RemoteCallRunner

IDENTITY = TriggerIdentity("sub", "rg-data", "adf-test", "nightly")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestDeadline:
    """Tests for Deadline."""

    def test_remaining_counts_down(self) -> None:
        """Test that remaining time shrinks as the clock advances."""
        clock = FakeClock()
        deadline = Deadline(10, clock=clock)

        clock.now += 4
        assert deadline.remaining() == 6
        assert deadline.expired is False

    def test_never_negative(self) -> None:
        """Test that an overrun deadline reports zero remaining."""
        clock = FakeClock()
        deadline = Deadline(1, clock=clock)

        clock.now += 5
        assert deadline.remaining() == 0
        assert deadline.expired is True


class TestRemoteCallRunner:
    """Tests for RemoteCallRunner.call()."""

    @pytest.mark.asyncio
    async def test_returns_result(self) -> None:
        """Test that the call's return value is passed through."""
        runner = RemoteCallRunner(asyncio.Event())

        result = await runner.call(
            lambda a, b: a + b, 2, 3, identity=IDENTITY, operation="get", deadline=Deadline(5)
        )

        assert result == 5

    @pytest.mark.asyncio
    async def test_exceptions_propagate_unchanged(self) -> None:
        """Test that failures raised by the call are not wrapped."""
        runner = RemoteCallRunner(asyncio.Event())

        def fail() -> None:
            raise HttpResponseError(message="boom")

        with pytest.raises(HttpResponseError, match="boom"):
            await runner.call(fail, identity=IDENTITY, operation="get", deadline=Deadline(5))

    @pytest.mark.asyncio
    async def test_deadline_expiry(self) -> None:
        """Test that a call outliving its budget raises OperationTimeoutError."""
        runner = RemoteCallRunner(asyncio.Event())

        with pytest.raises(OperationTimeoutError) as exc_info:
            await runner.call(
                time.sleep, 0.5, identity=IDENTITY, operation="wait_stop", deadline=Deadline(0.05)
            )

        error = exc_info.value
        assert error.operation == "wait_stop"
        assert error.timeout_seconds == 0.05
        assert error.cancelled is False
        assert isinstance(error, TimeoutError)
        assert "timed out" in str(error)

    @pytest.mark.asyncio
    async def test_expired_deadline_skips_call(self) -> None:
        """Test that nothing is issued once the budget is spent."""
        clock = FakeClock()
        deadline = Deadline(1, clock=clock)
        clock.now += 2
        calls: list[str] = []

        with pytest.raises(OperationTimeoutError):
            await runner_call(calls, deadline, asyncio.Event())

        assert calls == []

    @pytest.mark.asyncio
    async def test_shutdown_before_call(self) -> None:
        """Test that a set shutdown event cancels without issuing the call."""
        shutdown = asyncio.Event()
        shutdown.set()
        calls: list[str] = []

        with pytest.raises(OperationTimeoutError) as exc_info:
            await runner_call(calls, Deadline(5), shutdown)

        assert exc_info.value.cancelled is True
        assert "cancelled" in str(exc_info.value)
        assert calls == []

    @pytest.mark.asyncio
    async def test_shutdown_during_call(self) -> None:
        """Test that shutdown aborts a call that is already waiting."""
        shutdown = asyncio.Event()
        runner = RemoteCallRunner(shutdown)

        async def request_shutdown() -> None:
            await asyncio.sleep(0.05)
            shutdown.set()

        shutdown_task = asyncio.create_task(request_shutdown())
        started = time.monotonic()

        with pytest.raises(OperationTimeoutError) as exc_info:
            await runner.call(
                time.sleep, 0.5, identity=IDENTITY, operation="wait_start", deadline=Deadline(30)
            )

        await shutdown_task
        assert exc_info.value.cancelled is True
        assert time.monotonic() - started < 0.5


async def runner_call(calls: list[str], deadline: Deadline, shutdown: asyncio.Event) -> None:
    await RemoteCallRunner(shutdown).call(
        calls.append, "called", identity=IDENTITY, operation="get", deadline=deadline
    )
