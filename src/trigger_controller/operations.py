"""Deadline-bounded execution of blocking remote calls.

The Azure SDK clients are synchronous. Each call runs in the default
executor and is raced against its operation category's remaining budget and
the controller's shutdown event. Expiry of either surfaces as
OperationTimeoutError; remote state is left in whatever condition the
service reached, since nothing is rolled back locally.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from .errors import OperationTimeoutError
from .identity import TriggerIdentity

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Deadline:
    """A fixed budget shared by every call of one operation category."""

    def __init__(self, budget_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.budget_seconds = budget_seconds
        self._clock = clock
        self._expires_at = clock() + budget_seconds

    def remaining(self) -> float:
        """Seconds left before the deadline (never negative)."""
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0


class RemoteCallRunner:
    """Runs blocking calls off the event loop under a deadline."""

    def __init__(self, shutdown_event: asyncio.Event) -> None:
        self._shutdown_event = shutdown_event

    async def call(
        self,
        func: Callable[..., T],
        *args: Any,
        identity: TriggerIdentity,
        operation: str,
        deadline: Deadline,
    ) -> T:
        """Execute func(*args) and return its result.

        Raises:
            OperationTimeoutError: If the deadline expires or shutdown is
                requested before func returns.
            Exception: Whatever func raises, unchanged.
        """
        if self._shutdown_event.is_set():
            raise OperationTimeoutError(
                identity, operation, deadline.budget_seconds, cancelled=True
            )
        if deadline.expired:
            raise OperationTimeoutError(identity, operation, deadline.budget_seconds)

        loop = asyncio.get_running_loop()
        work = loop.run_in_executor(None, functools.partial(func, *args))
        shutdown = asyncio.ensure_future(self._shutdown_event.wait())

        try:
            done, _ = await asyncio.wait(
                {work, shutdown},
                timeout=deadline.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            shutdown.cancel()

        if work in done:
            return work.result()

        # The worker thread cannot be interrupted; its eventual result is dropped
        work.cancel()
        cancelled = self._shutdown_event.is_set()
        logger.error(
            f"{operation} {'cancelled' if cancelled else 'timed out'}",
            extra={
                "trigger_id": identity.to_address_path(),
                "operation": operation,
                "timeout_seconds": deadline.budget_seconds,
            },
        )
        raise OperationTimeoutError(
            identity, operation, deadline.budget_seconds, cancelled=cancelled
        )
