"""Reconciliation controller for Data Factory schedule triggers.

Converges one remote schedule trigger to its desired configuration with the
fewest remote calls, sequencing the two halves of its lifecycle correctly:

    create:  get (must be absent) -> create_or_update -> [start]
    update:  get -> [stop] -> [create_or_update] -> [start | stop]
    delete:  stop -> delete
    read:    get -> project

Definition always precedes activation, and a trigger is always stopped
before it is deleted or its definition rewritten (the service rejects
updates to a started trigger). Every step is awaited to completion before
the next one begins; nothing runs in parallel within a cycle.

DEADLINES: create/update, read and delete each draw from an independent
budget (OperationTimeouts). Expiry, or shutdown(), surfaces as
OperationTimeoutError with remote state left as the service left it.
Nothing is compensated locally; the next cycle converges from whatever
state it observes.

CONCURRENCY: operations on the same identity are serialized in-process by a
per-identity asyncio.Lock. Serializing across processes is the caller's job.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TypeVar

from azure.core.exceptions import AzureError

from . import schedule_codec
from .config import Config, OperationTimeouts
from .drift import definition_drift, detect_drift
from .errors import (
    AlreadyExistsError,
    DeleteFailed,
    RemoteOperationError,
    StartFailed,
    StopFailed,
    TriggerControllerError,
    TriggerNotFoundError,
    UpdateFailed,
)
from .identity import TriggerIdentity, resolve_identity
from .models import DesiredTrigger, parse_timestamp
from .operations import Deadline, RemoteCallRunner
from .projector import StateProjector, TriggerState
from .remote import (
    PipelineBinding,
    RemoteTriggerClient,
    RuntimeState,
    ScheduleRecurrence,
    ScheduleTriggerPayload,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], datetime]

# Runtime states in which the trigger may still fire
RUNNING_STATES = frozenset({RuntimeState.STARTED, RuntimeState.STARTING})


def utc_now() -> datetime:
    """Default clock: the current time in UTC."""
    return datetime.now(UTC)


class ControllerOperation(str, Enum):
    """Operations exposed by the controller."""

    CREATE = "create"
    UPDATE = "update"
    READ = "read"
    DELETE = "delete"


@dataclass
class ReconcileResult:
    """Outcome of one controller operation."""

    operation: ControllerOperation
    trigger_id: str = ""
    start_time: datetime = field(default_factory=utc_now)
    end_time: datetime | None = None
    calls: list[str] = field(default_factory=list)
    drifted_fields: list[str] = field(default_factory=list)
    state: TriggerState | None = None
    error: Exception | None = None

    @property
    def duration_seconds(self) -> float:
        """Calculate duration in seconds."""
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time).total_seconds()

    @property
    def success(self) -> bool:
        """Check if the operation succeeded."""
        return self.error is None


class ReconcileController:
    """Converges Data Factory schedule triggers to their desired state.

    Args:
        client: Remote trigger store.
        subscription_id: Subscription for triggers selected by factory name.
        timeouts: Deadline budget per operation category.
        clock: Source of "now" for the startTime default and result timing.
        audit_logging: Log one structured record per operation.
    """

    def __init__(
        self,
        client: RemoteTriggerClient,
        *,
        subscription_id: str,
        timeouts: OperationTimeouts | None = None,
        clock: Clock = utc_now,
        audit_logging: bool = True,
    ) -> None:
        self._client = client
        self._subscription_id = subscription_id
        self._timeouts = timeouts or OperationTimeouts()
        self._clock = clock
        self._audit_logging = audit_logging

        self._shutdown_event = asyncio.Event()
        self._runner = RemoteCallRunner(self._shutdown_event)
        self._projector = StateProjector(client, self._runner)
        # Per-trigger locks, dropped once no operation holds or awaits them
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @classmethod
    def from_config(
        cls,
        config: Config,
        client: RemoteTriggerClient | None = None,
    ) -> ReconcileController:
        """Build a controller from validated configuration.

        Without an explicit client, a managed-identity DataFactoryTriggerClient
        is created.
        """
        if client is None:
            from .datafactory_client import DataFactoryTriggerClient

            client = DataFactoryTriggerClient.from_config(config)

        return cls(
            client,
            subscription_id=config.subscription_id,
            timeouts=config.timeouts,
            audit_logging=config.enable_audit_logging,
        )

    @property
    def timeouts(self) -> OperationTimeouts:
        return self._timeouts

    def shutdown(self) -> None:
        """Abort in-flight waits; they raise OperationTimeoutError."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()

    def resolve_identity(self, desired: DesiredTrigger) -> TriggerIdentity:
        """Resolve the desired trigger's factory selector into an identity.

        Raises:
            ParseError: If the selector does not form a valid identity.
        """
        return resolve_identity(desired.factory_selector, desired.name, self._subscription_id)

    def build_payload(
        self,
        desired: DesiredTrigger,
        current_start_time: datetime | None = None,
    ) -> ScheduleTriggerPayload:
        """Build the create_or_update body for a desired trigger.

        Args:
            desired: Desired configuration.
            current_start_time: Start time already recorded remotely; kept
                when the desired configuration leaves startTime unset.
        """
        start_time = desired.start_time or current_start_time
        if start_time is None:
            start_time = self._clock().astimezone(UTC).replace(microsecond=0)

        recurrence = ScheduleRecurrence(
            frequency=desired.frequency.value,
            interval=desired.interval,
            start_time=start_time,
            end_time=desired.end_time,
            schedule=schedule_codec.encode(desired.schedule),
        )

        return ScheduleTriggerPayload(
            recurrence=recurrence,
            pipelines=[
                PipelineBinding(
                    reference_name=desired.pipeline_name,
                    parameters=dict(desired.pipeline_parameters),
                )
            ],
            description=desired.description,
            annotations=list(desired.annotations) if desired.annotations else None,
        )

    # =========================================================================
    # Public operations
    # =========================================================================

    async def create(self, desired: DesiredTrigger) -> TriggerIdentity:
        """Create the trigger and converge its activation state.

        Returns:
            The identity of the created trigger. Read it back to observe
            the state the service actually stored.

        Raises:
            AlreadyExistsError: If a trigger with this name already exists.
            UpdateFailed: If the definition could not be written.
            StartFailed: If activation failed (the definition is committed).
            OperationTimeoutError: If the create/update budget ran out.
        """
        identity = self.resolve_identity(desired)
        result = self._begin(ControllerOperation.CREATE, identity)
        async with self._serialized(identity):
            await self._audited(result, self._create(desired, identity, result))
        return identity

    async def update(self, desired: DesiredTrigger, identity: TriggerIdentity | str) -> list[str]:
        """Converge an existing trigger to the desired configuration.

        Returns:
            The fields that had drifted before convergence.

        Raises:
            TriggerNotFoundError: If the trigger no longer exists.
            ClassificationError: If the trigger is not a schedule trigger.
            StopFailed / UpdateFailed / StartFailed: If a remote step failed.
            OperationTimeoutError: If the create/update budget ran out.
        """
        identity = _as_identity(identity)
        result = self._begin(ControllerOperation.UPDATE, identity)
        async with self._serialized(identity):
            await self._audited(result, self._update(desired, identity, result))
        return result.drifted_fields

    async def read(self, identity: TriggerIdentity | str) -> TriggerState:
        """Project the remote trigger; an absent trigger is not an error.

        Accepts an identity or a previously issued trigger ID (import path).

        Raises:
            ParseError: If a trigger ID string is malformed.
            ClassificationError: If the trigger is not a schedule trigger.
            ProjectionError: If the stored trigger cannot be reported back.
            ReadFailed: If the get failed.
            OperationTimeoutError: If the read budget ran out.
        """
        identity = _as_identity(identity)
        result = self._begin(ControllerOperation.READ, identity)
        async with self._serialized(identity):
            return await self._audited(result, self._read(identity, result))

    async def delete(self, identity: TriggerIdentity | str) -> None:
        """Stop, then delete, the trigger.

        Stop is issued even when the trigger is already stopped, and delete
        is never attempted unless stop completed.

        Raises:
            StopFailed: If stop (or waiting on it) failed; nothing is deleted.
            DeleteFailed: If the delete call failed.
            OperationTimeoutError: If the delete budget ran out.
        """
        identity = _as_identity(identity)
        result = self._begin(ControllerOperation.DELETE, identity)
        async with self._serialized(identity):
            await self._audited(result, self._delete(identity, result))

    async def apply(
        self,
        desired: DesiredTrigger,
        known_id: str | None = None,
    ) -> ReconcileResult:
        """Run one full convergence cycle and read the result back.

        Creates the trigger when no ID is known yet, otherwise updates the
        trigger the ID points at. Errors are captured in the returned
        result rather than raised.
        """
        operation = ControllerOperation.CREATE if known_id is None else ControllerOperation.UPDATE
        result = self._begin(operation)

        try:
            if known_id is None:
                identity = self.resolve_identity(desired)
            else:
                identity = TriggerIdentity.from_address_path(known_id)
            result.trigger_id = identity.to_address_path()

            async with self._serialized(identity):
                if known_id is None:
                    await self._create(desired, identity, result)
                else:
                    await self._update(desired, identity, result)
                result.state = await self._read(identity, result)

        except TriggerControllerError as e:
            result.error = e

        result.end_time = self._clock()
        self._log_result(result)
        return result

    # =========================================================================
    # Cycles
    # =========================================================================

    async def _create(
        self,
        desired: DesiredTrigger,
        identity: TriggerIdentity,
        result: ReconcileResult,
    ) -> None:
        deadline = Deadline(self._timeouts.create_update)

        result.calls.append("get")
        existing = await self._projector.fetch(identity, deadline)
        if existing is not None:
            raise AlreadyExistsError(identity, existing.id or identity.to_address_path())

        payload = self.build_payload(desired)
        await self._remote(
            result, "create_or_update", self._client.create_or_update, identity, payload,
            identity=identity, deadline=deadline, error_class=UpdateFailed,
        )

        # A new trigger starts out stopped; only activation needs a call
        if desired.activated:
            await self._start(identity, deadline, result)

    async def _update(
        self,
        desired: DesiredTrigger,
        identity: TriggerIdentity,
        result: ReconcileResult,
    ) -> None:
        deadline = Deadline(self._timeouts.create_update)

        result.calls.append("get")
        state = await self._projector.read(identity, deadline)
        if state.observed is None:
            raise TriggerNotFoundError(identity)

        result.drifted_fields = detect_drift(desired, state.observed, identity)
        running = state.runtime_state in RUNNING_STATES

        if definition_drift(result.drifted_fields):
            if running:
                await self._stop(identity, deadline, result)
                running = False

            current_start = (
                parse_timestamp(state.observed.start_time) if state.observed.start_time else None
            )
            payload = self.build_payload(desired, current_start_time=current_start)
            await self._remote(
                result, "create_or_update", self._client.create_or_update, identity, payload,
                identity=identity, deadline=deadline, error_class=UpdateFailed,
            )

        if desired.activated and not running:
            await self._start(identity, deadline, result)
        elif not desired.activated and running:
            await self._stop(identity, deadline, result)

    async def _read(self, identity: TriggerIdentity, result: ReconcileResult) -> TriggerState:
        deadline = Deadline(self._timeouts.read)
        result.calls.append("get")
        state = await self._projector.read(identity, deadline)
        result.state = state
        return state

    async def _delete(self, identity: TriggerIdentity, result: ReconcileResult) -> None:
        deadline = Deadline(self._timeouts.delete)
        await self._stop(identity, deadline, result)
        await self._remote(
            result, "delete", self._client.delete, identity,
            identity=identity, deadline=deadline, error_class=DeleteFailed,
        )

    async def _start(
        self,
        identity: TriggerIdentity,
        deadline: Deadline,
        result: ReconcileResult,
    ) -> None:
        poller = await self._remote(
            result, "start", self._client.begin_start, identity,
            identity=identity, deadline=deadline, error_class=StartFailed,
        )
        await self._remote(
            result, "wait_start", poller.result,
            identity=identity, deadline=deadline, error_class=StartFailed,
        )

    async def _stop(
        self,
        identity: TriggerIdentity,
        deadline: Deadline,
        result: ReconcileResult,
    ) -> None:
        poller = await self._remote(
            result, "stop", self._client.begin_stop, identity,
            identity=identity, deadline=deadline, error_class=StopFailed,
        )
        await self._remote(
            result, "wait_stop", poller.result,
            identity=identity, deadline=deadline, error_class=StopFailed,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _remote(
        self,
        result: ReconcileResult,
        operation: str,
        func: Callable[..., T],
        *args: Any,
        identity: TriggerIdentity,
        deadline: Deadline,
        error_class: type[RemoteOperationError],
    ) -> T:
        """Issue one remote call, wrapping Azure failures in error_class."""
        result.calls.append(operation)
        try:
            return await self._runner.call(
                func, *args, identity=identity, operation=operation, deadline=deadline
            )
        except AzureError as e:
            raise error_class(identity, e) from e

    async def _audited(self, result: ReconcileResult, work: Any) -> Any:
        """Await an operation coroutine and log its outcome."""
        try:
            return await work
        except TriggerControllerError as e:
            result.error = e
            raise
        finally:
            result.end_time = self._clock()
            self._log_result(result)

    def _begin(
        self, operation: ControllerOperation, identity: TriggerIdentity | None = None
    ) -> ReconcileResult:
        trigger_id = identity.to_address_path() if identity is not None else ""
        return ReconcileResult(operation, trigger_id, start_time=self._clock())

    @asynccontextmanager
    async def _serialized(self, identity: TriggerIdentity) -> AsyncIterator[None]:
        """Hold the lock for one trigger for the duration of the block."""
        # Resource group names are case-insensitive in ARM
        key = identity.to_address_path().lower()
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        lock = self._locks[key]
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    def _log_result(self, result: ReconcileResult) -> None:
        """Log the operation result with structured data."""
        extra: dict[str, Any] = {
            "operation": result.operation.value,
            "trigger_id": result.trigger_id,
            "calls": result.calls,
            "duration_seconds": result.duration_seconds,
        }
        if result.drifted_fields:
            extra["drifted_fields"] = result.drifted_fields
        if result.state is not None:
            extra["phase"] = result.state.phase.value

        if result.error is not None:
            extra["error"] = str(result.error)
            extra["error_type"] = type(result.error).__name__
            logger.error("Trigger operation failed", extra=extra)
        elif self._audit_logging:
            logger.info("Trigger operation complete", extra=extra)


def _as_identity(identity: TriggerIdentity | str) -> TriggerIdentity:
    if isinstance(identity, TriggerIdentity):
        return identity
    return TriggerIdentity.from_address_path(identity)
