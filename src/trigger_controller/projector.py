"""Read path: project remote trigger state into the declarative form.

The projected ObservedTrigger is what drift detection compares against the
desired configuration, so every value is reported the way the service
normalized it. The resource group is taken from the ID the service echoes
back, which ARM sometimes lower-cases; drift detection compares it without
regard to case. The reported ID itself is always the identity the caller
addressed the trigger by.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from azure.core.exceptions import AzureError
from pydantic import ValidationError

from . import schedule_codec
from .errors import ClassificationError, ParseError, ProjectionError, ReadFailed
from .identity import TriggerIdentity
from .models import ObservedTrigger, format_timestamp, json_text
from .operations import Deadline, RemoteCallRunner
from .remote import (
    SCHEDULE_TRIGGER_KIND,
    RemoteScheduleTrigger,
    RemoteTrigger,
    RemoteTriggerClient,
    RuntimeState,
    UnsupportedTrigger,
)

logger = logging.getLogger(__name__)


class TriggerPhase(str, Enum):
    """Lifecycle phase of a trigger as observed in one cycle."""

    ABSENT = "Absent"
    DEFINITION_ONLY = "DefinitionOnly"
    STARTED = "Started"


@dataclass
class TriggerState:
    """Result of one read: either absent, or an observed trigger."""

    identity: TriggerIdentity
    observed: ObservedTrigger | None = None
    runtime_state: RuntimeState | None = None

    @property
    def exists(self) -> bool:
        return self.observed is not None

    @property
    def phase(self) -> TriggerPhase:
        if self.observed is None:
            return TriggerPhase.ABSENT
        if self.observed.activated:
            return TriggerPhase.STARTED
        return TriggerPhase.DEFINITION_ONLY


def _echoed_resource_group(identity: TriggerIdentity, remote_id: str) -> str:
    try:
        return TriggerIdentity.from_address_path(remote_id).resource_group
    except ParseError:
        return identity.resource_group


def project(identity: TriggerIdentity, remote: RemoteTrigger) -> ObservedTrigger:
    """Map a remote schedule trigger to its declarative representation.

    Raises:
        ClassificationError: If the remote trigger is not a schedule trigger.
        ProjectionError: If it holds values the declarative form cannot carry.
    """
    match remote:
        case UnsupportedTrigger(kind=kind):
            raise ClassificationError(identity, SCHEDULE_TRIGGER_KIND, kind)
        case RemoteScheduleTrigger():
            pass

    values: dict[str, Any] = {
        "id": identity.to_address_path(),
        "name": remote.name or identity.trigger_name,
        "resource_group_name": _echoed_resource_group(identity, remote.id),
        "data_factory_name": identity.factory_name,
        "data_factory_id": identity.factory_id,
        "activated": remote.runtime_state == RuntimeState.STARTED,
        "description": remote.description,
        "annotations": remote.annotations,
    }

    recurrence = remote.recurrence
    try:
        values["schedule"] = schedule_codec.decode(
            recurrence.schedule if recurrence is not None else None
        )
    except ValidationError as e:
        raise ProjectionError(identity, e) from e

    if recurrence is not None:
        values["frequency"] = recurrence.frequency
        values["interval"] = recurrence.interval
        if recurrence.start_time is not None:
            values["start_time"] = format_timestamp(recurrence.start_time)
        if recurrence.end_time is not None:
            values["end_time"] = format_timestamp(recurrence.end_time)

    # Schedule triggers managed here only ever carry one pipeline
    if remote.pipelines:
        pipeline = remote.pipelines[0]
        values["pipeline_name"] = pipeline.reference_name
        values["pipeline_parameters"] = {
            key: json_text(value) for key, value in pipeline.parameters.items()
        }

    try:
        return ObservedTrigger(**values)
    except ValidationError as e:
        raise ProjectionError(identity, e) from e


class StateProjector:
    """Fetches a trigger and projects it, treating not-found as Absent."""

    def __init__(self, client: RemoteTriggerClient, runner: RemoteCallRunner) -> None:
        self._client = client
        self._runner = runner

    async def fetch(self, identity: TriggerIdentity, deadline: Deadline) -> RemoteTrigger | None:
        """Get the remote trigger, or None if it does not exist.

        Raises:
            ReadFailed: If the get fails for any other reason.
            OperationTimeoutError: If the deadline expires first.
        """
        try:
            return await self._runner.call(
                self._client.get,
                identity,
                identity=identity,
                operation="get",
                deadline=deadline,
            )
        except AzureError as e:
            raise ReadFailed(identity, e) from e

    async def read(self, identity: TriggerIdentity, deadline: Deadline) -> TriggerState:
        """Fetch and project the trigger addressed by identity."""
        remote = await self.fetch(identity, deadline)
        if remote is None:
            logger.debug(
                "Schedule trigger not found",
                extra={"trigger_id": identity.to_address_path()},
            )
            return TriggerState(identity=identity)

        observed = project(identity, remote)
        # SAFETY: project() rejects every variant except RemoteScheduleTrigger
        runtime_state = remote.runtime_state if isinstance(remote, RemoteScheduleTrigger) else None
        return TriggerState(identity=identity, observed=observed, runtime_state=runtime_state)
