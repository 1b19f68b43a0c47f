"""Remote trigger representation and the client contract the controller consumes.

The controller never touches Azure SDK models directly. A RemoteTriggerClient
decodes the polymorphic trigger resource at its boundary into one of two
variants: RemoteScheduleTrigger (the kind this controller manages) or
UnsupportedTrigger (any other kind sharing the same endpoint).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from .identity import TriggerIdentity

SCHEDULE_TRIGGER_KIND = "ScheduleTrigger"
PIPELINE_REFERENCE_TYPE = "PipelineReference"


class RuntimeState(str, Enum):
    """Trigger runtime states reported by Data Factory."""

    STARTED = "Started"
    STOPPED = "Stopped"
    STARTING = "Starting"
    STOPPING = "Stopping"
    DISABLED = "Disabled"


@dataclass(frozen=True)
class ScheduleOccurrence:
    """Remote form of a monthly occurrence."""

    day: str
    occurrence: int | None = None


@dataclass
class RecurrenceSchedule:
    """Remote recurrence schedule. None fields are omitted on the wire."""

    minutes: list[int] | None = None
    hours: list[int] | None = None
    week_days: list[str] | None = None
    month_days: list[int] | None = None
    monthly_occurrences: list[ScheduleOccurrence] | None = None


@dataclass
class ScheduleRecurrence:
    """Remote recurrence rule."""

    frequency: str
    interval: int
    start_time: datetime | None = None
    end_time: datetime | None = None
    schedule: RecurrenceSchedule | None = None


@dataclass
class PipelineBinding:
    """A pipeline reference plus the parameters passed on each run."""

    reference_name: str
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass
class ScheduleTriggerPayload:
    """Definition written by create_or_update.

    annotations is None when the caller supplied none; the field is then
    omitted rather than sent as an empty list.
    """

    recurrence: ScheduleRecurrence
    pipelines: list[PipelineBinding]
    description: str | None = None
    annotations: list[str] | None = None


@dataclass
class RemoteScheduleTrigger:
    """A schedule trigger as read back from the service."""

    id: str
    name: str
    runtime_state: RuntimeState | None
    recurrence: ScheduleRecurrence | None
    pipelines: list[PipelineBinding] = field(default_factory=list)
    description: str | None = None
    # The service stores annotations as arbitrary JSON values
    annotations: list[Any] | None = None
    kind: str = SCHEDULE_TRIGGER_KIND


@dataclass
class UnsupportedTrigger:
    """Any other trigger kind stored under the same name."""

    id: str
    name: str
    kind: str | None


RemoteTrigger = RemoteScheduleTrigger | UnsupportedTrigger


class LongRunningOperation(Protocol):
    """Handle to a remote long-running operation (Azure SDK LROPoller)."""

    def result(self, timeout: float | None = None) -> Any:
        """Block until the operation completes; raise if it failed."""
        ...


class RemoteTriggerClient(Protocol):
    """Narrow synchronous API over the remote trigger store.

    Calls block; the controller runs them off the event loop and bounds
    them with deadlines.
    """

    def get(self, identity: TriggerIdentity) -> RemoteTrigger | None:
        """Fetch a trigger, or None if it does not exist."""
        ...

    def create_or_update(self, identity: TriggerIdentity, payload: ScheduleTriggerPayload) -> None:
        ...

    def begin_start(self, identity: TriggerIdentity) -> LongRunningOperation:
        ...

    def begin_stop(self, identity: TriggerIdentity) -> LongRunningOperation:
        ...

    def delete(self, identity: TriggerIdentity) -> None:
        ...
