"""RemoteTriggerClient backed by the Azure Data Factory management SDK.

This is the only module that touches azure.mgmt.datafactory models. The
polymorphic TriggerResource.properties is decoded here, by its "type"
discriminator, into RemoteScheduleTrigger or UnsupportedTrigger so nothing
downstream has to inspect SDK classes.
"""

from __future__ import annotations

import logging
from typing import Any

from azure.core.exceptions import ResourceNotFoundError
from azure.mgmt.datafactory import DataFactoryManagementClient
from azure.mgmt.datafactory.models import (
    PipelineReference,
    RecurrenceScheduleOccurrence,
    ScheduleTrigger,
    ScheduleTriggerRecurrence,
    TriggerPipelineReference,
    TriggerResource,
)
from azure.mgmt.datafactory.models import RecurrenceSchedule as SdkRecurrenceSchedule

from .config import Config
from .identity import TriggerIdentity
from .remote import (
    PIPELINE_REFERENCE_TYPE,
    SCHEDULE_TRIGGER_KIND,
    LongRunningOperation,
    PipelineBinding,
    RecurrenceSchedule,
    RemoteScheduleTrigger,
    RemoteTrigger,
    RuntimeState,
    ScheduleOccurrence,
    ScheduleRecurrence,
    ScheduleTriggerPayload,
    UnsupportedTrigger,
)
from .security import get_managed_identity_credential

logger = logging.getLogger(__name__)


def _enum_value(value: Any) -> str | None:
    """Return the plain string behind an SDK enum (or the string itself)."""
    if value is None:
        return None
    return str(getattr(value, "value", value))


# =============================================================================
# Controller payload -> SDK models
# =============================================================================


def _schedule_to_sdk(schedule: RecurrenceSchedule | None) -> SdkRecurrenceSchedule | None:
    if schedule is None:
        return None

    monthly_occurrences = None
    if schedule.monthly_occurrences is not None:
        monthly_occurrences = [
            RecurrenceScheduleOccurrence(day=occurrence.day, occurrence=occurrence.occurrence)
            for occurrence in schedule.monthly_occurrences
        ]

    return SdkRecurrenceSchedule(
        minutes=schedule.minutes,
        hours=schedule.hours,
        week_days=schedule.week_days,
        month_days=schedule.month_days,
        monthly_occurrences=monthly_occurrences,
    )


def payload_to_sdk(payload: ScheduleTriggerPayload) -> TriggerResource:
    """Build the TriggerResource body for create_or_update."""
    recurrence = payload.recurrence
    properties = ScheduleTrigger(
        description=payload.description,
        annotations=payload.annotations,
        pipelines=[
            TriggerPipelineReference(
                pipeline_reference=PipelineReference(
                    type=PIPELINE_REFERENCE_TYPE,
                    reference_name=pipeline.reference_name,
                ),
                parameters=dict(pipeline.parameters),
            )
            for pipeline in payload.pipelines
        ],
        recurrence=ScheduleTriggerRecurrence(
            frequency=recurrence.frequency,
            interval=recurrence.interval,
            start_time=recurrence.start_time,
            end_time=recurrence.end_time,
            schedule=_schedule_to_sdk(recurrence.schedule),
        ),
    )
    return TriggerResource(properties=properties)


# =============================================================================
# SDK models -> remote trigger variants
# =============================================================================


def _schedule_from_sdk(schedule: Any) -> RecurrenceSchedule | None:
    if schedule is None:
        return None

    monthly_occurrences = None
    if schedule.monthly_occurrences is not None:
        monthly_occurrences = [
            ScheduleOccurrence(day=_enum_value(item.day) or "", occurrence=item.occurrence)
            for item in schedule.monthly_occurrences
        ]

    week_days = None
    if schedule.week_days is not None:
        week_days = [_enum_value(day) or "" for day in schedule.week_days]

    return RecurrenceSchedule(
        minutes=list(schedule.minutes) if schedule.minutes is not None else None,
        hours=list(schedule.hours) if schedule.hours is not None else None,
        week_days=week_days,
        month_days=list(schedule.month_days) if schedule.month_days is not None else None,
        monthly_occurrences=monthly_occurrences,
    )


def _recurrence_from_sdk(recurrence: Any) -> ScheduleRecurrence | None:
    if recurrence is None:
        return None
    return ScheduleRecurrence(
        frequency=_enum_value(recurrence.frequency) or "",
        interval=recurrence.interval if recurrence.interval is not None else 1,
        start_time=recurrence.start_time,
        end_time=recurrence.end_time,
        schedule=_schedule_from_sdk(recurrence.schedule),
    )


def _runtime_state_from_sdk(value: Any) -> RuntimeState | None:
    raw = _enum_value(value)
    if raw is None:
        return None
    try:
        return RuntimeState(raw)
    except ValueError:
        logger.warning("Unknown trigger runtime state", extra={"runtime_state": raw})
        return None


def trigger_from_sdk(resource: TriggerResource) -> RemoteTrigger:
    """Decode a TriggerResource into the matching remote trigger variant."""
    properties = resource.properties
    kind = _enum_value(getattr(properties, "type", None))

    if kind != SCHEDULE_TRIGGER_KIND:
        return UnsupportedTrigger(id=resource.id or "", name=resource.name or "", kind=kind)

    pipelines = [
        PipelineBinding(
            reference_name=item.pipeline_reference.reference_name,
            parameters=dict(item.parameters or {}),
        )
        for item in properties.pipelines or []
        if item.pipeline_reference is not None
    ]

    return RemoteScheduleTrigger(
        id=resource.id or "",
        name=resource.name or "",
        runtime_state=_runtime_state_from_sdk(properties.runtime_state),
        recurrence=_recurrence_from_sdk(properties.recurrence),
        pipelines=pipelines,
        description=properties.description,
        annotations=list(properties.annotations) if properties.annotations is not None else None,
    )


class DataFactoryTriggerClient:
    """RemoteTriggerClient over DataFactoryManagementClient.triggers."""

    def __init__(self, client: DataFactoryManagementClient) -> None:
        self._client = client

    @classmethod
    def from_config(cls, config: Config) -> DataFactoryTriggerClient:
        """Create a client authenticated with the configured managed identity.

        Raises:
            SecretlessViolationError: If credential secrets are in the environment.
        """
        credential = get_managed_identity_credential(config.client_id)
        return cls(
            DataFactoryManagementClient(
                credential=credential,
                subscription_id=config.subscription_id,
            )
        )

    def get(self, identity: TriggerIdentity) -> RemoteTrigger | None:
        try:
            resource = self._client.triggers.get(
                identity.resource_group, identity.factory_name, identity.trigger_name
            )
        except ResourceNotFoundError:
            return None
        if resource is None:
            return None
        return trigger_from_sdk(resource)

    def create_or_update(self, identity: TriggerIdentity, payload: ScheduleTriggerPayload) -> None:
        self._client.triggers.create_or_update(
            identity.resource_group,
            identity.factory_name,
            identity.trigger_name,
            payload_to_sdk(payload),
        )

    def begin_start(self, identity: TriggerIdentity) -> LongRunningOperation:
        return self._client.triggers.begin_start(
            identity.resource_group, identity.factory_name, identity.trigger_name
        )

    def begin_stop(self, identity: TriggerIdentity) -> LongRunningOperation:
        return self._client.triggers.begin_stop(
            identity.resource_group, identity.factory_name, identity.trigger_name
        )

    def delete(self, identity: TriggerIdentity) -> None:
        self._client.triggers.delete(
            identity.resource_group, identity.factory_name, identity.trigger_name
        )
