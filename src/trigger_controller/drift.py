"""Drift detection between desired and observed trigger state.

Compares field by field after normalizing away differences the service
introduces without any real change:

- Case: resource group names may be echoed back lower-cased
- Empty equivalence: an absent schedule, an all-absent schedule and empty
  schedule fields are the same; absent annotations equal an empty list
- Timestamps: compared as RFC3339 UTC instants at whole-second precision
- Computed defaults: an unset desired startTime accepts whatever the service
  recorded when the trigger was created
"""

from __future__ import annotations

import logging

from . import schedule_codec
from .identity import TriggerIdentity
from .models import DesiredTrigger, ObservedTrigger, ScheduleConfig, format_timestamp

logger = logging.getLogger(__name__)

ACTIVATION_FIELD = "activated"


def _normalized_schedule(schedule: ScheduleConfig | None) -> dict[str, object]:
    return schedule_codec.decode(schedule_codec.encode(schedule)).model_dump(exclude_none=True)


def detect_drift(
    desired: DesiredTrigger,
    observed: ObservedTrigger,
    identity: TriggerIdentity,
) -> list[str]:
    """Return the names of fields whose observed value differs from desired.

    Args:
        desired: Desired configuration.
        observed: Projected remote state.
        identity: Identity the desired configuration resolved to.
    """
    drifted: list[str] = []

    if identity.resource_group.casefold() != observed.resource_group_name.casefold():
        drifted.append("resource_group_name")

    if desired.description != observed.description:
        drifted.append("description")

    if desired.frequency != observed.frequency:
        drifted.append("frequency")

    if desired.interval != observed.interval:
        drifted.append("interval")

    desired_start = format_timestamp(desired.start_time) if desired.start_time else None
    if desired_start is not None and desired_start != observed.start_time:
        drifted.append("start_time")

    desired_end = format_timestamp(desired.end_time) if desired.end_time is not None else None
    if desired_end != observed.end_time:
        drifted.append("end_time")

    if _normalized_schedule(desired.schedule) != _normalized_schedule(observed.schedule):
        drifted.append("schedule")

    if desired.pipeline_name != observed.pipeline_name:
        drifted.append("pipeline_name")

    if desired.pipeline_parameters != observed.pipeline_parameters:
        drifted.append("pipeline_parameters")

    if list(desired.annotations or []) != observed.annotations:
        drifted.append("annotations")

    if desired.activated != observed.activated:
        drifted.append(ACTIVATION_FIELD)

    if drifted:
        logger.info(
            "Drift detected",
            extra={"trigger_id": identity.to_address_path(), "drifted_fields": drifted},
        )

    return drifted


def definition_drift(drifted: list[str]) -> list[str]:
    """Drifted fields that require rewriting the trigger definition."""
    return [name for name in drifted if name != ACTIVATION_FIELD]
