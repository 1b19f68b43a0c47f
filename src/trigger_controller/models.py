"""Pydantic models for the declarative schedule trigger configuration.

These models provide:
1. Type-safe parsing of desired trigger configuration (camelCase or snake_case)
2. Validation at the boundary (fail fast, fail loudly)
3. The reporting shape the projector materializes observed state into

Absent (None) and empty ([]) schedule fields are distinct values here and
are preserved through the schedule codec.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .identity import FACTORY_ID_PATTERN, FactoryById, FactoryByName, FactorySelector

# Fixed machine-comparable timestamp form (RFC3339, UTC, whole seconds)
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Bounds carried over from the Data Factory API. The hours bound of 24 is
# inherited as-is and still needs confirming against the service contract.
MAX_DAY_OF_MONTH = 31
MAX_HOUR = 24
MAX_MINUTE = 60
MAX_WEEK_OF_MONTH = 5
MAX_DAYS_OF_WEEK = 7


def format_timestamp(value: datetime) -> str:
    """Format a timestamp as RFC3339 in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Inverse of format_timestamp."""
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=UTC)


class Frequency(str, Enum):
    """Recurrence frequency units supported by schedule triggers."""

    MINUTE = "Minute"
    HOUR = "Hour"
    DAY = "Day"
    WEEK = "Week"
    MONTH = "Month"


class Weekday(str, Enum):
    """Day names as accepted by the Data Factory API."""

    SUNDAY = "Sunday"
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"


def _check_signed_range(values: list[int] | None, bound: int, label: str) -> list[int] | None:
    """Accept values in [-bound, -1] or [1, bound]."""
    if values is None:
        return values
    for value in values:
        if value == 0 or not -bound <= value <= bound:
            raise ValueError(f"{label} must be between 1 and {bound} or -{bound} and -1: {value}")
    return values


def _check_range(values: list[int] | None, upper: int, label: str) -> list[int] | None:
    if values is None:
        return values
    for value in values:
        if not 0 <= value <= upper:
            raise ValueError(f"{label} must be between 0 and {upper}: {value}")
    return values


# =============================================================================
# Schedule
# =============================================================================


class MonthlyOccurrenceConfig(BaseModel):
    """A weekday within a given week of the month (e.g. last Friday)."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    weekday: Weekday
    week: int | None = None

    @field_validator("week")
    @classmethod
    def validate_week(cls, v: int | None) -> int | None:
        if v is None:
            return v
        _check_signed_range([v], MAX_WEEK_OF_MONTH, "week")
        return v


class ScheduleConfig(BaseModel):
    """Fine-grained constraints within the recurrence frequency unit.

    Every field is independently optional. None means "unset" and is
    omitted from the remote form.
    """

    model_config = {"extra": "ignore", "populate_by_name": True}

    days_of_month: list[int] | None = Field(None, alias="daysOfMonth")
    days_of_week: list[Weekday] | None = Field(
        None, alias="daysOfWeek", max_length=MAX_DAYS_OF_WEEK
    )
    hours: list[int] | None = None
    minutes: list[int] | None = None
    monthly: list[MonthlyOccurrenceConfig] | None = None

    @field_validator("days_of_month")
    @classmethod
    def validate_days_of_month(cls, v: list[int] | None) -> list[int] | None:
        return _check_signed_range(v, MAX_DAY_OF_MONTH, "daysOfMonth")

    @field_validator("hours")
    @classmethod
    def validate_hours(cls, v: list[int] | None) -> list[int] | None:
        return _check_range(v, MAX_HOUR, "hours")

    @field_validator("minutes")
    @classmethod
    def validate_minutes(cls, v: list[int] | None) -> list[int] | None:
        return _check_range(v, MAX_MINUTE, "minutes")

    @property
    def is_empty(self) -> bool:
        """True when no field carries a value."""
        return not any(
            (self.days_of_month, self.days_of_week, self.hours, self.minutes, self.monthly)
        )


# =============================================================================
# Trigger
# =============================================================================


class TriggerSpec(BaseModel):
    """Fields shared by desired and observed trigger state."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    name: Annotated[str, Field(min_length=1)]
    description: str | None = None
    frequency: Frequency = Frequency.MINUTE
    interval: Annotated[int, Field(ge=1)] = 1
    pipeline_name: Annotated[str, Field(min_length=1, alias="pipelineName")]
    pipeline_parameters: dict[str, str] = Field(default_factory=dict, alias="pipelineParameters")
    annotations: list[str] | None = None
    activated: bool = True


class DesiredTrigger(TriggerSpec):
    """Desired configuration of one schedule trigger.

    Exactly one factory selector must be given: dataFactoryId, or the
    deprecated dataFactoryName + resourceGroupName pair.
    """

    data_factory_id: str | None = Field(None, alias="dataFactoryId")
    data_factory_name: str | None = Field(None, alias="dataFactoryName")
    resource_group_name: str | None = Field(None, alias="resourceGroupName")

    start_time: datetime | None = Field(None, alias="startTime")
    end_time: datetime | None = Field(None, alias="endTime")
    schedule: ScheduleConfig | None = None

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        if v is not None and not v:
            raise ValueError("description cannot be empty when set")
        return v

    @field_validator("annotations")
    @classmethod
    def validate_annotations(cls, v: list[str] | None) -> list[str] | None:
        if v is not None and any(not item for item in v):
            raise ValueError("annotations cannot contain empty strings")
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_utc(cls, v: datetime | None) -> datetime | None:
        if v is None:
            return v
        if v.tzinfo is None:
            raise ValueError("timestamps must be RFC3339 with an explicit UTC offset")
        return v.astimezone(UTC)

    @field_validator("data_factory_id")
    @classmethod
    def validate_data_factory_id(cls, v: str | None) -> str | None:
        if v is not None and not FACTORY_ID_PATTERN.match(v):
            raise ValueError(f"dataFactoryId is not a valid Data Factory ID: {v}")
        return v

    @model_validator(mode="after")
    def validate_factory_selector(self) -> DesiredTrigger:
        if self.data_factory_id and self.data_factory_name:
            raise ValueError("only one of dataFactoryId or dataFactoryName can be specified")
        if not self.data_factory_id and not self.data_factory_name:
            raise ValueError("one of dataFactoryId or dataFactoryName must be specified")
        if self.data_factory_name and not self.resource_group_name:
            raise ValueError("resourceGroupName is required with dataFactoryName")
        return self

    @property
    def factory_selector(self) -> FactorySelector:
        """Resolve the configured factory reference into a tagged selector."""
        if self.data_factory_id:
            return FactoryById(factory_id=self.data_factory_id)
        # SAFETY: validate_factory_selector guarantees both are set here
        return FactoryByName(
            resource_group=self.resource_group_name or "",
            factory_name=self.data_factory_name or "",
        )


class ObservedTrigger(TriggerSpec):
    """Trigger state as reported back from the remote service.

    Values are taken as the service holds them, so the intake rules of
    DesiredTrigger do not apply. An empty description reads as unset.
    """

    id: str
    resource_group_name: str = Field(alias="resourceGroupName")
    data_factory_name: str = Field(alias="dataFactoryName")
    data_factory_id: str = Field(alias="dataFactoryId")

    # Unset only if the remote trigger lost its pipeline reference
    pipeline_name: str | None = Field(None, alias="pipelineName")
    start_time: str | None = Field(None, alias="startTime")
    end_time: str | None = Field(None, alias="endTime")
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    annotations: list[str] = Field(default_factory=list)

    @field_validator("description", mode="before")
    @classmethod
    def unset_empty_description(cls, v: Any) -> Any:
        return v or None

    @field_validator("annotations", mode="before")
    @classmethod
    def stringify_annotations(cls, v: Any) -> Any:
        if v is None:
            return []
        return [json_text(item) for item in v]


def json_text(value: Any) -> str:
    """Render a service value as text: strings as-is, anything else as JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value)
