"""Bidirectional transform between declarative and remote recurrence schedules.

encode() drops empty and absent fields so the remote object never carries
an empty collection it was not given. decode() copies back every field the
remote object populated and always returns a ScheduleConfig, possibly with
every field absent.

After one normalization pass the two are inverses:
decode(encode(decode(encode(x)))) == decode(encode(x)).
"""

from __future__ import annotations

from .models import MonthlyOccurrenceConfig, ScheduleConfig
from .remote import RecurrenceSchedule, ScheduleOccurrence


def encode(schedule: ScheduleConfig | None) -> RecurrenceSchedule | None:
    """Convert a declarative schedule to its remote form.

    Returns None if the schedule is absent or has no populated field.
    Values are copied verbatim; range validation happened on intake.
    """
    if schedule is None or schedule.is_empty:
        return None

    remote = RecurrenceSchedule()

    if schedule.days_of_week:
        remote.week_days = [day.value for day in schedule.days_of_week]

    if schedule.monthly:
        remote.monthly_occurrences = [
            ScheduleOccurrence(day=occurrence.weekday.value, occurrence=occurrence.week)
            for occurrence in schedule.monthly
        ]

    if schedule.days_of_month:
        remote.month_days = list(schedule.days_of_month)
    if schedule.minutes:
        remote.minutes = list(schedule.minutes)
    if schedule.hours:
        remote.hours = list(schedule.hours)

    return remote


def decode(schedule: RecurrenceSchedule | None) -> ScheduleConfig:
    """Convert a remote schedule back to its declarative form."""
    if schedule is None:
        return ScheduleConfig()

    values: dict[str, object] = {}
    if schedule.minutes is not None:
        values["minutes"] = list(schedule.minutes)
    if schedule.hours is not None:
        values["hours"] = list(schedule.hours)
    if schedule.week_days is not None:
        values["days_of_week"] = list(schedule.week_days)
    if schedule.month_days is not None:
        values["days_of_month"] = list(schedule.month_days)
    if schedule.monthly_occurrences is not None:
        values["monthly"] = [
            MonthlyOccurrenceConfig(weekday=occurrence.day, week=occurrence.occurrence)
            for occurrence in schedule.monthly_occurrences
        ]

    return ScheduleConfig(**values)
