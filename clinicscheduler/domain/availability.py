"""
Availability calculation: turns a therapist's weekly template into bookable slots.

Pure domain logic without any external dependencies (no I/O, no database).
"""

from datetime import date as Date, time
from typing import Iterable, List

import pendulum
from pendulum import DateTime

from .models import TimeInterval, WorkingHoursTemplate


def _at(day: Date, wall_time: time, timezone: str) -> DateTime:
    return pendulum.datetime(
        day.year, day.month, day.day, wall_time.hour, wall_time.minute, tz=timezone
    )


def generate_slots(
    template: WorkingHoursTemplate,
    day: Date,
    therapy_duration_minutes: int,
) -> List[TimeInterval]:
    """
    Enumerate the candidate slots for one day.

    Walks from the day's start time to its end time in steps of the therapy
    duration and keeps every ``[t, t + duration)`` that ends no later than the
    end time.

    Example:
    Working: 09:00 - 11:00, duration 60
    Result: [09:00-10:00, 10:00-11:00]

    Args:
        template: Weekly working-hour template of the therapist
        day: Calendar day (date or datetime, only the date part is used)
        therapy_duration_minutes: Length of one session

    Returns:
        Chronological list of slots; empty when the therapist is off that
        weekday, the window is empty or the duration is not positive.
    """
    schedule = template.for_weekday(day.weekday())
    if schedule is None:
        return []

    if therapy_duration_minutes <= 0 or schedule.start_time >= schedule.end_time:
        return []

    window_end = _at(day, schedule.end_time, template.timezone)
    current = _at(day, schedule.start_time, template.timezone)
    slots: List[TimeInterval] = []

    while current.add(minutes=therapy_duration_minutes) <= window_end:
        slot = TimeInterval.from_start(current, therapy_duration_minutes)
        slots.append(slot)
        current = slot.end

    return slots


def generate_slots_for_dates(
    template: WorkingHoursTemplate,
    days: Iterable[Date],
    therapy_duration_minutes: int,
) -> List[TimeInterval]:
    """Slots for several days, in the order the days are given."""
    slots: List[TimeInterval] = []
    for day in days:
        slots.extend(generate_slots(template, day, therapy_duration_minutes))
    return slots
