"""
Tests for availability calculation.
"""

from datetime import date, time

import pendulum

from clinicscheduler.domain.availability import generate_slots, generate_slots_for_dates
from clinicscheduler.domain.models import DaySchedule, WorkingHoursTemplate

MONDAY = date(2024, 11, 25)
TUESDAY = date(2024, 11, 26)


def _template(start=time(9, 0), end=time(11, 0), **kwargs) -> WorkingHoursTemplate:
    days = {0: DaySchedule(start_time=start, end_time=end, **kwargs)}
    return WorkingHoursTemplate(days=days, timezone="Europe/Berlin")


class TestGenerateSlots:
    """Tests for generate_slots."""

    def test_two_hour_window_hourly(self):
        """09:00-11:00 with 60 minute sessions yields exactly two slots."""
        slots = generate_slots(_template(), MONDAY, 60)

        assert len(slots) == 2
        assert slots[0].start == pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")
        assert slots[0].end == pendulum.parse("2024-11-25 10:00", tz="Europe/Berlin")
        assert slots[1].start == pendulum.parse("2024-11-25 10:00", tz="Europe/Berlin")
        assert slots[1].end == pendulum.parse("2024-11-25 11:00", tz="Europe/Berlin")

    def test_partial_slot_at_end_is_dropped(self):
        """A session that would run past closing is not offered."""
        slots = generate_slots(_template(end=time(11, 30)), MONDAY, 60)

        assert len(slots) == 2
        assert slots[-1].end.hour == 11

    def test_slots_stay_inside_window(self):
        slots = generate_slots(_template(end=time(17, 0)), MONDAY, 45)

        window_start = pendulum.parse("2024-11-25 09:00", tz="Europe/Berlin")
        window_end = pendulum.parse("2024-11-25 17:00", tz="Europe/Berlin")
        assert all(window_start <= s.start and s.end <= window_end for s in slots)
        assert all(s.duration_minutes() == 45 for s in slots)
        assert all(a.end == b.start for a, b in zip(slots, slots[1:]))

    def test_day_off(self):
        assert generate_slots(_template(), TUESDAY, 60) == []

    def test_unavailable_day(self):
        assert generate_slots(_template(is_available=False), MONDAY, 60) == []

    def test_non_positive_duration(self):
        assert generate_slots(_template(), MONDAY, 0) == []
        assert generate_slots(_template(), MONDAY, -30) == []

    def test_inverted_window(self):
        assert generate_slots(_template(start=time(12, 0), end=time(9, 0)), MONDAY, 60) == []

    def test_duration_longer_than_window(self):
        assert generate_slots(_template(), MONDAY, 180) == []

    def test_slots_carry_template_timezone(self):
        slots = generate_slots(_template(), MONDAY, 60)

        assert slots[0].start.timezone_name == "Europe/Berlin"

    def test_deterministic(self):
        assert generate_slots(_template(), MONDAY, 30) == generate_slots(_template(), MONDAY, 30)


def test_generate_slots_for_dates_skips_days_off():
    slots = generate_slots_for_dates(_template(), [MONDAY, TUESDAY, date(2024, 12, 2)], 60)

    assert len(slots) == 4
    assert [s.start.day for s in slots] == [25, 25, 2, 2]
