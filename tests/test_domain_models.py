"""
Tests for domain models.
"""

from datetime import date, time

import pendulum
import pytest

from clinicscheduler.domain.exceptions import InvalidIntervalError
from clinicscheduler.domain.models import (
    BookingStatus,
    DaySchedule,
    PatientHistoryEntry,
    PatientProfile,
    Season,
    TherapyProfile,
    TimeInterval,
    WorkingHoursTemplate,
)


def _at(value: str):
    return pendulum.parse(value, tz="Europe/Berlin")


class TestTimeInterval:
    """Tests for TimeInterval."""

    def test_valid_interval(self):
        interval = TimeInterval(start=_at("2024-11-25 09:00"), end=_at("2024-11-25 10:00"))

        assert interval.duration_minutes() == 60

    def test_start_must_be_before_end(self):
        with pytest.raises(InvalidIntervalError):
            TimeInterval(start=_at("2024-11-25 10:00"), end=_at("2024-11-25 09:00"))

    def test_empty_interval_rejected(self):
        with pytest.raises(InvalidIntervalError):
            TimeInterval(start=_at("2024-11-25 10:00"), end=_at("2024-11-25 10:00"))

    def test_invalid_interval_is_a_value_error(self):
        """Callers catching ValueError also catch interval errors."""
        with pytest.raises(ValueError):
            TimeInterval.from_start(_at("2024-11-25 10:00"), 0)

    def test_from_start(self):
        interval = TimeInterval.from_start(_at("2024-11-25 09:00"), 45)

        assert interval.end == _at("2024-11-25 09:45")

    def test_overlaps_partial(self):
        a = TimeInterval(start=_at("2024-11-25 09:00"), end=_at("2024-11-25 10:00"))
        b = TimeInterval(start=_at("2024-11-25 09:30"), end=_at("2024-11-25 10:30"))

        assert a.overlaps(b)
        assert b.overlaps(a)

    def test_touching_intervals_do_not_overlap(self):
        a = TimeInterval(start=_at("2024-11-25 09:00"), end=_at("2024-11-25 10:00"))
        b = TimeInterval(start=_at("2024-11-25 10:00"), end=_at("2024-11-25 11:00"))

        assert not a.overlaps(b)
        assert not b.overlaps(a)

    def test_containment_overlaps(self):
        outer = TimeInterval(start=_at("2024-11-25 09:00"), end=_at("2024-11-25 12:00"))
        inner = TimeInterval(start=_at("2024-11-25 10:00"), end=_at("2024-11-25 11:00"))

        assert outer.overlaps(inner)
        assert inner.overlaps(outer)

    def test_str(self):
        interval = TimeInterval(start=_at("2024-11-25 09:00"), end=_at("2024-11-25 10:00"))

        assert str(interval) == "25.11.2024 09:00 - 10:00"


class TestBookingStatus:

    @pytest.mark.parametrize("status", ["scheduled", "confirmed", "in_progress"])
    def test_active_statuses(self, status):
        assert BookingStatus(status).is_active

    @pytest.mark.parametrize("status", ["completed", "cancelled", "rescheduled", "no_show"])
    def test_inactive_statuses(self, status):
        assert not BookingStatus(status).is_active


class TestWorkingHoursTemplate:

    def test_missing_weekday_is_day_off(self):
        template = WorkingHoursTemplate(days={0: DaySchedule(time(9, 0), time(17, 0))})

        assert template.for_weekday(0) is not None
        assert template.for_weekday(1) is None

    def test_unavailable_weekday_is_day_off(self):
        template = WorkingHoursTemplate(
            days={0: DaySchedule(time(9, 0), time(17, 0), is_available=False)}
        )

        assert template.for_weekday(0) is None


class TestTherapyProfile:

    def test_non_positive_duration_rejected(self):
        with pytest.raises(InvalidIntervalError):
            TherapyProfile(therapy_id="x", name="Abhyanga", category="snehana",
                           typical_duration_minutes=0)

    def test_preferred_hours_out_of_range(self):
        with pytest.raises(ValueError):
            TherapyProfile(therapy_id="x", name="Abhyanga", category="snehana",
                           preferred_hours=frozenset({24}))

    def test_matches_name_and_sanskrit_name(self):
        therapy = TherapyProfile(
            therapy_id="x", name="Oil Massage", category="snehana", sanskrit_name="Abhyanga"
        )

        assert therapy.matches("abhyanga")
        assert therapy.matches("massage")
        assert not therapy.matches("basti")


class TestPatient:

    def test_satisfaction_out_of_range(self):
        with pytest.raises(ValueError):
            PatientHistoryEntry(therapist_id="t-1", therapy_category="snehana", satisfaction_score=6)

    def test_positive_and_negative_history(self):
        good = PatientHistoryEntry(therapist_id="t-1", therapy_category="snehana", satisfaction_score=4)
        bad = PatientHistoryEntry(therapist_id="t-1", therapy_category="snehana", satisfaction_score=2)
        neutral = PatientHistoryEntry(therapist_id="t-1", therapy_category="snehana", satisfaction_score=3)

        assert good.is_positive and not good.is_negative
        assert bad.is_negative and not bad.is_positive
        assert not neutral.is_positive and not neutral.is_negative

    def test_age_before_and_after_birthday(self):
        patient = PatientProfile(patient_id="p-1", date_of_birth=date(1960, 6, 15))

        assert patient.age(date(2024, 6, 14)) == 63
        assert patient.age(date(2024, 6, 15)) == 64

    def test_age_defaults_to_thirty(self):
        assert PatientProfile(patient_id="p-1").age(date(2024, 1, 1)) == 30


@pytest.mark.parametrize(
    "month, season",
    [
        (1, Season.WINTER),
        (3, Season.SPRING),
        (5, Season.SPRING),
        (6, Season.SUMMER),
        (9, Season.AUTUMN),
        (11, Season.AUTUMN),
        (12, Season.WINTER),
    ],
)
def test_season_for_month(month, season):
    assert Season.for_month(month) is season
