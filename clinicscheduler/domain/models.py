"""
Domain models for clinic scheduling and recommendations.

Every model is an immutable snapshot value: it is rebuilt from collaborator
data on each request and never persisted by this package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as Date, time
from enum import Enum
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InvalidIntervalError


@dataclass(frozen=True)
class TimeInterval:
    """
    Half-open time interval ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidIntervalError(
                f"Start time {self.start} must be before end time {self.end}"
            )

    @classmethod
    def from_start(cls, start: DateTime, duration_minutes: int) -> "TimeInterval":
        """Build an interval of ``duration_minutes`` beginning at ``start``."""
        if duration_minutes <= 0:
            raise InvalidIntervalError(
                f"Duration must be positive, got {duration_minutes} minutes"
            )
        return cls(start=start, end=start.add(minutes=duration_minutes))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeInterval") -> bool:
        """Check if this interval overlaps with another (touching ends do not)."""
        return self.start < other.end and self.end > other.start

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


class BookingStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"
    NO_SHOW = "no_show"

    @property
    def is_active(self) -> bool:
        """Whether a booking in this status still blocks its time slot."""
        return self in ACTIVE_STATUSES


ACTIVE_STATUSES: FrozenSet[BookingStatus] = frozenset(
    {BookingStatus.SCHEDULED, BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS}
)


@dataclass(frozen=True)
class Booking:
    """An appointment already held by a therapist."""
    booking_id: str
    therapist_id: str
    interval: TimeInterval
    status: BookingStatus = BookingStatus.SCHEDULED
    patient_id: Optional[str] = None
    therapy_id: Optional[str] = None
    room_id: Optional[str] = None


@dataclass(frozen=True)
class DaySchedule:
    """Working window for one weekday."""
    start_time: time
    end_time: time
    is_available: bool = True


@dataclass(frozen=True)
class WorkingHoursTemplate:
    """
    Weekly working-hour template of a therapist.

    Keys of ``days`` are weekdays, 0=Monday ... 6=Sunday. A weekday without an
    entry counts as a day off.
    """
    days: Mapping[int, DaySchedule] = field(default_factory=dict)
    timezone: str = "Europe/Berlin"

    def for_weekday(self, weekday: int) -> Optional[DaySchedule]:
        """Return the schedule for a weekday, or None if the therapist is off."""
        schedule = self.days.get(weekday)
        if schedule is None or not schedule.is_available:
            return None
        return schedule


@dataclass(frozen=True)
class TherapistProfile:
    therapist_id: str
    name: str
    specializations: FrozenSet[str] = frozenset()
    years_experience: float = 0.0
    working_hours: WorkingHoursTemplate = field(default_factory=WorkingHoursTemplate)


@dataclass(frozen=True)
class TherapyProfile:
    """
    A treatment offered by the clinic together with its temporal preferences
    and resource requirements.
    """
    therapy_id: str
    name: str
    category: str
    typical_duration_minutes: int = 60
    preferred_hours: FrozenSet[int] = frozenset()
    required_specializations: FrozenSet[str] = frozenset()
    required_room_type: Optional[str] = None
    sanskrit_name: str = ""
    is_gentle: bool = False
    female_specific: bool = False
    adult_only: bool = False
    contraindications: FrozenSet[str] = frozenset()

    def __post_init__(self):
        if self.typical_duration_minutes <= 0:
            raise InvalidIntervalError(
                f"Therapy {self.therapy_id} must have a positive duration, "
                f"got {self.typical_duration_minutes} minutes"
            )
        invalid_hours = [hour for hour in self.preferred_hours if hour not in range(24)]
        if invalid_hours:
            raise ValueError(f"Preferred hours must be between 0 and 23, got {invalid_hours}")

    def matches(self, catalog_name: str) -> bool:
        """Check whether a catalog therapy name refers to this therapy."""
        needle = catalog_name.lower()
        return needle in self.name.lower() or (
            bool(self.sanskrit_name) and needle in self.sanskrit_name.lower()
        )


@dataclass(frozen=True)
class PatientHistoryEntry:
    """A completed session of a patient, as reported by the persistence layer."""
    therapist_id: str
    therapy_category: str
    satisfaction_score: float
    therapy_id: Optional[str] = None
    therapy_name: Optional[str] = None
    completed_at: Optional[DateTime] = None

    def __post_init__(self):
        if not 1 <= self.satisfaction_score <= 5:
            raise ValueError(
                f"Satisfaction score must be between 1 and 5, got {self.satisfaction_score}"
            )

    @property
    def is_positive(self) -> bool:
        return self.satisfaction_score >= 4

    @property
    def is_negative(self) -> bool:
        return self.satisfaction_score < 3


@dataclass(frozen=True)
class PatientProfile:
    patient_id: str
    date_of_birth: Optional[Date] = None
    gender: Optional[str] = None
    dosha: Optional[str] = None
    conditions: Tuple[str, ...] = ()
    symptoms: Tuple[str, ...] = ()
    stress_level: Optional[str] = None

    def age(self, today: Optional[Date] = None) -> int:
        """Age in full years; 30 when the date of birth is unknown."""
        if self.date_of_birth is None:
            return 30
        today = today or pendulum.today().date()
        years = today.year - self.date_of_birth.year
        if (today.month, today.day) < (self.date_of_birth.month, self.date_of_birth.day):
            years -= 1
        return years


@dataclass(frozen=True)
class Room:
    room_id: str
    room_type: str


@dataclass(frozen=True)
class RoomBooking:
    room_id: str
    interval: TimeInterval
    status: BookingStatus = BookingStatus.SCHEDULED
    booking_id: Optional[str] = None


class Season(str, Enum):
    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"

    @classmethod
    def for_month(cls, month: int) -> "Season":
        """Season for a calendar month (1=January)."""
        if 3 <= month <= 5:
            return cls.SPRING
        if 6 <= month <= 8:
            return cls.SUMMER
        if 9 <= month <= 11:
            return cls.AUTUMN
        return cls.WINTER


class Urgency(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    EMERGENCY = "emergency"


@dataclass(frozen=True)
class Candidate:
    """
    A proposed (therapist, time-slot) pairing under evaluation.

    Never persisted; ``score_breakdown`` is filled in once the candidate has
    been scored.
    """
    therapist_id: str
    interval: TimeInterval
    score_breakdown: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class SlotScore:
    total: float
    breakdown: Dict[str, float]


@dataclass(frozen=True)
class ScoredOption:
    """A ranked scheduling option returned to the booking controller."""
    therapist_id: str
    therapist_name: str
    interval: TimeInterval
    score: SlotScore
    reasons: Tuple[str, ...] = ()
    room_id: Optional[str] = None

    @property
    def candidate(self) -> Candidate:
        return Candidate(
            therapist_id=self.therapist_id,
            interval=self.interval,
            score_breakdown=self.score.breakdown,
        )


@dataclass(frozen=True)
class RecommendationItem:
    entity_id: str
    score: float
    reason: str
    evidence: Optional[str] = None


@dataclass(frozen=True)
class RecommendationSource:
    """Output of one heuristic together with the weight it carries."""
    items: Tuple[RecommendationItem, ...]
    weight: float
    name: str = ""


@dataclass(frozen=True)
class Recommendation:
    entity_id: str
    total_score: float
    reasons: FrozenSet[str] = frozenset()
    evidence: FrozenSet[str] = frozenset()
