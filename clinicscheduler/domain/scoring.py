"""
Slot scoring: ranks (therapist, slot) candidates by six weighted heuristics.

Each heuristic is normalised to [0, 1]. The weighted sum is multiplied by an
urgency factor and is not clamped afterwards, so urgent requests can score
above 1.0.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

import pendulum
from pendulum import DateTime

from . import catalog
from .models import (
    Candidate,
    PatientHistoryEntry,
    ScoredOption,
    Season,
    SlotScore,
    TherapistProfile,
    TherapyProfile,
    Urgency,
)

EXPERIENCE = "experience"
TIME_PREFERENCE = "time_preference"
SEQUENCE = "sequence"
ROOM_AVAILABILITY = "room_availability"
PATIENT_HISTORY = "patient_history"
SEASONAL = "seasonal"

RECENT_HISTORY_DAYS = 90


@dataclass(frozen=True)
class ScoringWeights:
    """Heuristic weights; they must add up to 1.0."""
    experience: float = 0.25
    time_preference: float = 0.20
    sequence: float = 0.20
    room_availability: float = 0.15
    patient_history: float = 0.10
    seasonal: float = 0.10

    def __post_init__(self):
        total = sum(self.as_dict().values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total}")

    def as_dict(self) -> Dict[str, float]:
        return {
            EXPERIENCE: self.experience,
            TIME_PREFERENCE: self.time_preference,
            SEQUENCE: self.sequence,
            ROOM_AVAILABILITY: self.room_availability,
            PATIENT_HISTORY: self.patient_history,
            SEASONAL: self.seasonal,
        }


@dataclass(frozen=True)
class UrgencyMultipliers:
    normal: float = 1.0
    high: float = 1.1
    emergency: float = 1.2

    def for_urgency(self, urgency: Urgency) -> float:
        return getattr(self, urgency.value)


# Thresholds above which a heuristic is worth telling the patient about.
_REASONS = (
    (EXPERIENCE, 0.8, "Highly experienced therapist with relevant specialization"),
    (TIME_PREFERENCE, 0.8, "Optimal time slot for this therapy"),
    (SEQUENCE, 0.8, "Follows recommended therapy sequence"),
    (ROOM_AVAILABILITY, 0.9, "Preferred room type available"),
    (PATIENT_HISTORY, 0.8, "Positive history with this therapist"),
    (SEASONAL, 0.8, "Seasonally appropriate therapy"),
)


def experience_score(therapist: TherapistProfile, therapy: TherapyProfile) -> float:
    score = 0.8 if therapist.specializations & catalog.specializations_for(therapy) else 0.4
    score += min(therapist.years_experience * 0.05, 0.2)
    return min(score, 1.0)


def time_preference_score(start: DateTime, therapy: TherapyProfile) -> float:
    preferred = therapy.preferred_hours or catalog.DEFAULT_PREFERRED_HOURS
    hour = start.hour
    if hour in preferred:
        return 0.9
    distance = min(abs(hour - preferred_hour) for preferred_hour in preferred)
    return max(0.1, 0.9 - distance * 0.1)


def _recent_history(
    history: Iterable[PatientHistoryEntry],
    as_of: DateTime,
) -> List[PatientHistoryEntry]:
    cutoff = as_of.subtract(days=RECENT_HISTORY_DAYS)
    return [
        entry for entry in history
        if entry.completed_at is None or entry.completed_at >= cutoff
    ]


def sequence_score(
    history: Sequence[PatientHistoryEntry],
    therapy: TherapyProfile,
    as_of: DateTime,
) -> float:
    recent = _recent_history(history, as_of)
    if not recent:
        return 0.8

    dated = [entry for entry in recent if entry.completed_at is not None]
    latest = max(dated, key=lambda entry: entry.completed_at) if dated else recent[-1]

    steps = catalog.next_steps(latest.therapy_category)
    if not steps and latest.therapy_name:
        steps = catalog.next_steps(latest.therapy_name)

    candidate_names = (therapy.name.lower(), therapy.category.lower())
    is_next_step = any(
        step in candidate_names[0] or step == candidate_names[1] for step in steps
    )
    return 0.9 if is_next_step else 0.6


def patient_history_score(
    history: Sequence[PatientHistoryEntry],
    therapist: TherapistProfile,
) -> float:
    scores = [
        entry.satisfaction_score for entry in history
        if entry.therapist_id == therapist.therapist_id
    ]
    if not scores:
        return 0.7
    average = sum(scores) / len(scores)
    return min((average - 1) / 4, 1.0)


def seasonal_score(therapy: TherapyProfile, season: Season) -> float:
    name = therapy.name.lower()
    preferred = catalog.SEASONAL_THERAPIES.get(season, ())
    return 0.9 if any(therapy_name in name for therapy_name in preferred) else 0.7


class SlotScorer:
    """
    Combines the scheduling heuristics into one score per candidate.

    Instances are cheap and stateless apart from their weights; build one at
    start-up and share it.
    """

    def __init__(
        self,
        weights: Optional[ScoringWeights] = None,
        urgency_multipliers: Optional[UrgencyMultipliers] = None,
    ):
        self.weights = weights or ScoringWeights()
        self.urgency_multipliers = urgency_multipliers or UrgencyMultipliers()

    def score(
        self,
        candidate: Candidate,
        therapist: TherapistProfile,
        therapy: TherapyProfile,
        patient_history: Sequence[PatientHistoryEntry],
        season: Optional[Season] = None,
        urgency: Urgency = Urgency.NORMAL,
        room_available: bool = True,
        as_of: Optional[DateTime] = None,
    ) -> SlotScore:
        """
        Score one candidate.

        Args:
            candidate: Slot under evaluation
            therapist: Therapist offering the slot
            therapy: Requested therapy
            patient_history: Completed sessions of the patient
            season: Season to optimise for; defaults to the slot's month
            urgency: Request urgency, scales the weighted sum
            room_available: Whether a room of the required type is free
            as_of: Reference time for "recent" history; defaults to now

        Returns:
            SlotScore with the unclamped total and the per-heuristic breakdown
        """
        start = candidate.interval.start
        season = season or Season.for_month(start.month)
        # Only compared against, so UTC works for fixed-offset starts too.
        as_of = as_of or pendulum.now("UTC")

        breakdown = {
            EXPERIENCE: experience_score(therapist, therapy),
            TIME_PREFERENCE: time_preference_score(start, therapy),
            SEQUENCE: sequence_score(patient_history, therapy, as_of),
            ROOM_AVAILABILITY: 1.0 if room_available else 0.3,
            PATIENT_HISTORY: patient_history_score(patient_history, therapist),
            SEASONAL: seasonal_score(therapy, season),
        }

        weighted = sum(
            breakdown[name] * weight for name, weight in self.weights.as_dict().items()
        )
        total = weighted * self.urgency_multipliers.for_urgency(urgency)

        return SlotScore(total=total, breakdown=breakdown)


def explain(breakdown: Dict[str, float]) -> List[str]:
    """Human-readable reasons for the heuristics that scored notably well."""
    return [
        reason for name, threshold, reason in _REASONS
        if breakdown.get(name, 0.0) > threshold
    ]


def rank(options: Iterable[ScoredOption]) -> List[ScoredOption]:
    """Sort by total score descending, earliest start first on ties."""
    return sorted(
        options,
        key=lambda option: (
            -option.score.total,
            option.interval.start,
            option.therapist_id,
        ),
    )
