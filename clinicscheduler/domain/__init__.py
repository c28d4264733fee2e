"""
Domain layer - Pure scheduling and recommendation logic without I/O.
"""

from .availability import generate_slots, generate_slots_for_dates
from .conflicts import find_conflicts, has_conflict
from .models import (
    Booking,
    BookingStatus,
    Candidate,
    TherapistProfile,
    TherapyProfile,
    TimeInterval,
    WorkingHoursTemplate,
)
from .recommendations import combine
from .scoring import ScoringWeights, SlotScorer, UrgencyMultipliers

__all__ = [
    "Booking",
    "BookingStatus",
    "Candidate",
    "ScoringWeights",
    "SlotScorer",
    "TherapistProfile",
    "TherapyProfile",
    "TimeInterval",
    "UrgencyMultipliers",
    "WorkingHoursTemplate",
    "combine",
    "find_conflicts",
    "generate_slots",
    "generate_slots_for_dates",
    "has_conflict",
]
