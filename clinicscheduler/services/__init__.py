"""
Service layer helpers that orchestrate the clinic store and domain logic.
"""

from .scheduling import (
    ClinicDataProtocol,
    ClinicStoreProtocol,
    ScheduleRequest,
    ScheduleResult,
    SchedulingService,
)
from .therapy_recommendations import TherapyRecommendationService

__all__ = [
    "ClinicDataProtocol",
    "ClinicStoreProtocol",
    "ScheduleRequest",
    "ScheduleResult",
    "SchedulingService",
    "TherapyRecommendationService",
]
