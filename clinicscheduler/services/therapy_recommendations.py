"""
Therapy recommendation service.

Runs the five therapy heuristics, merges them with the shared aggregator and
applies patient-specific adjustments on top.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date as Date
from typing import Dict, List, Optional, Sequence, Tuple

import pendulum

from ..domain.models import (
    PatientHistoryEntry,
    PatientProfile,
    Recommendation,
    Season,
    TherapyProfile,
)
from ..domain.recommendations import (
    SourceWeights,
    combine,
    condition_source,
    dosha_source,
    history_source,
    seasonal_source,
    sequence_source,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimelinePhase:
    duration: str
    therapies: Tuple[str, ...]
    purpose: str


@dataclass(frozen=True)
class TherapyRecommendationReport:
    ranked: Tuple[Recommendation, ...]
    contraindications: Tuple[str, ...]
    timeline: Tuple[TimelinePhase, ...]

    @property
    def primary(self) -> Tuple[Recommendation, ...]:
        return self.ranked[:3]

    @property
    def secondary(self) -> Tuple[Recommendation, ...]:
        return self.ranked[3:6]


class TherapyRecommendationService:
    """Recommends therapies for a patient from profile, history and season."""

    def __init__(self, weights: Optional[SourceWeights] = None) -> None:
        self._weights = weights or SourceWeights()

    def recommend(
        self,
        patient: PatientProfile,
        history: Sequence[PatientHistoryEntry],
        therapies: Sequence[TherapyProfile],
        *,
        season: Optional[Season] = None,
        today: Optional[Date] = None,
    ) -> TherapyRecommendationReport:
        today = today or pendulum.today().date()
        season = season or Season.for_month(today.month)
        weights = self._weights

        combined = combine([
            condition_source(patient, therapies, weights.condition),
            dosha_source(patient, therapies, weights.dosha),
            history_source(history, therapies, weights.history),
            seasonal_source(season, therapies, weights.seasonal),
            sequence_source(history, therapies, weights.sequence),
        ])

        by_id = {therapy.therapy_id: therapy for therapy in therapies}
        personalized = [
            self._personalize(rec, by_id[rec.entity_id], patient, today)
            for rec in combined
        ]
        personalized.sort(key=lambda rec: (-rec.total_score, rec.entity_id))

        logger.info(
            "Recommended %d therapies for patient %s (%s season)",
            len(personalized), patient.patient_id, season.value,
        )

        return TherapyRecommendationReport(
            ranked=tuple(personalized),
            contraindications=tuple(self._contraindications(patient, personalized, by_id, today)),
            timeline=self._timeline(personalized, by_id),
        )

    @staticmethod
    def _personalize(
        rec: Recommendation,
        therapy: TherapyProfile,
        patient: PatientProfile,
        today: Date,
    ) -> Recommendation:
        score = rec.total_score
        reasons = set(rec.reasons)

        if patient.age(today) > 60 and therapy.is_gentle:
            score += 0.1
            reasons.add("Gentle therapy suitable for senior patients")

        if (patient.gender or "").lower() == "female" and therapy.female_specific:
            score += 0.05
            reasons.add("Therapy specifically beneficial for women")

        if (patient.stress_level or "").lower() == "high" and therapy.category == "shamana":
            score += 0.1
            reasons.add("Stress-reducing therapy")

        return replace(rec, total_score=min(1.0, score), reasons=frozenset(reasons))

    @staticmethod
    def _contraindications(
        patient: PatientProfile,
        recommendations: Sequence[Recommendation],
        therapies: Dict[str, TherapyProfile],
        today: Date,
    ) -> List[str]:
        warnings: List[str] = []
        age = patient.age(today)
        conditions = [condition.lower() for condition in patient.conditions]

        for rec in recommendations:
            therapy = therapies[rec.entity_id]
            if age < 18 and therapy.adult_only:
                warnings.append(f"{therapy.name}: Not suitable for patients under 18")
            for condition in conditions:
                if condition in therapy.contraindications:
                    warnings.append(f"{therapy.name}: Contraindicated for {condition}")

        return warnings

    @staticmethod
    def _timeline(
        recommendations: Sequence[Recommendation],
        therapies: Dict[str, TherapyProfile],
    ) -> Tuple[TimelinePhase, ...]:
        if not recommendations:
            return ()

        def names(recs: Sequence[Recommendation]) -> Tuple[str, ...]:
            return tuple(therapies[rec.entity_id].name for rec in recs)

        return (
            TimelinePhase("1-2 weeks", names(recommendations[:1]), "Initial preparation and assessment"),
            TimelinePhase("2-4 weeks", names(recommendations[1:3]), "Main therapeutic intervention"),
            TimelinePhase(
                "1-2 weeks",
                ("Follow-up assessment", "Lifestyle counseling"),
                "Consolidation and maintenance",
            ),
        )
