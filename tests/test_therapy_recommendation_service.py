"""
Tests for TherapyRecommendationService.
"""

from datetime import date

import pytest

from clinicscheduler.domain.models import PatientProfile, Season, TherapyProfile
from clinicscheduler.domain.recommendations import SourceWeights
from clinicscheduler.services.therapy_recommendations import TherapyRecommendationService

TODAY = date(2024, 11, 25)

THERAPIES = [
    TherapyProfile(therapy_id="abhyanga", name="Abhyanga", category="snehana"),
    TherapyProfile(
        therapy_id="shirodhara",
        name="Shirodhara",
        category="shamana",
        is_gentle=True,
        female_specific=True,
    ),
    TherapyProfile(
        therapy_id="virechana",
        name="Virechana",
        category="shodhana",
        adult_only=True,
        contraindications=frozenset({"pregnancy"}),
    ),
    TherapyProfile(therapy_id="swedana", name="Swedana", category="swedana"),
]


def _scores(report):
    return {rec.entity_id: rec.total_score for rec in report.ranked}


class TestRecommend:

    def test_personalization_for_senior_stressed_woman(self):
        patient = PatientProfile(
            patient_id="p-1",
            date_of_birth=date(1959, 1, 1),
            gender="female",
            dosha="pitta",
            stress_level="high",
        )

        report = TherapyRecommendationService().recommend(
            patient, [], THERAPIES, season=Season.SUMMER, today=TODAY
        )

        shirodhara = next(rec for rec in report.ranked if rec.entity_id == "shirodhara")
        # dosha 0.8 * 0.25 + seasonal 0.7 * 0.15, then +0.1 gentle, +0.05 female, +0.1 stress
        assert shirodhara.total_score == pytest.approx(0.555)
        assert "Gentle therapy suitable for senior patients" in shirodhara.reasons
        assert "Therapy specifically beneficial for women" in shirodhara.reasons
        assert "Stress-reducing therapy" in shirodhara.reasons
        assert report.ranked[0].entity_id == "shirodhara"

    def test_personalized_score_is_capped(self):
        patient = PatientProfile(patient_id="p-1", date_of_birth=date(1950, 1, 1), dosha="pitta")
        service = TherapyRecommendationService(SourceWeights(dosha=2.0))

        report = service.recommend(patient, [], THERAPIES, season=Season.WINTER, today=TODAY)

        assert _scores(report)["shirodhara"] == 1.0

    def test_new_patient_gets_preparatory_therapy(self):
        patient = PatientProfile(patient_id="p-1", dosha="kapha")

        report = TherapyRecommendationService().recommend(
            patient, [], THERAPIES, season=Season.AUTUMN, today=TODAY
        )

        swedana = next(rec for rec in report.ranked if rec.entity_id == "swedana")
        assert "Preparatory therapy recommended for new patients" in swedana.reasons

    def test_contraindications(self):
        patient = PatientProfile(
            patient_id="p-1",
            date_of_birth=date(2010, 5, 1),
            dosha="pitta",
            conditions=("Pregnancy",),
        )

        report = TherapyRecommendationService().recommend(
            patient, [], THERAPIES, season=Season.SUMMER, today=TODAY
        )

        assert "Virechana: Not suitable for patients under 18" in report.contraindications
        assert "Virechana: Contraindicated for pregnancy" in report.contraindications

    def test_timeline(self):
        patient = PatientProfile(patient_id="p-1", dosha="vata")

        report = TherapyRecommendationService().recommend(
            patient, [], THERAPIES, season=Season.WINTER, today=TODAY
        )

        assert len(report.timeline) == 3
        first = next(t for t in THERAPIES if t.therapy_id == report.ranked[0].entity_id)
        assert report.timeline[0].therapies == (first.name,)
        assert report.timeline[2].purpose == "Consolidation and maintenance"

    def test_primary_and_secondary(self):
        patient = PatientProfile(patient_id="p-1", dosha="vata")

        report = TherapyRecommendationService().recommend(
            patient, [], THERAPIES, season=Season.WINTER, today=TODAY
        )

        assert report.primary == report.ranked[:3]
        assert report.secondary == report.ranked[3:6]

    def test_empty_catalog(self):
        report = TherapyRecommendationService().recommend(
            PatientProfile(patient_id="p-1"), [], [], today=TODAY
        )

        assert report.ranked == ()
        assert report.timeline == ()
        assert report.contraindications == ()
