"""
Recommendation aggregation and the therapy recommendation heuristics.

``combine`` is the shared merge step: each heuristic contributes weighted
scores per entity, contributions are summed, reasons are collected, and the
result is ranked. The heuristic sources below produce therapy-level input
for it from a patient's profile and history.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set

from . import catalog
from .models import (
    PatientHistoryEntry,
    PatientProfile,
    Recommendation,
    RecommendationItem,
    RecommendationSource,
    Season,
    TherapyProfile,
)


@dataclass(frozen=True)
class SourceWeights:
    condition: float = 0.30
    dosha: float = 0.25
    history: float = 0.20
    seasonal: float = 0.15
    sequence: float = 0.10


def combine(sources: Iterable[RecommendationSource]) -> List[Recommendation]:
    """
    Merge weighted heuristic sources into one ranked list.

    Scores of an entity found in several sources are summed, never
    overwritten. Reasons and evidence tags are deduplicated.

    Example:
    Source A (weight 0.3) scores "abhyanga" 0.8
    Source B (weight 0.2) scores "abhyanga" 0.6
    Result: abhyanga = 0.8 * 0.3 + 0.6 * 0.2 = 0.36
    """
    totals: Dict[str, float] = {}
    reasons: Dict[str, Set[str]] = {}
    evidence: Dict[str, Set[str]] = {}

    for source in sources:
        for item in source.items:
            totals[item.entity_id] = totals.get(item.entity_id, 0.0) + item.score * source.weight
            reasons.setdefault(item.entity_id, set()).add(item.reason)
            tags = evidence.setdefault(item.entity_id, set())
            if item.evidence:
                tags.add(item.evidence)

    merged = [
        Recommendation(
            entity_id=entity_id,
            total_score=total,
            reasons=frozenset(reasons[entity_id]),
            evidence=frozenset(evidence[entity_id]),
        )
        for entity_id, total in totals.items()
    ]
    return sorted(merged, key=lambda rec: (-rec.total_score, rec.entity_id))


def deduplicate(items: Iterable[RecommendationItem]) -> List[RecommendationItem]:
    """Keep the best-scored item per entity, first occurrence wins on ties."""
    best: Dict[str, RecommendationItem] = {}
    for item in items:
        current = best.get(item.entity_id)
        if current is None or current.score < item.score:
            best[item.entity_id] = item
    return list(best.values())


def _find_therapy(
    catalog_name: str,
    therapies: Sequence[TherapyProfile],
) -> Optional[TherapyProfile]:
    for therapy in therapies:
        if therapy.matches(catalog_name):
            return therapy
    return None


def _items_for(
    catalog_names: Iterable[str],
    therapies: Sequence[TherapyProfile],
    score: float,
    reason: str,
    evidence: str,
) -> List[RecommendationItem]:
    items = []
    for name in catalog_names:
        therapy = _find_therapy(name, therapies)
        if therapy is not None:
            items.append(RecommendationItem(therapy.therapy_id, score, reason, evidence))
    return items


def condition_source(
    patient: PatientProfile,
    therapies: Sequence[TherapyProfile],
    weight: float = 0.30,
) -> RecommendationSource:
    """Therapies indicated by the patient's conditions and symptoms."""
    items: List[RecommendationItem] = []

    for condition in patient.conditions:
        key = "_".join(condition.lower().split())
        items.extend(_items_for(
            catalog.CONDITION_THERAPY_MAP.get(key, ()),
            therapies,
            0.9,
            f"Recommended for {condition}",
            "condition_match",
        ))

    for symptom in patient.symptoms:
        lowered = symptom.lower()
        for dosha, traits in catalog.DOSHA_CHARACTERISTICS.items():
            if any(keyword in lowered for keyword in traits["keywords"]):
                items.extend(_items_for(
                    traits["recommended"],
                    therapies,
                    0.75,
                    f"Recommended for {dosha} imbalance (symptom: {symptom})",
                    "symptom_dosha_match",
                ))

    return RecommendationSource(tuple(deduplicate(items)), weight, "condition")


def dosha_source(
    patient: PatientProfile,
    therapies: Sequence[TherapyProfile],
    weight: float = 0.25,
) -> RecommendationSource:
    """Therapies balancing the patient's constitution."""
    dosha = (patient.dosha or catalog.DEFAULT_DOSHA).lower()
    traits = catalog.DOSHA_CHARACTERISTICS.get(
        dosha, catalog.DOSHA_CHARACTERISTICS[catalog.DEFAULT_DOSHA]
    )
    items = _items_for(
        traits["recommended"], therapies, 0.8, f"Balances {dosha} dosha", "dosha_constitution"
    )
    return RecommendationSource(tuple(items), weight, "dosha")


def history_source(
    history: Sequence[PatientHistoryEntry],
    therapies: Sequence[TherapyProfile],
    weight: float = 0.20,
) -> RecommendationSource:
    """
    Favour relatives of therapies that went well, flag relatives of ones that did not.
    """
    items: List[RecommendationItem] = []

    for entry in history:
        if not entry.is_positive:
            continue
        for therapy in therapies:
            if therapy.category == entry.therapy_category and therapy.therapy_id != entry.therapy_id:
                label = entry.therapy_name or entry.therapy_category
                items.append(RecommendationItem(
                    therapy.therapy_id,
                    0.85,
                    f"Similar to previously successful therapy ({label})",
                    "positive_history",
                ))
                break

    for entry in history:
        if not entry.is_negative:
            continue
        for therapy in therapies:
            if therapy.category == entry.therapy_category:
                items.append(RecommendationItem(
                    therapy.therapy_id,
                    0.3,
                    "Proceed with caution - similar therapy had mixed results",
                    "negative_history",
                ))

    return RecommendationSource(tuple(deduplicate(items)), weight, "history")


def seasonal_source(
    season: Season,
    therapies: Sequence[TherapyProfile],
    weight: float = 0.15,
) -> RecommendationSource:
    items: List[RecommendationItem] = []
    for traits in catalog.DOSHA_CHARACTERISTICS.values():
        if season.value in traits["seasons"]:
            items.extend(_items_for(
                traits["recommended"],
                therapies,
                0.7,
                f"Suitable for {season.value} season",
                "seasonal_appropriateness",
            ))
    return RecommendationSource(tuple(deduplicate(items)), weight, "seasonal")


def sequence_source(
    history: Sequence[PatientHistoryEntry],
    therapies: Sequence[TherapyProfile],
    weight: float = 0.10,
) -> RecommendationSource:
    """Preparatory work for new patients, otherwise the next treatment phase."""
    if not history:
        items = _items_for(
            catalog.THERAPY_PHASES["preparatory"],
            therapies,
            0.8,
            "Preparatory therapy recommended for new patients",
            "therapy_sequence",
        )
        return RecommendationSource(tuple(items), weight, "sequence")

    dated = [entry for entry in history if entry.completed_at is not None]
    latest = max(dated, key=lambda entry: entry.completed_at) if dated else history[-1]
    label = latest.therapy_name or latest.therapy_category
    items = _items_for(
        catalog.next_phase(label),
        therapies,
        0.75,
        f"Follows treatment sequence after {label}",
        "therapy_sequence",
    )
    return RecommendationSource(tuple(items), weight, "sequence")
