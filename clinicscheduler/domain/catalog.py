"""
Clinic knowledge tables used by the scoring and recommendation heuristics.

Therapy names are matched case-insensitively by containment, so a therapy
called "Abhyanga Full Body" picks up the entries for "abhyanga".
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Optional, Tuple

from .models import Season, TherapyProfile

DEFAULT_PREFERRED_HOURS: FrozenSet[int] = frozenset({9, 10, 11, 14, 15, 16})
DEFAULT_DURATION_MINUTES = 60
DEFAULT_SPECIALIZATION = "general_practitioner"
DEFAULT_ROOM_TYPE = "standard"

THERAPIST_SPECIALIZATIONS: Dict[str, Tuple[str, ...]] = {
    "panchakarma_specialist": ("vamana", "virechana", "basti", "nasya", "raktamokshana"),
    "massage_therapist": ("abhyanga", "udvartana", "marma_massage"),
    "meditation_instructor": ("meditation", "pranayama", "yoga_therapy"),
    "general_practitioner": ("consultation", "dietary_counseling"),
}

# name -> (preferred start hours, session minutes)
THERAPY_TIME_PREFERENCES: Dict[str, Tuple[FrozenSet[int], int]] = {
    "vamana": (frozenset({6, 7, 8}), 180),
    "virechana": (frozenset({8, 9, 10}), 120),
    "basti": (frozenset({7, 8, 9}), 90),
    "abhyanga": (frozenset({9, 10, 11, 14, 15, 16}), 60),
    "shirodhara": (frozenset({10, 11, 15, 16, 17}), 45),
    "meditation": (frozenset({6, 7, 18, 19}), 30),
}

ROOM_REQUIREMENTS: Dict[str, str] = {
    "abhyanga": "standard",
    "shirodhara": "specialized",
    "panchakarma": "specialized",
    "consultation": "consultation",
}

# Documented next steps after a completed treatment.
SEQUENCE_RULES: Dict[str, Tuple[str, ...]] = {
    "snehana": ("swedana", "vamana", "virechana"),
    "swedana": ("vamana", "virechana", "basti"),
    "vamana": ("abhyanga", "shirodhara"),
    "virechana": ("basti", "abhyanga"),
    "basti": ("rasayana", "abhyanga"),
}

SEASONAL_THERAPIES: Dict[Season, Tuple[str, ...]] = {
    Season.SPRING: ("udvartana", "vamana", "detox"),
    Season.SUMMER: ("shirodhara", "abhyanga", "cooling"),
    Season.AUTUMN: ("basti", "meditation", "grounding"),
    Season.WINTER: ("abhyanga", "swedana", "warming"),
}

DOSHA_CHARACTERISTICS: Dict[str, Dict[str, Tuple[str, ...]]] = {
    "vata": {
        "keywords": ("anxiety", "insomnia", "digestive", "joint", "nervous"),
        "recommended": ("abhyanga", "shirodhara", "basti", "nasya"),
        "avoid": ("virechana",),
        "seasons": ("winter", "autumn"),
    },
    "pitta": {
        "keywords": ("inflammation", "acidity", "heat", "anger", "skin"),
        "recommended": ("virechana", "raktamokshana", "shirodhara"),
        "avoid": ("swedana",),
        "seasons": ("summer", "late_spring"),
    },
    "kapha": {
        "keywords": ("obesity", "diabetes", "congestion", "lethargy", "mucus"),
        "recommended": ("vamana", "udvartana", "swedana"),
        "avoid": ("snehana",),
        "seasons": ("spring", "winter"),
    },
}
DEFAULT_DOSHA = "vata"

THERAPY_PHASES: Dict[str, Tuple[str, ...]] = {
    "preparatory": ("snehana", "swedana"),
    "main": ("vamana", "virechana", "basti", "nasya", "raktamokshana"),
    "rejuvenative": ("abhyanga", "shirodhara", "akshi_tarpana"),
}

CONDITION_THERAPY_MAP: Dict[str, Tuple[str, ...]] = {
    "arthritis": ("abhyanga", "swedana", "basti"),
    "hypertension": ("shirodhara", "abhyanga", "meditation"),
    "diabetes": ("udvartana", "virechana", "dietary_therapy"),
    "insomnia": ("shirodhara", "abhyanga", "meditation"),
    "digestive_disorders": ("virechana", "basti", "dietary_therapy"),
    "skin_disorders": ("raktamokshana", "virechana", "external_therapies"),
    "respiratory_issues": ("nasya", "swedana", "pranayama"),
    "stress_anxiety": ("shirodhara", "abhyanga", "meditation"),
}


def _lookup(therapy_name: str, table: Dict[str, object]) -> Optional[str]:
    name = therapy_name.lower()
    for key in table:
        if key in name:
            return key
    return None


def required_specializations(therapy_name: str) -> FrozenSet[str]:
    """Specializations able to deliver a therapy; general practice by default."""
    name = therapy_name.lower()
    for specialization, therapies in THERAPIST_SPECIALIZATIONS.items():
        if any(therapy in name for therapy in therapies):
            return frozenset({specialization})
    return frozenset({DEFAULT_SPECIALIZATION})


def specializations_for(therapy: TherapyProfile) -> FrozenSet[str]:
    """The therapy's own required specializations, else the catalog's for its name."""
    return therapy.required_specializations or required_specializations(therapy.name)


def preferred_hours_for(therapy_name: str) -> FrozenSet[int]:
    key = _lookup(therapy_name, THERAPY_TIME_PREFERENCES)
    return THERAPY_TIME_PREFERENCES[key][0] if key else DEFAULT_PREFERRED_HOURS


def duration_for(therapy_name: str) -> int:
    key = _lookup(therapy_name, THERAPY_TIME_PREFERENCES)
    return THERAPY_TIME_PREFERENCES[key][1] if key else DEFAULT_DURATION_MINUTES


def room_type_for(therapy_name: str) -> str:
    key = _lookup(therapy_name, ROOM_REQUIREMENTS)
    return ROOM_REQUIREMENTS[key] if key else DEFAULT_ROOM_TYPE


def next_steps(previous: str) -> Tuple[str, ...]:
    """Treatments documented as the next step after ``previous``."""
    return SEQUENCE_RULES.get(previous.lower(), ())


def next_phase(therapy_name: str) -> Tuple[str, ...]:
    """
    Therapies of the phase following the one ``therapy_name`` belongs to.

    Preparatory leads to main, main to rejuvenative, anything else back to
    preparatory.
    """
    name = therapy_name.lower()
    if any(therapy in name for therapy in THERAPY_PHASES["preparatory"]):
        return THERAPY_PHASES["main"]
    if any(therapy in name for therapy in THERAPY_PHASES["main"]):
        return THERAPY_PHASES["rejuvenative"]
    return THERAPY_PHASES["preparatory"]


def build_therapy_profile(
    therapy_id: str,
    name: str,
    category: str,
    duration_minutes: Optional[int] = None,
    **extra,
) -> TherapyProfile:
    """
    Build a TherapyProfile, filling preferences and requirements from the catalog
    for anything the caller does not provide.
    """
    extra.setdefault("preferred_hours", preferred_hours_for(name))
    extra.setdefault("required_specializations", required_specializations(name))
    extra.setdefault("required_room_type", room_type_for(name))
    return TherapyProfile(
        therapy_id=therapy_id,
        name=name,
        category=category,
        typical_duration_minutes=duration_minutes or duration_for(name),
        **extra,
    )
