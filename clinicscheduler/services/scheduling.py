"""
Application service for finding and booking therapy appointments.

The service pulls a read-only snapshot from the clinic data collaborator and
runs it through the domain pipeline: availability -> conflict filtering ->
scoring -> ranking. The snapshot can go stale between computation and
commit, so the booking writer re-validates on write and raises
``ConflictError``; ``book`` reacts by recomputing.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date as Date
from typing import List, Optional, Protocol, Sequence, Tuple

import pendulum
from pendulum import DateTime

from ..domain import catalog
from ..domain.availability import generate_slots, generate_slots_for_dates
from ..domain.conflicts import filter_free_slots, find_conflicts
from ..domain.exceptions import ConflictError
from ..domain.models import (
    Booking,
    BookingStatus,
    Candidate,
    PatientHistoryEntry,
    Room,
    ScoredOption,
    Season,
    TherapistProfile,
    TherapyProfile,
    TimeInterval,
    Urgency,
)
from ..domain.scoring import SlotScorer, explain, rank

logger = logging.getLogger(__name__)

RECOMMENDED_COUNT = 3
ALTERNATIVE_COUNT = 5


class ClinicDataProtocol(Protocol):
    """Read side of the persistence collaborator."""

    def get_therapy(self, therapy_id: str) -> TherapyProfile:
        """Return a therapy or raise NotFoundError."""

    def get_therapist(self, therapist_id: str) -> TherapistProfile:
        """Return a therapist or raise NotFoundError."""

    def list_therapists(self) -> List[TherapistProfile]:
        """Return all active therapists."""

    def get_bookings(self, therapist_id: str, start: DateTime, end: DateTime) -> List[Booking]:
        """Return the therapist's bookings touching ``[start, end)``."""

    def get_patient_history(self, patient_id: str) -> List[PatientHistoryEntry]:
        """Return the patient's completed sessions."""

    def find_free_room(self, room_type: Optional[str], interval: TimeInterval) -> Optional[Room]:
        """Return a free room of the given type, if any."""


class BookingWriterProtocol(Protocol):
    """Write side of the persistence collaborator."""

    def commit_booking(self, booking: Booking) -> Booking:
        """
        Persist atomically, reserving ``booking.room_id`` if set.

        Raises ConflictError if the therapist or the room is no longer free.
        """


class ClinicStoreProtocol(ClinicDataProtocol, BookingWriterProtocol, Protocol):
    """Collaborator offering both reads and booking writes."""


@dataclass(frozen=True)
class ScheduleRequest:
    patient_id: str
    therapy_id: str
    dates: Tuple[Date, ...]
    therapist_id: Optional[str] = None
    urgency: Urgency = Urgency.NORMAL
    season: Optional[Season] = None
    include_conflicts: bool = False


@dataclass(frozen=True)
class SlotConflict:
    """A generated slot that was dropped because it collides with bookings."""
    therapist_id: str
    interval: TimeInterval
    bookings: Tuple[Booking, ...]


@dataclass(frozen=True)
class SchedulingInsights:
    recommendation: str
    confidence: str
    key_factors: Tuple[str, ...]
    preparation: str


@dataclass(frozen=True)
class ScheduleResult:
    therapy: TherapyProfile
    options: Tuple[ScoredOption, ...] = ()
    conflicts: Tuple[SlotConflict, ...] = field(default_factory=tuple)

    @property
    def best(self) -> Optional[ScoredOption]:
        return self.options[0] if self.options else None

    @property
    def recommended(self) -> Tuple[ScoredOption, ...]:
        return self.options[:RECOMMENDED_COUNT]

    @property
    def alternatives(self) -> Tuple[ScoredOption, ...]:
        return self.options[RECOMMENDED_COUNT:RECOMMENDED_COUNT + ALTERNATIVE_COUNT]

    def insights(self) -> Optional[SchedulingInsights]:
        """Summary of the top option, or None when nothing is bookable."""
        best = self.best
        if best is None:
            return None
        when = best.interval.start.format("MMMM Do, YYYY [at] h:mm A")
        return SchedulingInsights(
            recommendation=f"Best match: {best.therapist_name} on {when}",
            confidence=f"{round(best.score.total * 100)}% match",
            key_factors=best.reasons,
            preparation=(
                f"Allow {best.interval.duration_minutes()} minutes for {self.therapy.name}"
            ),
        )


@dataclass(frozen=True)
class DayAvailability:
    day: Date
    slots: Tuple[TimeInterval, ...]


class SchedulingService:
    """
    Orchestrates snapshot retrieval and the scheduling pipeline.

    Works against any store implementing ClinicStoreProtocol.
    """

    def __init__(
        self,
        store: ClinicStoreProtocol,
        scorer: Optional[SlotScorer] = None,
        max_search_days: int = 14,
        max_options: int = 50,
    ) -> None:
        self._store = store
        self._scorer = scorer or SlotScorer()
        self._max_search_days = max_search_days
        self._max_options = max_options

    def find_optimal_schedule(
        self,
        request: ScheduleRequest,
        *,
        as_of: Optional[DateTime] = None,
    ) -> ScheduleResult:
        """
        Rank every free (therapist, slot) pairing for the requested days.

        Raises:
            NotFoundError: If the therapy or requested therapist is unknown
            ValueError: If no dates or too many dates are requested
        """
        days = self._validate_days(request.dates)
        as_of = as_of or pendulum.now("UTC")
        therapy = self._store.get_therapy(request.therapy_id)
        history = self._store.get_patient_history(request.patient_id)
        therapists = self._eligible_therapists(therapy, request.therapist_id)

        logger.info(
            "Scheduling %s for patient %s: %d therapist(s), %d day(s)",
            therapy.name, request.patient_id, len(therapists), len(days),
        )

        options: List[ScoredOption] = []
        conflicts: List[SlotConflict] = []

        for therapist in therapists:
            bookings = self._bookings_for_days(therapist, days)
            slots = generate_slots_for_dates(
                therapist.working_hours, days, therapy.typical_duration_minutes
            )

            for slot in slots:
                clashes = find_conflicts(slot, bookings)
                if clashes:
                    if request.include_conflicts:
                        conflicts.append(SlotConflict(therapist.therapist_id, slot, tuple(clashes)))
                    continue

                options.append(
                    self._score_slot(therapist, therapy, slot, history, request, as_of)
                )

        ranked = rank(options)[: self._max_options]
        logger.debug("Scored %d option(s), %d conflicting slot(s)", len(options), len(conflicts))

        return ScheduleResult(therapy=therapy, options=tuple(ranked), conflicts=tuple(conflicts))

    def check_slot(
        self,
        *,
        therapist_id: str,
        interval: TimeInterval,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """Return the bookings preventing ``interval`` from being booked."""
        self._store.get_therapist(therapist_id)
        bookings = self._store.get_bookings(therapist_id, interval.start, interval.end)
        return find_conflicts(interval, bookings, exclude_booking_id=exclude_booking_id)

    def find_alternative_slots(
        self,
        *,
        therapist_id: str,
        therapy_id: str,
        from_date: Date,
        search_days: int = 7,
        max_days: int = 3,
        per_day: int = 3,
    ) -> List[DayAvailability]:
        """
        Suggest free slots on the following days when a requested slot is taken.

        Scans ``search_days`` days from ``from_date`` and stops once
        ``max_days`` days with free slots have been found.
        """
        therapist = self._store.get_therapist(therapist_id)
        therapy = self._store.get_therapy(therapy_id)
        start = pendulum.date(from_date.year, from_date.month, from_date.day)

        suggestions: List[DayAvailability] = []
        for offset in range(search_days):
            day = start.add(days=offset)
            slots = generate_slots(
                therapist.working_hours, day, therapy.typical_duration_minutes
            )
            if not slots:
                continue

            bookings = self._bookings_for_days(therapist, [day])
            free = filter_free_slots(slots, bookings)
            if free:
                suggestions.append(DayAvailability(day=day, slots=tuple(free[:per_day])))
                if len(suggestions) >= max_days:
                    break

        return suggestions

    def book(
        self,
        request: ScheduleRequest,
        *,
        max_attempts: int = 2,
        as_of: Optional[DateTime] = None,
    ) -> Optional[Booking]:
        """
        Commit the best option, recomputing when the snapshot went stale.

        Returns:
            The committed booking, or None if no slot is available

        Raises:
            ConflictError: If every attempt lost the race for its slot
        """
        for attempt in range(1, max_attempts + 1):
            best = self.find_optimal_schedule(request, as_of=as_of).best
            if best is None:
                return None

            booking = Booking(
                booking_id=uuid.uuid4().hex,
                therapist_id=best.therapist_id,
                interval=best.interval,
                status=BookingStatus.SCHEDULED,
                patient_id=request.patient_id,
                therapy_id=request.therapy_id,
                room_id=best.room_id,
            )
            try:
                committed = self._store.commit_booking(booking)
            except ConflictError:
                logger.warning(
                    "Slot %s with %s was taken before commit (attempt %d/%d)",
                    best.interval, best.therapist_id, attempt, max_attempts,
                )
                if attempt == max_attempts:
                    raise
                continue

            logger.info("Booked %s with %s for patient %s", booking.interval, booking.therapist_id, request.patient_id)
            return committed

        return None

    def _validate_days(self, dates: Sequence[Date]) -> List[Date]:
        days = sorted(set(dates))
        if not days:
            raise ValueError("At least one date is required.")
        if len(days) > self._max_search_days:
            raise ValueError(
                f"Requested {len(days)} days, at most {self._max_search_days} can be searched at once."
            )
        return days

    def _eligible_therapists(
        self,
        therapy: TherapyProfile,
        therapist_id: Optional[str],
    ) -> List[TherapistProfile]:
        if therapist_id:
            return [self._store.get_therapist(therapist_id)]
        required = catalog.specializations_for(therapy)
        return [
            therapist for therapist in self._store.list_therapists()
            if therapist.specializations & required
        ]

    def _bookings_for_days(
        self,
        therapist: TherapistProfile,
        days: Sequence[Date],
    ) -> List[Booking]:
        tz = therapist.working_hours.timezone
        first, last = min(days), max(days)
        start = pendulum.datetime(first.year, first.month, first.day, tz=tz)
        end = pendulum.datetime(last.year, last.month, last.day, tz=tz).add(days=1)
        return self._store.get_bookings(therapist.therapist_id, start, end)

    def _score_slot(
        self,
        therapist: TherapistProfile,
        therapy: TherapyProfile,
        slot: TimeInterval,
        history: Sequence[PatientHistoryEntry],
        request: ScheduleRequest,
        as_of: DateTime,
    ) -> ScoredOption:
        room = self._store.find_free_room(therapy.required_room_type, slot)
        room_available = therapy.required_room_type is None or room is not None

        score = self._scorer.score(
            Candidate(therapist_id=therapist.therapist_id, interval=slot),
            therapist,
            therapy,
            history,
            season=request.season,
            urgency=request.urgency,
            room_available=room_available,
            as_of=as_of,
        )
        return ScoredOption(
            therapist_id=therapist.therapist_id,
            therapist_name=therapist.name,
            interval=slot,
            score=score,
            reasons=tuple(explain(score.breakdown)),
            room_id=room.room_id if room else None,
        )
