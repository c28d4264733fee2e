"""
Clinic data store backed by a JSON snapshot.

Stands in for the clinic database: it serves therapists, therapies, bookings,
rooms and patient history from a snapshot file, and accepts new bookings in
memory with the same write-time conflict check a real store must perform.
"""

from __future__ import annotations

import json
import logging
from datetime import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

import pendulum
from pendulum import DateTime

from ..domain import catalog
from ..domain.conflicts import find_conflicts, find_free_room
from ..domain.exceptions import ConflictError, NotFoundError, SnapshotError
from ..domain.models import (
    Booking,
    BookingStatus,
    DaySchedule,
    PatientHistoryEntry,
    PatientProfile,
    Room,
    RoomBooking,
    TherapistProfile,
    TherapyProfile,
    TimeInterval,
    WorkingHoursTemplate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


class SnapshotStore:
    """
    In-memory clinic store loaded from a snapshot mapping.

    Expected top-level keys (all optional): ``therapists``, ``therapies``,
    ``bookings``, ``rooms``, ``room_bookings``, ``patients`` and
    ``patient_history``. Times are parsed in ``timezone`` unless they carry
    an offset.
    """

    def __init__(self, data: Dict[str, Any], timezone: str = "Europe/Berlin"):
        self.timezone = timezone
        self._therapists = {
            t.therapist_id: t for t in self._parse_all(data, "therapists", self._parse_therapist)
        }
        self._therapies = {
            t.therapy_id: t for t in self._parse_all(data, "therapies", self._parse_therapy)
        }
        self._patients = {
            p.patient_id: p for p in self._parse_all(data, "patients", self._parse_patient)
        }
        self._bookings: List[Booking] = self._parse_all(data, "bookings", self._parse_booking)
        self._rooms: List[Room] = self._parse_all(data, "rooms", self._parse_room)
        self._room_bookings: List[RoomBooking] = self._parse_all(
            data, "room_bookings", self._parse_room_booking
        )
        self._history: Dict[str, List[PatientHistoryEntry]] = {}
        for patient_id, entry in self._parse_all(data, "patient_history", self._parse_history_record):
            self._history.setdefault(patient_id, []).append(entry)

    @classmethod
    def from_file(cls, path: Path, timezone: str = "Europe/Berlin") -> "SnapshotStore":
        """
        Load a snapshot from a JSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            SnapshotError: If the file is not valid snapshot JSON
        """
        if not path.exists():
            raise FileNotFoundError(f"Snapshot file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise SnapshotError(f"Invalid JSON in {path}: {exc}") from exc

        if not isinstance(data, dict):
            raise SnapshotError("Snapshot file must contain an object at the root level.")

        store = cls(data, timezone=timezone)
        logger.info(
            "Loaded snapshot %s: %d therapists, %d therapies, %d bookings",
            path, len(store._therapists), len(store._therapies), len(store._bookings),
        )
        return store

    # Read side

    def get_therapy(self, therapy_id: str) -> TherapyProfile:
        try:
            return self._therapies[therapy_id]
        except KeyError:
            raise NotFoundError("Therapy", therapy_id) from None

    def list_therapies(self) -> List[TherapyProfile]:
        return list(self._therapies.values())

    def get_therapist(self, therapist_id: str) -> TherapistProfile:
        try:
            return self._therapists[therapist_id]
        except KeyError:
            raise NotFoundError("Therapist", therapist_id) from None

    def list_therapists(self) -> List[TherapistProfile]:
        return list(self._therapists.values())

    def get_patient(self, patient_id: str) -> PatientProfile:
        try:
            return self._patients[patient_id]
        except KeyError:
            raise NotFoundError("Patient", patient_id) from None

    def get_bookings(self, therapist_id: str, start: DateTime, end: DateTime) -> List[Booking]:
        return [
            booking for booking in self._bookings
            if booking.therapist_id == therapist_id
            and booking.interval.start < end
            and booking.interval.end > start
        ]

    def get_patient_history(self, patient_id: str) -> List[PatientHistoryEntry]:
        return list(self._history.get(patient_id, []))

    def find_free_room(self, room_type: Optional[str], interval: TimeInterval) -> Optional[Room]:
        return find_free_room(room_type, interval, self._rooms, self._room_bookings)

    # Write side

    def commit_booking(self, booking: Booking) -> Booking:
        """
        Store a booking after re-checking it against the current bookings.

        A booking with a ``room_id`` also reserves that room; rescheduling a
        booking moves its reservation.

        Raises:
            NotFoundError: If the therapist or room is unknown
            ConflictError: If an active booking now overlaps the slot, or the
                room is taken during it
        """
        self.get_therapist(booking.therapist_id)

        conflicts = find_conflicts(
            booking.interval,
            [b for b in self._bookings if b.therapist_id == booking.therapist_id],
            exclude_booking_id=booking.booking_id,
        )
        if conflicts:
            raise ConflictError(
                f"Therapist {booking.therapist_id} is already booked during {booking.interval}",
                conflicts,
            )

        others = [rb for rb in self._room_bookings if rb.booking_id != booking.booking_id]
        if booking.room_id is not None:
            if booking.room_id not in {room.room_id for room in self._rooms}:
                raise NotFoundError("Room", booking.room_id)
            taken = [
                rb for rb in others
                if rb.room_id == booking.room_id
                and rb.status.is_active
                and booking.interval.overlaps(rb.interval)
            ]
            if taken:
                raise ConflictError(
                    f"Room {booking.room_id} is already booked during {booking.interval}",
                    taken,
                )
            others.append(RoomBooking(
                room_id=booking.room_id,
                interval=booking.interval,
                booking_id=booking.booking_id,
            ))
        self._room_bookings = others

        self._bookings = [b for b in self._bookings if b.booking_id != booking.booking_id]
        self._bookings.append(booking)
        logger.debug("Committed booking %s (room %s)", booking.booking_id, booking.room_id)
        return booking

    # Parsing

    def _parse_all(
        self,
        data: Dict[str, Any],
        key: str,
        parser: Callable[[Dict[str, Any]], T],
    ) -> List[T]:
        return [self._parse_record(key, raw, parser) for raw in data.get(key, [])]

    @staticmethod
    def _parse_record(key: str, raw: Any, parser: Callable[[Dict[str, Any]], T]) -> T:
        if not isinstance(raw, dict):
            raise SnapshotError(f"Invalid {key} record {raw!r}: expected an object")
        try:
            return parser(raw)
        except (KeyError, ValueError, TypeError) as exc:
            raise SnapshotError(f"Invalid {key} record {raw!r}: {exc}") from exc

    def _parse_datetime(self, value: str) -> DateTime:
        return pendulum.parse(value, tz=self.timezone)

    def _parse_interval(self, raw: Dict[str, Any]) -> TimeInterval:
        start = self._parse_datetime(raw["start"])
        if "end" in raw:
            return TimeInterval(start=start, end=self._parse_datetime(raw["end"]))
        return TimeInterval.from_start(start, int(raw["duration_minutes"]))

    @staticmethod
    def _parse_time(value: str) -> time:
        hour, minute = value.split(":")
        return time(hour=int(hour), minute=int(minute))

    def _parse_working_hours(self, raw: Dict[str, Any]) -> WorkingHoursTemplate:
        days: Dict[int, DaySchedule] = {}
        for day, window in raw.items():
            weekday = WEEKDAYS[day.lower()] if not str(day).isdigit() else int(day)
            if weekday not in range(7):
                raise ValueError(f"Weekday must be between 0 and 6, got {weekday}")
            days[weekday] = DaySchedule(
                start_time=self._parse_time(window["start"]),
                end_time=self._parse_time(window["end"]),
                is_available=bool(window.get("is_available", True)),
            )
        return WorkingHoursTemplate(days=days, timezone=self.timezone)

    def _parse_therapist(self, raw: Dict[str, Any]) -> TherapistProfile:
        return TherapistProfile(
            therapist_id=str(raw["id"]),
            name=raw.get("name", str(raw["id"])),
            specializations=frozenset(raw.get("specializations", [])),
            years_experience=float(raw.get("years_experience", 0)),
            working_hours=self._parse_working_hours(raw.get("working_hours", {})),
        )

    def _parse_therapy(self, raw: Dict[str, Any]) -> TherapyProfile:
        extra: Dict[str, Any] = {
            "sanskrit_name": raw.get("sanskrit_name", ""),
            "is_gentle": bool(raw.get("gentle", False)),
            "female_specific": bool(raw.get("female_specific", False)),
            "adult_only": bool(raw.get("adult_only", False)),
            "contraindications": frozenset(
                item.lower() for item in raw.get("contraindications", [])
            ),
        }
        if "preferred_hours" in raw:
            extra["preferred_hours"] = frozenset(int(h) for h in raw["preferred_hours"])
        if "specializations" in raw:
            extra["required_specializations"] = frozenset(raw["specializations"])
        if "room_type" in raw:
            extra["required_room_type"] = raw["room_type"]

        return catalog.build_therapy_profile(
            therapy_id=str(raw["id"]),
            name=raw["name"],
            category=raw["category"],
            duration_minutes=raw.get("duration_minutes"),
            **extra,
        )

    def _parse_patient(self, raw: Dict[str, Any]) -> PatientProfile:
        birth = raw.get("date_of_birth")
        return PatientProfile(
            patient_id=str(raw["id"]),
            date_of_birth=pendulum.parse(birth).date() if birth else None,
            gender=raw.get("gender"),
            dosha=raw.get("dosha"),
            conditions=tuple(raw.get("conditions", [])),
            symptoms=tuple(raw.get("symptoms", [])),
            stress_level=raw.get("stress_level"),
        )

    def _parse_booking(self, raw: Dict[str, Any]) -> Booking:
        return Booking(
            booking_id=str(raw["id"]),
            therapist_id=str(raw["therapist_id"]),
            interval=self._parse_interval(raw),
            status=BookingStatus(raw.get("status", BookingStatus.SCHEDULED.value)),
            patient_id=raw.get("patient_id"),
            therapy_id=raw.get("therapy_id"),
            room_id=raw.get("room_id"),
        )

    @staticmethod
    def _parse_room(raw: Dict[str, Any]) -> Room:
        return Room(room_id=str(raw["id"]), room_type=raw["type"])

    def _parse_room_booking(self, raw: Dict[str, Any]) -> RoomBooking:
        return RoomBooking(
            room_id=str(raw["room_id"]),
            interval=self._parse_interval(raw),
            status=BookingStatus(raw.get("status", BookingStatus.SCHEDULED.value)),
            booking_id=raw.get("booking_id"),
        )

    def _parse_history_record(self, raw: Dict[str, Any]) -> Tuple[str, PatientHistoryEntry]:
        patient_id = raw["patient_id"]
        if not patient_id:
            raise ValueError("missing patient_id")
        completed = raw.get("completed_at")
        return str(patient_id), PatientHistoryEntry(
            therapist_id=str(raw["therapist_id"]),
            therapy_category=raw["category"],
            satisfaction_score=float(raw.get("satisfaction", 3)),
            therapy_id=raw.get("therapy_id"),
            therapy_name=raw.get("therapy_name"),
            completed_at=self._parse_datetime(completed) if completed else None,
        )
