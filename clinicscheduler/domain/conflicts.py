"""
Conflict detection between proposed slots and existing bookings.

Intervals are half-open: a booking ending at 10:00 does not collide with a
slot starting at 10:00. Only bookings in an active status block time.
"""

from typing import Iterable, List, Optional, Sequence

from .models import Booking, Room, RoomBooking, TimeInterval


def _blocking(
    bookings: Iterable[Booking],
    exclude_booking_id: Optional[str],
) -> List[Booking]:
    return [
        booking for booking in bookings
        if booking.status.is_active and booking.booking_id != exclude_booking_id
    ]


def find_conflicts(
    candidate: TimeInterval,
    existing_bookings: Sequence[Booking],
    exclude_booking_id: Optional[str] = None,
) -> List[Booking]:
    """
    Return the active bookings overlapping ``candidate``, in input order.

    Args:
        candidate: Proposed interval
        existing_bookings: Bookings of the therapist
        exclude_booking_id: Booking to ignore, used when rescheduling a
            booking against its own previous slot

    Returns:
        The overlapping subset, for "why is this taken" reporting
    """
    return [
        booking for booking in _blocking(existing_bookings, exclude_booking_id)
        if candidate.overlaps(booking.interval)
    ]


def has_conflict(
    candidate: TimeInterval,
    existing_bookings: Sequence[Booking],
    exclude_booking_id: Optional[str] = None,
) -> bool:
    """Check whether ``candidate`` overlaps any active booking."""
    return any(
        candidate.overlaps(booking.interval)
        for booking in _blocking(existing_bookings, exclude_booking_id)
    )


def filter_free_slots(
    slots: Sequence[TimeInterval],
    existing_bookings: Sequence[Booking],
) -> List[TimeInterval]:
    """Drop every slot that collides with an active booking."""
    return [slot for slot in slots if not has_conflict(slot, existing_bookings)]


def find_free_room(
    room_type: Optional[str],
    interval: TimeInterval,
    rooms: Sequence[Room],
    room_bookings: Sequence[RoomBooking],
) -> Optional[Room]:
    """
    Find the first room of ``room_type`` with no active booking during ``interval``.
    """
    for room in rooms:
        if room.room_type != room_type:
            continue
        taken = any(
            booking.room_id == room.room_id
            and booking.status.is_active
            and interval.overlaps(booking.interval)
            for booking in room_bookings
        )
        if not taken:
            return room
    return None


def is_room_free(
    room_type: Optional[str],
    interval: TimeInterval,
    rooms: Sequence[Room],
    room_bookings: Sequence[RoomBooking],
) -> bool:
    """Whether a room of the required type is free; no requirement means free."""
    if room_type is None:
        return True
    return find_free_room(room_type, interval, rooms, room_bookings) is not None
