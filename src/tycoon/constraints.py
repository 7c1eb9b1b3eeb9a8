"""
Session-type legality: room capacity for in-person visits, telehealth for virtual ones.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from .models import Building, Session, ValidationResult
from .scheduling import slots_needed


@dataclass
class RoomAvailability:
    total_rooms: int
    rooms_in_use: int
    rooms_available: int

    @property
    def can_book_in_person(self) -> bool:
        return self.rooms_available > 0


def get_room_availability(building: Building, sessions: Iterable[Session], day: int, hour: int) -> RoomAvailability:
    in_use = sum(
        1
        for s in sessions
        if s.scheduled_day == day
        and s.scheduled_hour <= hour < s.scheduled_hour + slots_needed(s.duration_minutes)
        and not s.is_virtual
        and s.status not in ("cancelled", "completed")
    )
    return RoomAvailability(total_rooms=building.rooms, rooms_in_use=in_use, rooms_available=building.rooms - in_use)


def can_book_in_person_session(
    building: Building, sessions: Iterable[Session], day: int, hour: int, duration: int
) -> ValidationResult:
    pool: List[Session] = list(sessions)
    for check_hour in range(hour, hour + slots_needed(duration)):
        if not get_room_availability(building, pool, day, check_hour).can_book_in_person:
            return ValidationResult(False, f"No rooms available at hour {check_hour}")
    return ValidationResult(True)


def can_book_session_type(
    building: Building,
    sessions: Iterable[Session],
    telehealth_unlocked: bool,
    is_virtual: bool,
    day: int,
    hour: int,
    duration: int,
) -> ValidationResult:
    """Single legality gate shared by direct booking and the recurring planner."""
    if is_virtual:
        if not telehealth_unlocked:
            return ValidationResult(False, "Telehealth is not unlocked")
        return ValidationResult(True)
    return can_book_in_person_session(building, sessions, day, hour, duration)
