"""
Schedule grid: sparse day -> hour -> therapist -> session index plus slot search.

The grid is a denormalized view of the session list and can always be rebuilt
with `build_schedule_from_sessions`.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from .clock import format_clock
from .config import (
    ENERGY_COSTS,
    ENERGY_DISCOUNT_FLOOR,
    ENERGY_DISCOUNT_LEVEL_CAP,
    ENERGY_LEVEL_DISCOUNT,
    PAYMENT_MULTIPLIERS,
    SCHEDULE,
    TIME_PREFERENCE_WINDOWS,
    WEEKDAYS,
)
from .models import Client, GameTime, Session, Therapist, ValidationResult
from .staffing import get_work_schedule, is_within_work_hours

logger = logging.getLogger(__name__)

ScheduleGrid = Dict[int, Dict[int, Dict[str, str]]]

# statuses that occupy grid slots
OCCUPYING_STATUSES = ("scheduled", "in_progress", "completed")


@dataclass
class AvailableSlot:
    day: int
    hour: int
    therapist_id: str
    is_preferred: bool  # inside client availability and time preference


@dataclass
class ScheduleConflict:
    day: int
    hour: int
    therapist_id: str
    existing_session_id: str
    reason: str


def slots_needed(duration: int) -> int:
    return math.ceil(duration / 60)


def session_span(session: Session) -> range:
    return range(session.scheduled_hour, session.scheduled_hour + slots_needed(session.duration_minutes))


def validate_not_in_past(now: GameTime, day: int, hour: int) -> ValidationResult:
    if day < now.day:
        return ValidationResult(False, "Cannot schedule for a previous day")
    if day == now.day:
        if hour < now.hour:
            return ValidationResult(False, "Cannot schedule for a past hour")
        if hour == now.hour and now.minute > 0:
            return ValidationResult(False, "Cannot schedule for an hour already in progress")
    return ValidationResult(True)


def build_schedule_from_sessions(sessions: Iterable[Session]) -> ScheduleGrid:
    grid: ScheduleGrid = {}
    for s in sessions:
        if s.status in OCCUPYING_STATUSES:
            grid = add_to_schedule(grid, s)
    return grid


def add_to_schedule(grid: ScheduleGrid, session: Session) -> ScheduleGrid:
    """Return a new grid with the session recorded; only touched day/hour branches are copied."""
    new_grid = dict(grid)
    day_slots = dict(new_grid.get(session.scheduled_day, {}))
    new_grid[session.scheduled_day] = day_slots
    for hour in session_span(session):
        hour_slots = dict(day_slots.get(hour, {}))
        hour_slots[session.therapist_id] = session.id
        day_slots[hour] = hour_slots
    logger.debug("Grid add %s day=%d hour=%d", session.id, session.scheduled_day, session.scheduled_hour)
    return new_grid


def remove_from_schedule(grid: ScheduleGrid, session: Session) -> ScheduleGrid:
    new_grid = dict(grid)
    if session.scheduled_day not in new_grid:
        return new_grid
    day_slots = dict(new_grid[session.scheduled_day])
    new_grid[session.scheduled_day] = day_slots
    for hour in session_span(session):
        if hour not in day_slots:
            continue
        hour_slots = dict(day_slots[hour])
        # only clear the entry if it still points at this session
        if hour_slots.get(session.therapist_id) == session.id:
            del hour_slots[session.therapist_id]
        day_slots[hour] = hour_slots  # keep the key even when empty
    logger.debug("Grid remove %s day=%d hour=%d", session.id, session.scheduled_day, session.scheduled_hour)
    return new_grid


def occupant(grid: ScheduleGrid, therapist_id: str, day: int, hour: int) -> Optional[str]:
    return grid.get(day, {}).get(hour, {}).get(therapist_id)


def is_slot_available(
    grid: ScheduleGrid,
    therapist_id: str,
    day: int,
    hour: int,
    duration: int = SCHEDULE.default_duration,
    therapist: Optional[Therapist] = None,
) -> bool:
    for check_hour in range(hour, hour + slots_needed(duration)):
        if therapist is not None:
            if not is_within_work_hours(therapist, check_hour):
                return False
        elif not SCHEDULE.business_start <= check_hour < SCHEDULE.business_end:
            return False
        if occupant(grid, therapist_id, day, check_hour):
            return False
    return True


def get_available_slots_for_day(
    grid: ScheduleGrid,
    therapist_id: str,
    day: int,
    duration: int = SCHEDULE.default_duration,
    therapist: Optional[Therapist] = None,
) -> List[int]:
    if therapist is not None:
        ws = get_work_schedule(therapist)
        start, end = ws.work_start_hour, ws.work_end_hour
    else:
        start, end = SCHEDULE.business_start, SCHEDULE.business_end
    return [h for h in range(start, end) if is_slot_available(grid, therapist_id, day, h, duration, therapist)]


def day_of_week(day: int) -> str:
    # five-day practice week, day 1 is a Monday
    return WEEKDAYS[(day - 1) % len(WEEKDAYS)]


def matches_time_preference(hour: int, preference: str) -> bool:
    start, end = TIME_PREFERENCE_WINDOWS.get(preference, (0, 24))
    return start <= hour < end


def find_matching_slots(
    grid: ScheduleGrid,
    therapist: Therapist,
    client: Client,
    start_day: int,
    days_to_check: int = 14,
    duration: int = SCHEDULE.default_duration,
) -> List[AvailableSlot]:
    """Open therapist slots over a window, client-preferred ones first, then by day and hour."""
    ws = get_work_schedule(therapist)
    slots: List[AvailableSlot] = []
    for day in range(start_day, start_day + days_to_check):
        client_hours = client.availability.get(day_of_week(day), [])
        for hour in range(ws.work_start_hour, ws.work_end_hour):
            if is_slot_available(grid, therapist.id, day, hour, duration, therapist):
                preferred = hour in client_hours and matches_time_preference(hour, client.preferred_time)
                slots.append(AvailableSlot(day=day, hour=hour, therapist_id=therapist.id, is_preferred=preferred))
    slots.sort(key=lambda s: (not s.is_preferred, s.day, s.hour))
    return slots


def calculate_session_payment(base_rate: int, duration: int) -> int:
    return round(base_rate * PAYMENT_MULTIPLIERS.get(duration, 1.0))


def calculate_energy_cost(duration: int, therapist_level: int) -> int:
    level = min(therapist_level, ENERGY_DISCOUNT_LEVEL_CAP)
    modifier = max(ENERGY_DISCOUNT_FLOOR, 1 - level * ENERGY_LEVEL_DISCOUNT)
    return round(ENERGY_COSTS[duration] * modifier)


def create_session(
    therapist: Therapist,
    client: Client,
    day: int,
    hour: int,
    duration: int = SCHEDULE.default_duration,
    is_virtual: Optional[bool] = None,
    session_id: Optional[str] = None,
    created_day: int = 1,
) -> Session:
    return Session(
        id=session_id or str(uuid.uuid4()),
        therapist_id=therapist.id,
        client_id=client.id,
        scheduled_day=day,
        scheduled_hour=hour,
        duration_minutes=duration,
        is_virtual=client.prefers_virtual if is_virtual is None else is_virtual,
        is_insurance=not client.is_private_pay,
        payment=calculate_session_payment(client.session_rate, duration),
        energy_cost=calculate_energy_cost(duration, therapist.level),
        created_day=created_day,
    )


def get_sessions_for_day(grid: ScheduleGrid, sessions: Sequence[Session], day: int) -> List[Session]:
    ids = {sid for hour_slots in grid.get(day, {}).values() for sid in hour_slots.values() if sid}
    return [s for s in sessions if s.id in ids]


def get_therapist_sessions_for_day(
    grid: ScheduleGrid, sessions: Sequence[Session], therapist_id: str, day: int
) -> List[Session]:
    ids = {hour_slots[therapist_id] for hour_slots in grid.get(day, {}).values() if hour_slots.get(therapist_id)}
    return [s for s in sessions if s.id in ids]


def count_sessions_for_day(grid: ScheduleGrid, sessions: Sequence[Session], therapist_id: str, day: int) -> int:
    return len(get_therapist_sessions_for_day(grid, sessions, therapist_id, day))


def can_schedule_more_today(grid: ScheduleGrid, sessions: Sequence[Session], therapist_id: str, day: int) -> bool:
    return count_sessions_for_day(grid, sessions, therapist_id, day) < SCHEDULE.max_sessions_per_day


def get_conflicts(
    grid: ScheduleGrid, therapist_id: str, day: int, hour: int, duration: int = SCHEDULE.default_duration
) -> List[ScheduleConflict]:
    conflicts = []
    for check_hour in range(hour, hour + slots_needed(duration)):
        existing = occupant(grid, therapist_id, day, check_hour)
        if existing:
            conflicts.append(
                ScheduleConflict(
                    day=day,
                    hour=check_hour,
                    therapist_id=therapist_id,
                    existing_session_id=existing,
                    reason=f"Slot already booked at {check_hour}:00",
                )
            )
    return conflicts


def client_has_conflicting_session(
    sessions: Iterable[Session], client_id: str, day: int, hour: int, duration: int = SCHEDULE.default_duration
) -> bool:
    """Half-open [start, end) hour overlap against the client's live sessions that day."""
    start, end = hour, hour + slots_needed(duration)
    for s in sessions:
        if s.client_id != client_id or s.scheduled_day != day:
            continue
        if s.status not in ("scheduled", "in_progress"):
            continue
        s_start = s.scheduled_hour
        s_end = s_start + slots_needed(s.duration_minutes)
        if start < s_end and s_start < end:
            return True
    return False


def get_next_session(sessions: Iterable[Session], therapist_id: str, now: GameTime) -> Optional[Session]:
    upcoming = [
        s
        for s in sessions
        if s.therapist_id == therapist_id
        and s.status == "scheduled"
        and (s.scheduled_day, s.scheduled_hour) > (now.day, now.hour)
    ]
    return min(upcoming, key=lambda s: (s.scheduled_day, s.scheduled_hour), default=None)


def get_session_time_range(session: Session) -> str:
    end_hour, end_minute = divmod(session.scheduled_hour * 60 + session.duration_minutes, 60)
    return f"{format_clock(session.scheduled_hour)} - {format_clock(end_hour, end_minute)}"
