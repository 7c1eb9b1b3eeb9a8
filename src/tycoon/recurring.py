"""
Recurring booking planner: greedily reserve a cadence of future slots.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from .constraints import can_book_session_type
from .models import Building, Client, GameTime, Session, Therapist
from .scheduling import (
    ScheduleGrid,
    add_to_schedule,
    can_schedule_more_today,
    client_has_conflicting_session,
    find_matching_slots,
    is_slot_available,
    validate_not_in_past,
)

logger = logging.getLogger(__name__)


@dataclass
class PlannedSlot:
    day: int
    hour: int


@dataclass
class RecurringFailure:
    index: int
    target_day: int
    preferred_hour: int
    reason: str


@dataclass
class RecurringPlan:
    planned: List[PlannedSlot] = field(default_factory=list)
    failures: List[RecurringFailure] = field(default_factory=list)


def pick_closest_hour(options: Sequence[int], preferred_hour: int) -> int:
    # ties go to the earlier hour
    return min(options, key=lambda h: (abs(h - preferred_hour), h))


def plan_recurring_bookings(
    grid: ScheduleGrid,
    sessions: Sequence[Session],
    therapist: Therapist,
    client: Client,
    building: Building,
    telehealth_unlocked: bool,
    now: GameTime,
    start_day: int,
    start_hour: int,
    duration: int,
    is_virtual: bool,
    count: int,
    interval_days: int,
) -> RecurringPlan:
    """Plan `count` occurrences every `interval_days` starting at (start_day, start_hour).

    Occurrence 0 is pinned to the exact anchor slot. Later occurrences keep the
    anchor hour when possible and otherwise take the closest open hour. Each
    success is reserved in working copies so later occurrences see it, and
    failures are recorded per occurrence without aborting the series.
    """
    if count is None or count <= 0:
        return RecurringPlan(failures=[RecurringFailure(0, start_day, start_hour, "Count must be at least 1")])
    if interval_days is None or interval_days <= 0:
        return RecurringPlan(failures=[RecurringFailure(0, start_day, start_hour, "Interval must be at least 1")])

    working_grid = grid
    working_sessions: List[Session] = list(sessions)
    plan = RecurringPlan()

    for i in range(count):
        target_day = start_day + i * interval_days
        candidates: List[int] = []
        for slot in find_matching_slots(working_grid, therapist, client, target_day, 1, duration):
            if slot.day == target_day and slot.hour not in candidates:
                candidates.append(slot.hour)

        if not candidates:
            plan.failures.append(
                RecurringFailure(i, target_day, start_hour, "No therapist-available slots on this day")
            )
            continue

        if i == 0:
            ordered = [start_hour]
        elif start_hour in candidates:
            ordered = [start_hour] + [h for h in candidates if h != start_hour]
        else:
            closest = pick_closest_hour(candidates, start_hour)
            ordered = [closest] + [h for h in candidates if h != closest]

        booked = False
        last_reason = "No valid slot found"
        for hour in ordered:
            when = validate_not_in_past(now, target_day, hour)
            if not when.valid:
                last_reason = when.reason
                continue
            if not is_slot_available(working_grid, therapist.id, target_day, hour, duration, therapist):
                last_reason = "Therapist slot is not available"
                continue
            if client_has_conflicting_session(working_sessions, client.id, target_day, hour, duration):
                last_reason = "Client has a conflicting session"
                continue
            if not can_schedule_more_today(working_grid, working_sessions, therapist.id, target_day):
                last_reason = "Therapist has reached daily session limit"
                continue
            legality = can_book_session_type(
                building, working_sessions, telehealth_unlocked, is_virtual, target_day, hour, duration
            )
            if not legality.valid:
                last_reason = legality.reason
                continue

            stub = Session(
                id=f"planned-{client.id}-{therapist.id}-{target_day}-{hour}-{i}",
                therapist_id=therapist.id,
                client_id=client.id,
                scheduled_day=target_day,
                scheduled_hour=hour,
                duration_minutes=duration,
                is_virtual=is_virtual,
            )
            working_sessions.append(stub)
            working_grid = add_to_schedule(working_grid, stub)
            plan.planned.append(PlannedSlot(day=target_day, hour=hour))
            booked = True
            break

        if not booked:
            plan.failures.append(RecurringFailure(i, target_day, start_hour, last_reason))

    logger.debug(
        "Recurring plan for client %s: %d planned, %d failed", client.id, len(plan.planned), len(plan.failures)
    )
    return plan
