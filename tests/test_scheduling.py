"""
Schedule grid maintenance and slot search.
"""

from tycoon.models import GameTime, WorkSchedule
from tycoon.scheduling import (
    add_to_schedule,
    build_schedule_from_sessions,
    calculate_energy_cost,
    calculate_session_payment,
    can_schedule_more_today,
    client_has_conflicting_session,
    count_sessions_for_day,
    day_of_week,
    find_matching_slots,
    get_available_slots_for_day,
    get_conflicts,
    get_next_session,
    get_session_time_range,
    is_slot_available,
    occupant,
    remove_from_schedule,
    validate_not_in_past,
)

from .conftest import build_client, build_session, build_therapist


class TestScheduleGrid:
    """Grid edits and rebuilds"""

    def test_add_then_remove_restores_empty_slot(self):
        """Test removing a session frees every slot it occupied"""
        session = build_session(duration=80)
        grid = add_to_schedule({}, session)
        assert occupant(grid, "t1", 5, 10) == "s1"
        assert occupant(grid, "t1", 5, 11) == "s1"

        grid = remove_from_schedule(grid, session)
        assert occupant(grid, "t1", 5, 10) is None
        assert occupant(grid, "t1", 5, 11) is None

    def test_add_does_not_mutate_input_grid(self):
        """Test grid edits return a new grid"""
        before = {}
        updated = add_to_schedule(before, build_session())
        assert before == {}
        assert updated != before

    def test_remove_leaves_other_occupant_untouched(self):
        """Test a stale session cannot clear a slot now held by another session"""
        current = build_session("s2")
        grid = add_to_schedule({}, current)
        grid = remove_from_schedule(grid, build_session("s1"))
        assert occupant(grid, "t1", 5, 10) == "s2"

    def test_build_is_idempotent_and_ignores_cancelled(self):
        """Test rebuilding twice gives the same grid and cancelled sessions never occupy slots"""
        sessions = [
            build_session("s1", hour=9),
            build_session("s2", hour=10, status="completed"),
            build_session("s3", hour=11, status="cancelled"),
            build_session("s4", hour=13, status="in_progress"),
        ]
        first = build_schedule_from_sessions(sessions)
        assert first == build_schedule_from_sessions(sessions)
        assert occupant(first, "t1", 5, 9) == "s1"
        assert occupant(first, "t1", 5, 10) == "s2"
        assert occupant(first, "t1", 5, 11) is None
        assert occupant(first, "t1", 5, 13) == "s4"

    def test_incremental_adds_match_rebuild(self):
        """Test the grid stays a pure function of the session list"""
        sessions = [build_session("s1", hour=9), build_session("s2", therapist_id="t2", hour=9)]
        grid = {}
        for s in sessions:
            grid = add_to_schedule(grid, s)
        assert grid == build_schedule_from_sessions(sessions)


class TestSlotAvailability:
    """Work hours, breaks and spans"""

    def test_lunch_break_is_unavailable(self, therapist):
        """Test the default break hour blocks booking for a therapist"""
        assert not is_slot_available({}, "t1", 5, 12, 50, therapist)
        assert is_slot_available({}, "t1", 5, 12, 50)

    def test_span_past_work_end_is_rejected(self, therapist):
        """Test a session may not run past the end of the working day"""
        assert is_slot_available({}, "t1", 5, 16, 50, therapist)
        assert not is_slot_available({}, "t1", 5, 16, 80, therapist)

    def test_custom_work_schedule(self):
        """Test per-therapist hours replace business hours"""
        night_owl = build_therapist(work_schedule=WorkSchedule(10, 14, []))
        assert get_available_slots_for_day({}, "t1", 5, 50, night_owl) == [10, 11, 12, 13]

    def test_conflict_reason_names_the_hour(self):
        """Test conflicts report the occupied hour"""
        grid = add_to_schedule({}, build_session(hour=10))
        conflicts = get_conflicts(grid, "t1", 5, 9, 80)
        assert [c.reason for c in conflicts] == ["Slot already booked at 10:00"]


class TestPastValidation:
    """Bookings in the past"""

    def test_previous_day(self):
        result = validate_not_in_past(GameTime(3, 10, 0), 2, 15)
        assert not result.valid
        assert result.reason == "Cannot schedule for a previous day"

    def test_past_hour(self):
        result = validate_not_in_past(GameTime(3, 10, 0), 3, 9)
        assert result.reason == "Cannot schedule for a past hour"

    def test_hour_in_progress(self):
        result = validate_not_in_past(GameTime(3, 10, 15), 3, 10)
        assert result.reason == "Cannot schedule for an hour already in progress"

    def test_top_of_current_hour_is_allowed(self):
        assert validate_not_in_past(GameTime(3, 10, 0), 3, 10).valid


class TestMatchingSlots:
    """Preference-aware slot search"""

    def test_preferred_slots_come_first(self, therapist):
        """Test slots inside client availability and time preference sort first"""
        client = build_client(availability={"monday": [9, 10]}, preferred_time="morning")
        slots = find_matching_slots({}, therapist, client, start_day=1, days_to_check=2)
        assert [(s.day, s.hour, s.is_preferred) for s in slots[:3]] == [(1, 9, True), (1, 10, True), (1, 8, False)]
        assert len(slots) == 16

    def test_day_of_week_cycles_through_weekdays(self):
        assert day_of_week(1) == "monday"
        assert day_of_week(5) == "friday"
        assert day_of_week(6) == "monday"


class TestSessionAccounting:
    """Payment, energy and per-day counts"""

    def test_payment_multipliers(self):
        assert calculate_session_payment(150, 50) == 150
        assert calculate_session_payment(150, 80) == 225
        assert calculate_session_payment(150, 180) == 450

    def test_energy_cost_level_discount_has_floor(self):
        assert calculate_energy_cost(180, 10) == 45
        assert calculate_energy_cost(50, 80) == calculate_energy_cost(50, 50)

    def test_daily_cap(self):
        sessions = [build_session(f"s{h}", client_id=f"c{h}", hour=h) for h in range(8, 16)]
        grid = build_schedule_from_sessions(sessions)
        assert count_sessions_for_day(grid, sessions, "t1", 5) == 8
        assert not can_schedule_more_today(grid, sessions, "t1", 5)
        assert can_schedule_more_today(grid, sessions, "t1", 6)

    def test_client_conflict_uses_half_open_spans(self):
        sessions = [build_session(hour=10, duration=80)]
        assert client_has_conflicting_session(sessions, "c1", 5, 11)
        assert not client_has_conflicting_session(sessions, "c1", 5, 12)
        assert not client_has_conflicting_session(sessions, "c2", 5, 10)

    def test_next_session_and_time_range(self):
        sessions = [build_session("s1", hour=14), build_session("s2", hour=10)]
        nxt = get_next_session(sessions, "t1", GameTime(5, 9, 0))
        assert nxt.id == "s2"
        assert get_session_time_range(nxt) == "10:00 AM - 10:50 AM"
        assert get_session_time_range(build_session(hour=12, duration=80)) == "12:00 PM - 1:20 PM"
