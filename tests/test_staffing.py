"""
Therapist energy, rest and session-type legality.
"""

from tycoon.constraints import can_book_session_type, get_room_availability
from tycoon.models import Building
from tycoon.staffing import (
    apply_idle_energy_recovery,
    forecast_energy,
    is_burnout_risk,
    is_within_work_hours,
    process_rest,
    reset_for_new_day,
)

from .conftest import build_session, build_therapist


class TestWorkHours:
    def test_default_hours_and_break(self, therapist):
        assert is_within_work_hours(therapist, 8)
        assert not is_within_work_hours(therapist, 12)
        assert not is_within_work_hours(therapist, 17)


class TestEnergy:
    """Forecasts and idle recovery"""

    def test_forecast_flags_burnout(self):
        """Test two remaining sessions drain a tired therapist below the burnout line"""
        tired = build_therapist(energy=40)
        sessions = [build_session("s1", hour=9), build_session("s2", hour=10), build_session("s3", day=6)]
        forecast = forecast_energy(tired, sessions, day=5)
        assert forecast.remaining_sessions == 2
        assert forecast.predicted_end_energy == 10
        assert forecast.will_burn_out

    def test_idle_recovery_banks_fractions(self):
        """Test short idle periods accumulate into whole energy points"""
        t = build_therapist(energy=50)
        assert apply_idle_energy_recovery(t, 3) == 0
        assert t.energy_remainder == 30
        assert apply_idle_energy_recovery(t, 3) == 1
        assert t.energy == 51
        assert t.energy_remainder == 0

    def test_idle_recovery_at_cap_clears_remainder(self):
        t = build_therapist(energy=100, energy_remainder=45)
        assert apply_idle_energy_recovery(t, 10) == 0
        assert t.energy_remainder == 0

    def test_burnout_risk(self):
        assert is_burnout_risk(build_therapist(energy=20))
        assert not is_burnout_risk(build_therapist(energy=20, status="burned_out"))
        assert not is_burnout_risk(build_therapist(energy=60))


class TestRest:
    """Overnight rest and burnout recovery"""

    def test_burnout_takes_two_rests(self):
        t = build_therapist(energy=5, status="burned_out")
        first = process_rest(t, 16)
        assert not first.recovered_from_burnout
        assert t.burnout_recovery_progress == 50

        second = process_rest(t, 16)
        assert second.recovered_from_burnout
        assert t.status == "available"
        assert t.energy == t.max_energy

    def test_break_ends_once_rested(self):
        t = build_therapist(energy=30, status="on_break")
        result = process_rest(t, 16)
        assert result.energy_recovered == 70
        assert t.status == "available"

    def test_reset_skips_burned_out(self):
        fresh = build_therapist("t1", energy=20)
        burned = build_therapist("t2", energy=5, status="burned_out")
        refreshed = reset_for_new_day([fresh, burned])
        assert refreshed == [fresh]
        assert fresh.energy == 100
        assert burned.energy == 5


class TestSessionTypeLegality:
    """Rooms and telehealth"""

    def test_rooms_ignore_virtual_and_closed_sessions(self):
        sessions = [
            build_session("s1", hour=10),
            build_session("s2", hour=10, is_virtual=True),
            build_session("s3", hour=10, status="cancelled"),
            build_session("s4", hour=10, status="completed"),
        ]
        rooms = get_room_availability(Building(rooms=2), sessions, 5, 10)
        assert rooms.rooms_in_use == 1
        assert rooms.can_book_in_person

    def test_long_session_holds_room_for_its_whole_span(self, building):
        sessions = [build_session(hour=9, duration=80)]
        result = can_book_session_type(building, sessions, True, False, 5, 10, 50)
        assert not result.valid
        assert result.reason == "No rooms available at hour 10"

    def test_virtual_needs_telehealth(self, building):
        locked = can_book_session_type(building, [], False, True, 5, 10, 50)
        assert locked.reason == "Telehealth is not unlocked"
        assert can_book_session_type(building, [build_session(hour=10)], True, True, 5, 10, 50).valid
