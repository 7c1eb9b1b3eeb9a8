"""
Recurring booking planner.
"""

from tycoon.models import GameTime
from tycoon.recurring import PlannedSlot, pick_closest_hour, plan_recurring_bookings
from tycoon.scheduling import build_schedule_from_sessions

from .conftest import build_client, build_session


def plan(sessions, therapist, client, building, **kwargs):
    params = dict(
        now=GameTime(1, 8, 0),
        start_day=10,
        start_hour=9,
        duration=50,
        is_virtual=False,
        count=3,
        interval_days=7,
    )
    params.update(kwargs)
    return plan_recurring_bookings(
        build_schedule_from_sessions(sessions),
        sessions,
        therapist,
        client,
        building,
        True,
        **params,
    )


class TestRecurringPlan:
    """Weekly series planning"""

    def test_taken_anchor_fails_only_first_occurrence(self, therapist, client, building):
        """Test the first occurrence never drifts off its anchor hour"""
        other = build_session("other", client_id="c2", day=10, hour=9)
        result = plan([other], therapist, client, building)

        assert [f.index for f in result.failures] == [0]
        assert result.failures[0].target_day == 10
        assert result.failures[0].reason == "Therapist slot is not available"
        assert result.planned == [PlannedSlot(17, 9), PlannedSlot(24, 9)]

    def test_later_occurrence_takes_closest_open_hour(self, therapist, client, building):
        other = build_session("other", client_id="c2", day=17, hour=9)
        result = plan([other], therapist, client, building)
        assert result.planned == [PlannedSlot(10, 9), PlannedSlot(17, 8), PlannedSlot(24, 9)]
        assert result.failures == []

    def test_daily_cadence_reserves_without_touching_inputs(self, therapist, client, building):
        """Test each occurrence lands on its own day and the caller's grid and sessions stay untouched"""
        sessions = [build_session("other", client_id="c2", day=11, hour=9)]
        grid = build_schedule_from_sessions(sessions)
        result = plan_recurring_bookings(
            grid, sessions, therapist, client, building, True, GameTime(1, 8, 0), 10, 9, 50, False, 3, 1
        )
        assert result.planned == [PlannedSlot(10, 9), PlannedSlot(11, 8), PlannedSlot(12, 9)]
        assert len(sessions) == 1
        assert grid == build_schedule_from_sessions(sessions)

    def test_invalid_count_and_interval(self, therapist, client, building):
        assert plan([], therapist, client, building, count=0).failures[0].reason == "Count must be at least 1"
        for interval in (0, -1):
            rejected = plan([], therapist, client, building, interval_days=interval)
            assert [(f.index, f.reason) for f in rejected.failures] == [(0, "Interval must be at least 1")]
            assert rejected.planned == []

    def test_past_anchor_is_reported(self, therapist, building):
        client = build_client()
        result = plan([], therapist, client, building, now=GameTime(10, 11, 0), count=1)
        assert result.failures[0].reason == "Cannot schedule for a past hour"


class TestClosestHour:
    def test_ties_prefer_earlier_hour(self):
        assert pick_closest_hour([8, 10, 11], 9) == 8
        assert pick_closest_hour([13, 16], 15) == 16
