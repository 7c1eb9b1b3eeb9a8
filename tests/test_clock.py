"""
Practice clock advancement and formatting.
"""

from tycoon.clock import (
    advance_minutes,
    diff_minutes,
    format_clock,
    format_time,
    is_after,
    minutes_until_day_end,
    skip_to,
)
from tycoon.models import GameTime


class TestAdvance:
    """Minute advancement and rollover"""

    def test_minutes_within_hour(self):
        adv = advance_minutes(GameTime(1, 9, 10), 5)
        assert adv.current == GameTime(1, 9, 15)
        assert adv.minute_changed
        assert not adv.hour_changed

    def test_hour_boundary(self):
        adv = advance_minutes(GameTime(1, 9, 30), 45)
        assert adv.current == GameTime(1, 10, 15)
        assert adv.hour_changed
        assert not adv.day_ended

    def test_business_end_rolls_to_next_morning(self):
        """Test the last minute of the day lands on the next day's opening"""
        adv = advance_minutes(GameTime(1, 16, 59), 1)
        assert adv.current == GameTime(2, 8, 0)
        assert adv.day_ended
        assert adv.day_started

    def test_zero_minutes_is_noop(self):
        adv = advance_minutes(GameTime(3, 10, 0), 0)
        assert adv.current == adv.previous
        assert not adv.minute_changed


class TestComparisons:
    def test_skip_to_only_moves_forward(self):
        now = GameTime(2, 10, 0)
        assert skip_to(now, GameTime(2, 9, 0)).current == now
        adv = skip_to(now, GameTime(3, 8, 0))
        assert adv.current == GameTime(3, 8, 0)
        assert adv.day_ended

    def test_ordering_and_differences(self):
        assert is_after(GameTime(2, 8, 0), GameTime(1, 16, 59))
        assert not is_after(GameTime(1, 9, 0), GameTime(1, 9, 0))
        assert diff_minutes(GameTime(1, 9, 0), GameTime(1, 10, 30)) == 90
        assert minutes_until_day_end(GameTime(1, 16, 15)) == 45


class TestFormatting:
    def test_format_time(self):
        assert format_time(GameTime(3, 9, 5)) == "Day 3, 9:05 AM"
        assert format_time(GameTime(1, 13, 0)) == "Day 1, 1:00 PM"

    def test_noon_and_midnight(self):
        assert format_clock(12) == "12:00 PM"
        assert format_clock(0) == "12:00 AM"
