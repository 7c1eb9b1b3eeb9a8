"""
Discrete practice clock: minute advancement, day rollover and comparisons.
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import SCHEDULE
from .models import GameTime

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class TimeAdvance:
    previous: GameTime
    current: GameTime
    minute_changed: bool = False
    hour_changed: bool = False
    day_ended: bool = False
    day_started: bool = False


def create(day: int, hour: int, minute: int = 0) -> GameTime:
    return GameTime(day=day, hour=hour, minute=minute)


def advance_minutes(
    time: GameTime,
    minutes: int,
    business_start: int = SCHEDULE.business_start,
    business_end: int = SCHEDULE.business_end,
) -> TimeAdvance:
    """Move the clock forward; reaching business end rolls over to the next day's opening."""
    if minutes <= 0:
        return TimeAdvance(previous=time, current=time)

    day, hour, minute = time.day, time.hour, time.minute + minutes
    hour_changed = day_ended = False
    while minute >= 60:
        minute -= 60
        hour += 1
        hour_changed = True
        if hour >= business_end:
            day += 1
            hour = business_start
            minute = 0
            day_ended = True
    return TimeAdvance(
        previous=time,
        current=GameTime(day, hour, minute),
        minute_changed=True,
        hour_changed=hour_changed,
        day_ended=day_ended,
        day_started=day_ended,
    )


def skip_to(time: GameTime, target: GameTime) -> TimeAdvance:
    if not is_after(target, time):
        return TimeAdvance(previous=time, current=time)
    new_day = target.day != time.day
    return TimeAdvance(
        previous=time,
        current=target,
        minute_changed=True,
        hour_changed=new_day or target.hour != time.hour,
        day_ended=new_day,
        day_started=new_day,
    )


def is_after(a: GameTime, b: GameTime) -> bool:
    return (a.day, a.hour, a.minute) > (b.day, b.hour, b.minute)


def is_business_hours(time: GameTime) -> bool:
    return SCHEDULE.business_start <= time.hour < SCHEDULE.business_end


def minutes_until_day_end(time: GameTime) -> int:
    return max(0, SCHEDULE.business_end * 60 - (time.hour * 60 + time.minute))


def to_total_minutes(time: GameTime) -> int:
    return time.day * MINUTES_PER_DAY + time.hour * 60 + time.minute


def diff_minutes(start: GameTime, end: GameTime) -> int:
    return to_total_minutes(end) - to_total_minutes(start)


def format_clock(hour: int, minute: int = 0) -> str:
    period = "PM" if hour >= 12 else "AM"
    display = hour - 12 if hour > 12 else (12 if hour == 0 else hour)
    return f"{display}:{minute:02d} {period}"


def format_time(time: GameTime) -> str:
    return f"Day {time.day}, {format_clock(time.hour, time.minute)}"
