"""
Shared factories for practice entities.
"""

from typing import Optional

import pytest

from tycoon.config import WEEKDAYS
from tycoon.models import Building, Client, GameTime, Session, Therapist, TherapistTraits
from tycoon.state import PracticeState

ALL_WEEK = {day: list(range(8, 17)) for day in WEEKDAYS}


def build_therapist(therapist_id: str = "t1", **overrides) -> Therapist:
    fields = dict(
        id=therapist_id,
        display_name=f"Therapist {therapist_id}",
        base_skill=60,
        traits=TherapistTraits(warmth=6, analytical=5, creativity=5),
    )
    fields.update(overrides)
    return Therapist(**fields)


def build_client(client_id: str = "c1", **overrides) -> Client:
    fields = dict(
        id=client_id,
        display_name=f"Client {client_id}",
        condition_category="anxiety",
        severity=4,
        sessions_required=8,
        availability={day: list(hours) for day, hours in ALL_WEEK.items()},
    )
    fields.update(overrides)
    return Client(**fields)


def build_session(
    session_id: str = "s1",
    therapist_id: str = "t1",
    client_id: str = "c1",
    day: int = 5,
    hour: int = 10,
    status: str = "scheduled",
    duration: int = 50,
    completed_day: Optional[int] = None,
    **overrides,
) -> Session:
    session = Session(
        id=session_id,
        therapist_id=therapist_id,
        client_id=client_id,
        scheduled_day=day,
        scheduled_hour=hour,
        duration_minutes=duration,
        status=status,
        energy_cost=15,
        payment=150,
        **overrides,
    )
    if completed_day is not None:
        session.completed_at = GameTime(completed_day, hour + 1, 0)
    return session


@pytest.fixture
def therapist():
    return build_therapist()


@pytest.fixture
def client():
    return build_client()


@pytest.fixture
def building():
    return Building(rooms=1)


@pytest.fixture
def practice():
    """One therapist, two anxiety clients, a single-room office on day 1 at 8:00."""
    state = PracticeState(
        time=GameTime(1, 8, 0),
        building=Building(rooms=1),
        telehealth_unlocked=True,
        balance=1000,
        reputation=40,
    )
    state.add_therapist(build_therapist("t1"))
    state.add_client(build_client("c1"))
    state.add_client(build_client("c2"))
    return state
