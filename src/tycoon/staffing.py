"""
Therapist work hours, energy forecasting and rest/recovery.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .config import THERAPISTS
from .models import Session, Therapist, WorkSchedule

logger = logging.getLogger(__name__)


@dataclass
class EnergyForecast:
    therapist_id: str
    current_energy: float
    predicted_end_energy: float
    remaining_sessions: int
    will_burn_out: bool


@dataclass
class RestResult:
    energy_recovered: float
    recovered_from_burnout: bool


def default_work_schedule() -> WorkSchedule:
    return WorkSchedule(
        work_start_hour=THERAPISTS.work_start_hour,
        work_end_hour=THERAPISTS.work_end_hour,
        break_hours=list(THERAPISTS.break_hours),
    )


def get_work_schedule(therapist: Therapist) -> WorkSchedule:
    return therapist.work_schedule or default_work_schedule()


def is_within_work_hours(therapist: Therapist, hour: int) -> bool:
    ws = get_work_schedule(therapist)
    return ws.work_start_hour <= hour < ws.work_end_hour and hour not in ws.break_hours


def is_burnout_risk(therapist: Therapist) -> bool:
    return therapist.energy <= THERAPISTS.burnout_threshold and therapist.status != "burned_out"


def forecast_energy(
    therapist: Therapist, sessions: Iterable[Session], day: int, from_hour: Optional[int] = None
) -> EnergyForecast:
    """Project end-of-day energy from the therapist's remaining scheduled sessions."""
    remaining = [
        s
        for s in sessions
        if s.therapist_id == therapist.id
        and s.scheduled_day == day
        and s.status == "scheduled"
        and (from_hour is None or s.scheduled_hour >= from_hour)
    ]
    predicted = therapist.energy - sum(s.energy_cost for s in remaining)
    return EnergyForecast(
        therapist_id=therapist.id,
        current_energy=therapist.energy,
        predicted_end_energy=predicted,
        remaining_sessions=len(remaining),
        will_burn_out=predicted <= THERAPISTS.burnout_threshold,
    )


def apply_idle_energy_recovery(therapist: Therapist, idle_minutes: int, multiplier: float = 1.0) -> int:
    """Recover energy for idle minutes, banking fractions as sixtieths of a point."""
    if idle_minutes <= 0:
        return 0
    if therapist.energy >= therapist.max_energy:
        therapist.energy_remainder = 0
        return 0

    units = int(idle_minutes * THERAPISTS.energy_recovery_per_hour * multiplier) + therapist.energy_remainder
    recovered, remainder = divmod(units, 60)
    if recovered <= 0:
        therapist.energy_remainder = remainder
        return 0

    new_energy = min(therapist.max_energy, therapist.energy + recovered)
    gained = new_energy - therapist.energy
    therapist.energy = new_energy
    # capped energy does not bank leftover recovery
    therapist.energy_remainder = 0 if new_energy >= therapist.max_energy else remainder
    return gained


def process_rest(therapist: Therapist, hours: float) -> RestResult:
    if therapist.status == "burned_out":
        progress = therapist.burnout_recovery_progress + THERAPISTS.burnout_recovery_per_day
        if progress >= 100:
            gained = therapist.max_energy - therapist.energy
            therapist.burnout_recovery_progress = 0
            therapist.status = "available"
            therapist.energy = therapist.max_energy
            logger.info("Therapist %s recovered from burnout", therapist.id)
            return RestResult(energy_recovered=gained, recovered_from_burnout=True)
        therapist.burnout_recovery_progress = progress
        return RestResult(energy_recovered=0, recovered_from_burnout=False)

    new_energy = min(therapist.max_energy, therapist.energy + hours * THERAPISTS.energy_recovery_per_hour)
    gained = new_energy - therapist.energy
    therapist.energy = new_energy
    if therapist.status == "on_break" and new_energy >= THERAPISTS.break_return_energy:
        therapist.status = "available"
    return RestResult(energy_recovered=gained, recovered_from_burnout=False)


def reset_for_new_day(therapists: Iterable[Therapist]) -> List[Therapist]:
    refreshed: List[Therapist] = []
    for t in therapists:
        if t.status == "burned_out":
            continue
        t.energy = t.max_energy
        t.energy_remainder = 0
        refreshed.append(t)
    return refreshed
