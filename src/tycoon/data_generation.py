"""
Synthetic therapists and client arrivals.

All draws come from a caller-supplied `Random`, so the same seed always
produces the same roster and the same stream of arrivals.
"""

from __future__ import annotations

from random import Random
from string import ascii_uppercase
from typing import Dict, List, Optional, Sequence

import numpy as np

from .config import (
    ARRIVALS,
    AVAILABILITY_DAY_CHANCE,
    AVAILABILITY_HOURS,
    CERTIFICATION_REQUIREMENTS,
    CERTIFICATIONS,
    CLIENTS,
    CONDITION_TYPES,
    FALLBACK_CERTIFICATIONS,
    INSURANCE_RATE_RANGE,
    MODALITIES,
    PRIVATE_PAY_RATE_RANGE,
    SPECIALIZATIONS,
    WEEKDAYS,
    SimulationConfig,
)
from .models import Client, Therapist, TherapistTraits

FIRST_NAMES = [
    "Sarah", "Michael", "Emily", "David", "Jessica", "James", "Amanda", "Robert",
    "Jennifer", "William", "Lisa", "John", "Karen", "Richard", "Nancy", "Thomas",
]
LAST_NAMES = [
    "Chen", "Williams", "Johnson", "Smith", "Brown", "Garcia", "Miller", "Davis",
    "Rodriguez", "Martinez", "Anderson", "Taylor", "Moore", "Jackson", "Lee", "Clark",
]

CREDENTIAL_RAMP_DAYS = 120
MAX_PRACTICE_LEVEL = 5


def create_player_therapist(display_name: str = "You", modality: str = "Integrative") -> Therapist:
    return Therapist(
        id="player",
        display_name=display_name,
        is_player=True,
        base_skill=40,
        specializations=["stress_management"],
        traits=TherapistTraits(warmth=7, analytical=5, creativity=5),
        primary_modality=modality,
    )


def generate_therapists(cfg: SimulationConfig) -> List[Therapist]:
    """The player plus `cfg.therapists - 1` hires drawn for a starting practice."""
    rng = Random(None if cfg.seed is None else cfg.seed + 999)
    therapists = [create_player_therapist()]
    for idx in range(1, cfg.therapists):
        therapists.append(_new_therapist_from_rng(f"therapist-{idx}", rng))
    return therapists


def _new_therapist_from_rng(therapist_id: str, rng: Random, practice_level: int = 1) -> Therapist:
    base_skill = rng.randint(30 + practice_level * 5, min(90, 50 + practice_level * 8))
    primary = rng.choice(MODALITIES)
    secondary = [rng.choice([m for m in MODALITIES if m != primary])] if rng.random() > 0.6 else []
    cert_count = int(rng.random() * (base_skill / 25)) + (1 if base_skill > 60 else 0)
    return Therapist(
        id=therapist_id,
        display_name=f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}",
        base_skill=base_skill,
        level=max(1, base_skill // 10),
        certifications=rng.sample(CERTIFICATIONS, min(cert_count, len(CERTIFICATIONS))),
        specializations=rng.sample(SPECIALIZATIONS, rng.randint(1, 3)),
        traits=TherapistTraits(rng.randint(3, 10), rng.randint(3, 10), rng.randint(3, 10)),
        primary_modality=primary,
        secondary_modalities=secondary,
    )


def credential_requirement_chance(current_day: int, practice_level: int = 1) -> float:
    # practice level weighs slightly more than elapsed time
    level_progress = np.clip((practice_level - 1) / max(1, MAX_PRACTICE_LEVEL - 1), 0, 1)
    day_progress = np.clip((current_day - 1) / CREDENTIAL_RAMP_DAYS, 0, 1)
    return float(np.clip(level_progress * 0.6 + day_progress * 0.4, 0, 1) * CLIENTS.credential_required_rate)


def generate_availability(rng: Random, preference: str) -> Dict[str, List[int]]:
    if preference == "any":
        hours = [h for block in AVAILABILITY_HOURS.values() for h in block]
    else:
        hours = AVAILABILITY_HOURS[preference]
    availability = {day: (list(hours) if rng.random() < AVAILABILITY_DAY_CHANCE else []) for day in WEEKDAYS}
    if not any(availability.values()):
        availability["monday"] = list(hours)
    return availability


def _required_certification(rng: Random, category: str, is_minor: bool, is_couple: bool) -> str:
    if is_minor:
        return "children_certified"
    if is_couple:
        return "couples_certified"
    return CERTIFICATION_REQUIREMENTS.get(category) or rng.choice(FALLBACK_CERTIFICATIONS)


def generate_client(
    rng: Random,
    current_day: int,
    client_id: str,
    available_insurers: Sequence[str] = (),
    session_rate: Optional[int] = None,
    practice_level: int = 1,
) -> Client:
    requires_credentials = rng.random() < credential_requirement_chance(current_day, practice_level)

    name = f"Client {rng.choice(ascii_uppercase)}{rng.choice(ascii_uppercase)}"
    category = rng.choice(list(CONDITION_TYPES))
    condition_type = rng.choice(CONDITION_TYPES[category])
    severity = rng.randint(CLIENTS.min_severity, CLIENTS.max_severity)
    sessions_required = int(
        np.clip(round(severity * 1.5 + rng.randint(2, 6)), CLIENTS.min_sessions_required, CLIENTS.max_sessions_required)
    )

    is_private_pay = rng.random() < CLIENTS.private_pay_chance or not available_insurers
    insurer = None if is_private_pay else rng.choice(list(available_insurers))
    if session_rate is None:
        low, high = PRIVATE_PAY_RATE_RANGE if is_private_pay else INSURANCE_RATE_RANGE
        session_rate = round(low + rng.random() * (high - low))

    prefers_virtual = rng.random() < CLIENTS.virtual_preference_chance
    frequency = rng.choice(["weekly", "biweekly", "weekly", "weekly"])
    preferred_time = rng.choice(["morning", "afternoon", "evening", "any"])
    availability = generate_availability(rng, preferred_time)

    is_minor = is_couple = False
    required = None
    if requires_credentials:
        is_minor = rng.random() < CLIENTS.minor_chance
        is_couple = not is_minor and category == "relationship" and rng.random() < CLIENTS.couple_chance
        required = _required_certification(rng, category, is_minor, is_couple)

    # sicker clients wait less
    max_wait = max(CLIENTS.min_max_wait_days, CLIENTS.default_max_wait_days - severity // 2)

    return Client(
        id=client_id,
        display_name=name,
        condition_category=category,
        severity=severity,
        sessions_required=sessions_required,
        condition_type=condition_type,
        satisfaction=CLIENTS.base_satisfaction,
        engagement=CLIENTS.base_engagement,
        is_private_pay=is_private_pay,
        session_rate=session_rate,
        insurance_provider=insurer,
        prefers_virtual=prefers_virtual,
        preferred_frequency=frequency,
        preferred_time=preferred_time,
        availability=availability,
        required_certification=required,
        is_minor=is_minor,
        is_couple=is_couple,
        arrival_day=current_day,
        max_wait_days=max_wait,
    )


def client_spawn_chance(current_day: int, reputation: float) -> float:
    day_bonus = min(ARRIVALS.max_day_bonus, current_day * ARRIVALS.day_bonus_per_day)
    return min(ARRIVALS.max_chance, ARRIVALS.base_chance + day_bonus + reputation * ARRIVALS.reputation_bonus)


def client_spawn_attempts(current_day: int) -> int:
    for first_day, attempts in ARRIVALS.attempt_tiers:
        if current_day >= first_day:
            return attempts
    return 1


def daily_arrival_count(rng: Random, current_day: int, reputation: float, clients_per_day: float) -> int:
    """Bernoulli arrivals; `clients_per_day` scales the number of attempts."""
    attempts = max(1, round(clients_per_day * client_spawn_attempts(current_day)))
    chance = client_spawn_chance(current_day, reputation)
    return sum(1 for _ in range(attempts) if rng.random() < chance)
