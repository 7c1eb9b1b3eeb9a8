"""
Session state machine: scheduled -> in_progress -> completed / cancelled.

Quality starts from a 0.5 baseline plus additive, named modifiers so every
session can explain its score. Treatment progress on completion is
non-linear: regression, breakthrough and plateau are checked in that order
against a single seeded stream before falling back to normal progress.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from random import Random
from typing import List, Optional

from .clients import clamp, is_treatment_complete
from .config import SESSION, SESSION_SPECIALIZATION_MAP, THERAPISTS
from .decisions import select_decision_event
from .errors import InvalidChoiceError, InvalidTransitionError
from .models import (
    Client,
    DecisionEvent,
    DecisionRecord,
    GameTime,
    QualityModifier,
    Session,
    Therapist,
)

logger = logging.getLogger(__name__)

PROGRESS_DESCRIPTIONS = {
    "regression": "Processing difficult material caused a temporary setback",
    "breakthrough": "A major breakthrough! Client made exceptional progress",
    "plateau": "Client is struggling to engage - progress has plateaued",
    "normal": "Steady progress in treatment",
}


@dataclass
class TreatmentProgress:
    progress_gained: float
    progress_type: str  # normal / breakthrough / plateau / regression
    description: str


@dataclass
class ProgressResult:
    progress_delta: float
    decision_event: Optional[DecisionEvent] = None


@dataclass
class CompletionResult:
    session: Session
    xp_gained: int
    leveled_up: bool
    new_level: int
    satisfaction_change: int
    treatment: TreatmentProgress
    payment: int
    treatment_completed: bool
    burned_out: bool


def should_start_session(session: Session, now: GameTime) -> bool:
    return (
        session.status == "scheduled"
        and session.scheduled_day == now.day
        and session.scheduled_hour == now.hour
        and now.minute == 0
    )


def specialization_matches_condition(specialization: str, condition_category: str) -> bool:
    return specialization in SESSION_SPECIALIZATION_MAP.get(condition_category, [])


def initial_quality_modifiers(therapist: Therapist, client: Client, session: Session) -> List[QualityModifier]:
    mods = [
        QualityModifier(
            "therapist_skill", therapist.base_skill / 100 * SESSION.skill_weight, f"Therapist skill ({therapist.base_skill})"
        )
    ]
    energy_pct = therapist.energy / therapist.max_energy
    mods.append(
        QualityModifier(
            "therapist_energy",
            (energy_pct - 0.5) * SESSION.energy_weight,
            "Well-rested therapist" if energy_pct >= 0.5 else "Tired therapist",
        )
    )
    mods.append(
        QualityModifier(
            "client_engagement",
            client.engagement / 100 * SESSION.engagement_weight,
            f"Client engagement ({client.engagement:.0f}%)",
        )
    )
    if any(specialization_matches_condition(s, client.condition_category) for s in therapist.specializations):
        mods.append(
            QualityModifier(
                "specialization_match", SESSION.specialization_bonus, "Therapist specialization matches condition"
            )
        )
    if client.required_certification and client.required_certification in therapist.certifications:
        mods.append(QualityModifier("certification_match", SESSION.certification_bonus, "Required certification held"))
    if session.is_virtual and not client.prefers_virtual:
        mods.append(
            QualityModifier("virtual_mismatch", -SESSION.virtual_mismatch_penalty, "Client prefers in-person sessions")
        )
    if client.severity >= SESSION.high_severity_threshold:
        penalty = -SESSION.high_severity_penalty * (client.severity - 6) / 4
        mods.append(QualityModifier("high_severity", penalty, f"High severity case ({client.severity}/10)"))
    return mods


def base_quality(modifiers: List[QualityModifier]) -> float:
    return clamp(SESSION.base_quality + sum(m.value for m in modifiers), 0.0, 1.0)


def start_session(session: Session, therapist: Therapist, client: Client, now: Optional[GameTime] = None) -> Session:
    if session.status != "scheduled":
        raise InvalidTransitionError(f"Cannot start a {session.status} session")
    session.quality_modifiers = initial_quality_modifiers(therapist, client, session)
    session.quality = base_quality(session.quality_modifiers)
    session.status = "in_progress"
    session.progress = 0.0
    session.started_at = now
    therapist.status = "in_session"
    client.status = "in_treatment"
    logger.info("Session %s started (quality %.2f)", session.id, session.quality)
    return session


def progress_session(
    session: Session,
    delta_minutes: float,
    client: Optional[Client] = None,
    seed: Optional[int] = None,
) -> ProgressResult:
    """Advance fractional progress and maybe surface a decision event.

    A decision can only fire once the session is past the minimum progress
    threshold and before any decision has been made in it.
    """
    if session.status != "in_progress":
        return ProgressResult(progress_delta=0.0)

    rng = Random(seed)
    delta = delta_minutes / session.duration_minutes
    previous = session.progress
    # rounded so whole-minute ticks land exactly on 1.0
    session.progress = min(1.0, round(previous + delta, 9))

    event = None
    if (
        previous >= SESSION.min_progress_for_event
        and not session.decisions_made
        and rng.random() < SESSION.decision_event_chance * delta * 10
    ):
        if client is not None:
            event = select_decision_event(rng, client.severity, client.condition_category)
        else:
            event = select_decision_event(rng)
    return ProgressResult(progress_delta=delta, decision_event=event)


def apply_decision(session: Session, therapist: Therapist, event: DecisionEvent, choice_index: int) -> DecisionRecord:
    if not 0 <= choice_index < len(event.choices):
        raise InvalidChoiceError(f"Choice {choice_index} is out of range for event {event.id}")
    choice = event.choices[choice_index]

    if choice.quality:
        session.quality = clamp(session.quality + choice.quality, 0.0, 1.0)
        session.quality_modifiers.append(QualityModifier(f"decision_{event.id}", choice.quality, choice.text[:50]))
    if choice.energy:
        therapist.energy = clamp(therapist.energy + choice.energy, 0.0, therapist.max_energy)

    record = DecisionRecord(
        event_id=event.id,
        choice_index=choice_index,
        quality_effect=choice.quality,
        energy_effect=choice.energy,
        satisfaction_effect=choice.satisfaction,
    )
    session.decisions_made.append(record)
    return record


def is_session_complete(session: Session) -> bool:
    return session.status == "in_progress" and session.progress >= 1


def had_crisis_decision(session: Session) -> bool:
    return any("crisis" in d.event_id or "trauma" in d.event_id for d in session.decisions_made)


def calculate_treatment_progress(
    quality: float, satisfaction: float, had_crisis: bool, seed: Optional[int] = None
) -> TreatmentProgress:
    rng = Random(seed)
    base = SESSION.progress_per_quality * quality

    if had_crisis and rng.random() < SESSION.regression_chance:
        kind, gained = "regression", max(0.0, base - SESSION.regression_amount)
    elif quality >= SESSION.breakthrough_quality_threshold and rng.random() < SESSION.breakthrough_chance:
        kind, gained = "breakthrough", base * SESSION.breakthrough_multiplier
    elif satisfaction < SESSION.plateau_satisfaction_threshold and rng.random() < SESSION.plateau_chance:
        kind, gained = "plateau", base * SESSION.plateau_multiplier
    else:
        kind, gained = "normal", base
    return TreatmentProgress(progress_gained=gained, progress_type=kind, description=PROGRESS_DESCRIPTIONS[kind])


def calculate_level(xp: int) -> int:
    return math.floor(math.sqrt(xp / 10)) + 1


def xp_for_level(level: int) -> int:
    return (level - 1) ** 2 * 10


def calculate_session_xp(quality: float, duration_minutes: int) -> int:
    multiplier = SESSION.high_quality_xp_multiplier if quality >= SESSION.high_quality_threshold else 1
    return round(SESSION.base_xp * (duration_minutes / 50) * multiplier * (1 + quality))


def complete_session(
    session: Session,
    therapist: Therapist,
    client: Client,
    now: GameTime,
    seed: Optional[int] = None,
) -> CompletionResult:
    if session.status != "in_progress":
        raise InvalidTransitionError(f"Cannot complete a {session.status} session")

    quality = clamp(session.quality, 0.0, 1.0)
    xp = calculate_session_xp(quality, session.duration_minutes)
    satisfaction_change = round(SESSION.base_satisfaction_change * (quality * 2 - 0.5))
    treatment = calculate_treatment_progress(quality, client.satisfaction, had_crisis_decision(session), seed)

    session.status = "completed"
    session.progress = 1.0
    session.quality = quality
    session.xp_gained = xp
    session.completed_at = now

    therapist.xp += xp
    new_level = calculate_level(therapist.xp)
    leveled_up = new_level > therapist.level
    therapist.level = new_level
    therapist.energy = max(0.0, therapist.energy - session.energy_cost)
    therapist.energy_remainder = 0
    if therapist.status == "in_session":
        therapist.status = "available"
    burned_out = therapist.energy <= THERAPISTS.forced_break_threshold
    if burned_out:
        therapist.status = "burned_out"
        therapist.burnout_recovery_progress = 0
        logger.info("Therapist %s burned out", therapist.id)

    client.satisfaction = clamp(client.satisfaction + satisfaction_change)
    client.treatment_progress = clamp(client.treatment_progress + treatment.progress_gained, 0.0, 1.0)
    client.sessions_completed += 1
    done = is_treatment_complete(client)
    client.status = "completed" if done else "in_treatment"

    logger.info(
        "Session %s completed: quality %.2f, %s progress, +%d XP", session.id, quality, treatment.progress_type, xp
    )
    return CompletionResult(
        session=session,
        xp_gained=xp,
        leveled_up=leveled_up,
        new_level=new_level,
        satisfaction_change=satisfaction_change,
        treatment=treatment,
        payment=session.payment,
        treatment_completed=done,
        burned_out=burned_out,
    )


def cancel_session(session: Session, therapist: Therapist, client: Client, reason: str) -> Session:
    if session.status in ("completed", "cancelled"):
        raise InvalidTransitionError(f"Cannot cancel a {session.status} session")
    session.status = "cancelled"
    session.quality_modifiers.append(QualityModifier("cancelled", 0.0, reason))
    if therapist.status == "in_session":
        therapist.status = "available"
    client.satisfaction = clamp(client.satisfaction - SESSION.cancellation_satisfaction_penalty)
    logger.info("Session %s cancelled: %s", session.id, reason)
    return session


def quality_rating(quality: float) -> str:
    if quality >= 0.9:
        return "Excellent"
    if quality >= 0.75:
        return "Good"
    if quality >= 0.5:
        return "Fair"
    if quality >= 0.25:
        return "Poor"
    return "Very Poor"
