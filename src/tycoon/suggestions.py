"""
Booking suggestion engine: rank (client, therapist, slot) triples by urgency and fit.

Suggestions are recomputed on every query and never stored.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .allocation import calculate_match_score, can_therapist_serve_client, get_modality_match_bonus
from .clients import FollowUpInfo, get_active_clients_by_follow_up_urgency, get_follow_up_info
from .config import FREQUENCY_DAYS, MODALITY_CONFIG, SCHEDULE, SUGGESTION_SPECIALIZATION_MAP, SUGGESTIONS
from .constraints import get_room_availability
from .models import Building, Client, GameTime, Session, Therapist
from .scheduling import (
    ScheduleGrid,
    can_schedule_more_today,
    client_has_conflicting_session,
    find_matching_slots,
    validate_not_in_past,
)
from .staffing import forecast_energy

URGENCY_WEIGHTS = dict(SUGGESTIONS.urgency_weights)
QUALITY_WEIGHTS = dict(SUGGESTIONS.quality_weights)


@dataclass
class MatchBreakdown:
    quality: str  # excellent / good / fair
    match_score: int
    modality_bonus: float
    is_continuing_therapist: bool
    has_specialization: bool
    has_good_energy: bool
    match_reasons: List[str] = field(default_factory=list)

    @property
    def has_modality_match(self) -> bool:
        return self.modality_bonus > 0


@dataclass
class BookingSuggestion:
    id: str
    client_id: str
    therapist_id: str
    day: int
    hour: int
    duration: int
    is_virtual: bool
    urgency: str  # overdue / due_soon / normal
    reason: str  # overdue_followup / due_soon / therapist_continuity / good_slot_available
    score: int
    follow_up: FollowUpInfo
    is_preferred_slot: bool
    suggested_recurring_count: int
    suggested_interval_days: int
    match: MatchBreakdown


@dataclass
class UnschedulableClient:
    client_id: str
    reason: str


@dataclass
class SuggestionResult:
    suggestions: List[BookingSuggestion] = field(default_factory=list)
    unschedulable: List[UnschedulableClient] = field(default_factory=list)


def determine_urgency(follow_up: FollowUpInfo) -> str:
    if follow_up.is_overdue:
        return "overdue"
    if follow_up.days_until_due is not None and follow_up.days_until_due <= SUGGESTIONS.due_soon_days:
        return "due_soon"
    return "normal"


def calculate_match_breakdown(
    client: Client, therapist: Therapist, sessions: Sequence[Session], current_day: int
) -> MatchBreakdown:
    match = calculate_match_score(client, therapist)
    modality = get_modality_match_bonus(therapist, client.condition_category)
    continuing = client.assigned_therapist_id == therapist.id
    relevant = SUGGESTION_SPECIALIZATION_MAP.get(client.condition_category, [])
    has_spec = any(s in relevant for s in therapist.specializations)
    energy = forecast_energy(therapist, sessions, current_day)
    good_energy = not energy.will_burn_out and energy.predicted_end_energy >= SUGGESTIONS.good_energy_floor

    reasons = []
    if continuing:
        reasons.append("Continuing care")
    if modality > 0:
        reasons.append(f"{MODALITY_CONFIG[therapist.primary_modality].name} specialty")
    if has_spec:
        reasons.append("Specializes in condition")
    if match.trait_match >= SUGGESTIONS.strong_trait_match:
        reasons.append("Strong personality fit")
    if good_energy:
        reasons.append("Available capacity")
    elif energy.will_burn_out:
        reasons.append("High workload today")

    strong = sum(
        [
            match.score >= SUGGESTIONS.strong_match_score,
            modality >= SUGGESTIONS.strong_modality_bonus,
            continuing,
            has_spec,
        ]
    )
    if match.score >= SUGGESTIONS.excellent_score and strong >= SUGGESTIONS.min_strong_factors:
        quality = "excellent"
    elif match.score >= SUGGESTIONS.good_score or strong >= 1:
        quality = "good"
    else:
        quality = "fair"

    return MatchBreakdown(
        quality=quality,
        match_score=match.score,
        modality_bonus=modality,
        is_continuing_therapist=continuing,
        has_specialization=has_spec,
        has_good_energy=good_energy,
        match_reasons=reasons,
    )


def calculate_suggestion_score(urgency: str, is_preferred: bool, match: MatchBreakdown, days_until_slot: int) -> int:
    score = URGENCY_WEIGHTS[urgency] + QUALITY_WEIGHTS[match.quality]
    if match.has_modality_match:
        score += round(match.modality_bonus * 100 * SUGGESTIONS.modality_weight)
    if match.is_continuing_therapist:
        score += SUGGESTIONS.continuity_bonus
    if is_preferred:
        score += SUGGESTIONS.preferred_slot_bonus
    score += match.match_score * SUGGESTIONS.match_score_weight
    if match.has_good_energy:
        score += SUGGESTIONS.good_energy_bonus
    score -= days_until_slot * SUGGESTIONS.penalty_per_day_out
    return round(score)


def _rank_therapists(client: Client, therapists: Sequence[Therapist]) -> List[Therapist]:
    eligible = [t for t in therapists if can_therapist_serve_client(client, t).valid]
    # continuity first, then best fit
    return sorted(
        eligible,
        key=lambda t: (t.id != client.assigned_therapist_id, -calculate_match_score(client, t).score),
    )


def find_best_slot_for_client(
    client: Client,
    follow_up: FollowUpInfo,
    urgency: str,
    therapists: Sequence[Therapist],
    sessions: Sequence[Session],
    grid: ScheduleGrid,
    building: Building,
    telehealth_unlocked: bool,
    now: GameTime,
    days_ahead: int = 14,
) -> Optional[BookingSuggestion]:
    is_virtual = client.prefers_virtual and telehealth_unlocked
    duration = SCHEDULE.default_duration

    for therapist in _rank_therapists(client, therapists):
        valid = []
        for slot in find_matching_slots(grid, therapist, client, now.day, days_ahead, duration):
            if not validate_not_in_past(now, slot.day, slot.hour).valid:
                continue
            if client_has_conflicting_session(sessions, client.id, slot.day, slot.hour, duration):
                continue
            if not can_schedule_more_today(grid, sessions, therapist.id, slot.day):
                continue
            if not is_virtual and not get_room_availability(building, sessions, slot.day, slot.hour).can_book_in_person:
                continue
            valid.append(slot)
        if not valid:
            continue

        best = valid[0]
        match = calculate_match_breakdown(client, therapist, sessions, now.day)
        if urgency == "overdue":
            reason = "overdue_followup"
        elif urgency == "due_soon":
            reason = "due_soon"
        elif therapist.id == client.assigned_therapist_id:
            reason = "therapist_continuity"
        else:
            reason = "good_slot_available"

        return BookingSuggestion(
            id=str(uuid.uuid4()),
            client_id=client.id,
            therapist_id=therapist.id,
            day=best.day,
            hour=best.hour,
            duration=duration,
            is_virtual=is_virtual,
            urgency=urgency,
            reason=reason,
            score=calculate_suggestion_score(urgency, best.is_preferred, match, best.day - now.day),
            follow_up=follow_up,
            is_preferred_slot=best.is_preferred,
            suggested_recurring_count=min(follow_up.remaining_sessions, SUGGESTIONS.max_recurring),
            suggested_interval_days=FREQUENCY_DAYS.get(client.preferred_frequency) or SUGGESTIONS.default_interval_days,
            match=match,
        )
    return None


def _clients_needing_booking(
    clients: Sequence[Client], sessions: Sequence[Session], current_day: int
) -> List[Tuple[Client, FollowUpInfo]]:
    active = [
        (c, f)
        for c, f in get_active_clients_by_follow_up_urgency(clients, sessions, current_day)
        if not f.has_upcoming_session and f.remaining_sessions > 0
    ]
    waiting = [(c, get_follow_up_info(c, sessions, current_day)) for c in clients if c.status == "waiting"]
    return active + waiting


def generate_booking_suggestions(
    clients: Sequence[Client],
    therapists: Sequence[Therapist],
    sessions: Sequence[Session],
    grid: ScheduleGrid,
    building: Building,
    telehealth_unlocked: bool,
    now: GameTime,
    max_suggestions: int = 10,
    days_ahead: int = 14,
) -> SuggestionResult:
    """Suggest next bookings for clients with no upcoming session, highest score first.

    Active clients come before waiting ones. Once half of `max_suggestions`
    is filled, normal-urgency clients are skipped.
    """
    result = SuggestionResult()
    for client, follow_up in _clients_needing_booking(clients, sessions, now.day):
        if len(result.suggestions) >= max_suggestions:
            break
        if follow_up.has_upcoming_session or follow_up.remaining_sessions <= 0:
            continue
        urgency = determine_urgency(follow_up)
        if urgency == "normal" and len(result.suggestions) >= max_suggestions / 2:
            continue

        suggestion = find_best_slot_for_client(
            client, follow_up, urgency, therapists, sessions, grid, building, telehealth_unlocked, now, days_ahead
        )
        if suggestion:
            result.suggestions.append(suggestion)
        else:
            result.unschedulable.append(UnschedulableClient(client.id, "No available slots matching preferences"))

    result.suggestions.sort(key=lambda s: s.score, reverse=True)
    result.suggestions = result.suggestions[:max_suggestions]
    return result


def get_unschedulable_clients(
    clients: Sequence[Client],
    therapists: Sequence[Therapist],
    sessions: Sequence[Session],
    grid: ScheduleGrid,
    building: Building,
    telehealth_unlocked: bool,
    now: GameTime,
    days_ahead: int = 14,
) -> List[UnschedulableClient]:
    """Every client needing a booking that no therapist can currently fit, without the suggestion cap."""
    stuck = []
    for client, follow_up in _clients_needing_booking(clients, sessions, now.day):
        if follow_up.remaining_sessions <= 0:
            continue
        found = find_best_slot_for_client(
            client,
            follow_up,
            determine_urgency(follow_up),
            therapists,
            sessions,
            grid,
            building,
            telehealth_unlocked,
            now,
            days_ahead,
        )
        if found is None:
            stuck.append(UnschedulableClient(client.id, "No available slots matching preferences"))
    return stuck
