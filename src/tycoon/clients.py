"""
Client lifecycle: waiting-list attrition, session outcomes, dropout risk and follow-up timing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .allocation import can_therapist_serve_client
from .config import CLIENTS, FREQUENCY_DAYS, SESSION
from .errors import InvalidTransitionError
from .models import Client, Session, Therapist

logger = logging.getLogger(__name__)


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return float(np.clip(value, low, high))


@dataclass
class SatisfactionChange:
    client_id: str
    old_satisfaction: float
    new_satisfaction: float


@dataclass
class WaitingListResult:
    remaining: List[Client] = field(default_factory=list)
    dropped: List[Client] = field(default_factory=list)
    satisfaction_changes: List[SatisfactionChange] = field(default_factory=list)


@dataclass
class SessionOutcome:
    satisfaction_change: float
    engagement_change: float
    progress_made: float
    treatment_completed: bool


@dataclass
class FollowUpInfo:
    last_session_day: Optional[int]
    next_due_day: Optional[int]
    days_until_due: Optional[int]
    is_overdue: bool
    next_scheduled_session: Optional[Session]
    remaining_sessions: int

    @property
    def has_upcoming_session(self) -> bool:
        return self.next_scheduled_session is not None


def is_treatment_complete(client: Client) -> bool:
    return client.sessions_completed >= client.sessions_required or client.treatment_progress >= 1


def get_remaining_sessions(client: Client) -> int:
    return client.sessions_required - client.sessions_completed


def process_waiting_list(clients: Iterable[Client], current_day: int) -> WaitingListResult:
    """Decay waiting clients' satisfaction per elapsed day and drop the ones who give up.

    Non-waiting clients pass through untouched.
    """
    result = WaitingListResult()
    for client in clients:
        if client.status != "waiting":
            result.remaining.append(client)
            continue

        last_day = client.last_processed_day if client.last_processed_day is not None else client.arrival_day
        elapsed = max(0, current_day - last_day)
        old = client.satisfaction
        client.satisfaction = clamp(old - elapsed * CLIENTS.wait_satisfaction_loss)
        client.days_waiting = current_day - client.arrival_day
        client.last_processed_day = current_day

        if client.days_waiting > client.max_wait_days or client.satisfaction < CLIENTS.dropout_threshold:
            client.status = "dropped"
            result.dropped.append(client)
            logger.info(
                "Client %s left the waiting list after %d days (satisfaction %.0f)",
                client.id,
                client.days_waiting,
                client.satisfaction,
            )
        else:
            result.remaining.append(client)
            if elapsed:
                result.satisfaction_changes.append(SatisfactionChange(client.id, old, client.satisfaction))
    return result


def process_session_outcome(client: Client, quality: float) -> SessionOutcome:
    """Apply a finished session to the client; deltas scale linearly around a 0.5 quality midpoint."""
    offset = quality - CLIENTS.outcome_midpoint
    sat_change = offset * 2 * CLIENTS.outcome_satisfaction_scale
    eng_change = offset * 2 * CLIENTS.outcome_engagement_scale
    progress = SESSION.progress_per_quality * (0.5 + quality)

    client.satisfaction = clamp(client.satisfaction + sat_change)
    client.engagement = clamp(client.engagement + eng_change)
    client.treatment_progress = clamp(client.treatment_progress + progress, 0.0, 1.0)
    client.sessions_completed += 1
    completed = is_treatment_complete(client)
    if completed:
        client.status = "completed"
    return SessionOutcome(
        satisfaction_change=sat_change,
        engagement_change=eng_change,
        progress_made=progress,
        treatment_completed=completed,
    )


def check_dropout_risk(client: Client) -> Optional[str]:
    """Return 'high', 'medium', 'low' or None when the client is not at risk."""
    sat, eng = client.satisfaction, client.engagement
    if sat < CLIENTS.high_risk[0] and eng < CLIENTS.high_risk[1]:
        return "high"
    if sat < CLIENTS.medium_risk[0] or eng < CLIENTS.medium_risk[1]:
        return "medium"
    if sat < CLIENTS.low_risk[0] or eng < CLIENTS.low_risk[1]:
        return "low"
    return None


def assign_client(client: Client, therapist: Therapist) -> Client:
    check = can_therapist_serve_client(client, therapist)
    if not check.valid:
        raise InvalidTransitionError(f"Cannot assign client: {check.reason}")
    client.assigned_therapist_id = therapist.id
    client.status = "in_treatment"
    return client


def get_last_completed_session(client: Client, sessions: Iterable[Session]) -> Optional[Session]:
    done = [s for s in sessions if s.client_id == client.id and s.status == "completed" and s.completed_at]
    return max(done, key=lambda s: s.completed_at.day, default=None)


def get_next_scheduled_session(client: Client, sessions: Iterable[Session], current_day: int) -> Optional[Session]:
    upcoming = [
        s for s in sessions if s.client_id == client.id and s.status == "scheduled" and s.scheduled_day >= current_day
    ]
    return min(upcoming, key=lambda s: (s.scheduled_day, s.scheduled_hour), default=None)


def get_follow_up_info(client: Client, sessions: Sequence[Session], current_day: int) -> FollowUpInfo:
    last = get_last_completed_session(client, sessions)
    upcoming = get_next_scheduled_session(client, sessions, current_day)
    remaining = get_remaining_sessions(client)

    if last is None:
        return FollowUpInfo(None, None, None, False, upcoming, remaining)

    last_day = last.completed_at.day
    frequency = FREQUENCY_DAYS.get(client.preferred_frequency, 0)
    if frequency == 0 or remaining <= 0:
        return FollowUpInfo(last_day, None, None, False, upcoming, remaining)

    due = last_day + frequency
    until = due - current_day
    return FollowUpInfo(last_day, due, until, until < 0 and upcoming is None, upcoming, remaining)


def get_active_clients_by_follow_up_urgency(
    clients: Iterable[Client], sessions: Sequence[Session], current_day: int
) -> List[Tuple[Client, FollowUpInfo]]:
    """In-treatment clients, overdue first, then soonest due, then those without a due date."""
    ranked = [(c, get_follow_up_info(c, sessions, current_day)) for c in clients if c.status == "in_treatment"]
    ranked.sort(
        key=lambda pair: (
            not pair[1].is_overdue,
            pair[1].days_until_due is None,
            pair[1].days_until_due if pair[1].days_until_due is not None else 0,
        )
    )
    return ranked
