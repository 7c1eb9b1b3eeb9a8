"""
Outbound notifications produced by state commands and the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

SESSION_SCHEDULED = "session_scheduled"
SESSION_STARTED = "session_started"
SESSION_COMPLETED = "session_completed"
SESSION_CANCELLED = "session_cancelled"
DECISION_EVENT_TRIGGERED = "decision_event_triggered"
DECISION_MADE = "decision_made"
CLIENT_ARRIVED = "client_arrived"
CLIENT_CURED = "client_cured"
CLIENT_DROPPED = "client_dropped"
THERAPIST_LEVELED_UP = "therapist_leveled_up"
THERAPIST_BURNED_OUT = "therapist_burned_out"
INSURANCE_CLAIM_SCHEDULED = "insurance_claim_scheduled"
INSURANCE_CLAIM_PAID = "insurance_claim_paid"
INSURANCE_CLAIM_DENIED = "insurance_claim_denied"
APPEAL_SUBMITTED = "appeal_submitted"
APPEAL_RESOLVED = "appeal_resolved"
DAY_STARTED = "day_started"
DAY_ENDED = "day_ended"
HOUR_CHANGED = "hour_changed"


@dataclass
class Event:
    name: str
    payload: Dict[str, Any] = field(default_factory=dict)


def names(events: List[Event]) -> List[str]:
    return [e.name for e in events]
