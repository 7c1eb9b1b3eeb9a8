"""
In-session decision events and their eligibility rules.
"""

from __future__ import annotations

from random import Random
from typing import Dict, List, Optional

from .models import DecisionChoice, DecisionEvent

C = DecisionChoice

_EVENTS: List[DecisionEvent] = [
    # general
    DecisionEvent(
        "client_resistant",
        "Client Resistance",
        "Your client seems reluctant to engage today. They keep deflecting questions and seem distracted.",
        (C("Gently explore the resistance", 0.1, -5), C("Push through with the planned approach", -0.1, 0)),
    ),
    DecisionEvent(
        "emotional_breakthrough",
        "Emotional Breakthrough",
        "Your client has just made a significant emotional connection. This is a pivotal moment in their therapy.",
        (
            C("Process deeply and hold space", 0.15, -8, 10),
            C("Stabilize and continue with session structure", 0.05, -2),
        ),
    ),
    DecisionEvent(
        "boundary_issue",
        "Boundary Concern",
        "Your client is asking personal questions about your life or trying to shift the therapeutic relationship.",
        (
            C("Address the boundary directly but warmly", 0.1, -3),
            C("Redirect the conversation back to their concerns", 0, 0),
        ),
    ),
    DecisionEvent(
        "transference",
        "Therapeutic Relationship",
        "Your client seems to be projecting feelings from another relationship onto your therapeutic work together.",
        (C("Explore this therapeutically", 0.12, -6), C("Maintain clear professional boundaries", 0.03, -2)),
    ),
    DecisionEvent(
        "silence_moment",
        "Extended Silence",
        "Your client has fallen into a long silence. They seem to be processing something internally.",
        (C("Wait patiently and hold the space", 0.08, -2), C("Gently prompt them to share their thoughts", 0.02, 0)),
    ),
    DecisionEvent(
        "insight_moment",
        "Client Insight",
        "Your client just made an important connection about their patterns. Their eyes light up with understanding.",
        (C("Reinforce and explore the insight deeply", 0.12, -4, 8), C("Acknowledge and move forward", 0.05, 0)),
    ),
    # severity gated
    DecisionEvent(
        "crisis_disclosure",
        "Crisis Disclosure",
        "Your client has just disclosed something that suggests they may be in crisis. This requires careful handling.",
        (
            C("Extend the session to create a safety plan", 0.15, -12, 15),
            C("Address immediate safety and schedule follow-up", 0.08, -5, 5),
        ),
        min_severity=6,
    ),
    DecisionEvent(
        "difficult_emotions",
        "Intense Emotions",
        "Your client is experiencing overwhelming emotions that are difficult to contain in the session.",
        (C("Help them regulate using grounding techniques", 0.1, -6, 5), C("Give them space to express freely", 0.05, -3)),
        min_severity=5,
    ),
    # condition specific
    DecisionEvent(
        "anxiety_spiral",
        "Anxiety Escalation",
        "You notice your client starting to spiral into anxious thoughts during the session.",
        (C("Introduce a breathing exercise", 0.1, -3, 5), C("Explore the anxiety thoughts cognitively", 0.08, -5)),
        condition_categories=("anxiety",),
    ),
    DecisionEvent(
        "depressive_hopelessness",
        "Expressions of Hopelessness",
        "Your client is expressing deep hopelessness about their situation. "
        "They're questioning if things can improve.",
        (C("Validate and explore their feelings", 0.1, -5, 8), C("Gently challenge negative thought patterns", 0.06, -3)),
        condition_categories=("depression",),
    ),
    DecisionEvent(
        "trauma_flashback",
        "Trauma Response",
        "Your client appears to be experiencing trauma-related distress. "
        "They seem disconnected from the present moment.",
        (
            C("Use grounding techniques to bring them back", 0.12, -8, 10),
            C("Slow down and provide gentle reassurance", 0.06, -4, 5),
        ),
        min_severity=5,
        condition_categories=("trauma",),
    ),
    DecisionEvent(
        "relationship_conflict",
        "Relationship Dilemma",
        "Your client is torn about a significant relationship decision and is looking for guidance.",
        (
            C("Help them explore their own values and needs", 0.1, -4, 6),
            C("Offer perspective on relationship dynamics", 0.05, -2),
        ),
        condition_categories=("relationship",),
    ),
    DecisionEvent(
        "stress_overwhelm",
        "Overwhelming Stress",
        "Your client is describing an accumulation of stressors that feel unmanageable.",
        (
            C("Work on prioritization and coping strategies", 0.1, -4, 5),
            C("Focus on stress reduction in the moment", 0.06, -2),
        ),
        condition_categories=("stress",),
    ),
    DecisionEvent(
        "behavioral_setback",
        "Behavioral Setback",
        "Your client is reporting a setback in their progress with changing problematic behaviors.",
        (C("Normalize setbacks and explore triggers", 0.1, -4, 6), C("Reinforce their overall progress", 0.05, -2)),
        condition_categories=("behavioral",),
    ),
    # end of session
    DecisionEvent(
        "session_running_late",
        "Session Timing",
        "The session is nearing its end, but your client is in the middle of processing something important.",
        (C("Extend the session slightly", 0.08, -5, 5), C("Gently wrap up and schedule a follow-up", 0.02, 0)),
    ),
    DecisionEvent(
        "homework_resistance",
        "Practice Resistance",
        "Your client admits they haven't been doing the between-session practices you discussed.",
        (C("Explore the barriers non-judgmentally", 0.08, -3, 3), C("Simplify the homework and move on", 0.02, 0)),
    ),
]

DECISION_EVENTS: Dict[str, DecisionEvent] = {e.id: e for e in _EVENTS}


def get_decision_event(event_id: str) -> Optional[DecisionEvent]:
    return DECISION_EVENTS.get(event_id)


def is_unconditional(event: DecisionEvent) -> bool:
    return event.min_severity is None and event.condition_categories is None


def get_eligible_decision_events(
    severity: Optional[int] = None, condition_category: Optional[str] = None
) -> List[DecisionEvent]:
    """Events whose trigger conditions the client meets; without a client only unconditional ones."""
    if severity is None or condition_category is None:
        return [e for e in _EVENTS if is_unconditional(e)]
    eligible = []
    for event in _EVENTS:
        if event.min_severity is not None and severity < event.min_severity:
            continue
        if event.condition_categories is not None and condition_category not in event.condition_categories:
            continue
        eligible.append(event)
    return eligible


def select_decision_event(
    rng: Random, severity: Optional[int] = None, condition_category: Optional[str] = None
) -> Optional[DecisionEvent]:
    eligible = get_eligible_decision_events(severity, condition_category)
    if not eligible:
        return None
    return eligible[rng.randrange(len(eligible))]


def best_choice_index(event: DecisionEvent) -> int:
    """Index of the choice with the largest quality effect (first wins ties)."""
    best = 0
    for i, choice in enumerate(event.choices):
        if choice.quality > event.choices[best].quality:
            best = i
    return best
