"""
Booking suggestions ranked by follow-up urgency and fit.
"""

from dataclasses import replace

import pytest

from tycoon import suggestions
from tycoon.clients import FollowUpInfo
from tycoon.config import SUGGESTIONS
from tycoon.models import Building, GameTime, TherapistTraits
from tycoon.scheduling import build_schedule_from_sessions
from tycoon.suggestions import (
    MatchBreakdown,
    calculate_match_breakdown,
    calculate_suggestion_score,
    determine_urgency,
    generate_booking_suggestions,
    get_unschedulable_clients,
)

from .conftest import build_client, build_session, build_therapist


@pytest.fixture
def caseload():
    """An overdue client in treatment, a waiting client and one already booked."""
    overdue = build_client("c1", status="in_treatment", assigned_therapist_id="t1", sessions_completed=1)
    waiting = build_client("c2")
    booked = build_client("c3", status="in_treatment", assigned_therapist_id="t1")
    sessions = [
        build_session("s1", client_id="c1", day=1, hour=9, status="completed", completed_day=1),
        build_session("s2", client_id="c3", day=12, hour=9),
    ]
    return [overdue, waiting, booked], sessions


def suggest(clients, sessions, therapists=None, **kwargs):
    return generate_booking_suggestions(
        clients,
        therapists or [build_therapist()],
        sessions,
        build_schedule_from_sessions(sessions),
        Building(rooms=1),
        True,
        GameTime(10, 8, 0),
        **kwargs,
    )


class TestGenerateSuggestions:
    """Suggestion ranking and filtering"""

    def test_overdue_client_ranks_first(self, caseload):
        clients, sessions = caseload
        result = suggest(clients, sessions)

        assert [s.client_id for s in result.suggestions] == ["c1", "c2"]
        top = result.suggestions[0]
        assert top.urgency == "overdue"
        assert top.reason == "overdue_followup"
        assert top.score >= 1000
        assert (top.day, top.hour) == (10, 8)
        assert top.suggested_recurring_count == 7
        assert top.suggested_interval_days == 7

    def test_waiting_client_gets_open_slot(self, caseload):
        clients, sessions = caseload
        waiting = suggest(clients, sessions).suggestions[1]
        assert waiting.reason == "good_slot_available"
        assert waiting.is_preferred_slot
        assert not waiting.is_virtual

    def test_clients_with_upcoming_sessions_are_skipped(self, caseload):
        clients, sessions = caseload
        result = suggest(clients, sessions)
        assert "c3" not in [s.client_id for s in result.suggestions]
        assert result.unschedulable == []

    def test_truncated_to_max(self, caseload):
        clients, sessions = caseload
        assert len(suggest(clients, sessions, max_suggestions=1).suggestions) == 1

    def test_ineligible_client_is_unschedulable(self):
        trauma = build_client("c9", condition_category="trauma", required_certification="trauma_certified")
        result = suggest([trauma], [])
        assert result.suggestions == []
        assert [u.client_id for u in result.unschedulable] == ["c9"]

        stuck = get_unschedulable_clients(
            [trauma], [build_therapist()], [], {}, Building(rooms=1), True, GameTime(10, 8, 0)
        )
        assert stuck[0].reason == "No available slots matching preferences"

    def test_normal_clients_stop_at_half_of_max(self):
        """Test normal-urgency clients fill at most half the list while overdue ones keep coming"""
        overdue = [
            build_client(f"o{i}", status="in_treatment", assigned_therapist_id="t1", sessions_completed=1)
            for i in range(3)
        ]
        sessions = [
            build_session(f"s{i}", client_id=f"o{i}", day=1, hour=9 + i, status="completed", completed_day=1)
            for i in range(3)
        ]
        waiting = [build_client(f"w{i}") for i in range(4)]

        result = suggest(overdue[:1] + waiting, sessions, max_suggestions=4)
        assert [s.client_id for s in result.suggestions] == ["o0", "w0"]
        assert result.unschedulable == []

        result = suggest(overdue + waiting, sessions, max_suggestions=4)
        assert [s.urgency for s in result.suggestions] == ["overdue"] * 3
        assert "w0" not in [s.client_id for s in result.suggestions]

    def test_in_person_slot_needs_a_free_room(self):
        """Test a room held by another therapist pushes an in-person suggestion to the next hour"""
        other = build_session("s9", therapist_id="t2", client_id="c9", day=10, hour=8)
        result = suggest([build_client("c2")], [other])
        top = result.suggestions[0]
        assert (top.day, top.hour) == (10, 9)
        assert not top.is_virtual

    def test_virtual_client_keeps_slot_when_room_is_full(self):
        other = build_session("s9", therapist_id="t2", client_id="c9", day=10, hour=8)
        result = suggest([build_client("c2", prefers_virtual=True)], [other])
        top = result.suggestions[0]
        assert (top.day, top.hour) == (10, 8)
        assert top.is_virtual


class TestScoring:
    def test_urgency_levels(self):
        assert determine_urgency(FollowUpInfo(1, 8, -2, True, None, 4)) == "overdue"
        assert determine_urgency(FollowUpInfo(1, 8, 2, False, None, 4)) == "due_soon"
        assert determine_urgency(FollowUpInfo(None, None, None, False, None, 4)) == "normal"

    def test_score_components(self):
        match = MatchBreakdown("good", 60, 0.1, True, False, True)
        assert calculate_suggestion_score("due_soon", True, match, 2) == 717

    def test_score_weights_come_from_config(self, monkeypatch):
        match = MatchBreakdown("good", 60, 0.1, True, False, True)
        monkeypatch.setattr(
            suggestions, "SUGGESTIONS", replace(SUGGESTIONS, continuity_bonus=0, penalty_per_day_out=10)
        )
        assert calculate_suggestion_score("due_soon", True, match, 2) == 717 - 40 - 14

    def test_breakdown_reasons(self):
        client = build_client(assigned_therapist_id="t1")
        breakdown = calculate_match_breakdown(client, build_therapist(), [], 5)
        assert breakdown.is_continuing_therapist
        assert breakdown.has_modality_match
        assert breakdown.quality == "good"
        assert "Continuing care" in breakdown.match_reasons
        assert "Integrative Therapy specialty" in breakdown.match_reasons
        assert "Available capacity" in breakdown.match_reasons

    def test_excellent_needs_high_score_and_two_strong_factors(self):
        """Test the excellent tier requires both a high score and at least two strong factors"""
        specialist = build_therapist(
            primary_modality="CBT",
            specializations=["anxiety_disorders", "ocd"],
            traits=TherapistTraits(warmth=6, analytical=4, creativity=5),
        )
        breakdown = calculate_match_breakdown(build_client(assigned_therapist_id="t1"), specialist, [], 5)
        assert breakdown.match_score == 90
        assert breakdown.is_continuing_therapist
        assert breakdown.has_specialization
        assert breakdown.quality == "excellent"

    def test_high_score_with_one_strong_factor_is_only_good(self):
        warm = build_therapist(traits=TherapistTraits(warmth=10, analytical=10, creativity=5))
        breakdown = calculate_match_breakdown(build_client(), warm, [], 5)
        assert breakdown.match_score >= 75
        assert not breakdown.is_continuing_therapist
        assert not breakdown.has_specialization
        assert breakdown.modality_bonus < 0.1
        assert breakdown.quality == "good"
