"""
Single practice state container and the commands that mutate it.

Every command validates first and commits only when all checks pass, so a
rejected booking never leaves the grid and the session list out of step.
Commands return a result plus the events they produced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from . import events as ev
from .allocation import can_therapist_serve_client
from .clients import clamp
from .config import INSURANCE_PANELS, REPUTATION, SCHEDULE
from .constraints import can_book_session_type
from .errors import UnknownEntityError
from .events import Event
from .insurance import create_claim, create_pending_claim
from .insurance import submit_appeal as submit_claim_appeal
from .models import (
    AppealResult,
    BookingResult,
    Building,
    Client,
    GameTime,
    PendingClaim,
    Session,
    Therapist,
    ValidationResult,
)
from .recurring import RecurringFailure, plan_recurring_bookings
from .scheduling import (
    ScheduleGrid,
    add_to_schedule,
    build_schedule_from_sessions,
    calculate_energy_cost,
    calculate_session_payment,
    can_schedule_more_today,
    client_has_conflicting_session,
    create_session,
    get_conflicts,
    is_slot_available,
    remove_from_schedule,
    validate_not_in_past,
)
from .sessions import cancel_session as cancel_session_record

logger = logging.getLogger(__name__)

Outcome = Tuple[BookingResult, List[Event]]


@dataclass
class RecurringBookingResult:
    sessions: List[Session] = field(default_factory=list)
    failures: List[RecurringFailure] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return bool(self.sessions)


def session_reputation_delta(quality: float) -> int:
    for floor, delta in REPUTATION.session_tiers:
        if quality >= floor:
            return delta
    return REPUTATION.very_poor_session


@dataclass
class PracticeState:
    time: GameTime = field(default_factory=lambda: GameTime(1, SCHEDULE.business_start, 0))
    therapists: Dict[str, Therapist] = field(default_factory=dict)
    clients: Dict[str, Client] = field(default_factory=dict)
    sessions: List[Session] = field(default_factory=list)
    schedule: ScheduleGrid = field(default_factory=dict)
    claims: List[PendingClaim] = field(default_factory=list)
    building: Building = field(default_factory=Building)
    telehealth_unlocked: bool = False
    balance: float = 0
    reputation: float = 0
    active_panels: List[str] = field(default_factory=list)
    insurance_multiplier: float = 1.0
    id_counters: Dict[str, int] = field(default_factory=dict)

    # lookups

    def next_id(self, kind: str) -> str:
        n = self.id_counters.get(kind, 0) + 1
        self.id_counters[kind] = n
        return f"{kind}-{n}"

    def therapist(self, therapist_id: str) -> Therapist:
        try:
            return self.therapists[therapist_id]
        except KeyError:
            raise UnknownEntityError("therapist", therapist_id) from None

    def client(self, client_id: str) -> Client:
        try:
            return self.clients[client_id]
        except KeyError:
            raise UnknownEntityError("client", client_id) from None

    def find_session(self, session_id: str) -> Optional[Session]:
        return next((s for s in self.sessions if s.id == session_id), None)

    def session(self, session_id: str) -> Session:
        found = self.find_session(session_id)
        if found is None:
            raise UnknownEntityError("session", session_id)
        return found

    def find_claim(self, claim_id: str) -> Optional[PendingClaim]:
        return next((c for c in self.claims if c.id == claim_id), None)

    def waiting_clients(self) -> List[Client]:
        return [c for c in self.clients.values() if c.status == "waiting"]

    def active_sessions(self) -> List[Session]:
        return [s for s in self.sessions if s.status == "in_progress"]

    def denial_rates(self) -> Dict[str, float]:
        return {pid: p.denial_rate for pid, p in INSURANCE_PANELS.items()}

    def rebuild_schedule(self) -> None:
        self.schedule = build_schedule_from_sessions(self.sessions)

    # entities and money

    def add_therapist(self, therapist: Therapist) -> None:
        self.therapists[therapist.id] = therapist

    def add_client(self, client: Client) -> List[Event]:
        self.clients[client.id] = client
        return [Event(ev.CLIENT_ARRIVED, {"client_id": client.id, "day": client.arrival_day})]

    def add_money(self, amount: float, reason: str) -> None:
        self.balance += amount
        logger.debug("Balance %+.0f (%s) -> %.0f", amount, reason, self.balance)

    def adjust_reputation(self, delta: float, reason: str) -> None:
        if not delta:
            return
        self.reputation = max(0.0, self.reputation + delta)
        logger.debug("Reputation %+.0f (%s) -> %.0f", delta, reason, self.reputation)

    def record_payment(self, session: Session, client: Client) -> List[Event]:
        """Pay a completed private session now, or file a claim for an insurance one."""
        if session.is_insurance and client.insurance_provider in INSURANCE_PANELS:
            panel = INSURANCE_PANELS[client.insurance_provider]
            ticket = create_claim(
                session, panel, self.time.day, self.insurance_multiplier, claim_id=self.next_id("claim")
            )
            claim = create_pending_claim(ticket)
            self.claims.append(claim)
            return [
                Event(
                    ev.INSURANCE_CLAIM_SCHEDULED,
                    {
                        "claim_id": claim.id,
                        "session_id": session.id,
                        "insurer_id": claim.insurer_id,
                        "amount": claim.amount,
                        "scheduled_payment_day": claim.scheduled_payment_day,
                    },
                )
            ]
        self.add_money(session.payment, f"Session with {client.display_name}")
        return []

    # booking commands

    def validate_booking(
        self,
        therapist: Therapist,
        client: Client,
        day: int,
        hour: int,
        duration: int,
        is_virtual: bool,
        sessions: Optional[List[Session]] = None,
        grid: Optional[ScheduleGrid] = None,
    ) -> ValidationResult:
        sessions = self.sessions if sessions is None else sessions
        grid = self.schedule if grid is None else grid

        when = validate_not_in_past(self.time, day, hour)
        if not when.valid:
            return when
        if not is_slot_available(grid, therapist.id, day, hour, duration, therapist):
            conflicts = get_conflicts(grid, therapist.id, day, hour, duration)
            if conflicts:
                return ValidationResult(False, conflicts[0].reason)
            return ValidationResult(False, "Therapist is not working at that time")
        if client_has_conflicting_session(sessions, client.id, day, hour, duration):
            return ValidationResult(False, "Client already has a session scheduled at this time.")
        if not can_schedule_more_today(grid, sessions, therapist.id, day):
            return ValidationResult(False, "Therapist has reached daily session limit")
        legality = can_book_session_type(
            self.building, sessions, self.telehealth_unlocked, is_virtual, day, hour, duration
        )
        if not legality.valid:
            return legality
        return can_therapist_serve_client(client, therapist)

    def _commit(self, therapist: Therapist, client: Client, session: Session) -> List[Event]:
        self.sessions.append(session)
        self.schedule = add_to_schedule(self.schedule, session)
        if client.status == "waiting":
            client.status = "in_treatment"
        if client.assigned_therapist_id is None:
            client.assigned_therapist_id = therapist.id
        logger.info(
            "Booked %s: %s with %s on day %d at %d:00",
            session.id,
            client.id,
            therapist.id,
            session.scheduled_day,
            session.scheduled_hour,
        )
        return [
            Event(
                ev.SESSION_SCHEDULED,
                {
                    "session_id": session.id,
                    "client_id": client.id,
                    "therapist_id": therapist.id,
                    "day": session.scheduled_day,
                    "hour": session.scheduled_hour,
                },
            )
        ]

    def book_session(
        self,
        therapist_id: str,
        client_id: str,
        day: int,
        hour: int,
        duration: int = SCHEDULE.default_duration,
        is_virtual: Optional[bool] = None,
    ) -> Outcome:
        therapist = self.therapists.get(therapist_id)
        if therapist is None:
            return BookingResult(False, "Therapist not found"), []
        client = self.clients.get(client_id)
        if client is None:
            return BookingResult(False, "Client not found"), []
        virtual = client.prefers_virtual if is_virtual is None else is_virtual

        check = self.validate_booking(therapist, client, day, hour, duration, virtual)
        if not check.valid:
            return BookingResult(False, check.reason), []

        session = create_session(
            therapist, client, day, hour, duration, virtual, self.next_id("session"), self.time.day
        )
        return BookingResult(True, session=session), self._commit(therapist, client, session)

    def book_recurring(
        self,
        therapist_id: str,
        client_id: str,
        start_day: int,
        start_hour: int,
        count: int,
        interval_days: int,
        duration: int = SCHEDULE.default_duration,
        is_virtual: Optional[bool] = None,
    ) -> Tuple[RecurringBookingResult, List[Event]]:
        def rejected(reason: str) -> Tuple[RecurringBookingResult, List[Event]]:
            return RecurringBookingResult(failures=[RecurringFailure(0, start_day, start_hour, reason)]), []

        therapist = self.therapists.get(therapist_id)
        if therapist is None:
            return rejected("Therapist not found")
        client = self.clients.get(client_id)
        if client is None:
            return rejected("Client not found")
        eligibility = can_therapist_serve_client(client, therapist)
        if not eligibility.valid:
            return rejected(eligibility.reason)
        virtual = client.prefers_virtual if is_virtual is None else is_virtual

        plan = plan_recurring_bookings(
            self.schedule,
            self.sessions,
            therapist,
            client,
            self.building,
            self.telehealth_unlocked,
            self.time,
            start_day,
            start_hour,
            duration,
            virtual,
            count,
            interval_days,
        )
        result = RecurringBookingResult(failures=list(plan.failures))
        events: List[Event] = []
        for slot in plan.planned:
            session = create_session(
                therapist, client, slot.day, slot.hour, duration, virtual, self.next_id("session"), self.time.day
            )
            events.extend(self._commit(therapist, client, session))
            result.sessions.append(session)
        return result, events

    def cancel_session(self, session_id: str, reason: str = "Cancelled by player") -> Outcome:
        session = self.find_session(session_id)
        if session is None:
            return BookingResult(False, "Session not found"), []
        if session.status != "scheduled":
            return BookingResult(False, f"Cannot cancel a {session.status} session"), []
        if not validate_not_in_past(self.time, session.scheduled_day, session.scheduled_hour).valid:
            return BookingResult(False, "Cannot cancel a session in the past"), []

        cancel_session_record(session, self.therapist(session.therapist_id), self.client(session.client_id), reason)
        self.schedule = remove_from_schedule(self.schedule, session)
        return BookingResult(True, session=session), [
            Event(ev.SESSION_CANCELLED, {"session_id": session.id, "reason": reason})
        ]

    def reschedule_session(
        self,
        session_id: str,
        therapist_id: str,
        day: int,
        hour: int,
        duration: Optional[int] = None,
        is_virtual: Optional[bool] = None,
    ) -> Outcome:
        session = self.find_session(session_id)
        if session is None:
            return BookingResult(False, "Session not found"), []
        if session.status != "scheduled":
            return BookingResult(False, f"Cannot reschedule a {session.status} session"), []
        if not validate_not_in_past(self.time, session.scheduled_day, session.scheduled_hour).valid:
            return BookingResult(False, "Cannot reschedule a session in the past"), []
        therapist = self.therapists.get(therapist_id)
        if therapist is None:
            return BookingResult(False, "Therapist not found"), []
        client = self.client(session.client_id)
        duration = session.duration_minutes if duration is None else duration
        virtual = session.is_virtual if is_virtual is None else is_virtual

        when = validate_not_in_past(self.time, day, hour)
        if not when.valid:
            return BookingResult(False, when.reason), []

        # the moved session must not block itself
        others = [s for s in self.sessions if s.id != session_id]
        grid = build_schedule_from_sessions(others)
        if not is_slot_available(grid, therapist.id, day, hour, duration, therapist):
            return BookingResult(False, "This time slot is already booked. Please select another."), []
        if client_has_conflicting_session(others, client.id, day, hour, duration):
            return BookingResult(False, "Client already has a session scheduled at this time."), []
        if not can_schedule_more_today(grid, others, therapist.id, day):
            return BookingResult(False, "Therapist has reached daily session limit"), []
        legality = can_book_session_type(self.building, others, self.telehealth_unlocked, virtual, day, hour, duration)
        if not legality.valid:
            return BookingResult(False, legality.reason), []
        serve = can_therapist_serve_client(client, therapist)
        if not serve.valid:
            return BookingResult(False, serve.reason), []

        session.therapist_id = therapist.id
        session.scheduled_day = day
        session.scheduled_hour = hour
        session.duration_minutes = duration
        session.is_virtual = virtual
        session.payment = calculate_session_payment(client.session_rate, duration)
        session.energy_cost = calculate_energy_cost(duration, therapist.level)
        self.rebuild_schedule()
        logger.info("Rescheduled %s to day %d at %d:00 with %s", session.id, day, hour, therapist.id)
        return BookingResult(True, session=session), [
            Event(
                ev.SESSION_SCHEDULED,
                {"session_id": session.id, "client_id": client.id, "therapist_id": therapist.id, "day": day, "hour": hour},
            )
        ]

    def submit_appeal(self, claim_id: str) -> Tuple[AppealResult, List[Event]]:
        claim = self.find_claim(claim_id)
        if claim is None:
            return AppealResult(False, "Claim not found"), []
        result = submit_claim_appeal(claim, self.time.day)
        if not result.success:
            return result, []
        return result, [
            Event(ev.APPEAL_SUBMITTED, {"claim_id": claim.id, "new_payment_day": result.new_payment_day})
        ]

    def apply_satisfaction(self, client: Client, delta: float) -> None:
        client.satisfaction = clamp(client.satisfaction + delta)
