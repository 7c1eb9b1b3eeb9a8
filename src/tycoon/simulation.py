"""
Practice engine: minute ticks, skips, day rollover and a headless run loop.

Clock -> session starts/progress/completion -> client lifecycle -> claims.
"""

from __future__ import annotations

import logging
from collections import Counter
from random import Random
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from . import clock
from . import events as ev
from .clients import process_waiting_list
from .config import REPUTATION, SCHEDULE, THERAPISTS, SimulationConfig
from .data_generation import daily_arrival_count, generate_client, generate_therapists
from .decisions import best_choice_index
from .errors import UnknownEntityError
from .events import Event
from .insurance import process_appeals, process_due_claims
from .models import Building, DecisionEvent, GameTime, Session
from .scheduling import remove_from_schedule
from .sessions import (
    apply_decision,
    cancel_session,
    complete_session,
    is_session_complete,
    progress_session,
    should_start_session,
    start_session,
)
from .staffing import apply_idle_energy_recovery, process_rest, reset_for_new_day
from .state import PracticeState, session_reputation_delta
from .suggestions import generate_booking_suggestions

logger = logging.getLogger(__name__)


class PracticeEngine:
    def __init__(self, state: PracticeState, cfg: Optional[SimulationConfig] = None):
        self.state = state
        self.cfg = cfg or SimulationConfig()
        self.rng = Random(self.cfg.seed)
        # session id -> decision waiting for a choice
        self.pending_decisions: Dict[str, DecisionEvent] = {}
        self.history: List[Event] = []

    @classmethod
    def from_config(cls, cfg: SimulationConfig) -> "PracticeEngine":
        state = PracticeState(
            time=GameTime(1, SCHEDULE.business_start, 0),
            building=Building(rooms=cfg.rooms),
            telehealth_unlocked=cfg.telehealth_unlocked,
            balance=cfg.starting_balance,
            reputation=cfg.reputation,
            active_panels=list(cfg.panels),
            insurance_multiplier=cfg.insurance_multiplier,
        )
        for therapist in generate_therapists(cfg):
            state.add_therapist(therapist)
        engine = cls(state, cfg)
        for _ in range(cfg.initial_clients):
            engine._emit(engine._spawn_client(1))
        return engine

    @property
    def is_paused(self) -> bool:
        return bool(self.pending_decisions)

    def _seed(self) -> int:
        return self.rng.getrandbits(32)

    def _emit(self, events: List[Event]) -> List[Event]:
        self.history.extend(events)
        return events

    def _spawn_client(self, day: int) -> List[Event]:
        client = generate_client(
            self.rng,
            day,
            self.state.next_id("client"),
            self.state.active_panels,
            session_rate=self.cfg.session_rate,
        )
        return self.state.add_client(client)

    # clock hooks

    def tick(self) -> List[Event]:
        """Advance one minute; no-op while a decision is waiting for a choice."""
        if self.is_paused:
            return []
        advance = clock.advance_minutes(self.state.time, 1)
        events = self._apply_advance(advance)
        events += self.on_minute_advance(1)
        events += self._start_due_sessions()
        return self._emit(events)

    def _apply_advance(self, advance: clock.TimeAdvance) -> List[Event]:
        self.state.time = advance.current
        events: List[Event] = []
        if advance.day_ended:
            events += self.on_day_rollover(advance.previous.day, advance.current.day)
        if advance.hour_changed:
            events += self.on_hour_changed(advance.current.hour)
        return events

    def on_minute_advance(self, delta_minutes: int) -> List[Event]:
        events: List[Event] = []
        for therapist in self.state.therapists.values():
            if therapist.status in ("in_session", "burned_out"):
                continue
            apply_idle_energy_recovery(therapist, delta_minutes)

        for session in self.state.active_sessions():
            if session.id in self.pending_decisions:
                continue
            client = self.state.client(session.client_id)
            result = progress_session(session, delta_minutes, client, seed=self._seed())
            if result.decision_event is not None:
                events += self._raise_decision(session, result.decision_event)
            if is_session_complete(session) and session.id not in self.pending_decisions:
                events += self._complete(session)
        return events

    def on_hour_changed(self, hour: int) -> List[Event]:
        return [Event(ev.HOUR_CHANGED, {"hour": hour})]

    def on_day_rollover(self, previous_day: int, new_day: int) -> List[Event]:
        """Overnight rest, claim and appeal resolution, waiting-list attrition and new arrivals."""
        state = self.state
        events = [Event(ev.DAY_ENDED, {"day": previous_day})]

        for therapist in state.therapists.values():
            rest = process_rest(therapist, THERAPISTS.overnight_rest_hours)
            if rest.recovered_from_burnout:
                logger.info("Therapist %s is back from burnout", therapist.id)
        reset_for_new_day(state.therapists.values())

        claims = process_due_claims(state.claims, new_day, state.denial_rates(), seed=self._seed())
        for paid in claims.paid:
            state.add_money(paid.amount, f"Insurance claim {paid.claim_id}")
            events.append(Event(ev.INSURANCE_CLAIM_PAID, {"claim_id": paid.claim_id, "amount": paid.amount}))
        for denied in claims.denied:
            events.append(
                Event(
                    ev.INSURANCE_CLAIM_DENIED,
                    {
                        "claim_id": denied.claim_id,
                        "reason": denied.denial_reason,
                        "appeal_deadline_day": denied.appeal_deadline_day,
                    },
                )
            )

        appeals = process_appeals(state.claims, new_day, seed=self._seed())
        for paid in appeals.paid:
            state.add_money(paid.amount, f"Appeal {paid.claim_id}")
        for resolution in appeals.paid + appeals.denied:
            events.append(
                Event(
                    ev.APPEAL_RESOLVED,
                    {"claim_id": resolution.claim_id, "approved": resolution.paid, "amount": resolution.amount},
                )
            )

        waiting = process_waiting_list(list(state.clients.values()), new_day)
        for client in waiting.dropped:
            state.adjust_reputation(REPUTATION.client_dropout_penalty, f"{client.display_name} left the waiting list")
            events.append(Event(ev.CLIENT_DROPPED, {"client_id": client.id, "days_waiting": client.days_waiting}))

        if new_day > 1:
            for _ in range(daily_arrival_count(self.rng, new_day, state.reputation, self.cfg.clients_per_day)):
                events += self._spawn_client(new_day)

        events.append(Event(ev.DAY_STARTED, {"day": new_day}))
        logger.info("Day %d started: balance $%.0f, reputation %.0f", new_day, state.balance, state.reputation)
        return events

    # session lifecycle

    def _start_due_sessions(self) -> List[Event]:
        events: List[Event] = []
        now = self.state.time
        for session in [s for s in self.state.sessions if should_start_session(s, now)]:
            therapist = self.state.therapist(session.therapist_id)
            client = self.state.client(session.client_id)
            reason = None
            if therapist.status == "burned_out":
                reason = "Therapist is burned out"
            elif client.status in ("dropped", "completed"):
                reason = "Client is no longer in treatment"
            if reason:
                cancel_session(session, therapist, client, reason)
                self.state.schedule = remove_from_schedule(self.state.schedule, session)
                events.append(Event(ev.SESSION_CANCELLED, {"session_id": session.id, "reason": reason}))
                continue
            start_session(session, therapist, client, now)
            events.append(
                Event(
                    ev.SESSION_STARTED,
                    {"session_id": session.id, "therapist_id": therapist.id, "client_id": client.id},
                )
            )
        return events

    def _raise_decision(self, session: Session, event: DecisionEvent) -> List[Event]:
        self.pending_decisions[session.id] = event
        raised = [Event(ev.DECISION_EVENT_TRIGGERED, {"session_id": session.id, "event_id": event.id})]
        if self.cfg.auto_resolve_decisions:
            raised += self._resolve(session.id, best_choice_index(event))
        return raised

    def resolve_decision(self, session_id: str, choice_index: int) -> List[Event]:
        """Apply the chosen option of a pending decision; completes the session if it is done."""
        return self._emit(self._resolve(session_id, choice_index))

    def _resolve(self, session_id: str, choice_index: int) -> List[Event]:
        event = self.pending_decisions.get(session_id)
        if event is None:
            raise UnknownEntityError("decision", session_id)
        session = self.state.session(session_id)
        therapist = self.state.therapist(session.therapist_id)
        client = self.state.client(session.client_id)

        record = apply_decision(session, therapist, event, choice_index)
        del self.pending_decisions[session_id]
        self.state.apply_satisfaction(client, record.satisfaction_effect)

        events = [
            Event(
                ev.DECISION_MADE,
                {"session_id": session_id, "event_id": event.id, "choice_index": choice_index},
            )
        ]
        if is_session_complete(session):
            events += self._complete(session)
        return events

    def _complete(self, session: Session) -> List[Event]:
        state = self.state
        therapist = state.therapist(session.therapist_id)
        client = state.client(session.client_id)
        was_completed = client.status == "completed"

        result = complete_session(session, therapist, client, state.time, seed=self._seed())
        events = [
            Event(
                ev.SESSION_COMPLETED,
                {
                    "session_id": session.id,
                    "quality": result.session.quality,
                    "payment": result.payment,
                    "xp": result.xp_gained,
                    "progress_type": result.treatment.progress_type,
                    "leveled_up": result.leveled_up,
                },
            )
        ]
        events += state.record_payment(session, client)
        state.adjust_reputation(session_reputation_delta(result.session.quality), "Session quality")

        if result.leveled_up:
            events.append(Event(ev.THERAPIST_LEVELED_UP, {"therapist_id": therapist.id, "new_level": result.new_level}))
        if result.burned_out:
            events.append(Event(ev.THERAPIST_BURNED_OUT, {"therapist_id": therapist.id}))
        if result.treatment_completed and not was_completed:
            state.adjust_reputation(REPUTATION.client_cured_bonus, f"Completed treatment for {client.display_name}")
            events.append(
                Event(ev.CLIENT_CURED, {"client_id": client.id, "sessions_completed": client.sessions_completed})
            )
        return events

    # skipping

    def get_next_session_time(self) -> Optional[GameTime]:
        now = self.state.time
        upcoming = [
            GameTime(s.scheduled_day, s.scheduled_hour, 0)
            for s in self.state.sessions
            if s.status == "scheduled" and clock.is_after(GameTime(s.scheduled_day, s.scheduled_hour, 0), now)
        ]
        return min(upcoming, key=clock.to_total_minutes, default=None)

    def _has_remaining_sessions_today(self) -> bool:
        now = self.state.time
        current = clock.to_total_minutes(now)
        return any(
            s.status == "scheduled"
            and s.scheduled_day == now.day
            and clock.to_total_minutes(GameTime(s.scheduled_day, s.scheduled_hour, 0)) >= current
            for s in self.state.sessions
        )

    def skip_to(self, target: GameTime) -> Optional[List[Event]]:
        """Jump the clock forward, replaying idle recovery; None when the skip is refused."""
        state = self.state
        if state.active_sessions() or self.is_paused:
            return None

        now = state.time
        if not self._has_remaining_sessions_today():
            next_day_start = GameTime(now.day + 1, SCHEDULE.business_start, 0)
            if clock.is_after(target, next_day_start):
                target = next_day_start

        next_session = self.get_next_session_time()
        if next_session is not None and clock.is_after(target, next_session):
            return None

        advance = clock.skip_to(now, target)
        if not advance.minute_changed:
            return None

        events: List[Event] = []
        if advance.day_ended:
            events += self.on_minute_advance(clock.minutes_until_day_end(now))
            state.time = advance.current
            events += self.on_day_rollover(now.day, target.day)
            events += self.on_hour_changed(target.hour)
            events += self.on_minute_advance(target.hour * 60 + target.minute - SCHEDULE.business_start * 60)
        else:
            events += self.on_minute_advance(clock.diff_minutes(now, target))
            state.time = advance.current
            if advance.hour_changed:
                events += self.on_hour_changed(target.hour)
        events += self._start_due_sessions()
        return self._emit(events)

    def skip_to_next_session(self) -> Optional[List[Event]]:
        state = self.state
        if state.active_sessions() or self.is_paused:
            return None
        now = state.time

        if now.minute == 0 and any(
            s.status == "scheduled" and s.scheduled_day == now.day and s.scheduled_hour == now.hour
            for s in state.sessions
        ):
            return self._emit(self._start_due_sessions())

        if not self._has_remaining_sessions_today():
            return self.skip_to(GameTime(now.day + 1, SCHEDULE.business_start, 0))

        target = self.get_next_session_time()
        if target is None:
            return None
        return self.skip_to(target)

    # headless play

    def book_from_suggestions(self) -> int:
        """Accept every current suggestion as a short recurring series; returns sessions booked."""
        state = self.state
        result = generate_booking_suggestions(
            list(state.clients.values()),
            list(state.therapists.values()),
            state.sessions,
            state.schedule,
            state.building,
            state.telehealth_unlocked,
            state.time,
            self.cfg.max_suggestions,
            self.cfg.booking_horizon_days,
        )
        booked = 0
        for suggestion in result.suggestions:
            series, events = state.book_recurring(
                suggestion.therapist_id,
                suggestion.client_id,
                suggestion.day,
                suggestion.hour,
                count=max(1, min(self.cfg.recurring_bookings, suggestion.suggested_recurring_count)),
                interval_days=suggestion.suggested_interval_days,
                duration=suggestion.duration,
                is_virtual=suggestion.is_virtual,
            )
            self._emit(events)
            booked += len(series.sessions)
        if result.unschedulable:
            logger.debug("%d clients could not be scheduled", len(result.unschedulable))
        return booked

    def run(self) -> Tuple[pd.DataFrame, Dict[str, float]]:
        state = self.state
        start_balance = state.balance
        end_day = state.time.day + self.cfg.days
        booked_day = None

        while state.time.day < end_day:
            if booked_day != state.time.day:
                self.book_from_suggestions()
                booked_day = state.time.day
            for session_id, event in list(self.pending_decisions.items()):
                self.resolve_decision(session_id, best_choice_index(event))
            if not state.active_sessions() and self.skip_to_next_session() is not None:
                continue
            self.tick()

        df = self._to_dataframe()
        metrics = self._compute_metrics(df, start_balance)
        return df, metrics

    def _to_dataframe(self) -> pd.DataFrame:
        records = []
        for s in self.state.sessions:
            client = self.state.clients.get(s.client_id)
            records.append(
                {
                    "session_id": s.id,
                    "therapist_id": s.therapist_id,
                    "client_id": s.client_id,
                    "condition": client.condition_category if client else None,
                    "severity": client.severity if client else None,
                    "day": s.scheduled_day,
                    "hour": s.scheduled_hour,
                    "duration": s.duration_minutes,
                    "is_virtual": s.is_virtual,
                    "is_insurance": s.is_insurance,
                    "status": s.status,
                    "quality": s.quality if s.status == "completed" else np.nan,
                    "payment": s.payment,
                    "xp_gained": s.xp_gained,
                    "decisions": len(s.decisions_made),
                    "created_day": s.created_day,
                }
            )
        return pd.DataFrame.from_records(records, columns=_LEDGER_COLUMNS)

    def _compute_metrics(self, df: pd.DataFrame, start_balance: float) -> Dict[str, float]:
        counts = Counter(e.name for e in self.history)
        completed = df[df["status"] == "completed"]
        metrics: Dict[str, float] = {}
        metrics["sessions_booked"] = int(len(df))
        metrics["sessions_completed"] = int(len(completed))
        metrics["sessions_cancelled"] = int((df["status"] == "cancelled").sum())
        metrics["avg_quality"] = float(completed["quality"].mean()) if len(completed) else 0.0
        metrics["virtual_share"] = float(completed["is_virtual"].mean()) if len(completed) else 0.0
        metrics["clients_arrived"] = counts[ev.CLIENT_ARRIVED]
        metrics["clients_cured"] = counts[ev.CLIENT_CURED]
        metrics["clients_dropped"] = counts[ev.CLIENT_DROPPED]
        metrics["claims_paid"] = counts[ev.INSURANCE_CLAIM_PAID]
        metrics["claims_denied"] = counts[ev.INSURANCE_CLAIM_DENIED]
        metrics["claims_pending"] = sum(1 for c in self.state.claims if c.status == "pending")
        metrics["net_income"] = float(self.state.balance - start_balance)
        metrics["final_reputation"] = float(self.state.reputation)
        return metrics


_LEDGER_COLUMNS = [
    "session_id",
    "therapist_id",
    "client_id",
    "condition",
    "severity",
    "day",
    "hour",
    "duration",
    "is_virtual",
    "is_insurance",
    "status",
    "quality",
    "payment",
    "xp_gained",
    "decisions",
    "created_day",
]
