"""
Save/load of a practice as a single JSON slot with history pruning.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .config import SAVE
from .models import (
    Building,
    Client,
    DecisionRecord,
    GameTime,
    PendingClaim,
    QualityModifier,
    Session,
    Therapist,
    TherapistTraits,
    WorkSchedule,
)
from .scheduling import ScheduleGrid, build_schedule_from_sessions
from .state import PracticeState

logger = logging.getLogger(__name__)

SAVE_VERSION = 1


def prune_sessions_for_save(
    sessions: Iterable[Session], clients: Iterable[Client], current_day: int
) -> List[Session]:
    """Keep live sessions, all history of active clients, and the recent window for everyone else."""
    active_ids = {c.id for c in clients if c.status in ("waiting", "in_treatment")}
    cutoff = current_day - SAVE.sessions_retention_days
    return [
        s
        for s in sessions
        if s.status in ("scheduled", "in_progress")
        or s.client_id in active_ids
        or s.scheduled_day >= cutoff
    ]


def prune_schedule_for_save(grid: ScheduleGrid, current_day: int) -> ScheduleGrid:
    # future days are always kept
    cutoff = current_day - SAVE.schedule_past_days
    return {day: hours for day, hours in grid.items() if day >= cutoff}


def _session_from_dict(data: Dict[str, Any]) -> Session:
    data = dict(data)
    data["quality_modifiers"] = [QualityModifier(**m) for m in data.get("quality_modifiers", [])]
    data["decisions_made"] = [DecisionRecord(**d) for d in data.get("decisions_made", [])]
    for key in ("started_at", "completed_at"):
        if data.get(key) is not None:
            data[key] = GameTime(**data[key])
    return Session(**data)


def _therapist_from_dict(data: Dict[str, Any]) -> Therapist:
    data = dict(data)
    data["traits"] = TherapistTraits(**data.get("traits", {}))
    if data.get("work_schedule") is not None:
        data["work_schedule"] = WorkSchedule(**data["work_schedule"])
    return Therapist(**data)


def state_to_dict(state: PracticeState) -> Dict[str, Any]:
    day = state.time.day
    sessions = prune_sessions_for_save(state.sessions, state.clients.values(), day)
    schedule = prune_schedule_for_save(build_schedule_from_sessions(sessions), day)
    return {
        "version": SAVE_VERSION,
        "timestamp": int(time.time()),
        "state": {
            "time": asdict(state.time),
            "therapists": [asdict(t) for t in state.therapists.values()],
            "clients": [asdict(c) for c in state.clients.values()],
            "sessions": [asdict(s) for s in sessions],
            # JSON object keys are strings; the grid is rebuilt from sessions on load
            "schedule": {
                str(d): {str(h): slots for h, slots in hours.items()} for d, hours in schedule.items()
            },
            "claims": [asdict(c) for c in state.claims],
            "building": asdict(state.building),
            "telehealth_unlocked": state.telehealth_unlocked,
            "balance": state.balance,
            "reputation": state.reputation,
            "active_panels": list(state.active_panels),
            "insurance_multiplier": state.insurance_multiplier,
            "id_counters": dict(state.id_counters),
        },
    }


def state_from_dict(payload: Dict[str, Any]) -> PracticeState:
    if payload.get("version", 0) > SAVE_VERSION:
        raise ValueError(f"Save version {payload.get('version')} is newer than supported ({SAVE_VERSION})")
    data = payload["state"]
    state = PracticeState(
        time=GameTime(**data["time"]),
        therapists={t["id"]: _therapist_from_dict(t) for t in data.get("therapists", [])},
        clients={c["id"]: Client(**c) for c in data.get("clients", [])},
        sessions=[_session_from_dict(s) for s in data.get("sessions", [])],
        claims=[PendingClaim(**c) for c in data.get("claims", [])],
        building=Building(**data.get("building", {})),
        telehealth_unlocked=data.get("telehealth_unlocked", False),
        balance=data.get("balance", 0),
        reputation=data.get("reputation", 0),
        active_panels=list(data.get("active_panels", [])),
        insurance_multiplier=data.get("insurance_multiplier", 1.0),
        id_counters=dict(data.get("id_counters", {})),
    )
    state.rebuild_schedule()
    return state


def save_state(state: PracticeState, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = state_to_dict(state)
    path.write_text(json.dumps(payload, indent=2))
    logger.info("Saved day %d to %s (%d sessions)", state.time.day, path, len(payload["state"]["sessions"]))
    return path


def load_state(path: Path) -> PracticeState:
    state = state_from_dict(json.loads(Path(path).read_text()))
    logger.info("Loaded day %d from %s", state.time.day, path)
    return state
