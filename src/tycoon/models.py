"""
Typed containers used throughout the practice engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class GameTime:
    day: int  # 1-based
    hour: int  # 0-23
    minute: int = 0


@dataclass
class WorkSchedule:
    work_start_hour: int = 8
    work_end_hour: int = 17  # exclusive
    break_hours: List[int] = field(default_factory=lambda: [12])


@dataclass
class TherapistTraits:
    warmth: int = 5  # 1-10
    analytical: int = 5
    creativity: int = 5


@dataclass
class Therapist:
    id: str
    display_name: str
    is_player: bool = False
    energy: float = 100
    max_energy: float = 100
    base_skill: int = 50  # 1-100
    level: int = 1
    xp: int = 0
    certifications: List[str] = field(default_factory=list)
    specializations: List[str] = field(default_factory=list)
    status: str = "available"  # available / in_session / on_break / in_training / burned_out
    traits: TherapistTraits = field(default_factory=TherapistTraits)
    primary_modality: str = "Integrative"
    secondary_modalities: List[str] = field(default_factory=list)
    work_schedule: Optional[WorkSchedule] = None
    burnout_recovery_progress: float = 0
    energy_remainder: int = 0  # idle recovery carried in 1/60 energy units


@dataclass
class Client:
    id: str
    display_name: str
    condition_category: str
    severity: int  # 1-10
    sessions_required: int
    condition_type: str = ""
    sessions_completed: int = 0
    treatment_progress: float = 0.0  # 0-1
    status: str = "waiting"  # waiting / in_treatment / completed / dropped
    satisfaction: float = 70  # 0-100
    engagement: float = 60  # 0-100
    is_private_pay: bool = True
    session_rate: int = 150
    insurance_provider: Optional[str] = None
    prefers_virtual: bool = False
    preferred_frequency: str = "weekly"  # once / weekly / biweekly / monthly
    preferred_time: str = "any"  # morning / afternoon / evening / any
    availability: Dict[str, List[int]] = field(default_factory=dict)  # weekday -> hours
    required_certification: Optional[str] = None
    is_minor: bool = False
    is_couple: bool = False
    arrival_day: int = 1
    days_waiting: int = 0
    max_wait_days: int = 14
    assigned_therapist_id: Optional[str] = None
    last_processed_day: Optional[int] = None


@dataclass
class QualityModifier:
    source: str
    value: float
    description: str


@dataclass
class DecisionRecord:
    event_id: str
    choice_index: int
    quality_effect: float = 0.0
    energy_effect: float = 0.0
    satisfaction_effect: float = 0.0


@dataclass
class Session:
    id: str
    therapist_id: str
    client_id: str
    scheduled_day: int
    scheduled_hour: int
    duration_minutes: int = 50  # 50 / 80 / 180
    is_virtual: bool = False
    is_insurance: bool = False
    status: str = "scheduled"  # scheduled / in_progress / completed / cancelled
    progress: float = 0.0
    quality: float = 0.5
    quality_modifiers: List[QualityModifier] = field(default_factory=list)
    payment: int = 0
    energy_cost: int = 0
    xp_gained: int = 0
    decisions_made: List[DecisionRecord] = field(default_factory=list)
    created_day: int = 1
    started_at: Optional[GameTime] = None
    completed_at: Optional[GameTime] = None


@dataclass(frozen=True)
class DecisionChoice:
    text: str
    quality: float = 0.0
    energy: float = 0.0
    satisfaction: float = 0.0


@dataclass(frozen=True)
class DecisionEvent:
    id: str
    title: str
    description: str
    choices: tuple
    min_severity: Optional[int] = None
    condition_categories: Optional[tuple] = None


@dataclass(frozen=True)
class InsurancePanel:
    id: str
    name: str
    reimbursement: int
    delay_days: int
    denial_rate: float
    application_fee: int
    min_reputation: int


@dataclass
class PendingClaim:
    id: str
    session_id: str
    insurer_id: str
    amount: int
    scheduled_payment_day: int
    status: str = "pending"  # pending / paid / denied / appealed
    denial_reason: Optional[str] = None
    appeal_deadline_day: Optional[int] = None
    appeal_submitted_day: Optional[int] = None
    resolved_day: Optional[int] = None


@dataclass
class Building:
    id: str = "starter_suite"
    name: str = "Starter Suite"
    rooms: int = 1


@dataclass
class ValidationResult:
    valid: bool
    reason: Optional[str] = None


@dataclass
class BookingResult:
    success: bool
    reason: Optional[str] = None
    session: Optional[Session] = None


@dataclass
class AppealResult:
    success: bool
    reason: Optional[str] = None
    new_payment_day: Optional[int] = None
