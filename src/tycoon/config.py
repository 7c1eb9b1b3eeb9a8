"""
Centralized practice tunables and lookup tables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .models import InsurancePanel


WEEKDAYS: List[str] = ["monday", "tuesday", "wednesday", "thursday", "friday"]
CONDITION_CATEGORIES: List[str] = ["anxiety", "depression", "trauma", "stress", "relationship", "behavioral"]
CERTIFICATIONS: List[str] = [
    "trauma_certified",
    "couples_certified",
    "supervisor_certified",
    "telehealth_certified",
    "children_certified",
    "substance_certified",
    "emdr_certified",
    "cbt_certified",
    "dbt_certified",
]
SPECIALIZATIONS: List[str] = [
    "children",
    "couples",
    "trauma",
    "ptsd",
    "anxiety_disorders",
    "depression",
    "grief",
    "eating_disorders",
    "ocd",
    "personality_disorders",
    "substance_abuse",
    "stress_management",
]
MODALITIES: List[str] = [
    "CBT",
    "DBT",
    "Psychodynamic",
    "Humanistic",
    "EMDR",
    "Somatic",
    "FamilySystems",
    "Integrative",
]

CONDITION_TYPES: Dict[str, List[str]] = {
    "anxiety": ["Generalized Anxiety", "Social Anxiety", "Panic Disorder", "Phobias", "Health Anxiety"],
    "depression": [
        "Major Depression",
        "Persistent Depressive Disorder",
        "Seasonal Affective Disorder",
        "Postpartum Depression",
    ],
    "trauma": ["PTSD", "Complex PTSD", "Acute Stress Disorder", "Childhood Trauma"],
    "stress": ["Work Stress", "Burnout", "Life Transitions", "Caregiver Stress"],
    "relationship": ["Couples Issues", "Family Conflict", "Communication Problems", "Divorce/Separation"],
    "behavioral": ["Anger Management", "Impulse Control", "Addiction Recovery", "Eating Disorders"],
}

CERTIFICATION_REQUIREMENTS: Dict[str, str] = {
    "trauma": "trauma_certified",
    "relationship": "couples_certified",
}

FREQUENCY_DAYS: Dict[str, int] = {"once": 0, "weekly": 7, "biweekly": 14, "monthly": 30}

# inclusive start, exclusive end
TIME_PREFERENCE_WINDOWS: Dict[str, Tuple[int, int]] = {
    "morning": (8, 12),
    "afternoon": (12, 16),
    "evening": (16, 18),
    "any": (0, 24),
}

# Specializations that earn the quality bonus when a session starts.
SESSION_SPECIALIZATION_MAP: Dict[str, List[str]] = {
    "anxiety": ["anxiety_disorders", "stress_management"],
    "depression": ["depression", "grief"],
    "trauma": ["trauma", "ptsd"],
    "stress": ["stress_management"],
    "relationship": ["couples"],
    "behavioral": ["substance_abuse", "eating_disorders", "ocd"],
}

# Specializations counted by the client/therapist match score.
MATCH_SPECIALIZATION_MAP: Dict[str, List[str]] = {
    "anxiety": ["anxiety_disorders", "stress_management", "ocd"],
    "depression": ["depression", "grief"],
    "trauma": ["trauma", "ptsd"],
    "stress": ["stress_management"],
    "relationship": ["couples"],
    "behavioral": ["substance_abuse", "eating_disorders", "personality_disorders"],
}

# Specializations shown as a match reason on booking suggestions.
SUGGESTION_SPECIALIZATION_MAP: Dict[str, List[str]] = {
    "anxiety": ["anxiety_disorders", "anxiety", "stress_management", "ocd"],
    "depression": ["depression", "mood_disorders"],
    "trauma": ["trauma", "ptsd", "crisis"],
    "behavioral": ["behavioral", "children", "adolescents"],
    "relationship": ["couples", "family", "relationship"],
    "stress": ["stress_management", "anxiety", "burnout"],
}


@dataclass(frozen=True)
class ModalityInfo:
    name: str
    strong_match: Tuple[str, ...]
    match_bonus: float


MODALITY_CONFIG: Dict[str, ModalityInfo] = {
    "CBT": ModalityInfo("Cognitive Behavioral Therapy", ("anxiety", "depression", "behavioral"), 0.10),
    "DBT": ModalityInfo("Dialectical Behavior Therapy", ("behavioral", "stress"), 0.12),
    "Psychodynamic": ModalityInfo("Psychodynamic Therapy", ("depression", "relationship"), 0.08),
    "Humanistic": ModalityInfo("Humanistic Therapy", ("stress", "depression"), 0.08),
    "EMDR": ModalityInfo("EMDR", ("trauma",), 0.15),
    "Somatic": ModalityInfo("Somatic Therapy", ("trauma", "stress"), 0.12),
    "FamilySystems": ModalityInfo("Family Systems Therapy", ("relationship",), 0.12),
    "Integrative": ModalityInfo("Integrative Therapy", (), 0.05),
}
INTEGRATIVE_BONUS = 0.05
SECONDARY_MODALITY_FACTOR = 0.5


@dataclass(frozen=True)
class ScheduleConfig:
    default_duration: int = 50
    buffer_time: int = 10
    max_sessions_per_day: int = 8
    business_start: int = 8
    business_end: int = 17


SCHEDULE = ScheduleConfig()

SESSION_DURATIONS: Tuple[int, ...] = (50, 80, 180)
PAYMENT_MULTIPLIERS: Dict[int, float] = {50: 1.0, 80: 1.5, 180: 3.0}
ENERGY_COSTS: Dict[int, int] = {50: 15, 80: 25, 180: 50}
ENERGY_LEVEL_DISCOUNT = 0.01  # per therapist level, capped at level 50
ENERGY_DISCOUNT_LEVEL_CAP = 50
ENERGY_DISCOUNT_FLOOR = 0.5


@dataclass(frozen=True)
class SessionConfig:
    base_quality: float = 0.5
    base_xp: int = 10
    high_quality_xp_multiplier: float = 1.5
    high_quality_threshold: float = 0.75
    base_satisfaction_change: int = 5
    progress_per_quality: float = 0.1
    decision_event_chance: float = 0.4
    min_progress_for_event: float = 0.2
    breakthrough_quality_threshold: float = 0.9
    breakthrough_chance: float = 0.2
    breakthrough_multiplier: float = 2.0
    plateau_chance: float = 0.15
    plateau_multiplier: float = 0.25
    plateau_satisfaction_threshold: float = 50
    regression_amount: float = 0.02
    regression_chance: float = 0.3
    cancellation_satisfaction_penalty: float = 10
    # start-of-session quality modifiers
    skill_weight: float = 0.3
    energy_weight: float = 0.2
    engagement_weight: float = 0.15
    specialization_bonus: float = 0.1
    certification_bonus: float = 0.05
    virtual_mismatch_penalty: float = 0.05
    high_severity_threshold: int = 7
    high_severity_penalty: float = 0.05


SESSION = SessionConfig()


@dataclass(frozen=True)
class ClientConfig:
    min_sessions_required: int = 4
    max_sessions_required: int = 20
    min_severity: int = 1
    max_severity: int = 10
    base_satisfaction: float = 70
    base_engagement: float = 60
    default_max_wait_days: int = 14
    min_max_wait_days: int = 7
    wait_satisfaction_loss: float = 2
    dropout_threshold: float = 30
    # satisfaction/engagement swing per unit of quality away from the 0.5 midpoint
    outcome_satisfaction_scale: float = 10
    outcome_engagement_scale: float = 10
    outcome_midpoint: float = 0.5
    private_pay_chance: float = 0.3
    virtual_preference_chance: float = 0.4
    minor_chance: float = 0.15
    couple_chance: float = 0.1
    credential_required_rate: float = 0.35
    # dropout risk tiers as (satisfaction, engagement) upper bounds
    high_risk: Tuple[float, float] = (40, 40)
    medium_risk: Tuple[float, float] = (50, 50)
    low_risk: Tuple[float, float] = (60, 60)


CLIENTS = ClientConfig()


@dataclass(frozen=True)
class TherapistConfig:
    base_max_energy: int = 100
    energy_recovery_per_hour: int = 10
    burnout_threshold: int = 20
    forced_break_threshold: int = 10
    burnout_recovery_per_day: int = 50
    break_return_energy: int = 50
    overnight_rest_hours: int = 16
    work_start_hour: int = 8
    work_end_hour: int = 17
    break_hours: Tuple[int, ...] = (12,)


THERAPISTS = TherapistConfig()


@dataclass(frozen=True)
class DenialReason:
    label: str
    description: str
    weight: int
    appeal_success_rate: float


DENIAL_REASONS: Dict[str, DenialReason] = {
    "insufficient_documentation": DenialReason(
        "Insufficient Documentation", "Session notes did not support the billed service.", 30, 0.7
    ),
    "medical_necessity": DenialReason(
        "Medical Necessity", "Insurer questioned whether continued treatment is necessary.", 25, 0.4
    ),
    "coding_error": DenialReason("Coding Error", "The claim was submitted with an incorrect billing code.", 20, 0.85),
    "session_limit_exceeded": DenialReason(
        "Session Limit Exceeded", "The client has used their covered sessions for the year.", 10, 0.2
    ),
    "prior_auth_required": DenialReason(
        "Prior Authorization Required", "The insurer required authorization before treatment.", 10, 0.3
    ),
    "out_of_network": DenialReason("Out of Network", "The insurer considers the provider out of network.", 5, 0.1),
}

# reimbursement, payment delay (days), denial rate, application fee, minimum reputation
INSURANCE_PANELS: Dict[str, InsurancePanel] = {
    "aetna": InsurancePanel("aetna", "Aetna", 120, 21, 0.08, 200, 30),
    "bluecross": InsurancePanel("bluecross", "Blue Cross Blue Shield", 130, 28, 0.05, 250, 50),
    "cigna": InsurancePanel("cigna", "Cigna", 115, 14, 0.10, 150, 20),
    "united": InsurancePanel("united", "United Healthcare", 125, 30, 0.07, 300, 75),
    "medicaid": InsurancePanel("medicaid", "Medicaid", 85, 45, 0.15, 0, 0),
}


@dataclass(frozen=True)
class InsuranceConfig:
    appeal_window_days: int = 14
    appeal_processing_days: int = 7
    default_appeal_success_rate: float = 0.5
    base_acceptance_rate: float = 0.85
    acceptance_bonus_per_step: float = 0.05
    acceptance_reputation_step: int = 50
    min_acceptance_rate: float = 0.70
    max_acceptance_rate: float = 0.95
    default_multiplier: float = 1.0
    max_multiplier: float = 1.5


INSURANCE = InsuranceConfig()


@dataclass(frozen=True)
class ReputationConfig:
    # (minimum quality, reputation delta), checked top to bottom
    session_tiers: Tuple[Tuple[float, int], ...] = ((0.8, 5), (0.65, 2), (0.5, 0), (0.3, -2))
    very_poor_session: int = -5
    client_cured_bonus: int = 5
    client_dropout_penalty: int = -3


REPUTATION = ReputationConfig()


@dataclass(frozen=True)
class ArrivalConfig:
    base_chance: float = 0.2
    day_bonus_per_day: float = 0.01
    max_day_bonus: float = 0.3
    reputation_bonus: float = 0.002
    max_chance: float = 0.8
    # (first day, attempts per day) thresholds
    attempt_tiers: Tuple[Tuple[int, int], ...] = ((60, 4), (30, 3), (10, 2))


ARRIVALS = ArrivalConfig()


@dataclass(frozen=True)
class SuggestionConfig:
    urgency_weights: Tuple[Tuple[str, int], ...] = (("overdue", 1000), ("due_soon", 500), ("normal", 100))
    quality_weights: Tuple[Tuple[str, int], ...] = (("excellent", 150), ("good", 100), ("fair", 50))
    due_soon_days: int = 3
    max_recurring: int = 20
    default_interval_days: int = 7
    good_energy_floor: int = 30
    modality_weight: float = 0.33
    continuity_bonus: int = 40
    preferred_slot_bonus: int = 30
    match_score_weight: float = 0.5
    good_energy_bonus: int = 20
    penalty_per_day_out: int = 3
    # breakdown tiers
    excellent_score: int = 75
    good_score: int = 50
    strong_match_score: int = 70
    strong_modality_bonus: float = 0.1
    strong_trait_match: int = 70
    min_strong_factors: int = 2


SUGGESTIONS = SuggestionConfig()

PRIVATE_PAY_RATE_RANGE: Tuple[int, int] = (120, 200)
INSURANCE_RATE_RANGE: Tuple[int, int] = (80, 150)
FALLBACK_CERTIFICATIONS: List[str] = ["cbt_certified", "dbt_certified", "emdr_certified", "substance_certified"]
AVAILABILITY_HOURS: Dict[str, List[int]] = {
    "morning": [9, 10, 11],
    "afternoon": [13, 14, 15, 16],
    "evening": [17, 18, 19],
}
AVAILABILITY_DAY_CHANCE = 0.8


@dataclass(frozen=True)
class SaveConfig:
    sessions_retention_days: int = 14
    schedule_past_days: int = 14


SAVE = SaveConfig()


@dataclass
class SimulationConfig:
    seed: Optional[int] = 42
    days: int = 30
    therapists: int = 3
    clients_per_day: float = 2.0  # scales daily arrival attempts
    initial_clients: int = 6
    rooms: int = 2
    telehealth_unlocked: bool = True
    reputation: int = 40
    starting_balance: int = 5_000
    session_rate: int = 150  # private-pay rate per 50 minutes
    insurance_multiplier: float = 1.0
    panels: List[str] = field(default_factory=lambda: ["aetna", "cigna", "medicaid"])
    auto_resolve_decisions: bool = True
    booking_horizon_days: int = 14
    max_suggestions: int = 10
    recurring_bookings: int = 4  # occurrences booked per accepted suggestion
