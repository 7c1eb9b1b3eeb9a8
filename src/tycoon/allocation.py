"""
Client/therapist matching: certification gate, specialization, traits and modality fit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from .config import (
    INTEGRATIVE_BONUS,
    MATCH_SPECIALIZATION_MAP,
    MODALITY_CONFIG,
    SECONDARY_MODALITY_FACTOR,
)
from .models import Client, Therapist, ValidationResult

AVAILABILITY_MATCH = 50  # flat until per-slot availability feeds the score


@dataclass
class MatchScore:
    client_id: str
    therapist_id: str
    score: int
    certification_match: int
    specialization_match: int
    availability_match: int
    trait_match: int
    modality_bonus: float


def get_modality_match_bonus(therapist: Therapist, condition_category: str) -> float:
    primary = MODALITY_CONFIG[therapist.primary_modality]
    if condition_category in primary.strong_match:
        return primary.match_bonus
    for modality in therapist.secondary_modalities:
        info = MODALITY_CONFIG[modality]
        if condition_category in info.strong_match:
            return info.match_bonus * SECONDARY_MODALITY_FACTOR
    if therapist.primary_modality == "Integrative":
        return INTEGRATIVE_BONUS
    return 0.0


def can_therapist_serve_client(client: Client, therapist: Therapist) -> ValidationResult:
    certs = therapist.certifications
    if client.is_minor and "children_certified" not in certs:
        return ValidationResult(False, "Client is a minor and therapist lacks children certification")
    if client.is_couple and "couples_certified" not in certs:
        return ValidationResult(False, "Client is a couple and therapist lacks couples certification")
    if client.required_certification and client.required_certification not in certs:
        return ValidationResult(
            False, f"Client requires {client.required_certification} certification which therapist lacks"
        )
    return ValidationResult(True)


def calculate_match_score(client: Client, therapist: Therapist) -> MatchScore:
    """Weighted fit score in [0, 100]; a failed certification gate zeroes it."""
    certification = 100 if can_therapist_serve_client(client, therapist).valid else 0

    relevant = MATCH_SPECIALIZATION_MAP.get(client.condition_category, [])
    overlap = sum(1 for s in therapist.specializations if s in relevant)
    specialization = min(100, overlap * 40) if overlap else 20

    traits = therapist.traits
    trait = 20 + traits.warmth * 5
    if client.condition_category in ("anxiety", "depression"):
        trait += traits.analytical * 3
    if client.condition_category in ("behavioral", "relationship"):
        trait += traits.creativity * 3
    trait = min(100, trait)

    modality = get_modality_match_bonus(therapist, client.condition_category)
    weighted = certification * 0.4 + specialization * 0.25 + AVAILABILITY_MATCH * 0.15 + trait * 0.2
    score = min(100, round(weighted + modality * 100)) if certification else 0

    return MatchScore(
        client_id=client.id,
        therapist_id=therapist.id,
        score=score,
        certification_match=certification,
        specialization_match=specialization,
        availability_match=AVAILABILITY_MATCH,
        trait_match=trait,
        modality_bonus=modality,
    )


def find_best_match(client: Client, therapists: Sequence[Therapist]) -> Optional[MatchScore]:
    best: Optional[MatchScore] = None
    for therapist in therapists:
        if therapist.status == "burned_out":
            continue
        match = calculate_match_score(client, therapist)
        if match.certification_match == 0:
            continue
        if best is None or match.score > best.score:
            best = match
    return best
