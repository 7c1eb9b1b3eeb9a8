"""
Insurance claims pipeline: claim creation, due-day resolution, denial reasons and appeals.

All randomness goes through one `Random(seed)` stream per call so a seeded
run resolves the same claims the same way.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from random import Random
from typing import Dict, Iterable, List, Optional, Sequence

from .config import DENIAL_REASONS, INSURANCE, INSURANCE_PANELS
from .models import AppealResult, InsurancePanel, PendingClaim, Session, ValidationResult

logger = logging.getLogger(__name__)


@dataclass
class ClaimTicket:
    claim_id: str
    session_id: str
    insurer_id: str
    base_amount: int
    amount: int
    scheduled_payment_day: int


@dataclass
class ClaimResolution:
    claim_id: str
    paid: bool
    amount: int
    denial_reason: Optional[str] = None
    appeal_deadline_day: Optional[int] = None

    @property
    def denied(self) -> bool:
        return not self.paid


@dataclass
class ClaimBatch:
    paid: List[ClaimResolution] = field(default_factory=list)
    denied: List[ClaimResolution] = field(default_factory=list)
    remaining: List[PendingClaim] = field(default_factory=list)


@dataclass
class PanelApplication:
    success: bool
    accepted: bool
    reason: Optional[str] = None
    panel_id: Optional[str] = None
    application_fee: int = 0


@dataclass
class ClaimStats:
    total_pending: int
    total_pending_amount: int
    by_insurer: Dict[str, Dict[str, int]]
    oldest_claim_day: Optional[int]


def create_claim(
    session: Session,
    panel: InsurancePanel,
    current_day: int,
    insurance_multiplier: float = INSURANCE.default_multiplier,
    claim_id: Optional[str] = None,
) -> ClaimTicket:
    return ClaimTicket(
        claim_id=claim_id or str(uuid.uuid4()),
        session_id=session.id,
        insurer_id=panel.id,
        base_amount=panel.reimbursement,
        amount=round(panel.reimbursement * insurance_multiplier),
        scheduled_payment_day=current_day + panel.delay_days,
    )


def create_pending_claim(ticket: ClaimTicket) -> PendingClaim:
    return PendingClaim(
        id=ticket.claim_id,
        session_id=ticket.session_id,
        insurer_id=ticket.insurer_id,
        amount=ticket.amount,
        scheduled_payment_day=ticket.scheduled_payment_day,
    )


def select_denial_reason(rng: Random) -> str:
    reasons = list(DENIAL_REASONS)
    return rng.choices(reasons, weights=[DENIAL_REASONS[r].weight for r in reasons])[0]


def process_due_claims(
    claims: Iterable[PendingClaim],
    current_day: int,
    denial_rates: Dict[str, float],
    seed: Optional[int] = None,
) -> ClaimBatch:
    """Resolve pending claims whose payment day has arrived; everything else passes through."""
    rng = Random(seed)
    batch = ClaimBatch()
    for claim in claims:
        if claim.status != "pending" or claim.scheduled_payment_day > current_day:
            batch.remaining.append(claim)
            continue

        claim.resolved_day = current_day
        if rng.random() < denial_rates.get(claim.insurer_id, 0.0):
            claim.status = "denied"
            claim.denial_reason = select_denial_reason(rng)
            claim.appeal_deadline_day = current_day + INSURANCE.appeal_window_days
            batch.denied.append(
                ClaimResolution(claim.id, False, 0, claim.denial_reason, claim.appeal_deadline_day)
            )
            logger.info("Claim %s denied by %s: %s", claim.id, claim.insurer_id, claim.denial_reason)
        else:
            claim.status = "paid"
            batch.paid.append(ClaimResolution(claim.id, True, claim.amount))
            logger.info("Claim %s paid by %s: $%d", claim.id, claim.insurer_id, claim.amount)
    return batch


def can_appeal_claim(claim: PendingClaim, current_day: int) -> ValidationResult:
    if claim.status != "denied":
        return ValidationResult(False, "Only denied claims can be appealed")
    if not claim.denial_reason:
        return ValidationResult(False, "Claim has no denial reason")
    if claim.appeal_deadline_day is None:
        return ValidationResult(False, "No appeal deadline set")
    if current_day > claim.appeal_deadline_day:
        return ValidationResult(False, "Appeal deadline has passed")
    if claim.appeal_submitted_day is not None:
        return ValidationResult(False, "Appeal already submitted")
    return ValidationResult(True)


def submit_appeal(claim: PendingClaim, current_day: int) -> AppealResult:
    check = can_appeal_claim(claim, current_day)
    if not check.valid:
        return AppealResult(False, check.reason)
    new_day = current_day + INSURANCE.appeal_processing_days
    claim.status = "appealed"
    claim.appeal_submitted_day = current_day
    claim.scheduled_payment_day = new_day
    logger.info("Appeal submitted for claim %s, resolves on day %d", claim.id, new_day)
    return AppealResult(True, new_payment_day=new_day)


def process_appeals(claims: Iterable[PendingClaim], current_day: int, seed: Optional[int] = None) -> ClaimBatch:
    """Resolve appeals whose processing window has elapsed using the denial reason's success rate."""
    rng = Random(seed)
    batch = ClaimBatch()
    for claim in claims:
        if claim.status != "appealed" or claim.appeal_submitted_day is None:
            batch.remaining.append(claim)
            continue
        if claim.appeal_submitted_day + INSURANCE.appeal_processing_days > current_day:
            batch.remaining.append(claim)
            continue

        reason = DENIAL_REASONS.get(claim.denial_reason)
        success_rate = reason.appeal_success_rate if reason else INSURANCE.default_appeal_success_rate
        claim.resolved_day = current_day
        if rng.random() < success_rate:
            claim.status = "paid"
            batch.paid.append(ClaimResolution(claim.id, True, claim.amount))
            logger.info("Appeal approved for claim %s", claim.id)
        else:
            # final: appeal_submitted_day stays set so the claim cannot be appealed again
            claim.status = "denied"
            batch.denied.append(ClaimResolution(claim.id, False, 0, claim.denial_reason))
            logger.info("Appeal rejected for claim %s", claim.id)
    return batch


def get_claim_stats(claims: Iterable[PendingClaim]) -> ClaimStats:
    by_insurer = {pid: {"count": 0, "amount": 0} for pid in INSURANCE_PANELS}
    total = amount = 0
    oldest: Optional[int] = None
    for claim in claims:
        if claim.status != "pending":
            continue
        total += 1
        amount += claim.amount
        bucket = by_insurer.setdefault(claim.insurer_id, {"count": 0, "amount": 0})
        bucket["count"] += 1
        bucket["amount"] += claim.amount
        if oldest is None or claim.scheduled_payment_day < oldest:
            oldest = claim.scheduled_payment_day
    return ClaimStats(total, amount, by_insurer, oldest)


def calculate_expected_income(
    claims: Iterable[PendingClaim], denial_rates: Dict[str, float], days_ahead: int, current_day: int
) -> int:
    expected = sum(
        c.amount * (1 - denial_rates.get(c.insurer_id, 0.0))
        for c in claims
        if c.status == "pending" and c.scheduled_payment_day <= current_day + days_ahead
    )
    return round(expected)


def get_claims_due_within(claims: Iterable[PendingClaim], current_day: int, days_ahead: int) -> List[PendingClaim]:
    return [
        c
        for c in claims
        if c.status == "pending" and current_day <= c.scheduled_payment_day <= current_day + days_ahead
    ]


def get_appealable_claims(claims: Iterable[PendingClaim], current_day: int) -> List[PendingClaim]:
    return [c for c in claims if can_appeal_claim(c, current_day).valid]


def can_apply_to_panel(
    panel: InsurancePanel,
    reputation: float,
    balance: float,
    active_panels: Sequence[str],
    pending_applications: Sequence[str] = (),
) -> ValidationResult:
    if panel.id in active_panels:
        return ValidationResult(False, "Already a member of this panel")
    if panel.id in pending_applications:
        return ValidationResult(False, "Application already pending")
    if reputation < panel.min_reputation:
        return ValidationResult(False, f"Requires {panel.min_reputation} reputation (current: {int(reputation)})")
    if balance < panel.application_fee:
        return ValidationResult(False, f"Need ${panel.application_fee - balance:.0f} more for application fee")
    return ValidationResult(True)


def calculate_acceptance_rate(panel: InsurancePanel, reputation: float) -> float:
    above_min = max(0.0, reputation - panel.min_reputation)
    rate = INSURANCE.base_acceptance_rate + (above_min // INSURANCE.acceptance_reputation_step) * (
        INSURANCE.acceptance_bonus_per_step
    )
    return min(INSURANCE.max_acceptance_rate, max(INSURANCE.min_acceptance_rate, rate))


def apply_to_panel(
    panel: InsurancePanel,
    reputation: float,
    balance: float,
    active_panels: Sequence[str],
    pending_applications: Sequence[str] = (),
    seed: Optional[int] = None,
) -> PanelApplication:
    check = can_apply_to_panel(panel, reputation, balance, active_panels, pending_applications)
    if not check.valid:
        return PanelApplication(success=False, accepted=False, reason=check.reason)
    accepted = Random(seed).random() < calculate_acceptance_rate(panel, reputation)
    return PanelApplication(
        success=True,
        accepted=accepted,
        reason=None if accepted else "Application was not accepted",
        panel_id=panel.id,
        application_fee=panel.application_fee,
    )
