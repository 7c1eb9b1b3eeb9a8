"""
Insurance claims, denials, appeals and panel applications.
"""

import pytest

from tycoon.config import INSURANCE_PANELS
from tycoon.insurance import (
    calculate_acceptance_rate,
    calculate_expected_income,
    can_appeal_claim,
    can_apply_to_panel,
    create_claim,
    create_pending_claim,
    get_appealable_claims,
    get_claim_stats,
    process_appeals,
    process_due_claims,
    submit_appeal,
)
from tycoon.models import PendingClaim

from .conftest import build_session


@pytest.fixture
def aetna():
    return INSURANCE_PANELS["aetna"]


def denied_claim(reason="coding_error", deadline=36, **overrides):
    fields = dict(
        id="claim-1",
        session_id="s1",
        insurer_id="aetna",
        amount=120,
        scheduled_payment_day=22,
        status="denied",
        denial_reason=reason,
        appeal_deadline_day=deadline,
    )
    fields.update(overrides)
    return PendingClaim(**fields)


class TestClaimLifecycle:
    """Claim from filing through appeal"""

    def test_claim_amount_and_payment_day(self, aetna):
        ticket = create_claim(build_session(), aetna, 1, claim_id="claim-1")
        assert ticket.amount == 120
        assert ticket.scheduled_payment_day == 22
        assert create_claim(build_session(), aetna, 1, insurance_multiplier=1.25).amount == 150

    def test_denial_then_appeal(self, aetna):
        claim = create_pending_claim(create_claim(build_session(), aetna, 1, claim_id="claim-1"))

        early = process_due_claims([claim], 21, {"aetna": 1.0}, seed=1)
        assert early.remaining == [claim]

        batch = process_due_claims([claim], 22, {"aetna": 1.0}, seed=1)
        assert [r.claim_id for r in batch.denied] == ["claim-1"]
        assert claim.status == "denied"
        assert claim.denial_reason is not None
        assert claim.appeal_deadline_day == 36

        result = submit_appeal(claim, 30)
        assert result.success
        assert result.new_payment_day == 37
        assert claim.status == "appealed"

        assert process_appeals([claim], 36, seed=1).remaining == [claim]
        resolved = process_appeals([claim], 37, seed=1)
        assert len(resolved.paid) + len(resolved.denied) == 1
        assert claim.status in ("paid", "denied")

    def test_zero_denial_rate_always_pays(self, aetna):
        claim = create_pending_claim(create_claim(build_session(), aetna, 1))
        batch = process_due_claims([claim], 22, {"aetna": 0.0}, seed=3)
        assert batch.paid[0].amount == 120
        assert claim.status == "paid"

    def test_appeal_success_follows_denial_reason(self):
        """Test easy-to-fix denials are overturned far more often"""
        coding = out_of_network = 0
        for seed in range(200):
            claim = denied_claim("coding_error", status="appealed", appeal_submitted_day=30)
            coding += len(process_appeals([claim], 37, seed=seed).paid)
            claim = denied_claim("out_of_network", status="appealed", appeal_submitted_day=30)
            out_of_network += len(process_appeals([claim], 37, seed=seed).paid)
        assert coding > 140
        assert out_of_network < 45

    def test_rejected_appeal_is_final(self):
        claim = denied_claim("out_of_network", status="appealed", appeal_submitted_day=30)
        for seed in range(50):
            if process_appeals([claim], 37, seed=seed).denied:
                break
            claim = denied_claim("out_of_network", status="appealed", appeal_submitted_day=30)
        assert claim.status == "denied"
        assert can_appeal_claim(claim, 31).reason == "Appeal already submitted"


class TestAppealRules:
    def test_only_denied_claims(self):
        pending = denied_claim(status="pending")
        assert can_appeal_claim(pending, 25).reason == "Only denied claims can be appealed"

    def test_deadline(self):
        assert can_appeal_claim(denied_claim(), 36).valid
        assert can_appeal_claim(denied_claim(), 37).reason == "Appeal deadline has passed"

    def test_appealable_listing(self):
        claims = [denied_claim(id="a"), denied_claim(id="b", status="paid")]
        assert [c.id for c in get_appealable_claims(claims, 30)] == ["a"]


class TestClaimReporting:
    def test_stats_and_expected_income(self):
        claims = [
            PendingClaim("a", "s1", "aetna", 100, 25),
            PendingClaim("b", "s2", "cigna", 200, 40),
            PendingClaim("c", "s3", "aetna", 50, 20, status="paid"),
        ]
        stats = get_claim_stats(claims)
        assert stats.total_pending == 2
        assert stats.total_pending_amount == 300
        assert stats.by_insurer["aetna"] == {"count": 1, "amount": 100}
        assert stats.oldest_claim_day == 25
        assert calculate_expected_income(claims, {"aetna": 0.08}, 10, 20) == 92


class TestPanels:
    def test_acceptance_rate_steps_and_clamps(self, aetna):
        assert calculate_acceptance_rate(aetna, 30) == pytest.approx(0.85)
        assert calculate_acceptance_rate(aetna, 80) == pytest.approx(0.90)
        assert calculate_acceptance_rate(aetna, 500) == pytest.approx(0.95)

    def test_application_requirements(self, aetna):
        assert can_apply_to_panel(aetna, 20, 1000, []).reason == "Requires 30 reputation (current: 20)"
        assert can_apply_to_panel(aetna, 40, 1000, ["aetna"]).reason == "Already a member of this panel"
        assert can_apply_to_panel(aetna, 40, 50, []).reason == "Need $150 more for application fee"
        assert can_apply_to_panel(aetna, 40, 1000, []).valid

    def test_panel_table_drives_denial_rates_and_stats(self, practice):
        """Test the configured panel table is the one claims and stats read"""
        assert practice.denial_rates() == {pid: p.denial_rate for pid, p in INSURANCE_PANELS.items()}
        assert set(get_claim_stats([]).by_insurer) == set(INSURANCE_PANELS)
        assert INSURANCE_PANELS["medicaid"].delay_days == 45
