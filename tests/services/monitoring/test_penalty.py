"""Tests for penalty accrual."""

import pytest
from datetime import date

from services.monitoring.services.penalty import PenaltyAccrualCalculator, penalty_for_days
from shared.models.obligation import ObligationInstance, ObligationStatus
from shared.models.requirement import PenaltyRule


@pytest.fixture
def calculator() -> PenaltyAccrualCalculator:
    return PenaltyAccrualCalculator()


@pytest.fixture
def cit_rule() -> PenaltyRule:
    """Daily rate 5,000 capped at 500,000."""
    return PenaltyRule(late_filing_fee=0, daily_rate=5_000, maximum=500_000)


def _overdue(days: int, accrued: int = 0) -> ObligationInstance:
    return ObligationInstance(
        tenant_id="tenant-1",
        subject_id="acme",
        requirement_id="GRA_CIT_ANNUAL",
        authority="GRA",
        period_label="2025",
        due_date=date(2026, 3, 31),
        status=ObligationStatus.OVERDUE,
        days_overdue=days,
        accrued_penalty=accrued,
    )


class TestPenaltyForDays:
    """Tests for the penalty formula."""

    def test_ten_days(self, cit_rule: PenaltyRule) -> None:
        """Test 10 days at 5,000 per day."""
        assert penalty_for_days(cit_rule, 10) == 50_000

    def test_capped_at_maximum(self, cit_rule: PenaltyRule) -> None:
        """Test 200 days saturates at the maximum."""
        assert penalty_for_days(cit_rule, 200) == 500_000

    def test_late_filing_fee_added(self) -> None:
        """Test the flat fee is charged on the first day."""
        rule = PenaltyRule(late_filing_fee=5_000, daily_rate=100, maximum=50_000)

        assert penalty_for_days(rule, 0) == 5_000
        assert penalty_for_days(rule, 3) == 5_300

    def test_negative_days_treated_as_zero(self, cit_rule: PenaltyRule) -> None:
        """Test negative day counts never produce credit."""
        assert penalty_for_days(cit_rule, -5) == 0

    def test_monotonic(self, cit_rule: PenaltyRule) -> None:
        """Test the penalty never decreases as days grow."""
        amounts = [penalty_for_days(cit_rule, d) for d in range(0, 150)]

        assert amounts == sorted(amounts)
        assert max(amounts) <= cit_rule.maximum


class TestPenaltyRule:
    """Tests for penalty rule validation."""

    def test_string_amount_rejected(self) -> None:
        """Test amounts must be integers, not strings."""
        with pytest.raises(ValueError):
            PenaltyRule.model_validate({"daily_rate": "5000", "maximum": 500_000})

    def test_float_amount_rejected(self) -> None:
        """Test fractional amounts are rejected."""
        with pytest.raises(ValueError):
            PenaltyRule.model_validate({"daily_rate": 50.5, "maximum": 500_000})

    def test_negative_amount_rejected(self) -> None:
        """Test negative amounts are rejected."""
        with pytest.raises(ValueError):
            PenaltyRule(daily_rate=-1, maximum=10)


class TestPenaltyAccrualCalculator:
    """Tests for PenaltyAccrualCalculator."""

    def test_accrues_overdue(self, calculator: PenaltyAccrualCalculator, cit_rule: PenaltyRule) -> None:
        """Test accrual for an overdue obligation."""
        assert calculator.accrue(_overdue(10), cit_rule) == 50_000

    def test_upcoming_keeps_prior_amount(
        self, calculator: PenaltyAccrualCalculator, cit_rule: PenaltyRule
    ) -> None:
        """Test obligations that are not overdue do not accrue."""
        obligation = _overdue(0).model_copy(update={"status": ObligationStatus.UPCOMING})

        assert calculator.accrue(obligation, cit_rule) == 0

    def test_never_decreases(self, calculator: PenaltyAccrualCalculator, cit_rule: PenaltyRule) -> None:
        """Test a previously accrued amount is kept."""
        assert calculator.accrue(_overdue(2, accrued=30_000), cit_rule) == 30_000

    def test_capped(self, calculator: PenaltyAccrualCalculator, cit_rule: PenaltyRule) -> None:
        """Test the cap holds even for inflated prior amounts."""
        assert calculator.accrue(_overdue(200, accrued=900_000), cit_rule) == 500_000
