"""
Penalty Accrual Calculator
==========================

accrued = min(late_filing_fee + daily_rate * days_overdue, maximum)

Amounts are integers in the smallest currency unit. The cap is saturating and
accrual never decreases while an obligation stays overdue.

Version: 0.1.0
"""

from shared.models.obligation import ObligationInstance, ObligationStatus
from shared.models.requirement import PenaltyRule


def penalty_for_days(rule: PenaltyRule, days_overdue: int) -> int:
    """Capped penalty for a given number of days overdue."""
    days = max(0, days_overdue)
    return min(rule.late_filing_fee + rule.daily_rate * days, rule.maximum)


class PenaltyAccrualCalculator:
    """Computes the penalty currently accrued on an obligation."""

    def accrue(self, obligation: ObligationInstance, rule: PenaltyRule) -> int:
        """
        Accrued penalty for an obligation.

        Args:
            obligation: Obligation with an up-to-date status and days_overdue
            rule: Penalty rule of the obligation's requirement

        Returns:
            New accrued amount; the prior amount for non-overdue obligations
        """
        if obligation.status != ObligationStatus.OVERDUE:
            return obligation.accrued_penalty
        accrued = max(obligation.accrued_penalty, penalty_for_days(rule, obligation.days_overdue))
        return min(accrued, rule.maximum)
