"""
Requirement Evaluator
=====================

Single evaluator type configured per authority from catalog data. Authority
knowledge (requirements, deductions, thresholds, registration rules) lives in
the catalog; the evaluator only combines the generic calculators.

Version: 0.1.0
"""

from datetime import date, datetime

from services.monitoring.catalog.loader import RequirementCatalog
from services.monitoring.services.penalty import PenaltyAccrualCalculator
from services.monitoring.services.schedule import DueDate, ScheduleCalculator, applies_to
from services.monitoring.services.score import ComplianceScoreAggregator, RegistrationFinding
from shared.models.authority import AuthorityProfile
from shared.models.compliance import ComplianceScore
from shared.models.obligation import ObligationInstance
from shared.models.requirement import RequirementDefinition
from shared.models.subject import SubjectProfile


class RequirementEvaluator:
    """Evaluates one authority's requirements against subjects."""

    def __init__(
        self,
        authority: AuthorityProfile,
        requirements: list[RequirementDefinition],
        schedule: ScheduleCalculator,
        penalties: PenaltyAccrualCalculator,
        scores: ComplianceScoreAggregator,
    ) -> None:
        self.authority = authority
        self.requirements = {r.id: r for r in requirements}
        self._schedule = schedule
        self._penalties = penalties
        self._scores = scores

    @property
    def code(self) -> str:
        return self.authority.code

    def applies(self, requirement: RequirementDefinition, subject: SubjectProfile) -> bool:
        return applies_to(requirement.applicability, subject)

    def due_dates(
        self,
        requirement: RequirementDefinition,
        subject: SubjectProfile,
        reference_date: date,
    ) -> list[DueDate]:
        return self._schedule.compute_due_dates(requirement, subject, reference_date)

    def accrue(self, obligation: ObligationInstance) -> int:
        """Accrued penalty for an obligation of one of this authority's requirements."""
        requirement = self.requirements[obligation.requirement_id]
        return self._penalties.accrue(obligation, requirement.penalty)

    def registration_findings(self, subject: SubjectProfile) -> list[RegistrationFinding]:
        return self._scores.registration_findings(self.authority, subject)

    def score(
        self,
        *,
        tenant_id: str,
        subject: SubjectProfile,
        obligations: list[ObligationInstance],
        previous: ComplianceScore | None,
        now: datetime,
    ) -> ComplianceScore:
        return self._scores.aggregate(
            tenant_id=tenant_id,
            subject=subject,
            authority=self.authority,
            obligations=obligations,
            previous=previous,
            now=now,
        )


def build_evaluators(
    catalog: RequirementCatalog,
    schedule: ScheduleCalculator,
    penalties: PenaltyAccrualCalculator,
    scores: ComplianceScoreAggregator,
) -> dict[str, RequirementEvaluator]:
    """One evaluator per catalog authority, keyed by authority code."""
    return {
        code: RequirementEvaluator(
            authority,
            catalog.requirements_for(code),
            schedule,
            penalties,
            scores,
        )
        for code, authority in catalog.authorities.items()
    }
