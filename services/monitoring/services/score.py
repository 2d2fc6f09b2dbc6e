"""
Compliance Score Aggregation
============================

Combines obligation statuses and registration findings into a 0-100 score and
a discrete level per (subject, authority).

Score Components:
- Start at 100
- Authority overdue deduction per distinct overdue obligation
- Registration rule deduction per missing applicable registration
- Clamp to [0, 100]

Level:
- Missing hard registration -> critical, regardless of score
- Otherwise the authority's score buckets, raised to any enforced level of a
  missing registration

Version: 0.1.0
"""

from dataclasses import dataclass
from datetime import datetime

from services.monitoring.services.schedule import applies_to
from shared.logging import get_logger
from shared.models.authority import AuthorityProfile, RegistrationRule
from shared.models.compliance import ComplianceInsight, ComplianceLevel, ComplianceScore
from shared.models.obligation import ObligationInstance, ObligationStatus
from shared.models.subject import SubjectProfile


logger = get_logger(__name__)

HOURS_PER_DOCUMENT = 4


@dataclass(frozen=True)
class RegistrationFinding:
    """An applicable registration the subject does not hold."""

    authority: str
    rule: RegistrationRule

    @property
    def description(self) -> str:
        return self.rule.action_required or f"Missing {self.rule.title}"


def clamp_score(value: int) -> int:
    """Clamp a raw score into [0, 100]."""
    return max(0, min(100, value))


class ComplianceScoreAggregator:
    """
    Service for calculating compliance scores and detecting decline.

    Scores are pure functions of their inputs; the previous score comes from
    the record store.
    """

    def __init__(self, decline_threshold: int = 10) -> None:
        self.decline_threshold = decline_threshold

    def registration_findings(
        self,
        authority: AuthorityProfile,
        subject: SubjectProfile,
    ) -> list[RegistrationFinding]:
        """Applicable registrations of `authority` missing from `subject`."""
        return [
            RegistrationFinding(authority.code, rule)
            for rule in authority.registration_rules
            if applies_to(rule.applicability, subject)
            and not subject.has_registration(rule.registration)
        ]

    def aggregate(
        self,
        *,
        tenant_id: str,
        subject: SubjectProfile,
        authority: AuthorityProfile,
        obligations: list[ObligationInstance],
        previous: ComplianceScore | None,
        now: datetime,
    ) -> ComplianceScore:
        """
        Calculate the score of a subject towards one authority.

        Args:
            tenant_id: Tenant identifier
            subject: Subject being scored
            authority: Authority profile with deductions and thresholds
            obligations: The subject's obligations (any authority)
            previous: Last persisted score for the same pair, if any
            now: Computation time

        Returns:
            ComplianceScore carrying the previous score for trend comparison
        """
        overdue = [
            o
            for o in obligations
            if o.authority == authority.code
            and o.status == ObligationStatus.OVERDUE
            and not o.archived
        ]
        findings = self.registration_findings(authority, subject)

        raw = 100 - authority.overdue_deduction * len(overdue)
        raw -= sum(f.rule.deduction for f in findings)
        score = clamp_score(raw)

        issues: list[str] = []
        if overdue:
            issues.append(f"{len(overdue)} overdue filing(s) with {authority.code}")
        issues.extend(f.description for f in findings)

        result = ComplianceScore(
            tenant_id=tenant_id,
            subject_id=subject.id,
            authority=authority.code,
            score=score,
            level=self.level_for(authority, score, findings),
            issues=issues,
            computed_at=now,
            previous_score=previous.score if previous is not None else None,
        )

        logger.debug(
            "score_calculated",
            subject_id=subject.id,
            authority=authority.code,
            score=result.score,
            level=result.level.value,
            previous_score=result.previous_score,
        )

        return result

    def level_for(
        self,
        authority: AuthorityProfile,
        score: int,
        findings: list[RegistrationFinding],
    ) -> ComplianceLevel:
        """Level for a clamped score; overrides win over the numeric bucket."""
        if any(f.rule.is_hard for f in findings):
            return ComplianceLevel.CRITICAL

        level = authority.level_thresholds.level_for(score)
        enforced = [f.rule.enforced_level for f in findings if f.rule.enforced_level is not None]
        return ComplianceLevel.worst(level, *enforced)

    def is_declining(self, score: ComplianceScore) -> bool:
        """Score fell by more than the decline threshold since the last run."""
        if score.previous_score is None:
            return False
        return score.previous_score - score.score > self.decline_threshold

    def build_insight(
        self,
        score: ComplianceScore,
        obligations: list[ObligationInstance],
        findings: list[RegistrationFinding],
        document_names: dict[str, str] | None = None,
    ) -> ComplianceInsight:
        """
        Remediation summary for a scored (subject, authority) pair.

        Args:
            score: Score produced by `aggregate`
            obligations: The subject's obligations
            findings: Missing registrations for the same authority
            document_names: Requirement id -> document name for action items
        """
        names = document_names or {}
        overdue = [
            o
            for o in obligations
            if o.authority == score.authority
            and o.status == ObligationStatus.OVERDUE
            and not o.archived
        ]

        insight = ComplianceInsight(
            subject_id=score.subject_id,
            authority=score.authority,
            level=score.level,
            issues=list(score.issues),
        )
        for obligation in overdue:
            document = names.get(obligation.requirement_id, obligation.requirement_id)
            insight.action_items.append(f"Submit {document} for {obligation.period_label}")
            insight.estimated_cost += obligation.accrued_penalty
        for finding in findings:
            insight.action_items.append(finding.description)

        outstanding = len(overdue) + len(findings)
        insight.time_to_compliance_hours = outstanding * HOURS_PER_DOCUMENT

        if outstanding:
            insight.recommendations.append(
                f"Priority: address {outstanding} outstanding item(s) with {score.authority}"
            )
        if score.level == ComplianceLevel.CRITICAL:
            insight.recommendations.append(
                "URGENT: immediate action required to avoid further penalties"
            )

        return insight
