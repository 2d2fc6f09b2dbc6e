"""
Escalation Engine
=================

Raises higher-severity alerts for overdue obligations whose penalty or age
crosses a secondary threshold.

Escalation tiers:
- 1 (high): accrued penalty >= penalty_thresholds[1] or overdue >= 30 days
- 2 (critical): accrued penalty >= penalty_thresholds[2]

Escalation alerts carry their own dedup key, distinct from deadline_overdue,
with the tier severity as qualifier.

Version: 0.1.0
"""

from dataclasses import dataclass
from datetime import datetime

from services.monitoring.services.alerts import AlertEngine
from shared.config import MonitoringSettings
from shared.logging import get_logger
from shared.models.alert import Alert, AlertSeverity, AlertType, DedupKey
from shared.models.obligation import ObligationInstance, ObligationStatus
from shared.models.requirement import RequirementDefinition
from shared.models.subject import SubjectProfile


logger = get_logger(__name__)

_TIERS = {AlertSeverity.HIGH: 1, AlertSeverity.CRITICAL: 2}


@dataclass
class EscalationResult:
    """Outcome of checking one obligation for escalation."""

    obligation: ObligationInstance
    alert: Alert | None = None

    @property
    def escalated(self) -> bool:
        return self.obligation.escalation_level > 0


class EscalationEngine:
    """Service deciding when an overdue obligation escalates."""

    def __init__(self, alerts: AlertEngine, config: MonitoringSettings) -> None:
        self.alerts = alerts
        self.config = config

    def severity_for(self, obligation: ObligationInstance) -> AlertSeverity | None:
        """Escalation severity, or None when the obligation does not escalate."""
        if obligation.status != ObligationStatus.OVERDUE or obligation.archived:
            return None

        penalty = obligation.accrued_penalty
        if (
            penalty < self.config.escalation_threshold
            and obligation.days_overdue < self.config.escalation_overdue_days
        ):
            return None
        if penalty >= self.config.critical_escalation_threshold:
            return AlertSeverity.CRITICAL
        return AlertSeverity.HIGH

    async def evaluate(
        self,
        obligation: ObligationInstance,
        requirement: RequirementDefinition,
        subject: SubjectProfile,
        now: datetime,
    ) -> EscalationResult:
        """
        Check an obligation and raise an escalation alert when warranted.

        Args:
            obligation: Obligation with current status and accrued penalty
            requirement: Its requirement definition
            subject: Subject owning the obligation
            now: Evaluation time

        Returns:
            EscalationResult with the obligation's updated escalation level
        """
        severity = self.severity_for(obligation)
        if severity is None:
            return EscalationResult(obligation)

        tier = _TIERS[severity]
        if tier > obligation.escalation_level:
            obligation = obligation.model_copy(update={"escalation_level": tier})
            logger.info(
                "obligation_escalated",
                obligation_id=obligation.id,
                subject_id=subject.id,
                requirement_id=requirement.id,
                escalation_level=tier,
                accrued_penalty=obligation.accrued_penalty,
                days_overdue=obligation.days_overdue,
            )

        key = DedupKey(subject.id, requirement.id, AlertType.OVERDUE_ESCALATION, severity.value)
        alert = await self.alerts.issue(
            Alert(
                tenant_id=obligation.tenant_id,
                subject_id=subject.id,
                obligation_id=obligation.id,
                requirement_id=requirement.id,
                authority=requirement.authority,
                alert_type=AlertType.OVERDUE_ESCALATION,
                severity=severity,
                title=f"ESCALATED: {requirement.display_document} overdue {obligation.days_overdue} days",
                message=(
                    f"{requirement.display_document} for {subject.display_name} "
                    f"({obligation.period_label}) is {obligation.days_overdue} day(s) overdue "
                    f"with {obligation.accrued_penalty} in accrued penalties."
                ),
                action_required=f"Submit {requirement.display_document} immediately",
                due_date=obligation.due_date,
                created_at=now,
                dedup_key=str(key),
                metadata={
                    "escalation_level": tier,
                    "accrued_penalty": obligation.accrued_penalty,
                    "days_overdue": obligation.days_overdue,
                },
            )
        )
        return EscalationResult(obligation, alert)
