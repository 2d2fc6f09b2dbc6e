"""
Alert Engine
============

Turns trigger conditions into deduplicated, severity-ranked alerts.

Trigger Conditions:
- Obligation entered overdue this run -> deadline_overdue (critical)
- Due within 1 day -> deadline_today (high)
- Due within 7 days -> deadline_approaching (high if urgent, else medium)
- Due within the warning window -> deadline_reminder (low)
- Subject penalty crossed a rung -> penalty_accruing (scales with rung)
- Compliance level critical -> compliance_critical (critical)
- Score drop beyond threshold -> compliance_declining (medium)
- Applicable registration missing -> registration_missing
- Tenant overdue rate / average score -> system alerts

Deduplication:
An alert is not created while an unacknowledged, non-archived alert with the
same dedup key exists that was created within the dedup window, or when the
same key was already issued earlier in the run. Notification is best-effort.

Version: 0.1.0
"""

from datetime import datetime, timedelta

from services.monitoring.notifications import NotificationDispatcher, recommended_channels
from services.monitoring.services.score import RegistrationFinding
from services.monitoring.services.status import StatusTransition
from services.monitoring.store.base import RecordStore
from shared.config import MonitoringSettings
from shared.logging import get_logger
from shared.models.alert import Alert, AlertSeverity, AlertType, DedupKey
from shared.models.compliance import ComplianceLevel, ComplianceScore
from shared.models.obligation import ObligationInstance, ObligationStatus
from shared.models.requirement import RequirementDefinition, RequirementPriority
from shared.models.subject import SubjectProfile


logger = get_logger(__name__)


class AlertEngine:
    """
    Alert creation with deduplication for one monitoring run.

    A fresh engine is created per run so the keys it remembers never leak
    into another run.
    """

    def __init__(
        self,
        store: RecordStore,
        dispatcher: NotificationDispatcher,
        config: MonitoringSettings,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.config = config
        self._issued: set[str] = set()

    @property
    def dedup_window(self) -> timedelta:
        return timedelta(hours=self.config.dedup_window_hours)

    # =========================================================================
    # Issue
    # =========================================================================

    async def issue(self, alert: Alert) -> Alert | None:
        """
        Store and dispatch an alert unless its condition is already reported.

        Args:
            alert: Candidate alert; `created_at` is the evaluation time

        Returns:
            The stored alert, or None when suppressed
        """
        key = alert.dedup_key
        if key in self._issued:
            logger.debug("alert_suppressed", dedup_key=key, reason="issued_this_run")
            return None

        since = alert.created_at - self.dedup_window
        existing = await self.store.find_active_alert(alert.tenant_id, key, since)
        if existing is not None:
            logger.debug(
                "alert_suppressed",
                dedup_key=key,
                reason="active_alert",
                existing_alert_id=existing.id,
            )
            return None

        self._issued.add(key)
        await self.store.save_alert(alert)

        logger.info(
            "alert_created",
            alert_id=alert.id,
            alert_type=alert.alert_type.value,
            severity=alert.severity.value,
            subject_id=alert.subject_id,
            dedup_key=key,
        )

        await self._notify(alert)
        return alert

    async def _notify(self, alert: Alert) -> None:
        channels = recommended_channels(
            alert,
            self.config.notification_channels,
            self.config.critical_channels,
        )
        try:
            await self.dispatcher.dispatch(alert, channels)
        except Exception as e:
            logger.error(
                "alert_notification_failed",
                alert_id=alert.id,
                channels=channels,
                error=str(e),
            )

    # =========================================================================
    # Deadlines
    # =========================================================================

    def _milestone(self, days_until_due: int) -> int:
        """Smallest warning day not below `days_until_due`."""
        return min(d for d in self.config.warning_days if d >= days_until_due)

    async def evaluate_deadline(
        self,
        transition: StatusTransition,
        requirement: RequirementDefinition,
        subject: SubjectProfile,
        now: datetime,
    ) -> Alert | None:
        """
        Deadline alert for one evaluated obligation.

        Args:
            transition: Result of advancing the obligation this run
            requirement: The obligation's requirement definition
            subject: Subject owning the obligation
            now: Evaluation time

        Returns:
            Created alert or None
        """
        obligation = transition.obligation
        days_until_due = obligation.days_until_due(now.date())
        metadata: dict[str, object] = {
            "days_until_due": days_until_due,
            "period": obligation.period_label,
            "priority": requirement.priority.value,
        }

        if transition.became_overdue:
            alert_type = AlertType.DEADLINE_OVERDUE
            severity = AlertSeverity.CRITICAL
            title = f"OVERDUE: {requirement.display_document}"
        elif obligation.status not in (ObligationStatus.UPCOMING, ObligationStatus.DUE_TODAY):
            return None
        elif days_until_due <= 1:
            alert_type = AlertType.DEADLINE_TODAY
            severity = AlertSeverity.HIGH
            title = f"DUE TODAY: {requirement.display_document}"
            if days_until_due == 1:
                title = f"DUE TOMORROW: {requirement.display_document}"
        elif days_until_due <= self.config.approaching_days:
            alert_type = AlertType.DEADLINE_APPROACHING
            severity = (
                AlertSeverity.HIGH
                if requirement.priority == RequirementPriority.URGENT
                else AlertSeverity.MEDIUM
            )
            title = f"DEADLINE APPROACHING: {days_until_due} days remaining"
        elif days_until_due <= self.config.reminder_horizon_days:
            alert_type = AlertType.DEADLINE_REMINDER
            severity = AlertSeverity.LOW
            title = f"Upcoming deadline: {requirement.display_document}"
            metadata["milestone"] = self._milestone(days_until_due)
        else:
            return None

        if days_until_due < 0:
            message = (
                f"{requirement.display_document} for {subject.display_name} "
                f"({obligation.period_label}) to {requirement.authority} is overdue by "
                f"{-days_until_due} day(s)."
            )
        else:
            message = (
                f"{requirement.display_document} for {subject.display_name} "
                f"({obligation.period_label}) to {requirement.authority} is due in "
                f"{days_until_due} day(s) on {obligation.due_date.isoformat()}."
            )

        key = DedupKey(subject.id, requirement.id, alert_type)
        return await self.issue(
            Alert(
                tenant_id=obligation.tenant_id,
                subject_id=subject.id,
                obligation_id=obligation.id,
                requirement_id=requirement.id,
                authority=requirement.authority,
                alert_type=alert_type,
                severity=severity,
                title=title[:200],
                message=message,
                action_required=f"Submit {requirement.display_document}",
                due_date=obligation.due_date,
                created_at=now,
                dedup_key=str(key),
                metadata=metadata,
            )
        )

    # =========================================================================
    # Penalties
    # =========================================================================

    def penalty_rung(self, total_penalty: int) -> int | None:
        """Index of the highest rung reached, or None below the first rung."""
        reached = [i for i, t in enumerate(self.config.penalty_thresholds) if total_penalty >= t]
        return reached[-1] if reached else None

    def _penalty_severity(self, rung: int) -> AlertSeverity:
        top = len(self.config.penalty_thresholds) - 1
        if rung == top:
            return AlertSeverity.CRITICAL
        if rung == top - 1:
            return AlertSeverity.HIGH
        return AlertSeverity.MEDIUM

    async def evaluate_penalty(
        self,
        tenant_id: str,
        subject: SubjectProfile,
        obligations: list[ObligationInstance],
        now: datetime,
    ) -> Alert | None:
        """
        Penalty alert for the highest rung the subject's open penalties reach.

        Rung 0 never alerts. Every other penalty alert of the subject is
        archived when a new one is created.
        """
        total = sum(
            o.accrued_penalty
            for o in obligations
            if o.status == ObligationStatus.OVERDUE and not o.archived
        )
        rung = self.penalty_rung(total)
        if not rung:
            return None

        threshold = self.config.penalty_thresholds[rung]
        key = DedupKey(subject.id, None, AlertType.PENALTY_ACCRUING, f"rung{rung}")
        alert = await self.issue(
            Alert(
                tenant_id=tenant_id,
                subject_id=subject.id,
                alert_type=AlertType.PENALTY_ACCRUING,
                severity=self._penalty_severity(rung),
                title=f"Penalties accruing: {total} accrued",
                message=(
                    f"{subject.display_name} has accrued {total} in late filing penalties, "
                    f"crossing the {threshold} threshold."
                ),
                action_required="File overdue returns to stop further accrual",
                created_at=now,
                dedup_key=str(key),
                metadata={"rung": rung, "threshold": threshold, "total_penalty": total},
            )
        )
        if alert is not None:
            await self._archive_other_penalty_alerts(tenant_id, subject.id, alert.id)
        return alert

    async def _archive_other_penalty_alerts(
        self,
        tenant_id: str,
        subject_id: str,
        keep_id: str,
    ) -> None:
        existing = await self.store.list_alerts(
            tenant_id,
            subject_id=subject_id,
            alert_type=AlertType.PENALTY_ACCRUING,
        )
        for alert in existing:
            if alert.id == keep_id:
                continue
            await self.store.save_alert(alert.model_copy(update={"archived": True}))
            logger.debug("alert_archived", alert_id=alert.id, dedup_key=alert.dedup_key)

    # =========================================================================
    # Scores and registrations
    # =========================================================================

    async def evaluate_score(
        self,
        score: ComplianceScore,
        subject: SubjectProfile,
        declining: bool,
        now: datetime,
    ) -> list[Alert]:
        """Critical-level and declining-score alerts for one authority score."""
        created: list[Alert] = []

        if score.level == ComplianceLevel.CRITICAL:
            key = DedupKey(subject.id, score.authority, AlertType.COMPLIANCE_CRITICAL)
            alert = await self.issue(
                Alert(
                    tenant_id=score.tenant_id,
                    subject_id=subject.id,
                    authority=score.authority,
                    alert_type=AlertType.COMPLIANCE_CRITICAL,
                    severity=AlertSeverity.CRITICAL,
                    title=f"Critical compliance status with {score.authority}",
                    message=(
                        f"{subject.display_name} is at critical compliance with "
                        f"{score.authority} (score {score.score}). "
                        + "; ".join(score.issues)
                    )[:2000],
                    action_required="Resolve outstanding issues immediately",
                    created_at=now,
                    dedup_key=str(key),
                    metadata={"score": score.score, "issues": list(score.issues)},
                )
            )
            if alert is not None:
                created.append(alert)

        if declining:
            key = DedupKey(subject.id, score.authority, AlertType.COMPLIANCE_DECLINING)
            alert = await self.issue(
                Alert(
                    tenant_id=score.tenant_id,
                    subject_id=subject.id,
                    authority=score.authority,
                    alert_type=AlertType.COMPLIANCE_DECLINING,
                    severity=AlertSeverity.MEDIUM,
                    title=f"Compliance declining with {score.authority}",
                    message=(
                        f"{subject.display_name}'s {score.authority} score fell from "
                        f"{score.previous_score} to {score.score}."
                    ),
                    action_required="Review recent compliance changes",
                    created_at=now,
                    dedup_key=str(key),
                    metadata={"score": score.score, "previous_score": score.previous_score},
                )
            )
            if alert is not None:
                created.append(alert)

        return created

    async def evaluate_registration(
        self,
        tenant_id: str,
        subject: SubjectProfile,
        finding: RegistrationFinding,
        now: datetime,
    ) -> Alert | None:
        """Alert for an applicable registration the subject lacks."""
        rule = finding.rule
        key = DedupKey(subject.id, rule.id, AlertType.REGISTRATION_MISSING)
        return await self.issue(
            Alert(
                tenant_id=tenant_id,
                subject_id=subject.id,
                authority=finding.authority,
                alert_type=AlertType.REGISTRATION_MISSING,
                severity=AlertSeverity.CRITICAL if rule.is_hard else AlertSeverity.HIGH,
                title=f"Missing {rule.title}",
                message=f"{subject.display_name} is required to hold {rule.title} with {finding.authority}.",
                action_required=finding.description,
                created_at=now,
                dedup_key=str(key),
                metadata={"registration": rule.registration, "rule_id": rule.id},
            )
        )

    # =========================================================================
    # Tenant-wide
    # =========================================================================

    async def evaluate_system(
        self,
        tenant_id: str,
        open_obligations: int,
        overdue_obligations: int,
        average_score: float | None,
        now: datetime,
    ) -> list[Alert]:
        """System alerts on the tenant's overall overdue rate and average score."""
        created: list[Alert] = []

        if open_obligations:
            rate = overdue_obligations / open_obligations
            if rate > self.config.system_overdue_rate:
                key = DedupKey(None, None, AlertType.SYSTEM_OVERDUE_RATE)
                alert = await self.issue(
                    Alert(
                        tenant_id=tenant_id,
                        alert_type=AlertType.SYSTEM_OVERDUE_RATE,
                        severity=AlertSeverity.HIGH,
                        title="High overdue rate detected",
                        message=(
                            f"{overdue_obligations} of {open_obligations} open obligations "
                            f"({rate:.0%}) are overdue."
                        ),
                        action_required="Review overdue filings across the portfolio",
                        created_at=now,
                        dedup_key=str(key),
                        metadata={"overdue_rate": round(rate, 4)},
                    )
                )
                if alert is not None:
                    created.append(alert)

        if average_score is not None and average_score < self.config.system_min_average_score:
            key = DedupKey(None, None, AlertType.SYSTEM_LOW_COMPLIANCE)
            alert = await self.issue(
                Alert(
                    tenant_id=tenant_id,
                    alert_type=AlertType.SYSTEM_LOW_COMPLIANCE,
                    severity=AlertSeverity.MEDIUM,
                    title="Low average compliance score",
                    message=f"Average compliance score across the portfolio is {average_score:.1f}.",
                    action_required="Prioritize subjects with critical compliance levels",
                    created_at=now,
                    dedup_key=str(key),
                    metadata={"average_score": round(average_score, 2)},
                )
            )
            if alert is not None:
                created.append(alert)

        return created
