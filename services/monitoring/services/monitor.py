"""
Compliance Monitor
==================

Per-tenant monitoring run:

    Schedule -> Status -> Penalty -> Alert -> Escalation -> Score

Subjects are evaluated concurrently up to `max_workers`; the stages of one
subject run in order. A soft deadline stops new subjects from starting, while
subjects already in flight finish their writes. Subject-level failures are
isolated and reported through the run summary; only a missing tenant
configuration aborts the run.

Version: 0.1.0
"""

import asyncio
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from uuid import uuid4

from services.monitoring.catalog.loader import RequirementCatalog, load_catalog
from services.monitoring.errors import (
    InvariantViolationError,
    StoreUnavailableError,
    TenantConfigurationError,
)
from services.monitoring.notifications import NotificationDispatcher
from services.monitoring.services.alerts import AlertEngine
from services.monitoring.services.escalation import EscalationEngine
from services.monitoring.services.evaluator import RequirementEvaluator, build_evaluators
from services.monitoring.services.penalty import PenaltyAccrualCalculator
from services.monitoring.services.schedule import ScheduleCalculator, applies_to
from services.monitoring.services.score import ComplianceScoreAggregator
from services.monitoring.services.status import StatusEngine
from services.monitoring.store.base import RecordStore
from shared.config import MonitoringSettings, settings
from shared.logging import bind_context, clear_context, get_logger
from shared.models.compliance import ComplianceInsight, ComplianceLevel, ComplianceScore, RunSummary
from shared.models.obligation import ObligationInstance, ObligationStatus, Resolution
from shared.models.requirement import RequirementDefinition
from shared.models.subject import SubjectProfile


logger = get_logger(__name__)

NaturalKey = tuple[str, str, str]


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class SubjectOutcome:
    """Counters collected while evaluating one subject."""

    analyzed: bool = True
    alerts_created: int = 0
    deadlines_processed: int = 0
    issues_found: int = 0
    open_obligations: int = 0
    overdue_obligations: int = 0
    scores: list[ComplianceScore] = field(default_factory=list)


@dataclass
class RunContext:
    """Everything a run shares across its subjects."""

    tenant_id: str
    now: datetime
    catalog: RequirementCatalog
    evaluators: dict[str, RequirementEvaluator]
    alerts: AlertEngine
    escalation: EscalationEngine


class ComplianceMonitor:
    """
    Compliance monitoring orchestrator.

    Usage:
        monitor = ComplianceMonitor(store, dispatcher)
        summary = await monitor.run_compliance_monitoring("tenant-1")
    """

    def __init__(
        self,
        store: RecordStore,
        dispatcher: NotificationDispatcher,
        config: MonitoringSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.config = config or settings.monitoring
        self.clock = clock

        self.schedule = ScheduleCalculator(self.config.lookback_periods)
        self.status = StatusEngine()
        self.penalties = PenaltyAccrualCalculator()
        self.scores = ComplianceScoreAggregator(self.config.decline_threshold)

    # =========================================================================
    # Run
    # =========================================================================

    async def load_catalog(self, tenant_id: str) -> RequirementCatalog:
        """
        Load and validate the tenant's catalog.

        Raises:
            TenantConfigurationError: No catalog, or nothing in it is usable
        """
        document = await self.store.get_catalog(tenant_id)
        if document is None:
            raise TenantConfigurationError(tenant_id)

        catalog = load_catalog(document)
        if catalog.is_empty:
            raise TenantConfigurationError(tenant_id, "catalog has no valid authorities")
        return catalog

    async def run_compliance_monitoring(self, tenant_id: str) -> RunSummary:
        """
        Run one monitoring pass for a tenant.

        Args:
            tenant_id: Tenant to evaluate

        Returns:
            RunSummary with alerts created, deadlines processed, subjects
            analyzed and issues found

        Raises:
            TenantConfigurationError: The tenant has no usable catalog
        """
        now = self.clock()
        run_id = str(uuid4())
        bind_context(tenant_id=tenant_id, run_id=run_id)

        try:
            logger.info("monitoring_run_started", at=now.isoformat())

            catalog = await self.load_catalog(tenant_id)
            subjects = await self.store.list_subjects(tenant_id)

            alerts = AlertEngine(self.store, self.dispatcher, self.config)
            ctx = RunContext(
                tenant_id=tenant_id,
                now=now,
                catalog=catalog,
                evaluators=build_evaluators(catalog, self.schedule, self.penalties, self.scores),
                alerts=alerts,
                escalation=EscalationEngine(alerts, self.config),
            )

            loop = asyncio.get_running_loop()
            deadline = loop.time() + self.config.run_timeout_seconds
            semaphore = asyncio.Semaphore(self.config.max_workers)

            async def guarded(subject: SubjectProfile) -> SubjectOutcome:
                async with semaphore:
                    if loop.time() >= deadline:
                        logger.warning("subject_deferred", subject_id=subject.id, reason="run_timeout")
                        return SubjectOutcome(analyzed=False)
                    try:
                        return await self.evaluate_subject(ctx, subject)
                    except StoreUnavailableError as e:
                        logger.error(
                            "subject_skipped",
                            subject_id=subject.id,
                            reason="store_unavailable",
                            error=str(e),
                        )
                        return SubjectOutcome(analyzed=False, issues_found=1)

            outcomes = await asyncio.gather(*(guarded(s) for s in subjects))

            summary = RunSummary(issues_found=len(catalog.errors))
            for outcome in outcomes:
                summary.alerts_created += outcome.alerts_created
                summary.deadlines_processed += outcome.deadlines_processed
                summary.issues_found += outcome.issues_found
                if outcome.analyzed:
                    summary.subjects_analyzed += 1

            summary.alerts_created += await self._system_alerts(ctx, outcomes)

            logger.info(
                "monitoring_run_completed",
                alerts_created=summary.alerts_created,
                deadlines_processed=summary.deadlines_processed,
                subjects_analyzed=summary.subjects_analyzed,
                subjects_total=len(subjects),
                issues_found=summary.issues_found,
            )
            return summary

        finally:
            clear_context()

    async def _system_alerts(self, ctx: RunContext, outcomes: list[SubjectOutcome]) -> int:
        open_total = sum(o.open_obligations for o in outcomes)
        overdue_total = sum(o.overdue_obligations for o in outcomes)
        scores = [s.score for o in outcomes for s in o.scores]
        average = sum(scores) / len(scores) if scores else None

        try:
            created = await ctx.alerts.evaluate_system(
                ctx.tenant_id, open_total, overdue_total, average, ctx.now
            )
        except StoreUnavailableError as e:
            logger.error("system_alerts_skipped", reason="store_unavailable", error=str(e))
            return 0
        return len(created)

    # =========================================================================
    # Subject pipeline
    # =========================================================================

    async def evaluate_subject(self, ctx: RunContext, subject: SubjectProfile) -> SubjectOutcome:
        """Run every stage for one subject and persist the results."""
        outcome = SubjectOutcome()
        current = await self._load_obligations(ctx, subject, outcome)

        evaluated: list[ObligationInstance] = []
        for requirement in ctx.catalog.requirements:
            evaluator = ctx.evaluators[requirement.authority]
            evaluated.extend(
                await self._evaluate_requirement(ctx, evaluator, requirement, subject, current, outcome)
            )

        penalty_alert = await ctx.alerts.evaluate_penalty(ctx.tenant_id, subject, evaluated, ctx.now)
        if penalty_alert is not None:
            outcome.alerts_created += 1

        for evaluator in ctx.evaluators.values():
            if not self._is_relevant(evaluator, subject, evaluated):
                continue
            await self._score_authority(ctx, evaluator, subject, evaluated, outcome)

        outcome.open_obligations = sum(1 for o in evaluated if o.is_open)
        outcome.overdue_obligations = sum(
            1 for o in evaluated if o.is_open and o.status == ObligationStatus.OVERDUE
        )

        logger.debug(
            "subject_evaluated",
            subject_id=subject.id,
            deadlines_processed=outcome.deadlines_processed,
            alerts_created=outcome.alerts_created,
            overdue=outcome.overdue_obligations,
        )
        return outcome

    async def _load_obligations(
        self,
        ctx: RunContext,
        subject: SubjectProfile,
        outcome: SubjectOutcome,
    ) -> dict[NaturalKey, ObligationInstance | None]:
        """
        Current non-archived obligations keyed by natural key.

        Keys held by more than one row map to None: the rows are flagged for
        reconciliation and left out of this run.
        """
        groups: dict[NaturalKey, list[ObligationInstance]] = defaultdict(list)
        for obligation in await self.store.list_obligations(ctx.tenant_id, subject.id):
            groups[obligation.natural_key].append(obligation)

        current: dict[NaturalKey, ObligationInstance | None] = {}
        for key, rows in groups.items():
            if len(rows) == 1:
                current[key] = rows[0]
                continue
            await self._report_violation(
                ctx, InvariantViolationError(key, sorted(r.id for r in rows))
            )
            outcome.issues_found += 1
            current[key] = None
        return current

    async def _report_violation(self, ctx: RunContext, error: InvariantViolationError) -> None:
        logger.critical(
            "obligation_invariant_violation",
            natural_key=list(error.natural_key),
            obligation_ids=error.obligation_ids,
        )
        await self.store.flag_for_reconciliation(
            ctx.tenant_id, error.natural_key, error.obligation_ids, str(error)
        )

    def _is_relevant(
        self,
        evaluator: RequirementEvaluator,
        subject: SubjectProfile,
        obligations: list[ObligationInstance],
    ) -> bool:
        """An authority is scored once the subject has obligations or registrations with it."""
        if any(o.authority == evaluator.code for o in obligations):
            return True
        return any(
            applies_to(rule.applicability, subject)
            for rule in evaluator.authority.registration_rules
        )

    async def _evaluate_requirement(
        self,
        ctx: RunContext,
        evaluator: RequirementEvaluator,
        requirement: RequirementDefinition,
        subject: SubjectProfile,
        current: dict[NaturalKey, ObligationInstance | None],
        outcome: SubjectOutcome,
    ) -> list[ObligationInstance]:
        rows = {
            key: o
            for key, o in current.items()
            if key[1] == requirement.id and o is not None
        }

        if not evaluator.applies(requirement, subject):
            for obligation in rows.values():
                if obligation.is_open:
                    resolved = self.status.resolve(obligation, ctx.now, Resolution.NOT_APPLICABLE)
                    await self.store.upsert_obligation(resolved)
                    logger.info(
                        "obligation_not_applicable",
                        obligation_id=obligation.id,
                        subject_id=subject.id,
                        requirement_id=requirement.id,
                    )
            return []

        for due in evaluator.due_dates(requirement, subject, ctx.now.date()):
            key = (subject.id, requirement.id, due.period_label)
            if key in current and current[key] is None:
                continue

            existing = rows.get(key)
            if existing is None:
                rows[key] = ObligationInstance(
                    tenant_id=ctx.tenant_id,
                    subject_id=subject.id,
                    requirement_id=requirement.id,
                    authority=requirement.authority,
                    period_label=due.period_label,
                    due_date=due.due_date,
                    created_at=ctx.now,
                )
            elif existing.is_open and existing.due_date != due.due_date:
                rows[key] = await self._reschedule(ctx, existing, due.due_date)

        evaluated: list[ObligationInstance] = []
        for key in sorted(rows, key=lambda k: rows[k].due_date):
            obligation = rows[key]
            if not obligation.is_open:
                evaluated.append(obligation)
                continue
            try:
                evaluated.append(
                    await self._evaluate_obligation(
                        ctx, evaluator, requirement, subject, obligation, outcome
                    )
                )
            except InvariantViolationError as e:
                await self._report_violation(ctx, e)
                outcome.issues_found += 1
        return evaluated

    async def _evaluate_obligation(
        self,
        ctx: RunContext,
        evaluator: RequirementEvaluator,
        requirement: RequirementDefinition,
        subject: SubjectProfile,
        obligation: ObligationInstance,
        outcome: SubjectOutcome,
    ) -> ObligationInstance:
        transition = self.status.advance(obligation, ctx.now)
        obligation = transition.obligation
        obligation = obligation.model_copy(
            update={"accrued_penalty": evaluator.accrue(obligation)}
        )
        await self.store.upsert_obligation(obligation)
        outcome.deadlines_processed += 1

        if transition.became_overdue:
            logger.info(
                "obligation_overdue",
                obligation_id=obligation.id,
                subject_id=subject.id,
                requirement_id=requirement.id,
                due_date=obligation.due_date.isoformat(),
            )

        alert = await ctx.alerts.evaluate_deadline(transition, requirement, subject, ctx.now)
        if alert is not None:
            outcome.alerts_created += 1

        result = await ctx.escalation.evaluate(obligation, requirement, subject, ctx.now)
        if result.alert is not None:
            outcome.alerts_created += 1
        if result.obligation.escalation_level != obligation.escalation_level:
            await self.store.upsert_obligation(result.obligation)
        return result.obligation

    async def _score_authority(
        self,
        ctx: RunContext,
        evaluator: RequirementEvaluator,
        subject: SubjectProfile,
        obligations: list[ObligationInstance],
        outcome: SubjectOutcome,
    ) -> ComplianceScore:
        for finding in evaluator.registration_findings(subject):
            alert = await ctx.alerts.evaluate_registration(ctx.tenant_id, subject, finding, ctx.now)
            if alert is not None:
                outcome.alerts_created += 1

        previous = await self.store.get_score(ctx.tenant_id, subject.id, evaluator.code)
        score = evaluator.score(
            tenant_id=ctx.tenant_id,
            subject=subject,
            obligations=obligations,
            previous=previous,
            now=ctx.now,
        )
        await self.store.save_score(score)
        outcome.scores.append(score)

        declining = self.scores.is_declining(score)
        if score.level == ComplianceLevel.CRITICAL:
            outcome.issues_found += 1
        if declining:
            outcome.issues_found += 1

        created = await ctx.alerts.evaluate_score(score, subject, declining, ctx.now)
        outcome.alerts_created += len(created)
        return score

    # =========================================================================
    # Queries and external signals
    # =========================================================================

    async def resolve_obligation(
        self,
        tenant_id: str,
        obligation_id: str,
        resolution: Resolution = Resolution.SATISFIED,
    ) -> ObligationInstance | None:
        """
        Mark an obligation as satisfied (or otherwise resolved).

        Returns:
            The resolved obligation, or None when it does not exist
        """
        obligation = await self.store.get_obligation(tenant_id, obligation_id)
        if obligation is None:
            return None

        resolved = self.status.resolve(obligation, self.clock(), resolution)
        if resolved is not obligation:
            await self.store.upsert_obligation(resolved)
            logger.info(
                "obligation_resolved",
                tenant_id=tenant_id,
                obligation_id=obligation_id,
                resolution=resolution.value,
                accrued_penalty=resolved.accrued_penalty,
            )
        return resolved

    async def compliance_insights(
        self,
        tenant_id: str,
        subject_id: str,
    ) -> list[ComplianceInsight]:
        """Remediation insights from the latest persisted scores of a subject."""
        catalog = await self.load_catalog(tenant_id)
        subjects = {s.id: s for s in await self.store.list_subjects(tenant_id, active_only=False)}
        subject = subjects.get(subject_id)
        if subject is None:
            return []

        obligations = await self.store.list_obligations(tenant_id, subject_id)
        document_names = {r.id: r.display_document for r in catalog.requirements}

        insights: list[ComplianceInsight] = []
        for score in await self.store.list_scores(tenant_id, subject_id):
            authority = catalog.authorities.get(score.authority)
            if authority is None:
                continue
            findings = self.scores.registration_findings(authority, subject)
            insights.append(
                self.scores.build_insight(score, obligations, findings, document_names)
            )
        return insights

    async def _reschedule(
        self,
        ctx: RunContext,
        obligation: ObligationInstance,
        due_date: date,
    ) -> ObligationInstance:
        """
        Apply a recomputed due date.

        A due date that would move a due or overdue obligation back to
        upcoming archives the old row and starts a fresh one, so status never
        regresses on a single row.
        """
        if obligation.status != ObligationStatus.UPCOMING and due_date > ctx.now.date():
            superseded = self.status.supersede(obligation, ctx.now)
            await self.store.upsert_obligation(superseded)
            logger.info(
                "obligation_superseded",
                obligation_id=obligation.id,
                old_due_date=obligation.due_date.isoformat(),
                new_due_date=due_date.isoformat(),
            )
            return ObligationInstance(
                tenant_id=obligation.tenant_id,
                subject_id=obligation.subject_id,
                requirement_id=obligation.requirement_id,
                authority=obligation.authority,
                period_label=obligation.period_label,
                due_date=due_date,
                created_at=ctx.now,
            )
        return obligation.model_copy(update={"due_date": due_date})
