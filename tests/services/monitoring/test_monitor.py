"""
Compliance Monitor Tests
========================

End-to-end monitoring runs against the in-memory record store and the Guyana
sample catalog.

Version: 0.1.0
"""

import pytest
from datetime import UTC, date, datetime

from services.monitoring.errors import StoreUnavailableError, TenantConfigurationError
from services.monitoring.services.monitor import ComplianceMonitor
from services.monitoring.store.memory import InMemoryRecordStore
from services.monitoring.store.retrying import RetryingRecordStore
from shared.config import MonitoringSettings
from shared.models.alert import AlertType
from shared.models.compliance import ComplianceLevel
from shared.models.obligation import ObligationInstance, ObligationStatus, Resolution


# =============================================================================
# Fixtures
# =============================================================================


class FlakyRecordStore(InMemoryRecordStore):
    """Store whose obligation reads fail for chosen subjects."""

    def __init__(self, failing_subjects: set[str]) -> None:
        super().__init__()
        self.failing_subjects = failing_subjects
        self.failures = 0

    async def list_obligations(self, tenant_id, subject_id=None, include_archived=False):
        if subject_id in self.failing_subjects:
            self.failures += 1
            raise StoreUnavailableError(f"connection reset reading {subject_id}")
        return await super().list_obligations(tenant_id, subject_id, include_archived)


@pytest.fixture
def missing_vat(make_subject):
    """Corporation above the VAT threshold without a VAT registration."""
    return make_subject("acme", annual_revenue=12_000_000)


@pytest.fixture
def clean(make_subject):
    """Registered corporation with nothing due soon."""
    return make_subject("clean")


@pytest.fixture
def late_filer(make_subject):
    """VAT-registered corporation registered in March."""
    return make_subject(
        "late",
        registration_date=date(2026, 3, 1),
        registrations={"tin": "TIN-7", "vat": "VAT-7"},
        annual_revenue=12_000_000,
    )


def _alerts(store: InMemoryRecordStore, alert_type: AlertType) -> list:
    return [a for a in store.alerts.values() if a.alert_type == alert_type]


def _vat(store: InMemoryRecordStore, period: str) -> ObligationInstance:
    return next(
        o
        for o in store.obligations.values()
        if o.requirement_id == "GRA_VAT_MONTHLY" and o.period_label == period and not o.archived
    )


# =============================================================================
# Runs
# =============================================================================


class TestMonitoringRun:
    """Tests for ComplianceMonitor.run_compliance_monitoring."""

    @pytest.mark.asyncio
    async def test_missing_vat_registration(self, monitor, store, dispatcher, missing_vat, clock, tenant_id) -> None:
        """Test a missing VAT registration is critical and alerted once across runs."""
        store.put_subject(missing_vat)

        summary = await monitor.run_compliance_monitoring(tenant_id)

        assert summary.subjects_analyzed == 1
        assert summary.deadlines_processed == 4
        assert summary.alerts_created == 2
        assert summary.issues_found == 1
        gra = await store.get_score(tenant_id, "acme", "GRA")
        assert gra.score == 70
        assert gra.level == ComplianceLevel.CRITICAL
        assert len(dispatcher.sent) == 2

        clock.advance(hours=1)
        second = await monitor.run_compliance_monitoring(tenant_id)

        assert second.alerts_created == 0
        assert second.issues_found == 1
        registration = _alerts(store, AlertType.REGISTRATION_MISSING)
        assert len(registration) == 1
        assert registration[0].metadata["rule_id"] == "GRA_VAT_REGISTRATION"

    @pytest.mark.asyncio
    async def test_clean_subject(self, monitor, store, clean, tenant_id) -> None:
        """Test a fully registered subject with nothing due raises nothing."""
        store.put_subject(clean)

        summary = await monitor.run_compliance_monitoring(tenant_id)

        assert summary.alerts_created == 0
        assert summary.issues_found == 0
        assert summary.deadlines_processed == 3
        scores = await store.list_scores(tenant_id, "clean")
        assert {s.authority for s in scores} == {"GRA", "DCRA"}
        assert all(s.level == ComplianceLevel.COMPLIANT and s.score == 100 for s in scores)

    @pytest.mark.asyncio
    async def test_score_replaced_each_run(self, monitor, store, clean, clock, tenant_id) -> None:
        """Test repeated runs keep one current score per authority."""
        store.put_subject(clean)

        for _ in range(3):
            await monitor.run_compliance_monitoring(tenant_id)
            clock.advance(minutes=5)

        assert sorted(k for k in store.scores if k[1] == "clean") == [
            (tenant_id, "clean", "DCRA"),
            (tenant_id, "clean", "GRA"),
        ]
        gra = await store.get_score(tenant_id, "clean", "GRA")
        assert gra.previous_score == 100
        assert gra.computed_at == datetime(2026, 5, 5, 9, 10, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_overdue_runs_an_hour_apart(self, monitor, store, late_filer, clock, tenant_id) -> None:
        """Test a second run does not repeat the overdue alert but refreshes the obligation."""
        clock.now = datetime(2026, 5, 25, 9, 0, tzinfo=UTC)
        store.put_subject(late_filer)

        first = await monitor.run_compliance_monitoring(tenant_id)

        assert first.deadlines_processed == 5
        assert {a.alert_type for a in store.alerts.values()} == {
            AlertType.DEADLINE_OVERDUE,
            AlertType.OVERDUE_ESCALATION,
            AlertType.DEADLINE_REMINDER,
            AlertType.PENALTY_ACCRUING,
        }
        assert first.alerts_created == 4
        april = _vat(store, "2026-04")
        assert april.status == ObligationStatus.OVERDUE
        assert april.days_overdue == 10
        assert april.accrued_penalty == 20_000
        assert april.escalation_level == 2

        clock.advance(hours=1)
        second = await monitor.run_compliance_monitoring(tenant_id)

        assert second.alerts_created == 0
        assert len(_alerts(store, AlertType.DEADLINE_OVERDUE)) == 1
        refreshed = _vat(store, "2026-04")
        assert refreshed.id == april.id
        assert refreshed.days_overdue == 10
        assert refreshed.accrued_penalty == 20_000
        assert refreshed.last_evaluated_at == clock.now

    @pytest.mark.asyncio
    async def test_penalty_grows_daily(self, monitor, store, late_filer, clock, tenant_id) -> None:
        """Test days overdue and penalty follow the calendar between runs."""
        clock.now = datetime(2026, 5, 25, 9, 0, tzinfo=UTC)
        store.put_subject(late_filer)
        await monitor.run_compliance_monitoring(tenant_id)

        clock.advance(days=5)
        await monitor.run_compliance_monitoring(tenant_id)

        april = _vat(store, "2026-04")
        assert april.days_overdue == 15
        assert april.accrued_penalty == 30_000
        assert len(_alerts(store, AlertType.DEADLINE_OVERDUE)) == 1

    @pytest.mark.asyncio
    async def test_same_instant_is_idempotent(self, monitor, store, late_filer, clock, tenant_id) -> None:
        """Test re-running at the same instant changes nothing observable."""
        clock.now = datetime(2026, 5, 25, 9, 0, tzinfo=UTC)
        store.put_subject(late_filer)
        await monitor.run_compliance_monitoring(tenant_id)
        obligations = {o.id: o for o in await store.list_obligations(tenant_id)}
        alert_ids = set(store.alerts)

        again = await monitor.run_compliance_monitoring(tenant_id)

        assert again.alerts_created == 0
        assert {o.id: o for o in await store.list_obligations(tenant_id)} == obligations
        assert set(store.alerts) == alert_ids

    @pytest.mark.asyncio
    async def test_declining_score(self, monitor, store, make_subject, clock, tenant_id) -> None:
        """Test losing a registration is reported as critical and declining."""
        registered = make_subject("acme", registrations={"tin": "T", "vat": "V"}, annual_revenue=12_000_000)
        store.put_subject(registered)
        await monitor.run_compliance_monitoring(tenant_id)

        store.put_subject(registered.model_copy(update={"registrations": {"tin": "T"}}))
        clock.advance(hours=2)
        summary = await monitor.run_compliance_monitoring(tenant_id)

        assert summary.issues_found == 2
        assert summary.alerts_created == 3
        assert len(_alerts(store, AlertType.COMPLIANCE_DECLINING)) == 1
        gra = await store.get_score(tenant_id, "acme", "GRA")
        assert gra.previous_score == 100
        assert gra.score == 70

    @pytest.mark.asyncio
    async def test_many_subjects_concurrently(self, monitor, store, make_subject, tenant_id) -> None:
        """Test every subject is analyzed with a bounded worker pool."""
        for i in range(10):
            store.put_subject(make_subject(f"subject-{i}"))

        summary = await monitor.run_compliance_monitoring(tenant_id)

        assert summary.subjects_analyzed == 10
        assert summary.deadlines_processed == 30

    @pytest.mark.asyncio
    async def test_inactive_subjects_skipped(self, monitor, store, make_subject, tenant_id) -> None:
        """Test inactive subjects are not evaluated."""
        store.put_subject(make_subject("dormant", active=False))

        summary = await monitor.run_compliance_monitoring(tenant_id)

        assert summary.subjects_analyzed == 0
        assert store.obligations == {}


# =============================================================================
# Failure handling
# =============================================================================


class TestFailureHandling:
    """Tests for configuration, store and invariant failures."""

    @pytest.mark.asyncio
    async def test_unknown_tenant(self, monitor) -> None:
        """Test a tenant without a catalog cannot run."""
        with pytest.raises(TenantConfigurationError):
            await monitor.run_compliance_monitoring("nobody")

    @pytest.mark.asyncio
    async def test_unusable_catalog(self, monitor, store) -> None:
        """Test a catalog without valid authorities aborts the run."""
        store.put_catalog("broken", {"authorities": ["not-a-mapping"]})

        with pytest.raises(TenantConfigurationError):
            await monitor.run_compliance_monitoring("broken")

    @pytest.mark.asyncio
    async def test_bad_catalog_entry_reported(self, monitor, store, clean, catalog_document, tenant_id) -> None:
        """Test an invalid requirement is counted while the rest is evaluated."""
        catalog_document["requirements"].append(
            {
                "id": "GRA_BROKEN",
                "authority": "GRA",
                "name": "Broken",
                "frequency": "monthly",
                "penalty": {"daily_rate": "5000", "maximum": 10},
            }
        )
        store.put_catalog(tenant_id, catalog_document)
        store.put_subject(clean)

        summary = await monitor.run_compliance_monitoring(tenant_id)

        assert summary.issues_found == 1
        assert summary.deadlines_processed == 3

    @pytest.mark.asyncio
    async def test_store_failure_isolated(self, make_subject, catalog_document, dispatcher, clock, tenant_id) -> None:
        """Test a subject whose reads keep failing is skipped after retries."""
        inner = FlakyRecordStore({"broken"})
        inner.put_catalog(tenant_id, catalog_document)
        inner.put_subject(make_subject("broken"))
        inner.put_subject(make_subject("clean"))
        store = RetryingRecordStore(inner, max_attempts=2, min_wait_seconds=0)
        monitor = ComplianceMonitor(store, dispatcher, MonitoringSettings(), clock=clock)

        summary = await monitor.run_compliance_monitoring(tenant_id)

        assert summary.subjects_analyzed == 1
        assert summary.issues_found == 1
        assert inner.failures == 2
        assert {o.subject_id for o in inner.obligations.values()} == {"clean"}

    @pytest.mark.asyncio
    async def test_duplicate_open_obligations_flagged(self, monitor, store, clean, clock, tenant_id) -> None:
        """Test duplicated natural keys are flagged and left untouched."""
        store.put_subject(clean)
        twins = [
            ObligationInstance(
                tenant_id=tenant_id,
                subject_id="clean",
                requirement_id="GRA_CIT_ANNUAL",
                authority="GRA",
                period_label="2026",
                due_date=date(2027, 3, 31),
            )
            for _ in range(2)
        ]
        for twin in twins:
            store.obligations[twin.id] = twin

        summary = await monitor.run_compliance_monitoring(tenant_id)

        assert summary.issues_found == 1
        assert summary.deadlines_processed == 2
        assert len(store.reconciliation) == 1
        assert store.reconciliation[0]["obligation_ids"] == sorted(t.id for t in twins)
        assert all(store.obligations[t.id].last_evaluated_at is None for t in twins)

    @pytest.mark.asyncio
    async def test_run_timeout_defers_subjects(self, store, dispatcher, clock, clean, tenant_id) -> None:
        """Test subjects not started before the deadline are deferred."""
        store.put_subject(clean)
        monitor = ComplianceMonitor(
            store, dispatcher, MonitoringSettings(run_timeout_seconds=0), clock=clock
        )

        summary = await monitor.run_compliance_monitoring(tenant_id)

        assert summary.subjects_analyzed == 0
        assert summary.deadlines_processed == 0
        assert store.obligations == {}


# =============================================================================
# Obligation lifecycle
# =============================================================================


class TestObligationLifecycle:
    """Tests for resolution, applicability changes and rescheduling."""

    @pytest.mark.asyncio
    async def test_resolve_stops_accrual(self, monitor, store, late_filer, clock, tenant_id) -> None:
        """Test a resolved obligation keeps its penalty and is not reopened."""
        clock.now = datetime(2026, 5, 25, 9, 0, tzinfo=UTC)
        store.put_subject(late_filer)
        await monitor.run_compliance_monitoring(tenant_id)
        april = _vat(store, "2026-04")

        resolved = await monitor.resolve_obligation(tenant_id, april.id)
        clock.advance(days=3)
        await monitor.run_compliance_monitoring(tenant_id)

        assert resolved.status == ObligationStatus.RESOLVED
        stored = store.obligations[april.id]
        assert stored.status == ObligationStatus.RESOLVED
        assert stored.resolution == Resolution.SATISFIED
        assert stored.accrued_penalty == 20_000
        assert (await store.get_score(tenant_id, "late", "GRA")).score == 100

    @pytest.mark.asyncio
    async def test_resolve_unknown(self, monitor, tenant_id) -> None:
        """Test resolving a missing obligation returns None."""
        assert await monitor.resolve_obligation(tenant_id, "missing") is None

    @pytest.mark.asyncio
    async def test_no_longer_applicable(self, monitor, store, make_subject, clock, tenant_id) -> None:
        """Test obligations of a requirement that stopped applying are resolved."""
        subject = make_subject("acme", registrations={"tin": "T", "vat": "V"}, annual_revenue=12_000_000)
        store.put_subject(subject)
        await monitor.run_compliance_monitoring(tenant_id)
        may = _vat(store, "2026-05")

        store.put_subject(subject.model_copy(update={"annual_revenue": 1_000_000}))
        clock.advance(hours=1)
        await monitor.run_compliance_monitoring(tenant_id)

        stored = store.obligations[may.id]
        assert stored.status == ObligationStatus.RESOLVED
        assert stored.resolution == Resolution.NOT_APPLICABLE

    @pytest.mark.asyncio
    async def test_overdue_row_superseded_by_later_due_date(self, monitor, store, make_subject, tenant_id) -> None:
        """Test a recomputed future due date archives the overdue row."""
        store.put_subject(make_subject("acme", registrations={"tin": "T", "vat": "V"}, annual_revenue=12_000_000))
        stale = ObligationInstance(
            tenant_id=tenant_id,
            subject_id="acme",
            requirement_id="GRA_VAT_MONTHLY",
            authority="GRA",
            period_label="2026-05",
            due_date=date(2026, 5, 1),
            status=ObligationStatus.OVERDUE,
            days_overdue=4,
        )
        store.obligations[stale.id] = stale

        await monitor.run_compliance_monitoring(tenant_id)

        archived = store.obligations[stale.id]
        assert archived.archived
        assert archived.resolution == Resolution.SUPERSEDED
        fresh = _vat(store, "2026-05")
        assert fresh.id != stale.id
        assert fresh.status == ObligationStatus.UPCOMING
        assert fresh.due_date == date(2026, 6, 15)

    @pytest.mark.asyncio
    async def test_upcoming_row_rescheduled_in_place(self, monitor, store, make_subject, tenant_id) -> None:
        """Test an upcoming row simply takes the recomputed due date."""
        store.put_subject(make_subject("acme", registrations={"tin": "T", "vat": "V"}, annual_revenue=12_000_000))
        existing = ObligationInstance(
            tenant_id=tenant_id,
            subject_id="acme",
            requirement_id="GRA_VAT_MONTHLY",
            authority="GRA",
            period_label="2026-05",
            due_date=date(2026, 6, 20),
        )
        store.obligations[existing.id] = existing

        await monitor.run_compliance_monitoring(tenant_id)

        updated = _vat(store, "2026-05")
        assert updated.id == existing.id
        assert updated.due_date == date(2026, 6, 15)


# =============================================================================
# Insights
# =============================================================================


class TestComplianceInsights:
    """Tests for ComplianceMonitor.compliance_insights."""

    @pytest.mark.asyncio
    async def test_insights_after_run(self, monitor, store, missing_vat, tenant_id) -> None:
        """Test insights follow the persisted scores."""
        store.put_subject(missing_vat)
        await monitor.run_compliance_monitoring(tenant_id)

        insights = {i.authority: i for i in await monitor.compliance_insights(tenant_id, "acme")}

        assert set(insights) == {"GRA", "DCRA"}
        assert insights["GRA"].level == ComplianceLevel.CRITICAL
        assert insights["GRA"].action_items == ["Register for VAT (revenue exceeds GYD 10M)"]
        assert insights["DCRA"].action_items == []

    @pytest.mark.asyncio
    async def test_unknown_subject(self, monitor, tenant_id) -> None:
        """Test an unknown subject has no insights."""
        assert await monitor.compliance_insights(tenant_id, "ghost") == []
