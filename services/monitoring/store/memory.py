"""
In-Memory Record Store
======================

Process-local record store for development, single-node deployments and tests.

Version: 0.1.0
"""

import asyncio
from datetime import datetime
from typing import Any

from services.monitoring.errors import InvariantViolationError
from services.monitoring.store.base import RecordStore
from shared.logging import get_logger
from shared.models.alert import Alert, AlertType
from shared.models.compliance import ComplianceScore
from shared.models.obligation import ObligationInstance
from shared.models.subject import SubjectProfile


logger = get_logger(__name__)


class InMemoryRecordStore(RecordStore):
    """
    Record store backed by dictionaries.

    Values are copied on the way in and out so callers never share mutable
    state with the store.
    """

    def __init__(self) -> None:
        self.catalogs: dict[str, dict[str, Any]] = {}
        self.subjects: dict[tuple[str, str], SubjectProfile] = {}
        self.obligations: dict[str, ObligationInstance] = {}
        self.alerts: dict[str, Alert] = {}
        self.scores: dict[tuple[str, str, str], ComplianceScore] = {}
        self.reconciliation: list[dict[str, Any]] = []
        self._lock = asyncio.Lock()

    # =========================================================================
    # Seeding
    # =========================================================================

    def put_catalog(self, tenant_id: str, document: dict[str, Any]) -> None:
        self.catalogs[tenant_id] = document

    def put_subject(self, subject: SubjectProfile) -> None:
        self.subjects[(subject.tenant_id, subject.id)] = subject.model_copy(deep=True)

    # =========================================================================
    # Reference data
    # =========================================================================

    async def get_catalog(self, tenant_id: str) -> dict[str, Any] | None:
        return self.catalogs.get(tenant_id)

    async def list_subjects(
        self,
        tenant_id: str,
        active_only: bool = True,
    ) -> list[SubjectProfile]:
        subjects = [
            s.model_copy(deep=True)
            for (tenant, _), s in self.subjects.items()
            if tenant == tenant_id and (s.active or not active_only)
        ]
        return sorted(subjects, key=lambda s: s.id)

    # =========================================================================
    # Obligations
    # =========================================================================

    async def list_obligations(
        self,
        tenant_id: str,
        subject_id: str | None = None,
        include_archived: bool = False,
    ) -> list[ObligationInstance]:
        rows = [
            o.model_copy()
            for o in self.obligations.values()
            if o.tenant_id == tenant_id
            and (subject_id is None or o.subject_id == subject_id)
            and (include_archived or not o.archived)
        ]
        return sorted(rows, key=lambda o: (o.subject_id, o.due_date, o.requirement_id))

    async def get_obligation(
        self,
        tenant_id: str,
        obligation_id: str,
    ) -> ObligationInstance | None:
        obligation = self.obligations.get(obligation_id)
        if obligation is None or obligation.tenant_id != tenant_id:
            return None
        return obligation.model_copy()

    async def upsert_obligation(self, obligation: ObligationInstance) -> ObligationInstance:
        async with self._lock:
            if not obligation.archived:
                conflicting = [
                    o.id
                    for o in self.obligations.values()
                    if o.id != obligation.id
                    and o.tenant_id == obligation.tenant_id
                    and not o.archived
                    and o.natural_key == obligation.natural_key
                ]
                if conflicting:
                    raise InvariantViolationError(
                        obligation.natural_key, [*conflicting, obligation.id]
                    )
            self.obligations[obligation.id] = obligation.model_copy()
        return obligation

    async def flag_for_reconciliation(
        self,
        tenant_id: str,
        natural_key: tuple[str, ...],
        obligation_ids: list[str],
        reason: str,
    ) -> None:
        self.reconciliation.append(
            {
                "tenant_id": tenant_id,
                "natural_key": natural_key,
                "obligation_ids": list(obligation_ids),
                "reason": reason,
            }
        )

    # =========================================================================
    # Alerts
    # =========================================================================

    async def find_active_alert(
        self,
        tenant_id: str,
        dedup_key: str,
        since: datetime,
    ) -> Alert | None:
        matches = [
            a
            for a in self.alerts.values()
            if a.tenant_id == tenant_id and a.blocks(dedup_key, since)
        ]
        if not matches:
            return None
        return max(matches, key=lambda a: a.created_at).model_copy(deep=True)

    async def list_alerts(
        self,
        tenant_id: str,
        subject_id: str | None = None,
        alert_type: AlertType | None = None,
        include_acknowledged: bool = True,
        include_archived: bool = False,
    ) -> list[Alert]:
        rows = [
            a.model_copy(deep=True)
            for a in self.alerts.values()
            if a.tenant_id == tenant_id
            and (subject_id is None or a.subject_id == subject_id)
            and (alert_type is None or a.alert_type == alert_type)
            and (include_acknowledged or not a.acknowledged)
            and (include_archived or not a.archived)
        ]
        return sorted(rows, key=lambda a: a.created_at, reverse=True)

    async def get_alert(self, tenant_id: str, alert_id: str) -> Alert | None:
        alert = self.alerts.get(alert_id)
        if alert is None or alert.tenant_id != tenant_id:
            return None
        return alert.model_copy(deep=True)

    async def save_alert(self, alert: Alert) -> Alert:
        self.alerts[alert.id] = alert.model_copy(deep=True)
        return alert

    # =========================================================================
    # Scores
    # =========================================================================

    async def get_score(
        self,
        tenant_id: str,
        subject_id: str,
        authority: str,
    ) -> ComplianceScore | None:
        score = self.scores.get((tenant_id, subject_id, authority))
        return score.model_copy(deep=True) if score is not None else None

    async def list_scores(
        self,
        tenant_id: str,
        subject_id: str | None = None,
    ) -> list[ComplianceScore]:
        current = [
            score.model_copy(deep=True)
            for (tenant, subject, _), score in self.scores.items()
            if tenant == tenant_id and (subject_id is None or subject == subject_id)
        ]
        return sorted(current, key=lambda s: (s.subject_id, s.authority))

    async def save_score(self, score: ComplianceScore) -> ComplianceScore:
        self.scores[(score.tenant_id, score.subject_id, score.authority)] = score.model_copy(deep=True)
        return score
