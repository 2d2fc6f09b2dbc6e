"""
PostgreSQL Record Store
=======================

Record store over SQLAlchemy async sessions. Every call is its own unit of
work, so a single obligation, alert or score row is the unit of mutation.

Connection-level failures surface as StoreUnavailableError; a violation of the
open natural key index surfaces as InvariantViolationError.

Version: 0.1.0
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.monitoring.errors import InvariantViolationError, StoreUnavailableError
from services.monitoring.store.base import RecordStore
from services.monitoring.store.tables import (
    AlertRow,
    CatalogRow,
    ObligationRow,
    ReconciliationRow,
    ScoreRow,
    SubjectRow,
)
from shared.database.postgres import PostgresClient
from shared.logging import get_logger
from shared.models.alert import Alert, AlertType
from shared.models.compliance import ComplianceScore
from shared.models.obligation import ObligationInstance
from shared.models.subject import SubjectProfile


logger = get_logger(__name__)

_TRANSIENT_ERRORS = (OperationalError, InterfaceError, OSError, TimeoutError)


# =============================================================================
# Row conversion
# =============================================================================


def _alert_from_row(row: AlertRow) -> Alert:
    return Alert(
        id=row.id,
        tenant_id=row.tenant_id,
        subject_id=row.subject_id,
        obligation_id=row.obligation_id,
        requirement_id=row.requirement_id,
        authority=row.authority,
        alert_type=row.alert_type,
        severity=row.severity,
        title=row.title,
        message=row.message,
        action_required=row.action_required,
        due_date=row.due_date,
        created_at=row.created_at,
        acknowledged=row.acknowledged,
        acknowledged_by=row.acknowledged_by,
        acknowledged_at=row.acknowledged_at,
        archived=row.archived,
        dedup_key=row.dedup_key,
        metadata=row.meta or {},
    )


def _alert_to_row(alert: Alert) -> AlertRow:
    data = alert.model_dump(exclude={"metadata"})
    data.update(alert_type=alert.alert_type.value, severity=alert.severity.value)
    return AlertRow(**data, meta=alert.metadata)


def _obligation_to_row(obligation: ObligationInstance) -> ObligationRow:
    data = obligation.model_dump()
    data.update(
        status=obligation.status.value,
        resolution=obligation.resolution.value if obligation.resolution else None,
    )
    return ObligationRow(**data)


def _score_to_row(score: ComplianceScore) -> ScoreRow:
    return ScoreRow(**score.model_dump(exclude={"level"}), level=score.level.value)


def _score_from_row(row: ScoreRow) -> ComplianceScore:
    return ComplianceScore.model_validate(row, from_attributes=True)


class PostgresRecordStore(RecordStore):
    """Record store backed by PostgreSQL."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory or PostgresClient.get_session_factory()

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self._session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
        except _TRANSIENT_ERRORS as e:
            logger.warning("record_store_unavailable", error=str(e))
            raise StoreUnavailableError(str(e)) from e

    # =========================================================================
    # Seeding
    # =========================================================================

    async def put_catalog(self, tenant_id: str, document: dict[str, Any]) -> None:
        async with self._session() as session:
            await session.merge(CatalogRow(tenant_id=tenant_id, document=document))

    async def put_subject(self, subject: SubjectProfile) -> None:
        async with self._session() as session:
            await session.merge(SubjectRow(**subject.model_dump()))

    # =========================================================================
    # Reference data
    # =========================================================================

    async def get_catalog(self, tenant_id: str) -> dict[str, Any] | None:
        async with self._session() as session:
            row = await session.get(CatalogRow, tenant_id)
            return row.document if row is not None else None

    async def list_subjects(
        self,
        tenant_id: str,
        active_only: bool = True,
    ) -> list[SubjectProfile]:
        stmt = select(SubjectRow).where(SubjectRow.tenant_id == tenant_id)
        if active_only:
            stmt = stmt.where(SubjectRow.active.is_(True))
        async with self._session() as session:
            rows = (await session.scalars(stmt.order_by(SubjectRow.id))).all()
            return [SubjectProfile.model_validate(r, from_attributes=True) for r in rows]

    # =========================================================================
    # Obligations
    # =========================================================================

    async def list_obligations(
        self,
        tenant_id: str,
        subject_id: str | None = None,
        include_archived: bool = False,
    ) -> list[ObligationInstance]:
        stmt = select(ObligationRow).where(ObligationRow.tenant_id == tenant_id)
        if subject_id is not None:
            stmt = stmt.where(ObligationRow.subject_id == subject_id)
        if not include_archived:
            stmt = stmt.where(ObligationRow.archived.is_(False))
        stmt = stmt.order_by(
            ObligationRow.subject_id, ObligationRow.due_date, ObligationRow.requirement_id
        )
        async with self._session() as session:
            rows = (await session.scalars(stmt)).all()
            return [ObligationInstance.model_validate(r, from_attributes=True) for r in rows]

    async def get_obligation(
        self,
        tenant_id: str,
        obligation_id: str,
    ) -> ObligationInstance | None:
        async with self._session() as session:
            row = await session.get(ObligationRow, obligation_id)
            if row is None or row.tenant_id != tenant_id:
                return None
            return ObligationInstance.model_validate(row, from_attributes=True)

    async def upsert_obligation(self, obligation: ObligationInstance) -> ObligationInstance:
        try:
            async with self._session() as session:
                await session.merge(_obligation_to_row(obligation))
        except IntegrityError as e:
            raise InvariantViolationError(obligation.natural_key, [obligation.id]) from e
        return obligation

    async def flag_for_reconciliation(
        self,
        tenant_id: str,
        natural_key: tuple[str, ...],
        obligation_ids: list[str],
        reason: str,
    ) -> None:
        async with self._session() as session:
            session.add(
                ReconciliationRow(
                    tenant_id=tenant_id,
                    natural_key=list(natural_key),
                    obligation_ids=list(obligation_ids),
                    reason=reason,
                )
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
        stmt = (
            select(AlertRow)
            .where(
                AlertRow.tenant_id == tenant_id,
                AlertRow.dedup_key == dedup_key,
                AlertRow.acknowledged.is_(False),
                AlertRow.archived.is_(False),
                AlertRow.created_at >= since,
            )
            .order_by(AlertRow.created_at.desc())
            .limit(1)
        )
        async with self._session() as session:
            row = (await session.scalars(stmt)).first()
            return _alert_from_row(row) if row is not None else None

    async def list_alerts(
        self,
        tenant_id: str,
        subject_id: str | None = None,
        alert_type: AlertType | None = None,
        include_acknowledged: bool = True,
        include_archived: bool = False,
    ) -> list[Alert]:
        stmt = select(AlertRow).where(AlertRow.tenant_id == tenant_id)
        if subject_id is not None:
            stmt = stmt.where(AlertRow.subject_id == subject_id)
        if alert_type is not None:
            stmt = stmt.where(AlertRow.alert_type == alert_type.value)
        if not include_acknowledged:
            stmt = stmt.where(AlertRow.acknowledged.is_(False))
        if not include_archived:
            stmt = stmt.where(AlertRow.archived.is_(False))
        async with self._session() as session:
            rows = (await session.scalars(stmt.order_by(AlertRow.created_at.desc()))).all()
            return [_alert_from_row(r) for r in rows]

    async def get_alert(self, tenant_id: str, alert_id: str) -> Alert | None:
        async with self._session() as session:
            row = await session.get(AlertRow, alert_id)
            if row is None or row.tenant_id != tenant_id:
                return None
            return _alert_from_row(row)

    async def save_alert(self, alert: Alert) -> Alert:
        async with self._session() as session:
            await session.merge(_alert_to_row(alert))
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
        async with self._session() as session:
            row = await session.get(ScoreRow, (tenant_id, subject_id, authority))
            return _score_from_row(row) if row is not None else None

    async def list_scores(
        self,
        tenant_id: str,
        subject_id: str | None = None,
    ) -> list[ComplianceScore]:
        stmt = select(ScoreRow).where(ScoreRow.tenant_id == tenant_id)
        if subject_id is not None:
            stmt = stmt.where(ScoreRow.subject_id == subject_id)
        async with self._session() as session:
            rows = (await session.scalars(stmt.order_by(ScoreRow.subject_id, ScoreRow.authority))).all()
            return [_score_from_row(r) for r in rows]

    async def save_score(self, score: ComplianceScore) -> ComplianceScore:
        async with self._session() as session:
            await session.merge(_score_to_row(score))
        return score
