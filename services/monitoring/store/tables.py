"""
Record Store Tables
===================

SQLAlchemy ORM tables backing PostgresRecordStore.

At most one non-archived obligation per natural key is enforced by a partial
unique index; archived rows are kept for audit.

Version: 0.1.0
"""

from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import BigInteger, Boolean, Date, DateTime, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CatalogRow(Base):
    """Raw requirement catalog document of a tenant."""

    __tablename__ = "monitoring_catalogs"

    tenant_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    document: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class SubjectRow(Base):
    """Regulated subject profile."""

    __tablename__ = "monitoring_subjects"

    tenant_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), default="")
    subject_type: Mapped[str] = mapped_column(String(64))
    registration_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    registrations: Mapped[dict[str, Any]] = mapped_column(JSONB, default=dict)
    employee_count: Mapped[int] = mapped_column(Integer, default=0)
    annual_revenue: Mapped[int] = mapped_column(BigInteger, default=0)
    region: Mapped[str | None] = mapped_column(String(64), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)


class ObligationRow(Base):
    """One obligation instance."""

    __tablename__ = "monitoring_obligations"
    __table_args__ = (
        Index(
            "uq_monitoring_obligations_open_natural_key",
            "tenant_id",
            "subject_id",
            "requirement_id",
            "period_label",
            unique=True,
            postgresql_where=text("NOT archived"),
        ),
        Index("ix_monitoring_obligations_subject", "tenant_id", "subject_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64))
    subject_id: Mapped[str] = mapped_column(String(64))
    requirement_id: Mapped[str] = mapped_column(String(128))
    authority: Mapped[str] = mapped_column(String(32))
    period_label: Mapped[str] = mapped_column(String(16))
    due_date: Mapped[date] = mapped_column(Date)

    status: Mapped[str] = mapped_column(String(16))
    accrued_penalty: Mapped[int] = mapped_column(BigInteger, default=0)
    days_overdue: Mapped[int] = mapped_column(Integer, default=0)
    escalation_level: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    last_evaluated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution: Mapped[str | None] = mapped_column(String(16), nullable=True)
    archived: Mapped[bool] = mapped_column(Boolean, default=False)


class AlertRow(Base):
    """Persisted alert; the dedup index serves the suppression lookup."""

    __tablename__ = "monitoring_alerts"
    __table_args__ = (
        Index("ix_monitoring_alerts_dedup", "tenant_id", "dedup_key", "created_at"),
        Index("ix_monitoring_alerts_subject", "tenant_id", "subject_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64))
    subject_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    obligation_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    requirement_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    authority: Mapped[str | None] = mapped_column(String(32), nullable=True)

    alert_type: Mapped[str] = mapped_column(String(32))
    severity: Mapped[str] = mapped_column(String(16))
    title: Mapped[str] = mapped_column(String(200))
    message: Mapped[str] = mapped_column(Text)
    action_required: Mapped[str] = mapped_column(Text, default="")
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    acknowledged: Mapped[bool] = mapped_column(Boolean, default=False)
    acknowledged_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    archived: Mapped[bool] = mapped_column(Boolean, default=False)

    dedup_key: Mapped[str] = mapped_column(String(255))
    # "metadata" is reserved on declarative classes
    meta: Mapped[dict[str, Any]] = mapped_column("metadata", JSONB, default=dict)


class ScoreRow(Base):
    """Current score per subject and authority, replaced on every run."""

    __tablename__ = "monitoring_scores"

    tenant_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    subject_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    authority: Mapped[str] = mapped_column(String(32), primary_key=True)
    score: Mapped[int] = mapped_column(Integer)
    level: Mapped[str] = mapped_column(String(16))
    issues: Mapped[list[str]] = mapped_column(JSONB, default=list)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    previous_score: Mapped[int | None] = mapped_column(Integer, nullable=True)


class ReconciliationRow(Base):
    """Obligations flagged for manual reconciliation."""

    __tablename__ = "monitoring_reconciliation_flags"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(64), index=True)
    natural_key: Mapped[list[str]] = mapped_column(JSONB)
    obligation_ids: Mapped[list[str]] = mapped_column(JSONB)
    reason: Mapped[str] = mapped_column(Text)
    flagged_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    resolved: Mapped[bool] = mapped_column(Boolean, default=False)
