"""
Alert Models
============

Notification-worthy events raised by the monitoring engine.

Version: 0.1.0
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class AlertType(str, Enum):
    """Reason an alert was raised."""

    DEADLINE_REMINDER = "deadline_reminder"
    DEADLINE_APPROACHING = "deadline_approaching"
    DEADLINE_TODAY = "deadline_today"
    DEADLINE_OVERDUE = "deadline_overdue"
    PENALTY_ACCRUING = "penalty_accruing"
    OVERDUE_ESCALATION = "overdue_escalation"
    REGISTRATION_MISSING = "registration_missing"
    COMPLIANCE_CRITICAL = "compliance_critical"
    COMPLIANCE_DECLINING = "compliance_declining"
    SYSTEM_OVERDUE_RATE = "system_overdue_rate"
    SYSTEM_LOW_COMPLIANCE = "system_low_compliance"


class AlertSeverity(str, Enum):
    """Alert severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class DedupKey:
    """
    Identity of the condition an alert reports.

    `scope` is the requirement id for obligation alerts, an authority or
    registration rule for authority-level alerts, and None for subject-wide
    alerts. `qualifier` separates conditions that must not suppress each
    other, such as penalty rungs or escalation tiers.
    """

    subject_id: str | None
    scope: str | None
    alert_type: AlertType
    qualifier: str | None = None

    def __str__(self) -> str:
        parts = [self.subject_id or "*", self.scope or "-", self.alert_type.value]
        if self.qualifier is not None:
            parts.append(self.qualifier)
        return ":".join(parts)


class Alert(BaseModel):
    """A compliance alert."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    tenant_id: str
    subject_id: str | None = None
    obligation_id: str | None = None
    requirement_id: str | None = None
    authority: str | None = None

    alert_type: AlertType
    severity: AlertSeverity
    title: str = Field(..., max_length=200)
    message: str = Field(..., max_length=2000)
    action_required: str = ""
    due_date: date | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    acknowledged: bool = False
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    archived: bool = False

    dedup_key: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    def blocks(self, dedup_key: str, since: datetime) -> bool:
        """Whether this alert suppresses a new alert with `dedup_key`."""
        return (
            self.dedup_key == dedup_key
            and not self.acknowledged
            and not self.archived
            and self.created_at >= since
        )
