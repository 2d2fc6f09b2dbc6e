"""
Obligation Models
=================

Concrete, dated occurrences of a requirement for one subject.

Version: 0.1.0
"""

from datetime import UTC, date, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class ObligationStatus(str, Enum):
    """Lifecycle of an obligation instance."""

    UPCOMING = "upcoming"
    DUE_TODAY = "due_today"
    OVERDUE = "overdue"
    RESOLVED = "resolved"

    @property
    def is_open(self) -> bool:
        """Open obligations are still evaluated every run."""
        return self != ObligationStatus.RESOLVED


class Resolution(str, Enum):
    """Why an obligation left the open states."""

    SATISFIED = "satisfied"
    NOT_APPLICABLE = "not_applicable"
    SUPERSEDED = "superseded"


class ObligationInstance(BaseModel):
    """One occurrence of a requirement for one subject in one period."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    tenant_id: str
    subject_id: str
    requirement_id: str
    authority: str
    period_label: str
    due_date: date

    status: ObligationStatus = ObligationStatus.UPCOMING
    accrued_penalty: int = Field(default=0, ge=0)
    days_overdue: int = Field(default=0, ge=0)
    escalation_level: int = Field(default=0, ge=0)

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_evaluated_at: datetime | None = None
    resolved_at: datetime | None = None
    resolution: Resolution | None = None
    archived: bool = False

    @property
    def natural_key(self) -> tuple[str, str, str]:
        """Uniqueness key among non-archived instances."""
        return (self.subject_id, self.requirement_id, self.period_label)

    @property
    def is_open(self) -> bool:
        """Whether the obligation still needs evaluation."""
        return self.status.is_open and not self.archived

    def days_until_due(self, today: date) -> int:
        """Calendar days from `today` to the due date (negative once late)."""
        return (self.due_date - today).days
