"""
Requirement Models
==================

Recurring regulatory obligations, their applicability predicates,
schedules and penalty rules.

Version: 0.1.0
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Frequency(str, Enum):
    """Recurrence of a requirement."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    ADHOC = "adhoc"
    TRIGGER_BASED = "trigger_based"

    @property
    def is_scheduled(self) -> bool:
        """Whether the engine computes due dates for this frequency."""
        return self in (Frequency.MONTHLY, Frequency.QUARTERLY, Frequency.ANNUAL)


class RequirementPriority(str, Enum):
    """Priority of a requirement."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class PenaltyRule(BaseModel):
    """
    Late-filing penalty rule.

    All amounts are integers in the smallest currency unit. Strict typing
    rejects strings and floats when the catalog is loaded.
    """

    model_config = ConfigDict(frozen=True, strict=True, extra="forbid")

    late_filing_fee: int = Field(default=0, ge=0)
    daily_rate: int = Field(default=0, ge=0)
    maximum: int = Field(..., ge=0)


class ScheduleRule(BaseModel):
    """Due date placement relative to the end of a period."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Days after the first day of the month following period end (14 -> the 15th)
    due_day_offset: int = Field(default=14, ge=0, le=60)

    # Annual requirements fall due on a fixed date the year after period end
    annual_due_month: int = Field(default=3, ge=1, le=12)
    annual_due_day: int = Field(default=31, ge=1, le=31)


class Applicability(BaseModel):
    """Subject attributes that make a requirement or registration apply."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_revenue: int | None = Field(default=None, ge=0)
    min_employees: int | None = Field(default=None, ge=0)
    subject_types: frozenset[str] = Field(default_factory=frozenset)
    regions: frozenset[str] = Field(default_factory=frozenset)


class RequirementDefinition(BaseModel):
    """A named obligation type belonging to one authority."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1)
    authority: str = Field(..., min_length=1)
    name: str
    document_type: str = ""
    description: str = ""
    frequency: Frequency
    applicability: Applicability = Field(default_factory=Applicability)
    penalty: PenaltyRule
    schedule: ScheduleRule = Field(default_factory=ScheduleRule)
    priority: RequirementPriority = RequirementPriority.MEDIUM

    @property
    def display_document(self) -> str:
        """Document name used in alert text."""
        return self.document_type or self.name
