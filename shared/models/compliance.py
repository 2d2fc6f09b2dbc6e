"""
Compliance Models
=================

Models for compliance levels, scores, insights and run summaries.

Version: 0.1.0
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class ComplianceLevel(str, Enum):
    """Discrete compliance level of a subject towards one authority."""

    COMPLIANT = "compliant"
    MINOR_ISSUES = "minor_issues"
    MAJOR_ISSUES = "major_issues"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Ordering from best (0) to worst (3)."""
        return _LEVEL_RANK[self]

    @classmethod
    def worst(cls, *levels: "ComplianceLevel") -> "ComplianceLevel":
        """Return the most severe of the given levels."""
        return max(levels, key=lambda level: level.rank)


_LEVEL_RANK = {
    ComplianceLevel.COMPLIANT: 0,
    ComplianceLevel.MINOR_ISSUES: 1,
    ComplianceLevel.MAJOR_ISSUES: 2,
    ComplianceLevel.CRITICAL: 3,
}


class ComplianceScore(BaseModel):
    """Score of one subject towards one authority, superseded every run."""

    tenant_id: str
    subject_id: str
    authority: str

    score: int = Field(..., ge=0, le=100)
    level: ComplianceLevel
    issues: list[str] = Field(default_factory=list)

    computed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    previous_score: int | None = Field(default=None, ge=0, le=100)

    @property
    def score_change(self) -> int | None:
        """Change against the previously persisted score."""
        if self.previous_score is None:
            return None
        return self.score - self.previous_score


class ComplianceInsight(BaseModel):
    """Remediation summary for one subject towards one authority."""

    subject_id: str
    authority: str
    level: ComplianceLevel
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    estimated_cost: int = 0
    time_to_compliance_hours: int = 0


class RunSummary(BaseModel):
    """Result returned to the trigger of a monitoring run."""

    alerts_created: int = 0
    deadlines_processed: int = 0
    subjects_analyzed: int = 0
    issues_found: int = 0
