"""
Authority Models
================

Regulators, their registration rules and level thresholds.

Version: 0.1.0
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator

from shared.models.compliance import ComplianceLevel
from shared.models.requirement import Applicability


class LevelThresholds(BaseModel):
    """Score buckets used to derive a compliance level."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Stricter authorities treat low scores as critical outright
    critical_below: int | None = Field(default=None, ge=0, le=100)
    major_below: int = Field(default=70, ge=0, le=100)
    minor_below: int = Field(default=85, ge=0, le=100)

    @model_validator(mode="after")
    def check_ordering(self) -> "LevelThresholds":
        """Buckets must not overlap."""
        if self.major_below > self.minor_below:
            raise ValueError("major_below must not exceed minor_below")
        if self.critical_below is not None and self.critical_below > self.major_below:
            raise ValueError("critical_below must not exceed major_below")
        return self

    def level_for(self, score: int) -> ComplianceLevel:
        """Map a clamped score to its level bucket."""
        if self.critical_below is not None and score < self.critical_below:
            return ComplianceLevel.CRITICAL
        if score < self.major_below:
            return ComplianceLevel.MAJOR_ISSUES
        if score < self.minor_below:
            return ComplianceLevel.MINOR_ISSUES
        return ComplianceLevel.COMPLIANT


class RegistrationRule(BaseModel):
    """
    A registration a subject must hold with an authority.

    When the rule applies and the subject lacks the registration, the score is
    reduced by `deduction` and the level is at least `enforced_level`.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1)
    registration: str = Field(..., min_length=1)
    title: str
    deduction: int = Field(..., ge=0, le=100)
    applicability: Applicability = Field(default_factory=Applicability)
    enforced_level: ComplianceLevel | None = None
    action_required: str = ""

    @property
    def is_hard(self) -> bool:
        """Missing a hard registration makes the subject critical."""
        return self.enforced_level == ComplianceLevel.CRITICAL


class AuthorityProfile(BaseModel):
    """An independent regulator and its scoring configuration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    code: str = Field(..., min_length=1)
    name: str
    overdue_deduction: int = Field(default=20, ge=0, le=100)
    level_thresholds: LevelThresholds = Field(default_factory=LevelThresholds)
    registration_rules: tuple[RegistrationRule, ...] = ()
