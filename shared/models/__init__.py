"""
Shared Models
=============

Pydantic models shared across duewatch services.

Models:
- Authority models (AuthorityProfile, RegistrationRule, LevelThresholds)
- Requirement models (RequirementDefinition, PenaltyRule, ScheduleRule)
- Subject models (SubjectProfile)
- Obligation models (ObligationInstance, ObligationStatus)
- Alert models (Alert, AlertType, AlertSeverity, DedupKey)
- Compliance models (ComplianceScore, ComplianceLevel, RunSummary)
"""

from shared.models.alert import (
    Alert,
    AlertSeverity,
    AlertType,
    DedupKey,
)
from shared.models.authority import (
    AuthorityProfile,
    LevelThresholds,
    RegistrationRule,
)
from shared.models.common import (
    HealthResponse,
)
from shared.models.compliance import (
    ComplianceInsight,
    ComplianceLevel,
    ComplianceScore,
    RunSummary,
)
from shared.models.obligation import (
    ObligationInstance,
    ObligationStatus,
    Resolution,
)
from shared.models.requirement import (
    Applicability,
    Frequency,
    PenaltyRule,
    RequirementDefinition,
    RequirementPriority,
    ScheduleRule,
)
from shared.models.subject import SubjectProfile

__all__ = [
    # Alert
    "Alert",
    "AlertSeverity",
    "AlertType",
    "DedupKey",
    # Authority
    "AuthorityProfile",
    "LevelThresholds",
    "RegistrationRule",
    # Common
    "HealthResponse",
    # Compliance
    "ComplianceInsight",
    "ComplianceLevel",
    "ComplianceScore",
    "RunSummary",
    # Obligation
    "ObligationInstance",
    "ObligationStatus",
    "Resolution",
    # Requirement
    "Applicability",
    "Frequency",
    "PenaltyRule",
    "RequirementDefinition",
    "RequirementPriority",
    "ScheduleRule",
    # Subject
    "SubjectProfile",
]
