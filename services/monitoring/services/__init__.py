"""
Monitoring Engine Services
==========================

Leaf-first components of a monitoring run.
"""

from services.monitoring.services.alerts import AlertEngine
from services.monitoring.services.escalation import EscalationEngine, EscalationResult
from services.monitoring.services.evaluator import RequirementEvaluator, build_evaluators
from services.monitoring.services.monitor import ComplianceMonitor
from services.monitoring.services.penalty import PenaltyAccrualCalculator, penalty_for_days
from services.monitoring.services.schedule import DueDate, ScheduleCalculator, applies_to
from services.monitoring.services.score import ComplianceScoreAggregator, RegistrationFinding
from services.monitoring.services.status import StatusEngine, StatusTransition


__all__ = [
    "AlertEngine",
    "ComplianceMonitor",
    "ComplianceScoreAggregator",
    "DueDate",
    "EscalationEngine",
    "EscalationResult",
    "PenaltyAccrualCalculator",
    "RegistrationFinding",
    "RequirementEvaluator",
    "ScheduleCalculator",
    "StatusEngine",
    "StatusTransition",
    "applies_to",
    "build_evaluators",
    "penalty_for_days",
]
