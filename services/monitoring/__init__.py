"""
Monitoring Service
==================

Compliance deadline and penalty monitoring.

This service provides:
- Due date computation per requirement and subject
- Obligation status tracking and capped penalty accrual
- Deduplicated, severity-ranked alerts with escalation
- Per-authority compliance scores

Version: 0.1.0
"""

__version__ = "0.1.0"
