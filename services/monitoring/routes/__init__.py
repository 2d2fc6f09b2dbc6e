"""
Monitoring Service Routes
=========================

API route handlers for the monitoring service.
"""

from services.monitoring.routes import alerts, obligations, runs, scores


__all__ = ["alerts", "obligations", "runs", "scores"]
