"""
DUEWATCH Services
=================

Services of the Duewatch compliance monitoring platform.

Services:
- monitoring: Deadline, penalty, alert and score monitoring engine
"""

__all__ = [
    "monitoring",
]
