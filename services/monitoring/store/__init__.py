"""
Record Store
============

Persistence boundary of the monitoring engine.

Implementations:
- InMemoryRecordStore: process-local dictionaries
- PostgresRecordStore: SQLAlchemy async over asyncpg
- RetryingRecordStore: tenacity retries around any of the above

Version: 0.1.0
"""

from services.monitoring.store.base import RecordStore
from services.monitoring.store.memory import InMemoryRecordStore
from services.monitoring.store.retrying import RetryingRecordStore


__all__ = [
    "InMemoryRecordStore",
    "RecordStore",
    "RetryingRecordStore",
]
