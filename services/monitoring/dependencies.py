"""
Service Dependencies
====================

Construction of the record store, notification dispatcher and monitor from
settings, plus the FastAPI dependencies that expose them to routes.

Version: 0.1.0
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from fastapi import Request

from services.monitoring.notifications import (
    KafkaNotificationDispatcher,
    LogNotificationDispatcher,
    NotificationDispatcher,
)
from services.monitoring.services.monitor import ComplianceMonitor
from services.monitoring.store.base import RecordStore
from services.monitoring.store.memory import InMemoryRecordStore
from services.monitoring.store.postgres import PostgresRecordStore
from services.monitoring.store.retrying import RetryingRecordStore
from shared.config import MonitoringSettings, NotifierBackend, RecordStoreBackend
from shared.database.redis import redis_lock, run_lock_key


RunLock = Callable[[str], AbstractAsyncContextManager[bool]]


def build_store(config: MonitoringSettings) -> RecordStore:
    """Record store for the configured backend, wrapped with retries."""
    if config.record_store == RecordStoreBackend.POSTGRES:
        inner: RecordStore = PostgresRecordStore()
    else:
        inner = InMemoryRecordStore()

    return RetryingRecordStore(
        inner,
        max_attempts=config.store_max_retries,
        max_wait_seconds=config.store_retry_max_wait_seconds,
    )


def build_dispatcher(config: MonitoringSettings) -> NotificationDispatcher:
    """Notification dispatcher for the configured backend."""
    if config.notifier == NotifierBackend.KAFKA:
        return KafkaNotificationDispatcher()
    return LogNotificationDispatcher()


def build_monitor(config: MonitoringSettings) -> ComplianceMonitor:
    return ComplianceMonitor(build_store(config), build_dispatcher(config), config)


def tenant_run_lock(tenant_id: str) -> AbstractAsyncContextManager[bool]:
    """Redis lock serializing runs of one tenant."""
    return redis_lock(run_lock_key(tenant_id))


# =============================================================================
# FastAPI dependencies
# =============================================================================


def get_monitor(request: Request) -> ComplianceMonitor:
    return request.app.state.monitor


def get_store(request: Request) -> RecordStore:
    return request.app.state.monitor.store


def get_run_lock() -> RunLock:
    return tenant_run_lock
