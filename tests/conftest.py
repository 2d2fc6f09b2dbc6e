"""
Test Configuration
==================

Pytest fixtures for Duewatch tests.
"""

import os
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"

from services.monitoring.catalog import guyana_catalog
from services.monitoring.notifications import NotificationDispatcher
from services.monitoring.services.monitor import ComplianceMonitor
from services.monitoring.store.memory import InMemoryRecordStore
from shared.config import MonitoringSettings
from shared.models.alert import Alert
from shared.models.subject import SubjectProfile


TENANT_ID = "tenant-1"


class FixedClock:
    """Controllable clock injected into the monitor."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingDispatcher(NotificationDispatcher):
    """Dispatcher that remembers every hand-off."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[tuple[Alert, list[str]]] = []
        self.fail = fail

    async def dispatch(self, alert: Alert, channels: list[str]) -> None:
        if self.fail:
            raise ConnectionError("delivery service unreachable")
        self.sent.append((alert, channels))


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


# =============================================================================
# Engine fixtures
# =============================================================================


@pytest.fixture
def tenant_id() -> str:
    return TENANT_ID


@pytest.fixture
def clock() -> FixedClock:
    """Clock fixed at 2026-05-05 09:00 UTC."""
    return FixedClock(datetime(2026, 5, 5, 9, 0, tzinfo=UTC))


@pytest.fixture
def monitoring_config() -> MonitoringSettings:
    """Engine configuration with defaults and fast retries."""
    return MonitoringSettings(max_workers=4, store_max_retries=2)


@pytest.fixture
def catalog_document() -> dict[str, Any]:
    return guyana_catalog()


@pytest.fixture
def make_subject() -> Callable[..., SubjectProfile]:
    """Factory for subject profiles with sensible defaults."""

    def _make(subject_id: str = "acme", **overrides: Any) -> SubjectProfile:
        data: dict[str, Any] = {
            "id": subject_id,
            "tenant_id": TENANT_ID,
            "name": f"{subject_id.title()} Ltd",
            "subject_type": "CORPORATION",
            "registration_date": date(2026, 5, 1),
            "registrations": {"tin": "TIN-100"},
            "employee_count": 0,
            "annual_revenue": 5_000_000,
        }
        data.update(overrides)
        return SubjectProfile(**data)

    return _make


@pytest.fixture
def store(catalog_document: dict[str, Any]) -> InMemoryRecordStore:
    """In-memory store seeded with the sample catalog for the test tenant."""
    record_store = InMemoryRecordStore()
    record_store.put_catalog(TENANT_ID, catalog_document)
    return record_store


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def failing_dispatcher() -> RecordingDispatcher:
    """Dispatcher whose delivery always fails."""
    return RecordingDispatcher(fail=True)


@pytest.fixture
def monitor(
    store: InMemoryRecordStore,
    dispatcher: RecordingDispatcher,
    monitoring_config: MonitoringSettings,
    clock: FixedClock,
) -> ComplianceMonitor:
    return ComplianceMonitor(store, dispatcher, monitoring_config, clock=clock)


# =============================================================================
# Service client
# =============================================================================


@asynccontextmanager
async def _free_lock(tenant_id: str) -> AsyncIterator[bool]:
    yield True


@pytest_asyncio.fixture
async def monitoring_client(monitor: ComplianceMonitor) -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Monitoring Service."""
    from services.monitoring.dependencies import get_run_lock
    from services.monitoring.main import app

    app.state.monitor = monitor
    app.dependency_overrides[get_run_lock] = lambda: _free_lock

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
