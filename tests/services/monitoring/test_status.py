"""Tests for the obligation status engine."""

import pytest
from datetime import UTC, date, datetime

from services.monitoring.services.status import StatusEngine
from shared.models.obligation import ObligationInstance, ObligationStatus, Resolution


@pytest.fixture
def engine() -> StatusEngine:
    """Create status engine for testing."""
    return StatusEngine()


def _obligation(**overrides) -> ObligationInstance:
    data = {
        "tenant_id": "tenant-1",
        "subject_id": "acme",
        "requirement_id": "GRA_VAT_MONTHLY",
        "authority": "GRA",
        "period_label": "2026-04",
        "due_date": date(2026, 5, 15),
    }
    data.update(overrides)
    return ObligationInstance(**data)


def _at(day: date, hour: int = 9) -> datetime:
    return datetime(day.year, day.month, day.day, hour, tzinfo=UTC)


class TestStatusEngine:
    """Tests for StatusEngine."""

    def test_upcoming_before_due_date(self, engine: StatusEngine) -> None:
        """Test an obligation stays upcoming before its due date."""
        transition = engine.advance(_obligation(), _at(date(2026, 5, 5)))

        assert transition.current == ObligationStatus.UPCOMING
        assert not transition.changed
        assert transition.obligation.days_overdue == 0

    def test_due_today(self, engine: StatusEngine) -> None:
        """Test the due date itself."""
        transition = engine.advance(_obligation(), _at(date(2026, 5, 15)))

        assert transition.current == ObligationStatus.DUE_TODAY
        assert transition.changed
        assert not transition.became_overdue

    def test_becomes_overdue(self, engine: StatusEngine) -> None:
        """Test the transition into overdue is reported once."""
        now = _at(date(2026, 5, 25))
        transition = engine.advance(_obligation(), now)

        assert transition.became_overdue
        assert transition.obligation.days_overdue == 10
        assert transition.obligation.last_evaluated_at == now

        again = engine.advance(transition.obligation, _at(date(2026, 5, 25), hour=10))
        assert not again.became_overdue
        assert again.obligation.days_overdue == 10

    def test_days_overdue_recomputed_after_skipped_runs(self, engine: StatusEngine) -> None:
        """Test days overdue follow the calendar, not the number of runs."""
        obligation = _obligation(status=ObligationStatus.OVERDUE, days_overdue=1)

        transition = engine.advance(obligation, _at(date(2026, 6, 14)))

        assert transition.obligation.days_overdue == 30

    def test_status_never_moves_backwards(self, engine: StatusEngine) -> None:
        """Test an overdue obligation stays overdue even if the clock says otherwise."""
        obligation = _obligation(status=ObligationStatus.OVERDUE, days_overdue=3)

        transition = engine.advance(obligation, _at(date(2026, 5, 1)))

        assert transition.current == ObligationStatus.OVERDUE
        assert transition.obligation.days_overdue == 0

    def test_resolved_is_terminal(self, engine: StatusEngine) -> None:
        """Test resolved obligations are not advanced."""
        resolved = engine.resolve(_obligation(), _at(date(2026, 5, 10)))

        transition = engine.advance(resolved, _at(date(2026, 7, 1)))

        assert transition.current == ObligationStatus.RESOLVED
        assert transition.obligation is resolved

    def test_resolve(self, engine: StatusEngine) -> None:
        """Test resolution records reason and time."""
        now = _at(date(2026, 5, 20))
        resolved = engine.resolve(_obligation(), now, Resolution.NOT_APPLICABLE)

        assert resolved.status == ObligationStatus.RESOLVED
        assert resolved.resolution == Resolution.NOT_APPLICABLE
        assert resolved.resolved_at == now
        assert not resolved.is_open

    def test_resolve_twice_keeps_first_resolution(self, engine: StatusEngine) -> None:
        """Test resolving a resolved obligation is a no-op."""
        first = engine.resolve(_obligation(), _at(date(2026, 5, 20)))
        second = engine.resolve(first, _at(date(2026, 5, 21)), Resolution.NOT_APPLICABLE)

        assert second is first

    def test_supersede_archives(self, engine: StatusEngine) -> None:
        """Test superseded obligations are resolved and archived."""
        superseded = engine.supersede(
            _obligation(status=ObligationStatus.OVERDUE), _at(date(2026, 5, 20))
        )

        assert superseded.archived
        assert superseded.resolution == Resolution.SUPERSEDED
        assert not superseded.is_open
