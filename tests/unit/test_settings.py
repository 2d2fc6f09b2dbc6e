"""
Settings Tests
==============

Tests for monitoring engine configuration.

Version: 0.1.0
"""

import pytest
from pydantic import ValidationError

from shared.config import MonitoringSettings, NotifierBackend, RecordStoreBackend
from shared.config.settings import LogLevel, Settings


class TestMonitoringSettings:
    """Tests for MonitoringSettings."""

    def test_defaults(self) -> None:
        """Test default thresholds."""
        config = MonitoringSettings()

        assert config.dedup_window_hours == 24
        assert config.warning_days == [30, 14, 7, 3, 1]
        assert config.reminder_horizon_days == 30
        assert config.escalation_threshold == 500
        assert config.critical_escalation_threshold == 1000
        assert config.record_store == RecordStoreBackend.MEMORY
        assert config.notifier == NotifierBackend.LOG

    def test_warning_days_sorted_and_deduplicated(self) -> None:
        """Test warning days are kept in descending order."""
        config = MonitoringSettings(warning_days=[7, 45, 7, 1])

        assert config.warning_days == [45, 7, 1]
        assert config.reminder_horizon_days == 45

    def test_empty_warning_days_rejected(self) -> None:
        """Test at least one warning day is required."""
        with pytest.raises(ValidationError):
            MonitoringSettings(warning_days=[])

    def test_thresholds_must_ascend(self) -> None:
        """Test penalty rungs must be ascending."""
        with pytest.raises(ValidationError):
            MonitoringSettings(penalty_thresholds=[0, 1000, 500])

    def test_thresholds_need_three_rungs(self) -> None:
        """Test two rungs are not enough for escalation."""
        with pytest.raises(ValidationError):
            MonitoringSettings(penalty_thresholds=[0, 500])

    def test_environment_override(self, monkeypatch) -> None:
        """Test values load from MONITORING_ environment variables."""
        monkeypatch.setenv("MONITORING_DEDUP_WINDOW_HOURS", "48")
        monkeypatch.setenv("MONITORING_RECORD_STORE", "postgres")

        config = MonitoringSettings()

        assert config.dedup_window_hours == 48
        assert config.record_store == RecordStoreBackend.POSTGRES

    def test_max_workers_positive(self) -> None:
        """Test the worker pool needs at least one worker."""
        with pytest.raises(ValidationError):
            MonitoringSettings(max_workers=0)


class TestSettings:
    """Tests for the application settings."""

    def test_testing_environment(self) -> None:
        """Test the test suite runs in the testing environment."""
        assert Settings().is_testing

    def test_log_level_uppercased(self) -> None:
        """Test lower case log levels are accepted."""
        assert Settings(log_level="debug").log_level == LogLevel.DEBUG

    def test_postgres_url(self) -> None:
        """Test the async connection URL uses asyncpg."""
        assert Settings().postgres.async_url.startswith("postgresql+asyncpg://")
