"""
Configuration Module
====================

Centralized configuration management using Pydantic Settings.
Loads from environment variables with type validation and defaults.

Usage:
    from shared.config import settings

    print(settings.environment)
    print(settings.monitoring.dedup_window_hours)
"""

from shared.config.settings import (
    Environment,
    LogLevel,
    MonitoringSettings,
    NotifierBackend,
    RecordStoreBackend,
    Settings,
    get_settings,
)


# Global settings instance (singleton)
settings = get_settings()

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "Environment",
    "LogLevel",
    "MonitoringSettings",
    "NotifierBackend",
    "RecordStoreBackend",
]
