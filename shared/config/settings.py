"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RecordStoreBackend(str, Enum):
    """Record store implementations."""

    MEMORY = "memory"
    POSTGRES = "postgres"


class NotifierBackend(str, Enum):
    """Notification hand-off implementations."""

    LOG = "log"
    KAFKA = "kafka"


class PostgresSettings(BaseSettings):
    """PostgreSQL database configuration."""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = "localhost"
    port: int = 5432
    user: str = "duewatch"
    password: SecretStr = SecretStr("duewatch_dev_password")
    db: str = "duewatch"

    @property
    def async_url(self) -> str:
        """Generate async SQLAlchemy connection URL."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.db}"


class RedisSettings(BaseSettings):
    """Redis configuration (tenant run locks)."""

    model_config = SettingsConfigDict(env_prefix="REDIS_")

    host: str = "localhost"
    port: int = 6379
    password: SecretStr = SecretStr("duewatch_redis_password")
    db: int = 0
    lock_timeout_seconds: int = 900

    @property
    def url(self) -> str:
        """Generate Redis connection URL."""
        pwd = self.password.get_secret_value()
        return f"redis://:{pwd}@{self.host}:{self.port}/{self.db}"


class KafkaSettings(BaseSettings):
    """Kafka event streaming configuration."""

    model_config = SettingsConfigDict(env_prefix="KAFKA_")

    bootstrap_servers: str = "localhost:9092"
    security_protocol: str = "PLAINTEXT"


class MonitoringSettings(BaseSettings):
    """
    Compliance monitoring engine configuration.

    Every threshold the engine applies lives here so that the engine stays
    jurisdiction-agnostic. Amounts are integers in the smallest currency unit.
    """

    model_config = SettingsConfigDict(env_prefix="MONITORING_")

    # Deduplication
    dedup_window_hours: int = Field(default=24, ge=1)

    # Deadline alerts
    warning_days: list[int] = Field(default_factory=lambda: [30, 14, 7, 3, 1])
    approaching_days: int = 7

    # Penalty rungs; index 1 and 2 double as escalation thresholds
    penalty_thresholds: list[int] = Field(default_factory=lambda: [0, 500, 1000, 5000])
    escalation_overdue_days: int = 30

    # Score decline
    decline_threshold: int = 10

    # Schedule
    lookback_periods: int = Field(default=1, ge=0)

    # Run execution
    max_workers: int = Field(default=8, ge=1)
    run_timeout_seconds: float = 300.0

    # Record store retries
    store_max_retries: int = Field(default=3, ge=1)
    store_retry_max_wait_seconds: float = 10.0

    # Notifications
    notification_channels: list[str] = Field(default_factory=lambda: ["email", "in_app"])
    critical_channels: list[str] = Field(default_factory=lambda: ["sms"])

    # Tenant-wide system alerts
    system_overdue_rate: float = 0.2
    system_min_average_score: float = 60.0

    # Collaborators
    record_store: RecordStoreBackend = RecordStoreBackend.MEMORY
    notifier: NotifierBackend = NotifierBackend.LOG

    @field_validator("warning_days")
    @classmethod
    def sort_warning_days(cls, v: list[int]) -> list[int]:
        """Keep warning days in descending order."""
        if not v:
            raise ValueError("warning_days must not be empty")
        return sorted(set(v), reverse=True)

    @field_validator("penalty_thresholds")
    @classmethod
    def validate_thresholds(cls, v: list[int]) -> list[int]:
        """Rungs must be ascending and provide the two escalation thresholds."""
        if len(v) < 3:
            raise ValueError("penalty_thresholds needs at least three rungs")
        if v != sorted(v):
            raise ValueError("penalty_thresholds must be ascending")
        return v

    @property
    def reminder_horizon_days(self) -> int:
        """Furthest distance from a due date at which reminders start."""
        return max(self.warning_days)

    @property
    def escalation_threshold(self) -> int:
        """Accrued penalty that triggers escalation."""
        return self.penalty_thresholds[1]

    @property
    def critical_escalation_threshold(self) -> int:
        """Accrued penalty that makes an escalation critical."""
        return self.penalty_thresholds[2]


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    # Project paths
    project_root: Path = Field(default_factory=lambda: Path(__file__).parent.parent.parent)

    # Service
    monitoring_port: int = Field(default=8005, alias="MONITORING_PORT")

    # Collaborator connections
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    kafka: KafkaSettings = Field(default_factory=KafkaSettings)

    # Engine
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    # Security
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
