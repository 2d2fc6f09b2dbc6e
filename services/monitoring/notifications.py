"""
Notification Dispatch
=====================

Hand-off of created alerts to delivery. The engine picks the recommended
channels; delivery itself belongs to downstream services.

Version: 0.1.0
"""

from abc import ABC, abstractmethod

from shared.database.kafka import KafkaClient, Topics
from shared.logging import get_logger
from shared.models.alert import Alert, AlertSeverity


logger = get_logger(__name__)


def recommended_channels(
    alert: Alert,
    channels: list[str],
    critical_channels: list[str],
) -> list[str]:
    """Default channels, plus the critical ones for critical alerts."""
    selected = list(channels)
    if alert.severity == AlertSeverity.CRITICAL:
        selected.extend(c for c in critical_channels if c not in selected)
    return selected


class NotificationDispatcher(ABC):
    """Receives (alert, channels) once an alert has been stored."""

    @abstractmethod
    async def dispatch(self, alert: Alert, channels: list[str]) -> None:
        """Hand an alert to delivery. May raise; callers treat it as best-effort."""


class LogNotificationDispatcher(NotificationDispatcher):
    """Writes alerts to the structured log."""

    async def dispatch(self, alert: Alert, channels: list[str]) -> None:
        logger.info(
            "alert_dispatched",
            alert_id=alert.id,
            alert_type=alert.alert_type.value,
            severity=alert.severity.value,
            subject_id=alert.subject_id,
            channels=channels,
            title=alert.title,
        )


class KafkaNotificationDispatcher(NotificationDispatcher):
    """Publishes alerts to the alerts topic for delivery services."""

    def __init__(self, topic: str = Topics.ALERTS) -> None:
        self.topic = topic

    async def dispatch(self, alert: Alert, channels: list[str]) -> None:
        payload = alert.model_dump(mode="json")
        payload["channels"] = channels
        await KafkaClient.publish(
            self.topic,
            payload,
            key=alert.tenant_id,
            headers={
                "alert_type": alert.alert_type.value,
                "severity": alert.severity.value,
            },
        )
