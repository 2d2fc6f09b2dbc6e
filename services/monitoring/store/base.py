"""
Record Store Interface
======================

Abstract persistence boundary of the monitoring engine.

Implementations raise StoreUnavailableError for transient failures so the
retrying wrapper can recover them, and InvariantViolationError when a write
would create a second open obligation for one natural key.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from shared.models.alert import Alert, AlertType
from shared.models.compliance import ComplianceScore
from shared.models.obligation import ObligationInstance
from shared.models.subject import SubjectProfile


class RecordStore(ABC):
    """Read and write access to catalogs, subjects, obligations, alerts and scores."""

    # =========================================================================
    # Reference data
    # =========================================================================

    @abstractmethod
    async def get_catalog(self, tenant_id: str) -> dict[str, Any] | None:
        """Raw catalog document of a tenant, or None when none is configured."""

    @abstractmethod
    async def list_subjects(
        self,
        tenant_id: str,
        active_only: bool = True,
    ) -> list[SubjectProfile]:
        """Subjects of a tenant ordered by id."""

    # =========================================================================
    # Obligations
    # =========================================================================

    @abstractmethod
    async def list_obligations(
        self,
        tenant_id: str,
        subject_id: str | None = None,
        include_archived: bool = False,
    ) -> list[ObligationInstance]:
        """Obligations of a tenant, optionally narrowed to one subject."""

    @abstractmethod
    async def get_obligation(
        self,
        tenant_id: str,
        obligation_id: str,
    ) -> ObligationInstance | None:
        """Look up one obligation by id."""

    @abstractmethod
    async def upsert_obligation(self, obligation: ObligationInstance) -> ObligationInstance:
        """
        Insert or update an obligation.

        An existing row with the same id is replaced. A new row whose natural
        key matches another non-archived row raises InvariantViolationError.
        """

    @abstractmethod
    async def flag_for_reconciliation(
        self,
        tenant_id: str,
        natural_key: tuple[str, ...],
        obligation_ids: list[str],
        reason: str,
    ) -> None:
        """Record obligations that need manual reconciliation."""

    # =========================================================================
    # Alerts
    # =========================================================================

    @abstractmethod
    async def find_active_alert(
        self,
        tenant_id: str,
        dedup_key: str,
        since: datetime,
    ) -> Alert | None:
        """Newest unacknowledged, non-archived alert with `dedup_key` created at or after `since`."""

    @abstractmethod
    async def list_alerts(
        self,
        tenant_id: str,
        subject_id: str | None = None,
        alert_type: AlertType | None = None,
        include_acknowledged: bool = True,
        include_archived: bool = False,
    ) -> list[Alert]:
        """Alerts of a tenant, newest first."""

    @abstractmethod
    async def get_alert(self, tenant_id: str, alert_id: str) -> Alert | None:
        """Look up one alert by id."""

    @abstractmethod
    async def save_alert(self, alert: Alert) -> Alert:
        """Insert or replace an alert by id."""

    # =========================================================================
    # Scores
    # =========================================================================

    @abstractmethod
    async def get_score(
        self,
        tenant_id: str,
        subject_id: str,
        authority: str,
    ) -> ComplianceScore | None:
        """Current score of a (subject, authority) pair."""

    @abstractmethod
    async def list_scores(
        self,
        tenant_id: str,
        subject_id: str | None = None,
    ) -> list[ComplianceScore]:
        """Current score of every (subject, authority) pair of a tenant."""

    @abstractmethod
    async def save_score(self, score: ComplianceScore) -> ComplianceScore:
        """Persist a score, replacing the one stored for its pair."""
