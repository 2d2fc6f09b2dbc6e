"""
Retrying Record Store
=====================

Wraps any RecordStore with a bounded exponential retry on
StoreUnavailableError. When the attempts are exhausted the last error is
re-raised to the caller.

Version: 0.1.0
"""

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from services.monitoring.errors import StoreUnavailableError
from services.monitoring.store.base import RecordStore
from shared.logging import get_logger
from shared.models.alert import Alert, AlertType
from shared.models.compliance import ComplianceScore
from shared.models.obligation import ObligationInstance
from shared.models.subject import SubjectProfile


logger = get_logger(__name__)

T = TypeVar("T")


class RetryingRecordStore(RecordStore):
    """Record store decorator adding retries at the collaborator boundary."""

    def __init__(
        self,
        inner: RecordStore,
        max_attempts: int = 3,
        min_wait_seconds: float = 0.5,
        max_wait_seconds: float = 10.0,
    ) -> None:
        self.inner = inner
        self.max_attempts = max_attempts
        self.min_wait_seconds = min_wait_seconds
        self.max_wait_seconds = max_wait_seconds

    def _log_retry(self, operation: str) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            logger.warning(
                "record_store_retry",
                operation=operation,
                attempt=retry_state.attempt_number,
                wait=retry_state.next_action.sleep,  # type: ignore[union-attr]
            )

        return before_sleep

    async def _call(self, operation: str, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(StoreUnavailableError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=self.min_wait_seconds,
                min=self.min_wait_seconds,
                max=self.max_wait_seconds,
            ),
            before_sleep=self._log_retry(operation),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await fn(*args, **kwargs)
        raise AssertionError("unreachable")  # pragma: no cover

    async def get_catalog(self, tenant_id: str) -> dict[str, Any] | None:
        return await self._call("get_catalog", self.inner.get_catalog, tenant_id)

    async def list_subjects(self, tenant_id: str, active_only: bool = True) -> list[SubjectProfile]:
        return await self._call("list_subjects", self.inner.list_subjects, tenant_id, active_only)

    async def list_obligations(
        self,
        tenant_id: str,
        subject_id: str | None = None,
        include_archived: bool = False,
    ) -> list[ObligationInstance]:
        return await self._call(
            "list_obligations",
            self.inner.list_obligations,
            tenant_id,
            subject_id,
            include_archived,
        )

    async def get_obligation(self, tenant_id: str, obligation_id: str) -> ObligationInstance | None:
        return await self._call("get_obligation", self.inner.get_obligation, tenant_id, obligation_id)

    async def upsert_obligation(self, obligation: ObligationInstance) -> ObligationInstance:
        return await self._call("upsert_obligation", self.inner.upsert_obligation, obligation)

    async def flag_for_reconciliation(
        self,
        tenant_id: str,
        natural_key: tuple[str, ...],
        obligation_ids: list[str],
        reason: str,
    ) -> None:
        await self._call(
            "flag_for_reconciliation",
            self.inner.flag_for_reconciliation,
            tenant_id,
            natural_key,
            obligation_ids,
            reason,
        )

    async def find_active_alert(self, tenant_id: str, dedup_key: str, since: datetime) -> Alert | None:
        return await self._call(
            "find_active_alert", self.inner.find_active_alert, tenant_id, dedup_key, since
        )

    async def list_alerts(
        self,
        tenant_id: str,
        subject_id: str | None = None,
        alert_type: AlertType | None = None,
        include_acknowledged: bool = True,
        include_archived: bool = False,
    ) -> list[Alert]:
        return await self._call(
            "list_alerts",
            self.inner.list_alerts,
            tenant_id,
            subject_id,
            alert_type,
            include_acknowledged,
            include_archived,
        )

    async def get_alert(self, tenant_id: str, alert_id: str) -> Alert | None:
        return await self._call("get_alert", self.inner.get_alert, tenant_id, alert_id)

    async def save_alert(self, alert: Alert) -> Alert:
        return await self._call("save_alert", self.inner.save_alert, alert)

    async def get_score(self, tenant_id: str, subject_id: str, authority: str) -> ComplianceScore | None:
        return await self._call("get_score", self.inner.get_score, tenant_id, subject_id, authority)

    async def list_scores(self, tenant_id: str, subject_id: str | None = None) -> list[ComplianceScore]:
        return await self._call("list_scores", self.inner.list_scores, tenant_id, subject_id)

    async def save_score(self, score: ComplianceScore) -> ComplianceScore:
        return await self._call("save_score", self.inner.save_score, score)
