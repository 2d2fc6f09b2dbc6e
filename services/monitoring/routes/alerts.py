"""
Alert Routes
============

API endpoints for listing and acknowledging compliance alerts.
"""

from collections import Counter
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from services.monitoring.dependencies import get_store
from services.monitoring.store.base import RecordStore
from shared.logging import get_logger
from shared.models.alert import Alert, AlertSeverity, AlertType


logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Models
# ============================================================================


class AlertListResponse(BaseModel):
    """Response containing list of alerts."""

    alerts: list[Alert]
    total: int
    by_severity: dict[str, int]
    by_type: dict[str, int]


class AcknowledgeResponse(BaseModel):
    """Acknowledgement confirmation."""

    alert_id: str
    acknowledged: bool
    acknowledged_by: str | None
    acknowledged_at: datetime | None


# ============================================================================
# Alert Endpoints
# ============================================================================


@router.get("/", response_model=AlertListResponse)
async def list_alerts(
    tenant_id: str,
    subject_id: str | None = Query(None),
    alert_type: AlertType | None = Query(None),
    severity: AlertSeverity | None = Query(None),
    include_acknowledged: bool = Query(False),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    store: RecordStore = Depends(get_store),
) -> AlertListResponse:
    """
    List a tenant's live alerts, newest first.

    Args:
        tenant_id: Tenant identifier
        subject_id: Filter by subject
        alert_type: Filter by alert type
        severity: Filter by severity
        include_acknowledged: Also return acknowledged alerts
        limit: Maximum alerts to return
        offset: Number of alerts to skip
    """
    alerts = await store.list_alerts(
        tenant_id,
        subject_id=subject_id,
        alert_type=alert_type,
        include_acknowledged=include_acknowledged,
    )
    if severity is not None:
        alerts = [a for a in alerts if a.severity == severity]

    severities = Counter(a.severity.value for a in alerts)
    types = Counter(a.alert_type.value for a in alerts)

    return AlertListResponse(
        alerts=alerts[offset : offset + limit],
        total=len(alerts),
        by_severity={s.value: severities.get(s.value, 0) for s in AlertSeverity},
        by_type=dict(types),
    )


@router.get("/{alert_id}", response_model=Alert)
async def get_alert(
    tenant_id: str,
    alert_id: str,
    store: RecordStore = Depends(get_store),
) -> Alert:
    """Get a specific alert by ID."""
    alert = await store.get_alert(tenant_id, alert_id)
    if alert is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Alert {alert_id} not found",
        )
    return alert


@router.post("/{alert_id}/acknowledge", response_model=AcknowledgeResponse)
async def acknowledge_alert(
    tenant_id: str,
    alert_id: str,
    user_id: str = Query(..., description="User acknowledging the alert"),
    store: RecordStore = Depends(get_store),
) -> AcknowledgeResponse:
    """
    Acknowledge an alert.

    An acknowledged alert no longer suppresses new alerts for the same
    condition.
    """
    alert = await store.get_alert(tenant_id, alert_id)
    if alert is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Alert {alert_id} not found",
        )

    if not alert.acknowledged:
        alert = alert.model_copy(
            update={
                "acknowledged": True,
                "acknowledged_by": user_id,
                "acknowledged_at": datetime.now(UTC),
            }
        )
        await store.save_alert(alert)
        logger.info("alert_acknowledged", tenant_id=tenant_id, alert_id=alert_id, user_id=user_id)

    return AcknowledgeResponse(
        alert_id=alert.id,
        acknowledged=alert.acknowledged,
        acknowledged_by=alert.acknowledged_by,
        acknowledged_at=alert.acknowledged_at,
    )
