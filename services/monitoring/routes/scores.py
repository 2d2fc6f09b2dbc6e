"""
Score Routes
============

Current compliance scores and remediation insights.
"""

from fastapi import APIRouter, Depends, Query

from services.monitoring.dependencies import get_monitor, get_store
from services.monitoring.services.monitor import ComplianceMonitor
from services.monitoring.store.base import RecordStore
from shared.models.compliance import ComplianceInsight, ComplianceScore


router = APIRouter()


@router.get("/", response_model=list[ComplianceScore])
async def list_scores(
    tenant_id: str,
    subject_id: str | None = Query(None),
    store: RecordStore = Depends(get_store),
) -> list[ComplianceScore]:
    """Latest score of every (subject, authority) pair."""
    return await store.list_scores(tenant_id, subject_id)


@router.get("/{subject_id}/insights", response_model=list[ComplianceInsight])
async def subject_insights(
    tenant_id: str,
    subject_id: str,
    monitor: ComplianceMonitor = Depends(get_monitor),
) -> list[ComplianceInsight]:
    """Issues, action items and estimated cost per authority for one subject."""
    return await monitor.compliance_insights(tenant_id, subject_id)
