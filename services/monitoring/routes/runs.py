"""
Run Routes
==========

Trigger endpoint for monitoring runs, called by the scheduler.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from services.monitoring.dependencies import RunLock, get_monitor, get_run_lock
from services.monitoring.services.monitor import ComplianceMonitor
from shared.logging import get_logger
from shared.models.compliance import RunSummary


logger = get_logger(__name__)
router = APIRouter()


@router.post("/{tenant_id}", response_model=RunSummary)
async def run_monitoring(
    tenant_id: str,
    monitor: ComplianceMonitor = Depends(get_monitor),
    run_lock: RunLock = Depends(get_run_lock),
) -> RunSummary:
    """
    Run one monitoring pass for a tenant.

    Runs of the same tenant are serialized; a trigger arriving while a run is
    in progress is rejected with 409.

    Args:
        tenant_id: Tenant to evaluate

    Returns:
        RunSummary of the pass
    """
    async with run_lock(tenant_id) as acquired:
        if not acquired:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"A monitoring run for tenant {tenant_id} is already in progress",
            )
        return await monitor.run_compliance_monitoring(tenant_id)
