"""
Obligation Routes
=================

Obligation listing and the external "obligation satisfied" signal.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from services.monitoring.dependencies import get_monitor, get_store
from services.monitoring.services.monitor import ComplianceMonitor
from services.monitoring.store.base import RecordStore
from shared.models.obligation import ObligationInstance, ObligationStatus, Resolution


router = APIRouter()


class ResolveObligationRequest(BaseModel):
    """Request to resolve an obligation."""

    resolution: Resolution = Resolution.SATISFIED


@router.get("/", response_model=list[ObligationInstance])
async def list_obligations(
    tenant_id: str,
    subject_id: str | None = Query(None),
    obligation_status: ObligationStatus | None = Query(None, alias="status"),
    include_archived: bool = Query(False),
    store: RecordStore = Depends(get_store),
) -> list[ObligationInstance]:
    """List a tenant's obligations ordered by subject and due date."""
    obligations = await store.list_obligations(tenant_id, subject_id, include_archived)
    if obligation_status is not None:
        obligations = [o for o in obligations if o.status == obligation_status]
    return obligations


@router.post("/{obligation_id}/resolve", response_model=ObligationInstance)
async def resolve_obligation(
    tenant_id: str,
    obligation_id: str,
    request: ResolveObligationRequest | None = None,
    monitor: ComplianceMonitor = Depends(get_monitor),
) -> ObligationInstance:
    """
    Mark an obligation as resolved, typically because it was filed.

    Resolving is terminal; penalties stop accruing from the next run.
    """
    resolution = request.resolution if request is not None else Resolution.SATISFIED
    obligation = await monitor.resolve_obligation(tenant_id, obligation_id, resolution)
    if obligation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Obligation {obligation_id} not found",
        )
    return obligation
