"""
Admin / operations endpoints
============================

GET  /api/v1/admin/health               -- simple health check
POST /api/v1/admin/reconciliation/run   -- run the reconciliation job now
"""

from fastapi import APIRouter, Depends, Request

from rental.api.dependencies import get_reconciliation_scheduler
from rental.api.middleware import limiter
from rental.api.schemas import HealthResponse, ReconciliationResponse
from rental.workers.reconciliation import ReconciliationScheduler

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/reconciliation/run",
    response_model=ReconciliationResponse,
    summary="Run one reconciliation pass now",
    description=(
        "Ages ONGOING contracts past their end date into OVERDUE, then "
        "cancels OVERDUE contracts blocking a PENDING one.  Returns "
        "``skipped: true`` when another run is in progress."
    ),
)
@limiter.limit("10/minute")
async def run_reconciliation(
    request: Request,
    scheduler: ReconciliationScheduler = Depends(get_reconciliation_scheduler),
):
    return await scheduler.run_once()


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()
