# app/api/v1/endpoints/internal.py
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core.exceptions import ValidationError
from app.scheduler import get_scheduler_status
from app.schemas.outreach import SweepSummaryResponse
from app.schemas.reporting import (
    ReconcileRequest,
    ReconciliationResponse,
    RollupRunRequest,
    RollupSummaryResponse,
)
from app.services.outreach.drip_scheduler import run_drip_sweep
from app.services.payment.provider_factory import get_payment_provider
from app.services.payment.providers.stripe_provider import PaymentError
from app.services.reporting.reconciliation import reconcile
from app.services.reporting.rollups import run_daily_rollups

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Internal"])


@router.post("/internal/drip/run", response_model=SweepSummaryResponse)
def trigger_drip_sweep(
    db: Session = Depends(deps.get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    """Run one drip sweep now, outside the regular schedule."""
    summary = run_drip_sweep(db)
    return summary.to_dict()


@router.post("/internal/reconcile", response_model=ReconciliationResponse)
def reconcile_payments(
    reconcile_in: ReconcileRequest,
    db: Session = Depends(deps.get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    """
    Compare paid Stripe checkout sessions with the donation ledger.
    Read-only: nothing is repaired.
    """
    try:
        provider = get_payment_provider("stripe")
        report = reconcile(
            db,
            provider,
            start=reconcile_in.start,
            end=reconcile_in.end,
            organization_id=reconcile_in.organization_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except PaymentError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)
    return report.to_dict()


@router.post("/internal/rollups/run", response_model=RollupSummaryResponse)
def trigger_rollups(
    rollup_in: RollupRunRequest,
    db: Session = Depends(deps.get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    """Write the daily rollups for one day (default: yesterday)."""
    return run_daily_rollups(db, day=rollup_in.day).to_dict()


@router.get("/internal/scheduler")
def scheduler_status(api_key: str = Depends(deps.get_internal_api_key)):
    return get_scheduler_status()
