# connector_sync/routers/reconciliation.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from connector_sync.database import get_db
from connector_sync.exceptions import StorageError, TransportError
from connector_sync.models.reconciliation_run import ReconciliationRun
from connector_sync.schemas.reconciliation import ReconciliationRunOut, ReconciliationSummary
from connector_sync.services import reconciliation_service

router = APIRouter()


@router.post("/reconciliation/runs", response_model=ReconciliationSummary,
             summary="Collect telemetry and create missing charging points")
async def trigger_run(duration: Optional[float] = None, device_id: Optional[str] = None):
    """
    Blocks for the whole collection window (COLLECTOR_DURATION unless
    `duration` is given). `device_id` restricts writes to one station.
    """
    if reconciliation_service.is_running():
        raise HTTPException(status_code=409, detail="A reconciliation run is already in progress")
    try:
        return await reconciliation_service.run_reconciliation(duration=duration, test_device_id=device_id)
    except TransportError as e:
        raise HTTPException(status_code=502, detail=f"MQTT transport failure: {e}")
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Database failure, run rolled back: {e}")


@router.get("/reconciliation/runs", response_model=list[ReconciliationRunOut],
            summary="Recent reconciliation runs")
def list_runs(status: Optional[str] = None, limit: int = 20, db: Session = Depends(get_db)):
    q = db.query(ReconciliationRun)
    if status:
        q = q.filter(ReconciliationRun.status == status)
    return q.order_by(ReconciliationRun.started_at.desc(), ReconciliationRun.id.desc()).limit(limit).all()


@router.get("/reconciliation/runs/{run_id}", response_model=ReconciliationRunOut)
def get_run(run_id: int, db: Session = Depends(get_db)):
    run = db.query(ReconciliationRun).filter(ReconciliationRun.id == run_id).first()
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")
    return run
