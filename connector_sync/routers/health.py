# connector_sync/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB, and whether a reconciliation run is in progress.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from connector_sync.database import get_db
from connector_sync.config import settings
from connector_sync.services.reconciliation_service import is_running
from connector_sync.services.telemetry_collector import parse_broker_url
from datetime import datetime

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "broker": _broker_address(),
        "run_in_progress": is_running(),
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    return result


def _broker_address() -> str:
    """host:port only, so credentials in MQTT_BROKER_URL never leave the process."""
    try:
        return str(parse_broker_url(settings.MQTT_BROKER_URL))
    except ValueError:
        return "invalid"
