# discharge_tracker/api/v1/endpoints/sla.py
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from discharge_tracker.core.database import get_db
from discharge_tracker.schemas.notification import SlaCheckResponse, SlaNotificationResponse
from discharge_tracker.services.sla_service import list_today_notifications, scan_sla_breaches
from discharge_tracker.workflows.registry import normalize_department

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/sla/check", response_model=SlaCheckResponse, tags=["sla"])
def check_sla(db: Session = Depends(get_db)) -> dict:
    """
    Run one breach scan now. Returns status "skipped" when another scan
    holds the lock.
    """
    try:
        return scan_sla_breaches(db)
    except SQLAlchemyError as e:
        logger.error(f"SLA scan failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="SLA check failed.")


@router.get(
    "/notifications/{department}/today",
    response_model=list[SlaNotificationResponse],
    tags=["sla"],
)
def today_notifications(department: str, db: Session = Depends(get_db)):
    """Breach notifications raised today for a department, newest first."""
    return list_today_notifications(db, normalize_department(department))
