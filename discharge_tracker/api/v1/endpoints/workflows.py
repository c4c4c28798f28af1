# discharge_tracker/api/v1/endpoints/workflows.py
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from discharge_tracker.core.database import get_db
from discharge_tracker.schemas.workflow import (
    WorkflowKey,
    WorkflowStatusResponse,
    WorkflowUpdateRequest,
    WorkflowUpdateResponse,
)
from discharge_tracker.workflows.executor import get_workflow_status, update_workflow

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{department}/status", response_model=WorkflowStatusResponse, tags=["workflows"])
def workflow_status(
    department: str,
    payload: WorkflowKey,
    db: Session = Depends(get_db),
) -> dict:
    """
    Step-by-step progress of one discharge episode in a department.
    Times are rendered in the display timezone as DD-MM-YYYY HH:MM:SS.
    """
    return get_workflow_status(
        db,
        department=department,
        room_no=payload.room_no,
        mrno=payload.mrno,
        ftid=payload.ftid,
    )


@router.post("/{department}/update", response_model=WorkflowUpdateResponse, tags=["workflows"])
def workflow_update(
    department: str,
    payload: WorkflowUpdateRequest,
    db: Session = Depends(get_db),
) -> dict:
    """
    Mark steps as done. Steps must be completed in order; completing the
    last step closes the department ticket and opens the next department's.
    """
    try:
        return update_workflow(
            db,
            department=department,
            room_no=payload.room_no,
            mrno=payload.mrno,
            ftid=payload.ftid,
            steps=payload.steps,
            user_id=payload.user_id,
        )
    except SQLAlchemyError as e:
        logger.error(
            f"Error updating {department} workflow for room {payload.room_no}: {e}", exc_info=True
        )
        raise HTTPException(status_code=500, detail="Failed to update workflow.")
