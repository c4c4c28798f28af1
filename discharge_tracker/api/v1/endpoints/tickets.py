# discharge_tracker/api/v1/endpoints/tickets.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from discharge_tracker.core.database import get_db
from discharge_tracker.schemas.ticket import (
    AssignRequest,
    AssignResponse,
    CloseRequest,
    CloseResponse,
    TicketCreate,
    TicketListItem,
    TicketResponse,
)
from discharge_tracker.services.ticket_service import (
    assign_ticket,
    close_ticket,
    list_tickets,
    open_ticket,
)
from discharge_tracker.workflows.registry import DISCHARGE_SUMMARY, DOCTOR_AUTHORIZATION

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=TicketResponse, tags=["tickets"])
def create_ticket(
    payload: TicketCreate,
    response: Response,
    db: Session = Depends(get_db),
) -> TicketResponse:
    """
    Raise a department ticket for a discharge episode.

    Idempotent on (room, department, FTID): an existing ticket is returned
    with 200, a new one with 201.
    """
    try:
        ticket, created = open_ticket(
            db,
            room_no=payload.room_no,
            mrno=payload.mrno,
            ftid=payload.ftid,
            department=payload.department,
            disc_recom_time=payload.disc_recom_time,
        )
    except SQLAlchemyError as e:
        logger.error(f"Error opening ticket for room {payload.room_no}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to open ticket.")

    if created:
        response.status_code = status.HTTP_201_CREATED
    return TicketResponse.model_validate(ticket)


@router.get("", response_model=list[TicketListItem], tags=["tickets"])
def get_tickets(
    department: list[str] | None = Query(default=None),
    open_only: bool = False,
    db: Session = Depends(get_db),
) -> list[dict]:
    """
    Ticket dashboard listing with assignee name and department SLA minutes.

    Optional filters:
    - department: one or more department names (repeat the parameter)
    - open_only: hide closed tickets
    """
    return list_tickets(db, departments=department, open_only=open_only)


@router.get("/summary-authorization", response_model=list[TicketListItem], tags=["tickets"])
def get_summary_authorization_tickets(
    open_only: bool = False,
    db: Session = Depends(get_db),
) -> list[dict]:
    """Tickets for the discharge summary and doctor authorization desks."""
    return list_tickets(
        db,
        departments=[DISCHARGE_SUMMARY, DOCTOR_AUTHORIZATION],
        open_only=open_only,
    )


@router.post("/assign", response_model=AssignResponse, tags=["tickets"])
def assign(payload: AssignRequest, db: Session = Depends(get_db)) -> dict:
    """
    Assign a ticket to a user.

    When the ticket already belongs to someone else the response carries
    `already_assigned` and `current_user`; resend with `force_reassign`
    to take it over.
    """
    try:
        return assign_ticket(
            db,
            room_no=payload.room_no,
            department=payload.department,
            ftid=payload.ftid,
            user_id=payload.user_id,
            force=payload.force_reassign,
        )
    except SQLAlchemyError as e:
        logger.error(f"Error assigning ticket for room {payload.room_no}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to assign ticket.")


@router.post("/close", response_model=CloseResponse, tags=["tickets"])
def close(payload: CloseRequest, db: Session = Depends(get_db)) -> dict:
    """
    Close an assigned facility-check ticket (HOUSEKEEPING). Workflow
    departments answer 409 `use_workflow`. `status` in the response is the SLA outcome
    code (2 assign exceeded, 3 completion exceeded, 4 both, 5 within SLA).
    """
    try:
        return close_ticket(
            db,
            room_no=payload.room_no,
            department=payload.department,
            ftid=payload.ftid,
            user_id=payload.user_id,
        )
    except SQLAlchemyError as e:
        logger.error(f"Error closing ticket for room {payload.room_no}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to close ticket.")
