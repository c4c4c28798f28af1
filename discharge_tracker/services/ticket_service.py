# discharge_tracker/services/ticket_service.py
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from discharge_tracker.core.database import transaction
from discharge_tracker.core.exceptions import (
    TicketClosedError,
    TicketNotAssignedError,
    TicketNotFoundError,
    UnknownDepartmentError,
    WorkflowCloseError,
)
from discharge_tracker.models.department import DepartmentPolicy
from discharge_tracker.models.ticket import (
    AssignmentState,
    FacilityTicket,
    SlaOutcome,
    TicketStatus,
)
from discharge_tracker.models.user import StaffUser
from discharge_tracker.services.record_service import (
    ensure_bed_details,
    ensure_step_record,
    get_or_create,
)
from discharge_tracker.services.sla_service import compute_sla_outcome
from discharge_tracker.utils.datetime_utils import utc_now
from discharge_tracker.workflows.registry import (
    NURSING,
    WORKFLOWS,
    dashboard_column,
    get_workflow,
    normalize_department,
)

logger = logging.getLogger(__name__)


def get_ticket_for_update(
    db: Session,
    *,
    room_no: str,
    department: str,
    ftid: str,
) -> FacilityTicket:
    """
    Load a ticket by (room, department, FTID) holding a row lock until the
    surrounding transaction ends. Raises TicketNotFoundError.
    """
    ticket = (
        db.query(FacilityTicket)
        .filter(
            FacilityTicket.room_no == room_no.strip(),
            FacilityTicket.department == normalize_department(department),
            FacilityTicket.facility_tid == ftid.strip(),
        )
        .with_for_update()
        .first()
    )
    if ticket is None:
        raise TicketNotFoundError(
            f"No {normalize_department(department)} ticket for room {room_no.strip()}, FTID {ftid.strip()}."
        )
    return ticket


def get_policy(db: Session, department: str) -> DepartmentPolicy:
    policy = (
        db.query(DepartmentPolicy)
        .filter(DepartmentPolicy.dept_name == normalize_department(department))
        .first()
    )
    if policy is None:
        raise UnknownDepartmentError(
            f"No SLA policy configured for department '{normalize_department(department)}'."
        )
    return policy


def open_ticket(
    db: Session,
    *,
    room_no: str,
    mrno: str,
    ftid: str,
    department: str,
    disc_recom_time: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> tuple[FacilityTicket, bool]:
    """
    Raise a department ticket for a discharge episode (idempotent on
    room/department/FTID) and make sure the bed dashboard row exists.

    Returns (ticket, created).
    """
    dept = normalize_department(department)
    dashboard_column(dept)  # rejects unknown departments
    now = now or utc_now()

    with transaction(db):
        ticket, created = get_or_create(
            db,
            FacilityTicket,
            defaults={
                "mrno": mrno.strip(),
                "disc_recom_time": disc_recom_time or now,
                "status": AssignmentState.UNASSIGNED,
                "tkt_status": TicketStatus.OPEN,
            },
            room_no=room_no.strip(),
            department=dept,
            facility_tid=ftid.strip(),
        )
        ensure_bed_details(db, room_no=room_no.strip(), mrno=mrno.strip(), ftid=ftid.strip())

    if created:
        logger.info(f"Opened {dept} ticket {ticket.facility_check_id} for room {ticket.room_no}")
    return ticket, created


def assign_ticket(
    db: Session,
    *,
    room_no: str,
    department: str,
    ftid: str,
    user_id: str,
    force: bool = False,
    now: Optional[datetime] = None,
) -> dict:
    """
    Assign a ticket to a user.

    - unassigned: first-time assignment (and, for NURSING, the nurse station
      step record is created if missing)
    - already assigned to the same user: no-op success
    - assigned to someone else without `force`: confirmation prompt, nothing written
    - `force`: overwrite the assignee and the assignment time
    Closed tickets raise TicketClosedError.
    """
    now = now or utc_now()
    user_id = user_id.strip()

    with transaction(db):
        ticket = get_ticket_for_update(db, room_no=room_no, department=department, ftid=ftid)

        if ticket.is_closed:
            raise TicketClosedError(f"Ticket {ticket.facility_check_id} is already closed.")

        current_user = (ticket.user_id or "").strip()

        if ticket.status == AssignmentState.UNASSIGNED or not current_user:
            ticket.user_id = user_id
            ticket.assigned_time = now
            ticket.status = AssignmentState.ASSIGNED
            ticket.tkt_status = TicketStatus.IN_PROGRESS

            if ticket.department == NURSING:
                ensure_step_record(
                    db,
                    get_workflow(NURSING),
                    room_no=ticket.room_no,
                    mrno=ticket.mrno,
                    ftid=ticket.facility_tid,
                )
            logger.info(f"Ticket {ticket.facility_check_id} assigned to {user_id}")
            return {
                "success": True,
                "ticket_id": ticket.facility_check_id,
                "assigned_user": user_id,
                "message": "Assigned successfully.",
            }

        if current_user == user_id:
            return {
                "success": True,
                "ticket_id": ticket.facility_check_id,
                "assigned_user": user_id,
                "message": "Already assigned to you.",
            }

        if not force:
            return {
                "success": False,
                "already_assigned": True,
                "ticket_id": ticket.facility_check_id,
                "current_user": current_user,
                "message": f"Already assigned to {current_user}. Do you want to reassign?",
            }

        ticket.user_id = user_id
        ticket.assigned_time = now
        logger.info(f"Ticket {ticket.facility_check_id} reassigned from {current_user} to {user_id}")
        return {
            "success": True,
            "ticket_id": ticket.facility_check_id,
            "assigned_user": user_id,
            "previous_user": current_user,
            "message": "User reassigned.",
        }


def close_ticket_row(
    db: Session,
    ticket: FacilityTicket,
    *,
    user_id: str,
    now: datetime,
) -> SlaOutcome:
    """
    Close an already-locked ticket, record its SLA outcome and set the bed
    dashboard flag. Does not commit; callers own the transaction.
    """
    column = dashboard_column(ticket.department)
    policy = get_policy(db, ticket.department)

    outcome = compute_sla_outcome(
        ticket.disc_recom_time,
        ticket.assigned_time,
        now,
        policy.assign_sla_min,
        policy.completion_sla_min,
    )

    ticket.completed_time = now
    ticket.tkt_status = TicketStatus.CLOSED
    ticket.status = AssignmentState.CLOSED
    ticket.sla_outcome = int(outcome)
    if not ticket.user_id:
        ticket.user_id = user_id

    bed = ensure_bed_details(db, room_no=ticket.room_no, mrno=ticket.mrno, ftid=ticket.facility_tid)
    setattr(bed, column, True)

    logger.info(
        f"Closed {ticket.department} ticket {ticket.facility_check_id} with SLA outcome {int(outcome)}"
    )
    return outcome


def close_ticket(
    db: Session,
    *,
    room_no: str,
    department: str,
    ftid: str,
    user_id: str,
    now: Optional[datetime] = None,
) -> dict:
    """
    Generic department close for facility-check departments such as
    HOUSEKEEPING. The ticket must exist, be open and have been assigned.
    Returns the recorded SLA outcome code.

    Departments with a step workflow are rejected: they close by completing
    their terminal step, which also hands the episode to the next department.
    """
    if normalize_department(department) in WORKFLOWS:
        raise WorkflowCloseError(
            f"{department.strip().upper()} tickets close by completing their workflow."
        )
    now = now or utc_now()

    with transaction(db):
        ticket = get_ticket_for_update(db, room_no=room_no, department=department, ftid=ftid)

        if ticket.is_closed:
            raise TicketClosedError(f"Ticket {ticket.facility_check_id} is already closed.")
        if ticket.assigned_time is None or ticket.status == AssignmentState.UNASSIGNED:
            raise TicketNotAssignedError(
                f"Ticket {ticket.facility_check_id} must be assigned before it can be closed."
            )

        outcome = close_ticket_row(db, ticket, user_id=user_id.strip(), now=now)
        ticket_id = ticket.facility_check_id

    return {
        "success": True,
        "ticket_id": ticket_id,
        "message": "Ticket closed successfully.",
        "status": int(outcome),
    }


def list_tickets(
    db: Session,
    *,
    departments: Optional[list[str]] = None,
    open_only: bool = False,
) -> list[dict]:
    """
    Dashboard listing: ticket + assignee name + department SLA thresholds.
    """
    query = (
        db.query(FacilityTicket, StaffUser.username, DepartmentPolicy)
        .join(DepartmentPolicy, DepartmentPolicy.dept_name == FacilityTicket.department)
        .outerjoin(StaffUser, StaffUser.user_id == FacilityTicket.user_id)
    )
    if departments:
        query = query.filter(
            FacilityTicket.department.in_([normalize_department(d) for d in departments])
        )
    if open_only:
        query = query.filter(FacilityTicket.tkt_status != TicketStatus.CLOSED)

    rows = query.order_by(FacilityTicket.disc_recom_time, FacilityTicket.facility_check_id).all()
    return [
        {
            "ticket_id": ticket.facility_check_id,
            "ftid": ticket.facility_tid,
            "mrno": ticket.mrno,
            "room_no": ticket.room_no,
            "department": ticket.department,
            "user_id": ticket.user_id,
            "username": username,
            "disc_recom_time": ticket.disc_recom_time,
            "assigned_time": ticket.assigned_time,
            "completed_time": ticket.completed_time,
            "status": ticket.status,
            "tkt_status": ticket.tkt_status,
            "sla_outcome": ticket.sla_outcome,
            "assign_sla_min": policy.assign_sla_min,
            "completion_sla_min": policy.completion_sla_min,
        }
        for ticket, username, policy in rows
    ]
