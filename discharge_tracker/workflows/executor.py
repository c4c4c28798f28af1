# discharge_tracker/workflows/executor.py
"""
Department step executor.

Reads and advances the discharge steps declared in the registry. Steps move
forward only: a step can be completed once every earlier step is done (or is
being completed in the same call). Completing a department's terminal step
closes its ticket and hands the episode to the next department in the same
transaction.
"""

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy.orm import Session

from discharge_tracker.core.database import transaction
from discharge_tracker.core.exceptions import (
    EpisodeMismatchError,
    StepOutOfOrderError,
    TicketClosedError,
)
from discharge_tracker.models.ticket import AssignmentState, FacilityTicket, TicketStatus
from discharge_tracker.models.workflow_step import STAGE_COMPLETED
from discharge_tracker.services.record_service import (
    ensure_bed_details,
    ensure_step_record,
    find_bed_details,
    find_step_record,
    get_or_create,
)
from discharge_tracker.services.ticket_service import close_ticket_row, get_ticket_for_update
from discharge_tracker.utils.datetime_utils import format_local, utc_now
from discharge_tracker.workflows.registry import (
    DepartmentWorkflow,
    StepBinding,
    get_workflow,
)

logger = logging.getLogger(__name__)


def _source_for(step: StepBinding, record: Any, bed: Any) -> Any:
    return bed if step.on_bed else record


def _done_map(workflow: DepartmentWorkflow, record: Any, bed: Any) -> dict[str, bool]:
    done = {}
    for step in workflow.steps:
        source = _source_for(step, record, bed)
        done[step.name] = source is not None and step.is_done(getattr(source, step.status_attr))
    return done


def next_pending_step(workflow: DepartmentWorkflow, done: Mapping[str, bool]) -> Optional[str]:
    """First step in declared order that is not done, or None when all are."""
    for name in workflow.step_names:
        if not done.get(name):
            return name
    return None


def get_workflow_status(
    db: Session,
    *,
    department: str,
    room_no: str,
    mrno: str,
    ftid: str,
) -> dict:
    """
    Per-step {status, time} for one discharge episode plus `next_step`.
    Missing rows read as "not done".
    """
    workflow = get_workflow(department)
    keys = {"room_no": room_no.strip(), "mrno": mrno.strip(), "ftid": ftid.strip()}

    record = find_step_record(db, workflow, **keys)
    bed = find_bed_details(db, **keys)
    done = _done_map(workflow, record, bed)

    steps = {}
    for step in workflow.steps:
        source = _source_for(step, record, bed)
        step_time = getattr(source, step.time_attr) if source is not None and done[step.name] else None
        steps[step.name] = {"status": done[step.name], "time": format_local(step_time)}

    next_step = next_pending_step(workflow, done)
    return {
        "department": workflow.department,
        "steps": steps,
        "next_step": next_step,
        "completed": next_step is None,
    }


def _check_forward_only(
    workflow: DepartmentWorkflow, done: Mapping[str, bool], requested: set[str]
) -> list[StepBinding]:
    """
    Return the steps to apply, in declared order, or raise StepOutOfOrderError
    when a requested step would skip a pending one.
    """
    to_apply = []
    gap: Optional[str] = None
    for step in workflow.steps:
        if done[step.name]:
            continue
        if step.name in requested:
            if gap is not None:
                raise StepOutOfOrderError(
                    f"{step.name} cannot be completed before {gap} ({workflow.department})."
                )
            to_apply.append(step)
        elif gap is None:
            gap = step.name
    return to_apply


def _hand_off(
    db: Session,
    workflow: DepartmentWorkflow,
    ticket: FacilityTicket,
    *,
    user_id: str,
    now: datetime,
) -> dict:
    """Close the current department's ticket and open the next one."""
    outcome = close_ticket_row(db, ticket, user_id=user_id, now=now)
    handoff = {
        "closed_department": workflow.department,
        "closed_ticket_id": ticket.facility_check_id,
        "sla_outcome": int(outcome),
        "opened_department": None,
        "opened_ticket_id": None,
    }
    if workflow.next_department is None:
        logger.info(f"Discharge workflow finished for room {ticket.room_no}, FTID {ticket.facility_tid}")
        return handoff

    next_workflow = get_workflow(workflow.next_department)
    next_ticket, created = get_or_create(
        db,
        FacilityTicket,
        defaults={
            "mrno": ticket.mrno,
            "disc_recom_time": now,
            "status": AssignmentState.UNASSIGNED,
            "tkt_status": TicketStatus.OPEN,
        },
        room_no=ticket.room_no,
        department=next_workflow.department,
        facility_tid=ticket.facility_tid,
    )
    if not created:
        logger.warning(
            f"{next_workflow.department} ticket {next_ticket.facility_check_id} already existed "
            f"for room {ticket.room_no}, FTID {ticket.facility_tid}"
        )
    ensure_step_record(
        db,
        next_workflow,
        room_no=ticket.room_no,
        mrno=ticket.mrno,
        ftid=ticket.facility_tid,
    )

    handoff["opened_department"] = next_workflow.department
    handoff["opened_ticket_id"] = next_ticket.facility_check_id
    logger.info(
        f"Handed off room {ticket.room_no} from {workflow.department} to {next_workflow.department}"
    )
    return handoff


def update_workflow(
    db: Session,
    *,
    department: str,
    room_no: str,
    mrno: str,
    ftid: str,
    steps: Mapping[str, bool],
    user_id: str,
    now: Optional[datetime] = None,
) -> dict:
    """
    Mark every step flagged true in `steps` as done by `user_id`.

    Steps already done are skipped. The department ticket must exist and be
    open, and `mrno` must be the one the ticket was opened with. Completing
    the terminal step performs the department hand-off.
    Everything runs in one transaction.
    """
    workflow = get_workflow(department)
    bindings = {name: workflow.get_step(name) for name in steps}
    requested = {bindings[name].name for name, flag in steps.items() if flag}

    now = now or utc_now()
    user_id = user_id.strip()
    keys = {"room_no": room_no.strip(), "mrno": mrno.strip(), "ftid": ftid.strip()}

    with transaction(db):
        ticket = get_ticket_for_update(
            db, room_no=keys["room_no"], department=workflow.department, ftid=keys["ftid"]
        )
        if ticket.is_closed:
            raise TicketClosedError(
                f"{workflow.department} ticket {ticket.facility_check_id} is already closed."
            )
        if ticket.mrno.strip() != keys["mrno"]:
            raise EpisodeMismatchError(
                f"MRNO {keys['mrno']} does not match {workflow.department} ticket {ticket.facility_check_id}."
            )

        record = ensure_step_record(db, workflow, **keys)
        bed = ensure_bed_details(db, **keys)
        done = _done_map(workflow, record, bed)

        to_apply = _check_forward_only(workflow, done, requested)

        for step in to_apply:
            target = _source_for(step, record, bed)
            setattr(target, step.status_attr, step.mark_value)
            setattr(target, step.time_attr, now)
            setattr(target, step.user_attr, user_id)
            done[step.name] = True

        next_step = next_pending_step(workflow, done)
        record.stage = next_step or STAGE_COMPLETED

        handoff = None
        if workflow.terminal_step in to_apply:
            handoff = _hand_off(db, workflow, ticket, user_id=user_id, now=now)

        result = {
            "department": workflow.department,
            "applied": [step.name for step in to_apply],
            "next_step": next_step,
            "stage": record.stage,
            "handoff": handoff,
        }

    if to_apply:
        logger.info(
            f"{workflow.department} steps {result['applied']} done for room {keys['room_no']} by {user_id}"
        )
    return result
