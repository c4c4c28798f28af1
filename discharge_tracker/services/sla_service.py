# discharge_tracker/services/sla_service.py
"""
SLA arithmetic, the breach detector and the new-ticket notifier.

Both thresholds of a DepartmentPolicy are minutes counted from the ticket's
discharge recommendation time:

    assign deadline     = disc_recom_time + assign_sla_min
    completion deadline = disc_recom_time + completion_sla_min
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from discharge_tracker.core.config import get_settings
from discharge_tracker.core.database import transaction
from discharge_tracker.core.redis import acquire_lock, release_lock
from discharge_tracker.models.department import DepartmentPolicy
from discharge_tracker.models.sla_notification import SlaNotification
from discharge_tracker.models.ticket import (
    AssignmentState,
    BreachType,
    FacilityTicket,
    SlaOutcome,
    TicketStatus,
)
from discharge_tracker.notifications.push.base import send_push
from discharge_tracker.utils.datetime_utils import (
    add_minutes,
    as_utc,
    format_local,
    local_day_bounds,
    minutes_between,
    utc_now,
)

logger = logging.getLogger(__name__)

SCAN_LOCK_NAME = "sla-breach-scan"

BREACH_LABELS = {
    BreachType.ASSIGN: "Assign SLA Breached",
    BreachType.COMPLETION: "Completion SLA Breached",
    BreachType.BOTH: "Both SLA Breached",
}


def compute_sla_outcome(
    disc_recom_time: datetime,
    assigned_time: Optional[datetime],
    completed_time: datetime,
    assign_sla_min: int,
    completion_sla_min: int,
) -> SlaOutcome:
    """
    Outcome code recorded when a ticket is closed.

    0 never assigned, 2 assign deadline exceeded only, 3 completion deadline
    exceeded only, 4 both exceeded, 5 closed within both.
    """
    if assigned_time is None:
        return SlaOutcome.NOT_ASSIGNED

    assign_deadline = add_minutes(disc_recom_time, assign_sla_min)
    completion_deadline = add_minutes(disc_recom_time, completion_sla_min)

    assign_exceeded = as_utc(assigned_time) > assign_deadline
    completion_exceeded = as_utc(completed_time) > completion_deadline

    if assign_exceeded and completion_exceeded:
        return SlaOutcome.BOTH_EXCEEDED
    if assign_exceeded:
        return SlaOutcome.ASSIGN_EXCEEDED
    if completion_exceeded:
        return SlaOutcome.COMPLETION_EXCEEDED
    return SlaOutcome.WITHIN_SLA


def compute_breach_type(
    disc_recom_time: datetime,
    assigned_time: Optional[datetime],
    completed_time: Optional[datetime],
    assign_sla_min: int,
    completion_sla_min: int,
    now: datetime,
) -> BreachType:
    """
    Live breach state of an open ticket.

    Unassigned/uncompleted tickets are measured against `now`, so a ticket
    that is still waiting keeps breaching as time passes.
    """
    assign_breached = minutes_between(disc_recom_time, assigned_time or now) > (assign_sla_min or 0)
    completion_breached = minutes_between(disc_recom_time, completed_time or now) > (
        completion_sla_min or 0
    )

    if assign_breached and completion_breached:
        return BreachType.BOTH
    if completion_breached:
        return BreachType.COMPLETION
    if assign_breached:
        return BreachType.ASSIGN
    return BreachType.NONE


def _truncate(body: str) -> str:
    limit = get_settings().push_body_max_chars
    return body[:limit] + "..." if len(body) > limit else body


def build_breach_message(
    department: str, entries: list[tuple[FacilityTicket, BreachType]]
) -> tuple[str, str]:
    """One push (title, body) summarising every new breach of a department."""
    lines = []
    for ticket, breach in entries:
        ticket_part = f"Ticket:{str(ticket.facility_check_id).ljust(2)}"
        room_part = f"Room:{ticket.room_no.strip().ljust(2)}"
        lines.append(f"{ticket_part} {room_part} {BREACH_LABELS[breach]}")
    title = f"Facility Check SLA Breach - {department}"
    return title, _truncate("\n".join(lines))


def _open_tickets_with_policy(db: Session) -> list[tuple[FacilityTicket, DepartmentPolicy]]:
    return (
        db.query(FacilityTicket, DepartmentPolicy)
        .join(DepartmentPolicy, DepartmentPolicy.dept_name == FacilityTicket.department)
        .filter(
            FacilityTicket.status.in_([AssignmentState.UNASSIGNED, AssignmentState.ASSIGNED]),
            FacilityTicket.tkt_status != TicketStatus.CLOSED,
        )
        .order_by(FacilityTicket.department, FacilityTicket.facility_check_id)
        .all()
    )


def scan_sla_breaches(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Scan open tickets and push one aggregated breach message per department.

    A ticket is only pushed when its breach type differs from the last one
    pushed (`sla_notification_status`), so an unchanged breach is never
    re-sent. Runs are serialised through a redis (or process-local) lock.
    """
    settings = get_settings()
    lock_token = acquire_lock(SCAN_LOCK_NAME, ttl=settings.sla_scan_lock_ttl_seconds)
    if lock_token is None:
        logger.info("SLA scan already running elsewhere; skipping this cycle")
        return {"status": "skipped"}

    try:
        return _scan_sla_breaches(db, now or utc_now())
    finally:
        release_lock(SCAN_LOCK_NAME, lock_token)


def _scan_sla_breaches(db: Session, now: datetime) -> dict:
    rows = _open_tickets_with_policy(db)

    assign_breaches = 0
    completion_breaches = 0
    pending: dict[str, list[tuple[FacilityTicket, BreachType]]] = defaultdict(list)
    policies: dict[str, DepartmentPolicy] = {}

    for ticket, policy in rows:
        breach = compute_breach_type(
            ticket.disc_recom_time,
            ticket.assigned_time,
            ticket.completed_time,
            policy.assign_sla_min,
            policy.completion_sla_min,
            now,
        )
        if breach in (BreachType.ASSIGN, BreachType.BOTH):
            assign_breaches += 1
        if breach in (BreachType.COMPLETION, BreachType.BOTH):
            completion_breaches += 1

        if breach == BreachType.NONE or breach == ticket.sla_notification_status:
            continue

        pending[ticket.department].append((ticket, breach))
        policies[ticket.department] = policy

    notifications_sent = 0
    tickets_notified = 0
    notified_departments = []

    for department, entries in pending.items():
        token = policies[department].hod_fcm_token
        if not token:
            logger.info(f"No push token for {department}; {len(entries)} breach(es) left pending")
            continue

        title, body = build_breach_message(department, entries)
        try:
            send_push(token, title, body, reason="SLA_BREACH")
        except Exception as exc:
            # Tickets stay un-marked, so the next cycle retries them
            logger.error(f"Failed to push SLA breaches for {department}: {exc}", exc_info=True)
            continue

        with transaction(db):
            for ticket, breach in entries:
                ticket.sla_notification_status = int(breach)
                db.add(
                    SlaNotification(
                        ticket_id=ticket.facility_check_id,
                        ticket_type="Facility",
                        dept_name=department,
                        user_id=ticket.user_id,
                        room_no=ticket.room_no.strip(),
                        breach_type=int(breach),
                        breach_datetime=now,
                        raised_dept_name="Facility_Check",
                    )
                )

        notifications_sent += 1
        tickets_notified += len(entries)
        notified_departments.append(department)
        logger.info(f"SLA breach notification sent to {department}\n{body}")

    return {
        "status": "done",
        "scanned": len(rows),
        "assign_breaches": assign_breaches,
        "completion_breaches": completion_breaches,
        "notifications_sent": notifications_sent,
        "tickets_notified": tickets_notified,
        "departments": notified_departments,
    }


def notify_opened_tickets(db: Session) -> int:
    """
    Push a "new ticket" message to the department head for every open ticket
    that has not been announced yet. Returns the number of tickets announced.
    """
    rows = (
        db.query(FacilityTicket, DepartmentPolicy)
        .join(DepartmentPolicy, DepartmentPolicy.dept_name == FacilityTicket.department)
        .filter(
            FacilityTicket.tkt_status == TicketStatus.OPEN,
            FacilityTicket.is_ticket_notified.is_(False),
        )
        .order_by(FacilityTicket.facility_check_id)
        .all()
    )

    announced = 0
    for ticket, policy in rows:
        if not policy.hod_fcm_token:
            continue

        body = (
            f"Ticket ID: {ticket.facility_check_id}\n"
            f"Room: {ticket.room_no.strip()}\n"
            f"Time: {format_local(ticket.disc_recom_time)}"
        )
        try:
            send_push(
                policy.hod_fcm_token,
                f"New Facility Ticket - {ticket.department}",
                body,
                reason="NEW_TICKET",
            )
        except Exception as exc:
            logger.error(
                f"Failed to announce ticket {ticket.facility_check_id} ({ticket.department}): {exc}",
                exc_info=True,
            )
            continue

        with transaction(db):
            ticket.is_ticket_notified = True
        announced += 1
        logger.info(f"New ticket notified: Ticket {ticket.facility_check_id} ({ticket.department})")

    return announced


def list_today_notifications(
    db: Session, department: str, now: Optional[datetime] = None
) -> list[SlaNotification]:
    """Breach log rows for one department on the current display-zone day."""
    start, end = local_day_bounds(now)
    return (
        db.query(SlaNotification)
        .filter(
            SlaNotification.dept_name == department,
            SlaNotification.breach_datetime >= start,
            SlaNotification.breach_datetime < end,
        )
        .order_by(SlaNotification.breach_datetime.desc(), SlaNotification.id.desc())
        .all()
    )
