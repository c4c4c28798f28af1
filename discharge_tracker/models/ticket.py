# discharge_tracker/models/ticket.py
from datetime import datetime
from enum import IntEnum

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from discharge_tracker.models.base import Base
from discharge_tracker.utils.datetime_utils import utc_now


class AssignmentState(IntEnum):
    UNASSIGNED = 0
    ASSIGNED = 1
    CLOSED = 2


class TicketStatus(IntEnum):
    OPEN = 0
    IN_PROGRESS = 1
    CLOSED = 2


class SlaOutcome(IntEnum):
    NOT_ASSIGNED = 0
    ASSIGN_EXCEEDED = 2
    COMPLETION_EXCEEDED = 3
    BOTH_EXCEEDED = 4
    WITHIN_SLA = 5


class BreachType(IntEnum):
    NONE = 0
    ASSIGN = 1
    COMPLETION = 2
    BOTH = 3


class FacilityTicket(Base):
    """
    One department's ticket for one discharge episode.

    Identified by (room_no, department, facility_tid). The assignment state
    (`status`) and the SLA outcome recorded at close (`sla_outcome`) are kept
    in separate columns.
    """

    __tablename__ = "facility_check_details"
    __table_args__ = (
        UniqueConstraint(
            "room_no", "department", "facility_tid", name="uq_facility_ticket_room_dept_ftid"
        ),
    )

    # Primary Key
    facility_check_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Identity
    facility_tid: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    mrno: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    room_no: Mapped[str] = mapped_column(String(50), nullable=False)
    department: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    # Assignment
    user_id: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        doc="Login id of the assigned (or closing) user",
    )
    disc_recom_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        doc="Discharge recommendation time; SLA clocks start here",
    )
    assigned_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # State
    status: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=AssignmentState.UNASSIGNED,
        server_default=text("0"),
        index=True,
        doc="Assignment state: 0 unassigned, 1 assigned, 2 closed",
    )
    tkt_status: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=TicketStatus.OPEN,
        server_default=text("0"),
        index=True,
        doc="Ticket lifecycle: 0 open, 1 in progress, 2 closed",
    )
    sla_outcome: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        doc="SLA outcome code recorded at close (0, 2, 3, 4, 5)",
    )

    # Notification bookkeeping
    sla_notification_status: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=BreachType.NONE,
        server_default=text("0"),
        doc="Last breach type pushed for this ticket",
    )
    is_ticket_notified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="If true, the new-ticket push has been sent",
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=utc_now,
    )

    @property
    def is_closed(self) -> bool:
        return self.tkt_status == TicketStatus.CLOSED
