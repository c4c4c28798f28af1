# discharge_tracker/models/department.py
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from discharge_tracker.models.base import Base
from discharge_tracker.utils.datetime_utils import utc_now


class DepartmentPolicy(Base):
    """
    Per-department SLA thresholds and the head-of-department push token.
    Both thresholds are minutes counted from the ticket's discharge
    recommendation time.
    """

    __tablename__ = "facility_dept_master"

    # Primary Key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Department Information
    dept_name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    # SLA thresholds
    assign_sla_min: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )
    completion_sla_min: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    hod_fcm_token: Mapped[str | None] = mapped_column(
        String(512),
        nullable=True,
        doc="Device token for the department head; breach pushes go here",
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
