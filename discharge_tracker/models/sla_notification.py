# discharge_tracker/models/sla_notification.py
from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from discharge_tracker.models.base import Base


class SlaNotification(Base):
    """
    Append-only log of SLA breach pushes that were actually delivered.
    One row per ticket per delivered breach type.
    """

    __tablename__ = "sla_notifications"

    # Primary Key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    ticket_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    ticket_type: Mapped[str] = mapped_column(String(50), nullable=False, default="Facility")
    dept_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    room_no: Mapped[str] = mapped_column(String(50), nullable=False)
    breach_type: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="1 assign SLA, 2 completion SLA, 3 both",
    )
    breach_datetime: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    raised_dept_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="Facility_Check",
    )
