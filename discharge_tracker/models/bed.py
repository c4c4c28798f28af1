# discharge_tracker/models/bed.py
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


class BedStatus(IntEnum):
    IN_BED = 0
    DISCHARGE_RECOMMENDED = 1
    DISCHARGE_IN_PROCESS = 2
    CHECKED_OUT = 3


class BedDetails(Base):
    """
    Read-optimised dashboard row for one discharge episode.

    The per-department booleans are set when that department's workflow
    finishes; they mirror ticket state and are never the source of truth.
    """

    __tablename__ = "bed_details"
    __table_args__ = (
        UniqueConstraint("room_no", "mrno", "ftid", name="uq_bed_details_room_mrno_ftid"),
    )

    # Primary Key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identity
    room_no: Mapped[str] = mapped_column(String(50), nullable=False)
    mrno: Mapped[str] = mapped_column(String(50), nullable=False)
    ftid: Mapped[str] = mapped_column(String(50), nullable=False)

    # Patient checkout state
    status: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=BedStatus.DISCHARGE_RECOMMENDED,
        server_default=text("1"),
    )
    checkout_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    checkout_user: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Department dashboard flags
    nursing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    discharge_summary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    doctor_authorization: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pharmacy: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    billing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    insurance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    housekeeping: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

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
