# discharge_tracker/models/workflow_step.py
"""
Per-department discharge step tables.

Every table is keyed by (room_no, mrno, ftid) and holds one
(<step> flag, <step>_time, <step>_user) triple per workflow step plus the
explicit `stage` pointer (next pending step name, or COMPLETED). Which
columns belong to which step is declared in workflows/registry.py.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from discharge_tracker.models.base import Base
from discharge_tracker.utils.datetime_utils import utc_now

STAGE_COMPLETED = "COMPLETED"


class StepRecordMixin:
    @declared_attr.directive
    def __table_args__(cls):
        return (
            UniqueConstraint(
                "room_no", "mrno", "ftid", name=f"uq_{cls.__tablename__}_room_mrno_ftid"
            ),
        )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    room_no: Mapped[str] = mapped_column(String(50), nullable=False)
    mrno: Mapped[str] = mapped_column(String(50), nullable=False)
    ftid: Mapped[str] = mapped_column(String(50), nullable=False)

    stage: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        doc="Name of the next pending step, or COMPLETED",
    )

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


class NurseStationRecord(StepRecordMixin, Base):
    __tablename__ = "dt_p1_nurse_station"

    pharmacy_clearance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pharmacy_clearance_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    pharmacy_clearance_user: Mapped[str | None] = mapped_column(String(50))

    lab_clearance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    lab_clearance_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    lab_clearance_user: Mapped[str | None] = mapped_column(String(50))

    consumable_clearance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    consumable_clearance_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    consumable_clearance_user: Mapped[str | None] = mapped_column(String(50))

    # PATIENT_CHECKOUT lives on bed_details.status

    file_transferred: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    file_transferred_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    file_transferred_user: Mapped[str | None] = mapped_column(String(50))


class DischargeSummaryRecord(StepRecordMixin, Base):
    __tablename__ = "dt_p2_discharge_summary"

    summary_file_received: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    summary_file_received_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    summary_file_received_user: Mapped[str | None] = mapped_column(String(50))

    summary_prepared: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    summary_prepared_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    summary_prepared_user: Mapped[str | None] = mapped_column(String(50))

    summary_file_dispatched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    summary_file_dispatched_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    summary_file_dispatched_user: Mapped[str | None] = mapped_column(String(50))


class DoctorAuthorizationRecord(StepRecordMixin, Base):
    __tablename__ = "dt_p2_1_doctor_authorization"

    authorization_file_received: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    authorization_file_received_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    authorization_file_received_user: Mapped[str | None] = mapped_column(String(50))

    doctor_authorized: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    doctor_authorized_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    doctor_authorized_user: Mapped[str | None] = mapped_column(String(50))

    authorization_file_dispatched: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    authorization_file_dispatched_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    authorization_file_dispatched_user: Mapped[str | None] = mapped_column(String(50))


class PharmacyRecord(StepRecordMixin, Base):
    __tablename__ = "dt_p3_pharmacy"

    pharmacy_file_initiation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pharmacy_file_initiation_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    pharmacy_file_initiation_user: Mapped[str | None] = mapped_column(String(50))

    pharmacy_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pharmacy_completed_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    pharmacy_completed_user: Mapped[str | None] = mapped_column(String(50))

    file_dispatched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    file_dispatched_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    file_dispatched_user: Mapped[str | None] = mapped_column(String(50))


class BillingRecord(StepRecordMixin, Base):
    __tablename__ = "dt_p4_billing"

    billing_file_initiation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    billing_file_initiation_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    billing_file_initiation_user: Mapped[str | None] = mapped_column(String(50))

    bill_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bill_generated_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    bill_generated_user: Mapped[str | None] = mapped_column(String(50))

    billing_file_dispatched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    billing_file_dispatched_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    billing_file_dispatched_user: Mapped[str | None] = mapped_column(String(50))


class InsuranceRecord(StepRecordMixin, Base):
    __tablename__ = "dt_p5_insurance"

    insurance_file_initiation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    insurance_file_initiation_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    insurance_file_initiation_user: Mapped[str | None] = mapped_column(String(50))

    insurance_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    insurance_approved_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    insurance_approved_user: Mapped[str | None] = mapped_column(String(50))

    insurance_file_dispatched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    insurance_file_dispatched_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    insurance_file_dispatched_user: Mapped[str | None] = mapped_column(String(50))
