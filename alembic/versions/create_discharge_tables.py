"""create_discharge_tables

Revision ID: create_discharge_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "create_discharge_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STEP_TABLES: dict[str, list[str]] = {
    "dt_p1_nurse_station": [
        "pharmacy_clearance",
        "lab_clearance",
        "consumable_clearance",
        "file_transferred",
    ],
    "dt_p2_discharge_summary": [
        "summary_file_received",
        "summary_prepared",
        "summary_file_dispatched",
    ],
    "dt_p2_1_doctor_authorization": [
        "authorization_file_received",
        "doctor_authorized",
        "authorization_file_dispatched",
    ],
    "dt_p3_pharmacy": [
        "pharmacy_file_initiation",
        "pharmacy_completed",
        "file_dispatched",
    ],
    "dt_p4_billing": [
        "billing_file_initiation",
        "bill_generated",
        "billing_file_dispatched",
    ],
    "dt_p5_insurance": [
        "insurance_file_initiation",
        "insurance_approved",
        "insurance_file_dispatched",
    ],
}


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def _step_columns(step: str) -> list[sa.Column]:
    return [
        sa.Column(step, sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(f"{step}_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column(f"{step}_user", sa.String(length=50), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "facility_dept_master",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("dept_name", sa.String(length=100), nullable=False),
        sa.Column("assign_sla_min", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("completion_sla_min", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("hod_fcm_token", sa.String(length=512), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("dept_name"),
    )

    op.create_table(
        "login",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=50), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("department", sa.String(length=100), nullable=False),
        sa.Column("fcm_token", sa.String(length=512), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    op.create_table(
        "facility_check_details",
        sa.Column("facility_check_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("facility_tid", sa.String(length=50), nullable=False),
        sa.Column("mrno", sa.String(length=50), nullable=False),
        sa.Column("room_no", sa.String(length=50), nullable=False),
        sa.Column("department", sa.String(length=100), nullable=False),
        sa.Column("user_id", sa.String(length=50), nullable=True),
        sa.Column("disc_recom_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("assigned_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("tkt_status", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("sla_outcome", sa.Integer(), nullable=True),
        sa.Column(
            "sla_notification_status", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        sa.Column("is_ticket_notified", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("facility_check_id"),
        sa.UniqueConstraint(
            "room_no", "department", "facility_tid", name="uq_facility_ticket_room_dept_ftid"
        ),
    )
    for column in ("facility_tid", "mrno", "department", "status", "tkt_status"):
        op.create_index(
            op.f(f"ix_facility_check_details_{column}"),
            "facility_check_details",
            [column],
        )

    op.create_table(
        "bed_details",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("room_no", sa.String(length=50), nullable=False),
        sa.Column("mrno", sa.String(length=50), nullable=False),
        sa.Column("ftid", sa.String(length=50), nullable=False),
        sa.Column("status", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("checkout_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checkout_user", sa.String(length=50), nullable=True),
        *[
            sa.Column(flag, sa.Boolean(), nullable=False, server_default=sa.false())
            for flag in (
                "nursing",
                "discharge_summary",
                "doctor_authorization",
                "pharmacy",
                "billing",
                "insurance",
                "housekeeping",
            )
        ],
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("room_no", "mrno", "ftid", name="uq_bed_details_room_mrno_ftid"),
    )

    op.create_table(
        "sla_notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("ticket_id", sa.Integer(), nullable=False),
        sa.Column("ticket_type", sa.String(length=50), nullable=False),
        sa.Column("dept_name", sa.String(length=100), nullable=False),
        sa.Column("user_id", sa.String(length=50), nullable=True),
        sa.Column("room_no", sa.String(length=50), nullable=False),
        sa.Column("breach_type", sa.Integer(), nullable=False),
        sa.Column("breach_datetime", sa.DateTime(timezone=True), nullable=False),
        sa.Column("raised_dept_name", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("ticket_id", "dept_name", "breach_datetime"):
        op.create_index(op.f(f"ix_sla_notifications_{column}"), "sla_notifications", [column])

    for table, steps in STEP_TABLES.items():
        step_columns = [column for step in steps for column in _step_columns(step)]
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("room_no", sa.String(length=50), nullable=False),
            sa.Column("mrno", sa.String(length=50), nullable=False),
            sa.Column("ftid", sa.String(length=50), nullable=False),
            sa.Column("stage", sa.String(length=64), nullable=False),
            *step_columns,
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("room_no", "mrno", "ftid", name=f"uq_{table}_room_mrno_ftid"),
        )


def downgrade() -> None:
    for table in reversed(list(STEP_TABLES)):
        op.drop_table(table)

    for column in ("breach_datetime", "dept_name", "ticket_id"):
        op.drop_index(op.f(f"ix_sla_notifications_{column}"), table_name="sla_notifications")
    op.drop_table("sla_notifications")

    op.drop_table("bed_details")

    for column in ("tkt_status", "status", "department", "mrno", "facility_tid"):
        op.drop_index(
            op.f(f"ix_facility_check_details_{column}"), table_name="facility_check_details"
        )
    op.drop_table("facility_check_details")

    op.drop_table("login")
    op.drop_table("facility_dept_master")
