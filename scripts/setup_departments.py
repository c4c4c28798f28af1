#!/usr/bin/env python3
# scripts/setup_departments.py
"""
Department setup.
This script is safe to run many times (idempotent).

Design notes:
- Policies are only created when missing; existing SLA minutes and push
  tokens are never overwritten (use PUT /api/v1/departments/{name} for that).
- Staff login creation is skipped when the user id already exists.

Examples:
  # Create a policy row for every dashboard department
  python -m scripts.setup_departments --ensure-policies

  # Custom default thresholds
  python -m scripts.setup_departments --ensure-policies --assign-sla 20 --completion-sla 90

  # Also create a staff login
  python -m scripts.setup_departments --ensure-user --user-id N001 --name "Ward Nurse" \
  --department NURSING --password "Nurse@123"
"""

from __future__ import annotations

import argparse
import logging
import sys

from sqlalchemy.orm import Session

from discharge_tracker.core.database import SessionLocal, transaction
from discharge_tracker.models.department import DepartmentPolicy
from discharge_tracker.schemas.auth import RegisterRequest
from discharge_tracker.services.auth_service import get_user_by_user_id, register_user
from discharge_tracker.services.record_service import get_or_create
from discharge_tracker.workflows.registry import DASHBOARD_COLUMNS

logger = logging.getLogger(__name__)


def ensure_department_policies(db: Session, *, assign_sla_min: int, completion_sla_min: int) -> int:
    """
    Ensure every department on the bed dashboard has a policy row.
    Returns the number of rows created.
    """
    created_count = 0
    with transaction(db):
        for department in DASHBOARD_COLUMNS:
            _, created = get_or_create(
                db,
                DepartmentPolicy,
                defaults={
                    "assign_sla_min": assign_sla_min,
                    "completion_sla_min": completion_sla_min,
                },
                dept_name=department,
            )
            if created:
                created_count += 1
                print(f"{department}: policy created ({assign_sla_min}/{completion_sla_min} min)")
            else:
                print(f"{department}: policy exists")
    return created_count


def ensure_staff_user(db: Session, *, user_id: str, name: str, department: str, password: str) -> None:
    if get_user_by_user_id(db, user_id):
        print(f"user {user_id} exists")
        return

    register_user(
        db,
        RegisterRequest(user_id=user_id, username=name, department=department, password=password),
    )
    print(f"user {user_id} created")


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Discharge tracker department setup")
    p.add_argument("--ensure-policies", action="store_true", help="Create missing department policies")
    p.add_argument("--assign-sla", type=int, default=30, help="Default assign SLA minutes (default 30)")
    p.add_argument(
        "--completion-sla", type=int, default=120, help="Default completion SLA minutes (default 120)"
    )

    p.add_argument("--ensure-user", action="store_true", help="Create a staff login if missing")
    p.add_argument("--user-id", type=str, help="Staff login id")
    p.add_argument("--name", type=str, help="Staff display name")
    p.add_argument("--department", type=str, help="Staff department")
    p.add_argument("--password", type=str, help="Staff password")
    return p.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.INFO)

    if not args.ensure_policies and not args.ensure_user:
        print("Nothing to do. Use --ensure-policies and/or --ensure-user.")
        sys.exit(1)

    if args.ensure_user and not all([args.user_id, args.name, args.department, args.password]):
        raise SystemExit("--ensure-user needs --user-id, --name, --department and --password.")

    db: Session = SessionLocal()
    try:
        if args.ensure_policies:
            ensure_department_policies(
                db,
                assign_sla_min=args.assign_sla,
                completion_sla_min=args.completion_sla,
            )

        if args.ensure_user:
            ensure_staff_user(
                db,
                user_id=args.user_id,
                name=args.name,
                department=args.department,
                password=args.password,
            )

    except Exception:
        db.rollback()
        logger.exception("Department setup failed")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
