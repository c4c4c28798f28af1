# discharge_tracker/services/department_service.py
from sqlalchemy.orm import Session

from discharge_tracker.core.database import transaction
from discharge_tracker.models.department import DepartmentPolicy
from discharge_tracker.schemas.department import DepartmentPolicyUpdate
from discharge_tracker.workflows.registry import dashboard_column, normalize_department


def list_policies(db: Session) -> list[DepartmentPolicy]:
    return db.query(DepartmentPolicy).order_by(DepartmentPolicy.dept_name).all()


def upsert_policy(
    db: Session,
    *,
    department: str,
    payload: DepartmentPolicyUpdate,
) -> tuple[DepartmentPolicy, bool]:
    """
    Create or update a department's SLA thresholds / push token.
    Only departments known to the bed dashboard are accepted.
    """
    name = normalize_department(department)
    dashboard_column(name)

    with transaction(db):
        policy = db.query(DepartmentPolicy).filter(DepartmentPolicy.dept_name == name).first()
        created = policy is None
        if created:
            policy = DepartmentPolicy(
                dept_name=name,
                assign_sla_min=payload.assign_sla_min or 0,
                completion_sla_min=payload.completion_sla_min or 0,
                hod_fcm_token=payload.hod_fcm_token,
            )
            db.add(policy)
        else:
            if payload.assign_sla_min is not None:
                policy.assign_sla_min = payload.assign_sla_min
            if payload.completion_sla_min is not None:
                policy.completion_sla_min = payload.completion_sla_min
            if payload.hod_fcm_token is not None:
                policy.hod_fcm_token = payload.hod_fcm_token or None

    db.refresh(policy)
    return policy, created
