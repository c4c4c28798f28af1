# discharge_tracker/api/v1/endpoints/departments.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from discharge_tracker.core.database import get_db
from discharge_tracker.models.department import DepartmentPolicy
from discharge_tracker.schemas.department import DepartmentPolicyResponse, DepartmentPolicyUpdate
from discharge_tracker.services.department_service import list_policies, upsert_policy

logger = logging.getLogger(__name__)

router = APIRouter()


def _policy_response(policy: DepartmentPolicy) -> DepartmentPolicyResponse:
    return DepartmentPolicyResponse(
        dept_name=policy.dept_name,
        assign_sla_min=policy.assign_sla_min,
        completion_sla_min=policy.completion_sla_min,
        has_push_token=bool(policy.hod_fcm_token),
        created_at=policy.created_at,
        updated_at=policy.updated_at,
    )


@router.get("", response_model=list[DepartmentPolicyResponse], tags=["departments"])
def list_departments(db: Session = Depends(get_db)) -> list[DepartmentPolicyResponse]:
    """
    List every department SLA policy (assign / completion minutes).
    Push tokens are never returned, only whether one is configured.
    """
    return [_policy_response(p) for p in list_policies(db)]


@router.put("/{name}", response_model=DepartmentPolicyResponse, tags=["departments"])
def update_department(
    name: str,
    payload: DepartmentPolicyUpdate,
    response: Response,
    db: Session = Depends(get_db),
) -> DepartmentPolicyResponse:
    """
    Create or update a department's SLA thresholds and head-of-department
    push token. Responds 201 when the policy did not exist yet.
    """
    try:
        policy, created = upsert_policy(db, department=name, payload=payload)
    except SQLAlchemyError as e:
        logger.error(f"Error saving SLA policy for {name}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save department policy.")

    if created:
        response.status_code = status.HTTP_201_CREATED
        logger.info(f"Created SLA policy for {policy.dept_name}")
    return _policy_response(policy)
