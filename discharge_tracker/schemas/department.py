from datetime import datetime

from pydantic import BaseModel, field_validator


class DepartmentPolicyUpdate(BaseModel):
    assign_sla_min: int | None = None
    completion_sla_min: int | None = None
    hod_fcm_token: str | None = None

    @field_validator("assign_sla_min", "completion_sla_min")
    @classmethod
    def validate_minutes(cls, v: int | None) -> int | None:
        if v is None:
            return None
        if v < 0:
            raise ValueError("SLA minutes must be zero or positive")
        return v


class DepartmentPolicyResponse(BaseModel):
    dept_name: str
    assign_sla_min: int
    completion_sla_min: int
    has_push_token: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
