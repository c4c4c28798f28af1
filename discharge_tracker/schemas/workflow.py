from pydantic import BaseModel, field_validator


class WorkflowKey(BaseModel):
    room_no: str
    mrno: str
    ftid: str

    @field_validator("room_no", "mrno", "ftid")
    @classmethod
    def validate_required(cls, v: str) -> str:
        if v is None or not v.strip():
            raise ValueError("room_no, mrno and ftid are required")
        return v.strip()


class StepState(BaseModel):
    status: bool
    time: str | None = None


class WorkflowStatusResponse(BaseModel):
    department: str
    steps: dict[str, StepState]
    next_step: str | None
    completed: bool


class WorkflowUpdateRequest(WorkflowKey):
    user_id: str
    steps: dict[str, bool]

    @field_validator("user_id")
    @classmethod
    def validate_user(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("user_id is required")
        return v.strip()

    @field_validator("steps")
    @classmethod
    def validate_steps(cls, v: dict[str, bool]) -> dict[str, bool]:
        if not v:
            raise ValueError("At least one step is required")
        return v


class HandoffSummary(BaseModel):
    closed_department: str
    closed_ticket_id: int
    sla_outcome: int
    opened_department: str | None = None
    opened_ticket_id: int | None = None


class WorkflowUpdateResponse(BaseModel):
    department: str
    applied: list[str]
    next_step: str | None
    stage: str
    handoff: HandoffSummary | None = None
