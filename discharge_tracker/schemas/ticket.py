from datetime import datetime

from pydantic import BaseModel, field_validator


def _required(v: str) -> str:
    if v is None or not str(v).strip():
        raise ValueError("This field is required")
    return str(v).strip()


class TicketCreate(BaseModel):
    room_no: str
    mrno: str
    ftid: str
    department: str
    disc_recom_time: datetime | None = None

    @field_validator("room_no", "mrno", "ftid", "department")
    @classmethod
    def validate_required(cls, v: str) -> str:
        return _required(v)


class TicketKey(BaseModel):
    room_no: str
    department: str
    ftid: str

    @field_validator("room_no", "department", "ftid")
    @classmethod
    def validate_required(cls, v: str) -> str:
        return _required(v)


class AssignRequest(TicketKey):
    user_id: str
    force_reassign: bool = False

    @field_validator("user_id")
    @classmethod
    def validate_user(cls, v: str) -> str:
        return _required(v)


class CloseRequest(TicketKey):
    user_id: str

    @field_validator("user_id")
    @classmethod
    def validate_user(cls, v: str) -> str:
        return _required(v)


class TicketResponse(BaseModel):
    facility_check_id: int
    facility_tid: str
    mrno: str
    room_no: str
    department: str
    user_id: str | None
    disc_recom_time: datetime
    assigned_time: datetime | None
    completed_time: datetime | None
    status: int
    tkt_status: int
    sla_outcome: int | None

    class Config:
        from_attributes = True


class TicketListItem(BaseModel):
    ticket_id: int
    ftid: str
    mrno: str
    room_no: str
    department: str
    user_id: str | None
    username: str | None
    disc_recom_time: datetime
    assigned_time: datetime | None
    completed_time: datetime | None
    status: int
    tkt_status: int
    sla_outcome: int | None
    assign_sla_min: int
    completion_sla_min: int


class AssignResponse(BaseModel):
    success: bool
    ticket_id: int
    message: str
    assigned_user: str | None = None
    previous_user: str | None = None
    already_assigned: bool = False
    current_user: str | None = None


class CloseResponse(BaseModel):
    success: bool
    ticket_id: int
    message: str
    status: int
