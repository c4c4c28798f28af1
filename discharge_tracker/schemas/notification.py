from datetime import datetime

from pydantic import BaseModel


class SlaCheckResponse(BaseModel):
    status: str
    scanned: int = 0
    assign_breaches: int = 0
    completion_breaches: int = 0
    notifications_sent: int = 0
    tickets_notified: int = 0
    departments: list[str] = []


class SlaNotificationResponse(BaseModel):
    id: int
    ticket_id: int
    ticket_type: str
    dept_name: str
    user_id: str | None
    room_no: str
    breach_type: int
    breach_datetime: datetime
    raised_dept_name: str

    class Config:
        from_attributes = True
