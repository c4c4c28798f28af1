# discharge_tracker/api/v1/router.py
from fastapi import APIRouter

from discharge_tracker.api.v1.endpoints import (
    auth,
    departments,
    tickets,
    workflows,
    sla,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(departments.router, prefix="/departments", tags=["departments"])
api_router.include_router(tickets.router, prefix="/tickets", tags=["tickets"])
api_router.include_router(workflows.router, prefix="/workflows", tags=["workflows"])
api_router.include_router(sla.router, tags=["sla"])
