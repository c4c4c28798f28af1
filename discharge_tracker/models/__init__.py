# discharge_tracker/models/__init__.py
from discharge_tracker.models.base import Base
from discharge_tracker.models.bed import BedDetails
from discharge_tracker.models.department import DepartmentPolicy
from discharge_tracker.models.sla_notification import SlaNotification
from discharge_tracker.models.ticket import FacilityTicket
from discharge_tracker.models.user import StaffUser
from discharge_tracker.models.workflow_step import (
    BillingRecord,
    DischargeSummaryRecord,
    DoctorAuthorizationRecord,
    InsuranceRecord,
    NurseStationRecord,
    PharmacyRecord,
)
