# discharge_tracker/workflows/registry.py
"""
Closed registry of discharge workflow departments.

Each DepartmentWorkflow carries, as plain data, its ordered steps, the
table/columns every step is stored in, the bed dashboard column it sets on
completion and the department that takes over after it. Nothing in here is
ever interpolated into SQL; the executor reads and writes mapped attributes.

Hand-off order:
    NURSING -> DISCHARGE_SUMMARY -> DOCTOR_AUTHORIZATION -> PHARMACY
            -> BILLING -> INSURANCE
"""

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import inspect

from discharge_tracker.core.exceptions import RegistryError, UnknownDepartmentError, UnknownStepError
from discharge_tracker.models.bed import BedDetails, BedStatus
from discharge_tracker.models.workflow_step import (
    BillingRecord,
    DischargeSummaryRecord,
    DoctorAuthorizationRecord,
    InsuranceRecord,
    NurseStationRecord,
    PharmacyRecord,
)


@dataclass(frozen=True)
class StepBinding:
    name: str
    model: type
    status_attr: str
    time_attr: str
    user_attr: str
    done_values: frozenset = field(default_factory=lambda: frozenset({1}))
    mark_value: Any = True

    @property
    def on_bed(self) -> bool:
        return self.model is BedDetails

    def is_done(self, raw_value: Any) -> bool:
        if raw_value is None:
            return False
        return int(raw_value) in self.done_values


@dataclass(frozen=True)
class DepartmentWorkflow:
    department: str
    record_model: type
    steps: tuple[StepBinding, ...]
    dashboard_column: str
    next_department: str | None = None

    @property
    def step_names(self) -> list[str]:
        return [s.name for s in self.steps]

    @property
    def first_step(self) -> StepBinding:
        return self.steps[0]

    @property
    def terminal_step(self) -> StepBinding:
        return self.steps[-1]

    def get_step(self, name: str) -> StepBinding:
        key = name.strip().upper()
        for step in self.steps:
            if step.name == key:
                return step
        raise UnknownStepError(f"Unknown step '{name}' for department {self.department}.")

    def index_of(self, name: str) -> int:
        return self.step_names.index(name)


def _step(name: str, model: type) -> StepBinding:
    attr = name.lower()
    return StepBinding(
        name=name,
        model=model,
        status_attr=attr,
        time_attr=f"{attr}_time",
        user_attr=f"{attr}_user",
    )


NURSING = "NURSING"
DISCHARGE_SUMMARY = "DISCHARGE_SUMMARY"
DOCTOR_AUTHORIZATION = "DOCTOR_AUTHORIZATION"
PHARMACY = "PHARMACY"
BILLING = "BILLING"
INSURANCE = "INSURANCE"
HOUSEKEEPING = "HOUSEKEEPING"

HANDOFF_ORDER: tuple[str, ...] = (
    NURSING,
    DISCHARGE_SUMMARY,
    DOCTOR_AUTHORIZATION,
    PHARMACY,
    BILLING,
    INSURANCE,
)

WORKFLOWS: dict[str, DepartmentWorkflow] = {
    NURSING: DepartmentWorkflow(
        department=NURSING,
        record_model=NurseStationRecord,
        steps=(
            _step("PHARMACY_CLEARANCE", NurseStationRecord),
            _step("LAB_CLEARANCE", NurseStationRecord),
            _step("CONSUMABLE_CLEARANCE", NurseStationRecord),
            StepBinding(
                name="PATIENT_CHECKOUT",
                model=BedDetails,
                status_attr="status",
                time_attr="checkout_time",
                user_attr="checkout_user",
                done_values=frozenset({BedStatus.CHECKED_OUT}),
                mark_value=BedStatus.CHECKED_OUT,
            ),
            _step("FILE_TRANSFERRED", NurseStationRecord),
        ),
        dashboard_column="nursing",
        next_department=DISCHARGE_SUMMARY,
    ),
    DISCHARGE_SUMMARY: DepartmentWorkflow(
        department=DISCHARGE_SUMMARY,
        record_model=DischargeSummaryRecord,
        steps=(
            _step("SUMMARY_FILE_RECEIVED", DischargeSummaryRecord),
            _step("SUMMARY_PREPARED", DischargeSummaryRecord),
            _step("SUMMARY_FILE_DISPATCHED", DischargeSummaryRecord),
        ),
        dashboard_column="discharge_summary",
        next_department=DOCTOR_AUTHORIZATION,
    ),
    DOCTOR_AUTHORIZATION: DepartmentWorkflow(
        department=DOCTOR_AUTHORIZATION,
        record_model=DoctorAuthorizationRecord,
        steps=(
            _step("AUTHORIZATION_FILE_RECEIVED", DoctorAuthorizationRecord),
            _step("DOCTOR_AUTHORIZED", DoctorAuthorizationRecord),
            _step("AUTHORIZATION_FILE_DISPATCHED", DoctorAuthorizationRecord),
        ),
        dashboard_column="doctor_authorization",
        next_department=PHARMACY,
    ),
    PHARMACY: DepartmentWorkflow(
        department=PHARMACY,
        record_model=PharmacyRecord,
        steps=(
            _step("PHARMACY_FILE_INITIATION", PharmacyRecord),
            _step("PHARMACY_COMPLETED", PharmacyRecord),
            _step("FILE_DISPATCHED", PharmacyRecord),
        ),
        dashboard_column="pharmacy",
        next_department=BILLING,
    ),
    BILLING: DepartmentWorkflow(
        department=BILLING,
        record_model=BillingRecord,
        steps=(
            _step("BILLING_FILE_INITIATION", BillingRecord),
            _step("BILL_GENERATED", BillingRecord),
            _step("BILLING_FILE_DISPATCHED", BillingRecord),
        ),
        dashboard_column="billing",
        next_department=INSURANCE,
    ),
    INSURANCE: DepartmentWorkflow(
        department=INSURANCE,
        record_model=InsuranceRecord,
        steps=(
            _step("INSURANCE_FILE_INITIATION", InsuranceRecord),
            _step("INSURANCE_APPROVED", InsuranceRecord),
            _step("INSURANCE_FILE_DISPATCHED", InsuranceRecord),
        ),
        dashboard_column="insurance",
        next_department=None,
    ),
}

# Facility-check departments close through the generic close endpoint only
DASHBOARD_COLUMNS: dict[str, str] = {
    **{name: wf.dashboard_column for name, wf in WORKFLOWS.items()},
    HOUSEKEEPING: "housekeeping",
}


def normalize_department(name: str) -> str:
    return (name or "").strip().upper()


def get_workflow(department: str) -> DepartmentWorkflow:
    """Return the workflow for a department name (case-insensitive)."""
    workflow = WORKFLOWS.get(normalize_department(department))
    if workflow is None:
        raise UnknownDepartmentError(f"Department '{department}' has no discharge workflow.")
    return workflow


def dashboard_column(department: str) -> str:
    """Bed dashboard column for a department; unknown departments are rejected."""
    column = DASHBOARD_COLUMNS.get(normalize_department(department))
    if column is None:
        raise UnknownDepartmentError(f"Unknown department '{department}'.")
    return column


def _column_keys(model: type) -> set[str]:
    return {attr.key for attr in inspect(model).column_attrs}


def validate_registry() -> None:
    """
    Check the registry against the mapped models.

    Called once when the application starts; raises RegistryError on the
    first inconsistency.
    """
    bed_columns = _column_keys(BedDetails)

    for name, workflow in WORKFLOWS.items():
        if name != workflow.department:
            raise RegistryError(f"Registry key {name} does not match {workflow.department}")
        if not workflow.steps:
            raise RegistryError(f"{name}: workflow has no steps")

        seen: set[str] = set()
        for step in workflow.steps:
            if step.name in seen:
                raise RegistryError(f"{name}: duplicate step {step.name}")
            seen.add(step.name)

            if step.model not in (workflow.record_model, BedDetails):
                raise RegistryError(f"{name}.{step.name}: bound to foreign table {step.model}")

            columns = _column_keys(step.model)
            for attr in (step.status_attr, step.time_attr, step.user_attr):
                if attr not in columns:
                    raise RegistryError(
                        f"{name}.{step.name}: column {attr} missing on {step.model.__tablename__}"
                    )

        if workflow.terminal_step.on_bed:
            raise RegistryError(f"{name}: terminal step must live in the department table")

        if workflow.next_department is not None and workflow.next_department not in WORKFLOWS:
            raise RegistryError(f"{name}: unknown next department {workflow.next_department}")

    for department, column in DASHBOARD_COLUMNS.items():
        if column not in bed_columns:
            raise RegistryError(f"{department}: dashboard column {column} missing on bed_details")

    chain = [NURSING]
    while WORKFLOWS[chain[-1]].next_department:
        chain.append(WORKFLOWS[chain[-1]].next_department)
        if len(chain) > len(WORKFLOWS):
            raise RegistryError("Hand-off chain contains a cycle")
    if tuple(chain) != HANDOFF_ORDER:
        raise RegistryError(f"Hand-off chain {chain} does not match {HANDOFF_ORDER}")
