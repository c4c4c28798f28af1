import pytest

from discharge_tracker.core.exceptions import UnknownDepartmentError, UnknownStepError
from discharge_tracker.models.bed import BedStatus
from discharge_tracker.workflows.executor import next_pending_step
from discharge_tracker.workflows.registry import (
    HANDOFF_ORDER,
    HOUSEKEEPING,
    NURSING,
    WORKFLOWS,
    dashboard_column,
    get_workflow,
    validate_registry,
)


def test_registry_matches_mapped_models():
    validate_registry()


def test_get_workflow_is_case_insensitive():
    assert get_workflow(" nursing ").department == NURSING


def test_unknown_department_is_rejected():
    with pytest.raises(UnknownDepartmentError):
        get_workflow("CAFETERIA")
    with pytest.raises(UnknownDepartmentError):
        dashboard_column("CAFETERIA")


def test_housekeeping_has_a_dashboard_column_but_no_workflow():
    assert dashboard_column(HOUSEKEEPING) == "housekeeping"
    with pytest.raises(UnknownDepartmentError):
        get_workflow(HOUSEKEEPING)


def test_handoff_chain_ends_at_insurance():
    chain = [NURSING]
    while WORKFLOWS[chain[-1]].next_department:
        chain.append(WORKFLOWS[chain[-1]].next_department)
    assert tuple(chain) == HANDOFF_ORDER
    assert chain[-1] == "INSURANCE"


def test_nursing_steps_in_order():
    workflow = get_workflow(NURSING)
    assert workflow.step_names == [
        "PHARMACY_CLEARANCE",
        "LAB_CLEARANCE",
        "CONSUMABLE_CLEARANCE",
        "PATIENT_CHECKOUT",
        "FILE_TRANSFERRED",
    ]
    assert workflow.terminal_step.name == "FILE_TRANSFERRED"


def test_patient_checkout_reads_bed_status():
    step = get_workflow(NURSING).get_step("patient_checkout")
    assert step.on_bed
    assert step.is_done(BedStatus.CHECKED_OUT)
    assert not step.is_done(BedStatus.DISCHARGE_RECOMMENDED)
    assert not step.is_done(None)


def test_unknown_step_is_rejected():
    with pytest.raises(UnknownStepError):
        get_workflow("BILLING").get_step("INSURANCE_APPROVED")


def test_next_pending_step_is_first_undone_step():
    workflow = get_workflow("PHARMACY")
    assert next_pending_step(workflow, {}) == "PHARMACY_FILE_INITIATION"
    assert next_pending_step(workflow, {"PHARMACY_FILE_INITIATION": True}) == "PHARMACY_COMPLETED"
    assert next_pending_step(workflow, {name: True for name in workflow.step_names}) is None
