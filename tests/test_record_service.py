import pytest

from discharge_tracker.core.database import transaction
from discharge_tracker.models.bed import BedDetails
from discharge_tracker.models.department import DepartmentPolicy
from discharge_tracker.services import record_service
from discharge_tracker.services.record_service import ensure_bed_details, get_or_create


@pytest.fixture()
def racing_lookup(monkeypatch):
    """The first lookup misses, as if another request inserted the row right after it."""
    real_find = record_service._find
    calls = []

    def _find(db, model, keys):
        calls.append(keys)
        if len(calls) == 1:
            return None
        return real_find(db, model, keys)

    monkeypatch.setattr(record_service, "_find", _find)
    return calls


def test_get_or_create_inserts_once(db):
    policy, created = get_or_create(
        db, DepartmentPolicy, defaults={"assign_sla_min": 15}, dept_name="BILLING"
    )
    again, created_again = get_or_create(db, DepartmentPolicy, dept_name="BILLING")

    assert created is True
    assert created_again is False
    assert again.id == policy.id
    assert again.assign_sla_min == 15


def test_unique_violation_reuses_existing_row(db, racing_lookup):
    db.add(DepartmentPolicy(dept_name="BILLING", assign_sla_min=10, completion_sla_min=20))
    db.commit()

    with transaction(db):
        db.add(DepartmentPolicy(dept_name="PHARMACY", assign_sla_min=5, completion_sla_min=50))
        db.flush()
        policy, created = get_or_create(
            db,
            DepartmentPolicy,
            defaults={"assign_sla_min": 99, "completion_sla_min": 99},
            dept_name="BILLING",
        )

    assert len(racing_lookup) == 2
    assert created is False
    assert policy.assign_sla_min == 10

    db.expire_all()
    names = sorted(p.dept_name for p in db.query(DepartmentPolicy).all())
    assert names == ["BILLING", "PHARMACY"]


def test_bed_row_survives_concurrent_insert(db, racing_lookup):
    first = ensure_bed_details(db, room_no="101", mrno="MR1", ftid="FT1")
    db.commit()
    racing_lookup.clear()

    with transaction(db):
        bed = ensure_bed_details(db, room_no="101", mrno="MR1", ftid="FT1")
        bed.housekeeping = True

    db.expire_all()
    assert bed.id == first.id
    assert db.query(BedDetails).one().housekeeping is True
