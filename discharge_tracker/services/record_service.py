# discharge_tracker/services/record_service.py
"""
Idempotent creation of rows keyed by a unique constraint.

Existence-check-then-insert races under concurrent requests, so inserts run
inside a SAVEPOINT and a unique-constraint violation simply means another
request created the row first.
"""

import logging
from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from discharge_tracker.models.bed import BedDetails, BedStatus
from discharge_tracker.workflows.registry import DepartmentWorkflow

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


def _find(db: Session, model: type[ModelT], keys: dict[str, Any]) -> ModelT | None:
    return db.query(model).filter_by(**keys).first()


def get_or_create(
    db: Session,
    model: type[ModelT],
    *,
    defaults: dict[str, Any] | None = None,
    **keys: Any,
) -> tuple[ModelT, bool]:
    """
    Return (row, created) for the row matching `keys`, inserting it with
    `keys` + `defaults` when absent. Does not commit.
    """
    existing = _find(db, model, keys)
    if existing is not None:
        return existing, False

    try:
        with db.begin_nested():
            row = model(**keys, **(defaults or {}))
            db.add(row)
            db.flush()
        return row, True
    except IntegrityError:
        logger.info(f"{model.__name__} {keys} created concurrently; reusing existing row")

    existing = _find(db, model, keys)
    if existing is None:
        raise RuntimeError(f"{model.__name__} {keys} vanished after a unique violation")
    return existing, False


def ensure_step_record(
    db: Session,
    workflow: DepartmentWorkflow,
    *,
    room_no: str,
    mrno: str,
    ftid: str,
):
    """Get or create the department step record for one discharge episode."""
    record, created = get_or_create(
        db,
        workflow.record_model,
        defaults={"stage": workflow.first_step.name},
        room_no=room_no,
        mrno=mrno,
        ftid=ftid,
    )
    if created:
        logger.info(
            f"Created {workflow.record_model.__tablename__} row for room {room_no}, FTID {ftid}"
        )
    return record


def find_step_record(
    db: Session,
    workflow: DepartmentWorkflow,
    *,
    room_no: str,
    mrno: str,
    ftid: str,
):
    return (
        db.query(workflow.record_model)
        .filter_by(room_no=room_no, mrno=mrno, ftid=ftid)
        .first()
    )


def ensure_bed_details(db: Session, *, room_no: str, mrno: str, ftid: str) -> BedDetails:
    bed, _ = get_or_create(
        db,
        BedDetails,
        defaults={"status": BedStatus.DISCHARGE_RECOMMENDED},
        room_no=room_no,
        mrno=mrno,
        ftid=ftid,
    )
    return bed


def find_bed_details(db: Session, *, room_no: str, mrno: str, ftid: str) -> BedDetails | None:
    return db.query(BedDetails).filter_by(room_no=room_no, mrno=mrno, ftid=ftid).first()
