from __future__ import annotations

import os

# Settings are read once per process; point them at SQLite before any
# discharge_tracker module is imported.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PUSH_ENABLED", "false")
os.environ.setdefault("REDIS_URL", "")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from discharge_tracker.core.database import get_db
from discharge_tracker.main import app
from discharge_tracker.models import Base
from discharge_tracker.models.department import DepartmentPolicy
from discharge_tracker.workflows.registry import DASHBOARD_COLUMNS

T0 = datetime(2026, 3, 10, 4, 0, tzinfo=timezone.utc)

ASSIGN_SLA_MIN = 30
COMPLETION_SLA_MIN = 120


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite needs explicit BEGIN for SAVEPOINT support
    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def policies(db) -> dict[str, DepartmentPolicy]:
    """One policy per dashboard department: 30 min to assign, 120 to complete."""
    rows = {}
    for department in DASHBOARD_COLUMNS:
        policy = DepartmentPolicy(
            dept_name=department,
            assign_sla_min=ASSIGN_SLA_MIN,
            completion_sla_min=COMPLETION_SLA_MIN,
            hod_fcm_token=f"token-{department.lower()}",
        )
        db.add(policy)
        rows[department] = policy
    db.commit()
    return rows


@pytest.fixture()
def client(db):
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def pushes(monkeypatch) -> list[dict]:
    """Capture push sends instead of delivering them."""
    from discharge_tracker.services import sla_service

    sent: list[dict] = []

    def _fake_send_push(token, title, body, *, reason=None):
        sent.append({"token": token, "title": title, "body": body, "reason": reason})

    monkeypatch.setattr(sla_service, "send_push", _fake_send_push)
    return sent
