from datetime import datetime, timedelta, timezone

from discharge_tracker.models.department import DepartmentPolicy

API = "/api/v1"

EPISODE = {"room_no": "101", "mrno": "MR1", "ftid": "FT1"}
NURSING_KEY = {"room_no": "101", "department": "NURSING", "ftid": "FT1"}
HOUSEKEEPING_KEY = {**NURSING_KEY, "department": "HOUSEKEEPING"}


def _open_nursing(client, **overrides):
    payload = {**EPISODE, "department": "NURSING", **overrides}
    return client.post(f"{API}/tickets", json=payload)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_register_login_and_me(client):
    created = client.post(
        f"{API}/auth/register",
        json={"user_id": "N1", "username": "Asha", "department": "nursing", "password": "secret"},
    )
    assert created.status_code == 201
    assert created.json()["department"] == "NURSING"

    duplicate = client.post(
        f"{API}/auth/register",
        json={"user_id": "N1", "username": "Asha", "department": "NURSING", "password": "x"},
    )
    assert duplicate.status_code == 409

    bad = client.post(f"{API}/auth/login", json={"user_id": "N1", "password": "wrong"})
    assert bad.status_code == 401

    login = client.post(f"{API}/auth/login", json={"user_id": "N1", "password": "secret"})
    assert login.status_code == 200
    body = login.json()
    assert body["name"] == "Asha"
    assert body["token_type"] == "bearer"

    me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["user_id"] == "N1"
    assert me.json()["has_push_token"] is False

    assert client.get(f"{API}/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_update_push_token(client):
    client.post(
        f"{API}/auth/register",
        json={"user_id": "N1", "username": "Asha", "department": "NURSING", "password": "secret"},
    )

    resp = client.post(f"{API}/auth/update-token", json={"user_id": "N1", "fcm_token": "device-1"})
    assert resp.status_code == 200
    assert client.get(f"{API}/auth/users/N1").json()["has_push_token"] is True

    missing = client.post(f"{API}/auth/update-token", json={"user_id": "ghost", "fcm_token": "x"})
    assert missing.status_code == 404
    assert client.get(f"{API}/auth/users/ghost").status_code == 404


def test_department_policy_upsert(client, db):
    created = client.put(
        f"{API}/departments/billing",
        json={"assign_sla_min": 15, "completion_sla_min": 60, "hod_fcm_token": "hod-billing"},
    )
    assert created.status_code == 201
    assert created.json()["dept_name"] == "BILLING"
    assert created.json()["has_push_token"] is True
    assert "hod_fcm_token" not in created.json()

    updated = client.put(f"{API}/departments/BILLING", json={"completion_sla_min": 90})
    assert updated.status_code == 200
    assert updated.json()["assign_sla_min"] == 15
    assert updated.json()["completion_sla_min"] == 90

    listing = client.get(f"{API}/departments").json()
    assert [p["dept_name"] for p in listing] == ["BILLING"]

    unknown = client.put(f"{API}/departments/cafeteria", json={"assign_sla_min": 5})
    assert unknown.status_code == 400
    assert unknown.json()["code"] == "unknown_department"

    negative = client.put(f"{API}/departments/BILLING", json={"assign_sla_min": -1})
    assert negative.status_code == 422
    assert db.query(DepartmentPolicy).count() == 1


def test_open_ticket_is_idempotent(client, policies):
    first = _open_nursing(client)
    again = _open_nursing(client)

    assert first.status_code == 201
    assert again.status_code == 200
    assert again.json()["facility_check_id"] == first.json()["facility_check_id"]
    assert first.json()["tkt_status"] == 0


def test_missing_fields_are_validation_errors(client, policies):
    resp = client.post(f"{API}/tickets", json={"room_no": "101", "department": "NURSING"})
    assert resp.status_code == 422

    blank = client.post(f"{API}/tickets", json={**EPISODE, "department": "NURSING", "mrno": " "})
    assert blank.status_code == 422


def test_assign_and_reassign(client, policies):
    _open_nursing(client)

    first = client.post(f"{API}/tickets/assign", json={**NURSING_KEY, "user_id": "N1"})
    assert first.json()["message"] == "Assigned successfully."

    prompt = client.post(f"{API}/tickets/assign", json={**NURSING_KEY, "user_id": "N2"})
    assert prompt.status_code == 200
    assert prompt.json()["already_assigned"] is True
    assert prompt.json()["current_user"] == "N1"

    forced = client.post(
        f"{API}/tickets/assign",
        json={**NURSING_KEY, "user_id": "N2", "force_reassign": True},
    )
    assert forced.json()["message"] == "User reassigned."
    assert forced.json()["previous_user"] == "N1"


def test_assign_unknown_ticket_is_404(client, policies):
    resp = client.post(f"{API}/tickets/assign", json={**NURSING_KEY, "user_id": "N1"})
    assert resp.status_code == 404
    assert resp.json()["code"] == "ticket_not_found"


def test_close_flow(client, policies):
    disc = datetime.now(timezone.utc) - timedelta(minutes=10)
    client.post(
        f"{API}/tickets",
        json={**EPISODE, "department": "HOUSEKEEPING", "disc_recom_time": disc.isoformat()},
    )

    unassigned = client.post(f"{API}/tickets/close", json={**HOUSEKEEPING_KEY, "user_id": "H1"})
    assert unassigned.status_code == 400
    assert unassigned.json()["code"] == "ticket_not_assigned"

    client.post(f"{API}/tickets/assign", json={**HOUSEKEEPING_KEY, "user_id": "H1"})
    closed = client.post(f"{API}/tickets/close", json={**HOUSEKEEPING_KEY, "user_id": "H1"})
    assert closed.status_code == 200
    assert closed.json()["status"] == 5

    again = client.post(f"{API}/tickets/close", json={**HOUSEKEEPING_KEY, "user_id": "H1"})
    assert again.status_code == 409
    assert again.json()["code"] == "ticket_closed"


def test_workflow_department_close_points_to_workflow(client, policies):
    _open_nursing(client)
    client.post(f"{API}/tickets/assign", json={**NURSING_KEY, "user_id": "N1"})

    resp = client.post(f"{API}/tickets/close", json={**NURSING_KEY, "user_id": "N1"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "use_workflow"

    nursing = client.get(f"{API}/tickets", params={"department": "NURSING"}).json()
    assert nursing[0]["tkt_status"] == 1


def test_ticket_listings(client, policies):
    _open_nursing(client)
    client.post(f"{API}/tickets", json={**EPISODE, "department": "DISCHARGE_SUMMARY"})
    client.post(f"{API}/tickets", json={**EPISODE, "department": "PHARMACY"})

    everything = client.get(f"{API}/tickets").json()
    assert len(everything) == 3

    nursing = client.get(f"{API}/tickets", params={"department": "NURSING"}).json()
    assert [t["department"] for t in nursing] == ["NURSING"]
    assert nursing[0]["assign_sla_min"] == 30

    desk = client.get(f"{API}/tickets/summary-authorization").json()
    assert [t["department"] for t in desk] == ["DISCHARGE_SUMMARY"]


def test_workflow_routes(client, policies):
    _open_nursing(client)

    status = client.post(f"{API}/workflows/nursing/status", json=EPISODE)
    assert status.status_code == 200
    assert status.json()["next_step"] == "PHARMACY_CLEARANCE"

    skipped = client.post(
        f"{API}/workflows/NURSING/update",
        json={**EPISODE, "user_id": "N1", "steps": {"LAB_CLEARANCE": True}},
    )
    assert skipped.status_code == 409
    assert skipped.json()["code"] == "step_out_of_order"

    unknown = client.post(
        f"{API}/workflows/NURSING/update",
        json={**EPISODE, "user_id": "N1", "steps": {"TEA_BREAK": True}},
    )
    assert unknown.status_code == 400
    assert unknown.json()["code"] == "unknown_step"

    mismatch = client.post(
        f"{API}/workflows/NURSING/update",
        json={**EPISODE, "mrno": "MR2", "user_id": "N1", "steps": {"PHARMACY_CLEARANCE": True}},
    )
    assert mismatch.status_code == 400
    assert mismatch.json()["code"] == "mrno_mismatch"

    all_steps = {
        name: True
        for name in [
            "PHARMACY_CLEARANCE",
            "LAB_CLEARANCE",
            "CONSUMABLE_CLEARANCE",
            "PATIENT_CHECKOUT",
            "FILE_TRANSFERRED",
        ]
    }
    done = client.post(
        f"{API}/workflows/NURSING/update",
        json={**EPISODE, "user_id": "N1", "steps": all_steps},
    )
    assert done.status_code == 200
    assert done.json()["stage"] == "COMPLETED"
    assert done.json()["handoff"]["opened_department"] == "DISCHARGE_SUMMARY"

    summary = client.post(f"{API}/workflows/DISCHARGE_SUMMARY/status", json=EPISODE)
    assert summary.json()["next_step"] == "SUMMARY_FILE_RECEIVED"

    housekeeping = client.post(f"{API}/workflows/HOUSEKEEPING/status", json=EPISODE)
    assert housekeeping.status_code == 400
    assert housekeeping.json()["code"] == "unknown_department"


def test_sla_check_and_today_notifications(client, policies, pushes):
    late = datetime.now(timezone.utc) - timedelta(minutes=45)
    _open_nursing(client, disc_recom_time=late.isoformat())

    check = client.get(f"{API}/sla/check")
    assert check.status_code == 200
    assert check.json()["status"] == "done"
    assert check.json()["departments"] == ["NURSING"]
    assert pushes[0]["title"] == "Facility Check SLA Breach - NURSING"

    today = client.get(f"{API}/notifications/nursing/today").json()
    assert len(today) == 1
    assert today[0]["breach_type"] == 1
    assert today[0]["room_no"] == "101"
