from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from discharge_tracker.models.sla_notification import SlaNotification
from discharge_tracker.models.ticket import BreachType, FacilityTicket, SlaOutcome
from discharge_tracker.services import sla_service
from discharge_tracker.services.sla_service import (
    build_breach_message,
    compute_breach_type,
    compute_sla_outcome,
    list_today_notifications,
    notify_opened_tickets,
    scan_sla_breaches,
)
from discharge_tracker.services.ticket_service import assign_ticket, open_ticket

T0 = datetime(2026, 3, 10, 4, 0, tzinfo=timezone.utc)


def minutes(n: int) -> datetime:
    return T0 + timedelta(minutes=n)


@pytest.mark.parametrize(
    "assigned, completed, expected",
    [
        (minutes(40), minutes(100), SlaOutcome.ASSIGN_EXCEEDED),
        (minutes(10), minutes(150), SlaOutcome.COMPLETION_EXCEEDED),
        (minutes(40), minutes(150), SlaOutcome.BOTH_EXCEEDED),
        (minutes(10), minutes(100), SlaOutcome.WITHIN_SLA),
        (minutes(30), minutes(120), SlaOutcome.WITHIN_SLA),
        (None, minutes(100), SlaOutcome.NOT_ASSIGNED),
    ],
)
def test_compute_sla_outcome(assigned, completed, expected):
    assert compute_sla_outcome(T0, assigned, completed, 30, 120) == expected


def test_compute_sla_outcome_accepts_naive_database_values():
    naive_disc = T0.replace(tzinfo=None)
    naive_assigned = minutes(45).replace(tzinfo=None)
    assert compute_sla_outcome(naive_disc, naive_assigned, minutes(60), 30, 120) == (
        SlaOutcome.ASSIGN_EXCEEDED
    )


@pytest.mark.parametrize(
    "assigned, completed, now, expected",
    [
        (None, None, minutes(30), BreachType.NONE),
        (None, None, minutes(31), BreachType.ASSIGN),
        (minutes(10), None, minutes(100), BreachType.NONE),
        (minutes(10), None, minutes(121), BreachType.COMPLETION),
        (None, None, minutes(130), BreachType.BOTH),
        (minutes(45), None, minutes(60), BreachType.ASSIGN),
    ],
)
def test_compute_breach_type(assigned, completed, now, expected):
    assert compute_breach_type(T0, assigned, completed, 30, 120, now) == expected


def test_build_breach_message_formats_each_ticket():
    entries = [
        (SimpleNamespace(facility_check_id=7, room_no="12 "), BreachType.ASSIGN),
        (SimpleNamespace(facility_check_id=105, room_no="3"), BreachType.BOTH),
    ]

    title, body = build_breach_message("NURSING", entries)

    assert title == "Facility Check SLA Breach - NURSING"
    assert body.splitlines() == [
        "Ticket:7  Room:12 Assign SLA Breached",
        "Ticket:105 Room:3  Both SLA Breached",
    ]


def test_build_breach_message_truncates_long_bodies():
    entries = [
        (SimpleNamespace(facility_check_id=i, room_no=str(i)), BreachType.COMPLETION)
        for i in range(40)
    ]

    _, body = build_breach_message("BILLING", entries)

    assert len(body) == 303
    assert body.endswith("...")


def _open(db, room, department="NURSING", ftid=None):
    ticket, _ = open_ticket(
        db,
        room_no=room,
        mrno=f"MR{room}",
        ftid=ftid or f"FT{room}",
        department=department,
        disc_recom_time=T0,
        now=T0,
    )
    return ticket.facility_check_id


def _ticket(db, ticket_id) -> FacilityTicket:
    db.expire_all()
    return db.get(FacilityTicket, ticket_id)


def test_scan_groups_breaches_per_department(db, policies, pushes):
    first = _open(db, "101")
    second = _open(db, "102")
    _open(db, "201", department="PHARMACY")

    result = scan_sla_breaches(db, now=minutes(45))

    assert result["status"] == "done"
    assert result["scanned"] == 3
    assert result["assign_breaches"] == 3
    assert result["notifications_sent"] == 2
    assert result["tickets_notified"] == 3
    assert sorted(result["departments"]) == ["NURSING", "PHARMACY"]

    nursing_push = next(p for p in pushes if p["title"].endswith("NURSING"))
    assert nursing_push["token"] == "token-nursing"
    assert nursing_push["reason"] == "SLA_BREACH"
    assert len(nursing_push["body"].splitlines()) == 2

    assert _ticket(db, first).sla_notification_status == BreachType.ASSIGN
    assert _ticket(db, second).sla_notification_status == BreachType.ASSIGN

    rows = db.query(SlaNotification).order_by(SlaNotification.id).all()
    assert len(rows) == 3
    assert {r.ticket_type for r in rows} == {"Facility"}
    assert {r.raised_dept_name for r in rows} == {"Facility_Check"}
    assert {r.breach_type for r in rows} == {1}


def test_scan_does_not_repeat_an_unchanged_breach(db, policies, pushes):
    ticket_id = _open(db, "101")

    scan_sla_breaches(db, now=minutes(45))
    again = scan_sla_breaches(db, now=minutes(50))

    assert len(pushes) == 1
    assert again["notifications_sent"] == 0
    assert again["assign_breaches"] == 1

    escalated = scan_sla_breaches(db, now=minutes(130))

    assert escalated["tickets_notified"] == 1
    assert len(pushes) == 2
    assert "Both SLA Breached" in pushes[-1]["body"]
    assert _ticket(db, ticket_id).sla_notification_status == BreachType.BOTH
    assert db.query(SlaNotification).count() == 2


def test_scan_ignores_tickets_within_sla(db, policies, pushes):
    _open(db, "101")

    result = scan_sla_breaches(db, now=minutes(20))

    assert result["assign_breaches"] == 0
    assert result["notifications_sent"] == 0
    assert pushes == []


def test_scan_keeps_breaches_pending_when_push_fails(db, policies, monkeypatch):
    ticket_id = _open(db, "101")

    def _broken_send_push(token, title, body, *, reason=None):
        raise RuntimeError("push gateway down")

    monkeypatch.setattr(sla_service, "send_push", _broken_send_push)
    failed = scan_sla_breaches(db, now=minutes(45))

    assert failed["notifications_sent"] == 0
    assert _ticket(db, ticket_id).sla_notification_status == BreachType.NONE
    assert db.query(SlaNotification).count() == 0

    sent = []
    monkeypatch.setattr(
        sla_service,
        "send_push",
        lambda token, title, body, *, reason=None: sent.append(title),
    )
    retried = scan_sla_breaches(db, now=minutes(46))

    assert retried["tickets_notified"] == 1
    assert sent == ["Facility Check SLA Breach - NURSING"]


def test_scan_skips_departments_without_push_token(db, policies, pushes):
    policies["NURSING"].hod_fcm_token = None
    db.commit()
    ticket_id = _open(db, "101")

    result = scan_sla_breaches(db, now=minutes(45))

    assert result["notifications_sent"] == 0
    assert pushes == []
    assert _ticket(db, ticket_id).sla_notification_status == BreachType.NONE


def test_scan_skips_when_lock_is_held(db, policies, pushes, monkeypatch):
    _open(db, "101")
    monkeypatch.setattr(sla_service, "acquire_lock", lambda name, ttl=60: None)

    assert scan_sla_breaches(db, now=minutes(45)) == {"status": "skipped"}
    assert pushes == []


def test_scan_skips_closed_tickets(db, policies, pushes):
    from discharge_tracker.services.ticket_service import close_ticket

    _open(db, "101", department="HOUSEKEEPING")
    assign_ticket(db, room_no="101", department="HOUSEKEEPING", ftid="FT101", user_id="H1", now=minutes(5))
    close_ticket(db, room_no="101", department="HOUSEKEEPING", ftid="FT101", user_id="H1", now=minutes(10))

    result = scan_sla_breaches(db, now=minutes(500))

    assert result["scanned"] == 0
    assert pushes == []


def test_notify_opened_tickets_announces_once(db, policies, pushes):
    ticket_id = _open(db, "101")
    _open(db, "102")
    assign_ticket(db, room_no="102", department="NURSING", ftid="FT102", user_id="N1", now=minutes(1))

    assert notify_opened_tickets(db) == 1
    assert notify_opened_tickets(db) == 0

    assert len(pushes) == 1
    assert pushes[0]["title"] == "New Facility Ticket - NURSING"
    assert f"Ticket ID: {ticket_id}" in pushes[0]["body"]
    assert "Time: 10-03-2026 09:30:00" in pushes[0]["body"]
    assert _ticket(db, ticket_id).is_ticket_notified is True


def test_list_today_notifications_uses_display_day(db, policies, pushes):
    _open(db, "101")
    _open(db, "201", department="PHARMACY")
    scan_sla_breaches(db, now=minutes(45))

    today = list_today_notifications(db, "NURSING", now=minutes(60))
    next_day = list_today_notifications(db, "NURSING", now=minutes(60) + timedelta(days=1))

    assert [n.dept_name for n in today] == ["NURSING"]
    assert next_day == []
