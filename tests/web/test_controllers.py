from __future__ import annotations

from types import SimpleNamespace

import pytest
from flask import Flask

from attendance_ledger.attendance import controller as attendance_controller
from attendance_ledger.attendance.controller import register as register_attendance
from attendance_ledger.attendance.model import AttendanceRecord
from attendance_ledger.common.web import register_error_handlers
from attendance_ledger.core.enums import AttendanceStatus
from attendance_ledger.leave.controller import register as register_leave

from conftest import MONDAY, TZ, local


@pytest.fixture
def client(world):
    app = Flask(__name__)
    app.secret_key = "test-secret"
    container = SimpleNamespace(
        timezone=TZ,
        users_repo=world.users,
        attendance_service=world.attendance_service,
        leave_service=world.leave_service,
        leave_ledger=world.ledger,
    )
    register_error_handlers(app)
    register_attendance(app, container)
    register_leave(app, container)
    return app.test_client()


def _login(client, user_id):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id


def test_requests_without_session_are_refused(client):
    res = client.post("/api/attendance/check-in")
    assert res.status_code == 401
    assert res.get_json()["success"] is False


def test_domain_errors_map_to_status_codes(client):
    _login(client, 3)
    res = client.patch("/api/admin/attendance/404", json={"check_out": None})
    assert res.status_code == 404
    assert res.get_json() == {"success": False, "message": "Attendance record not found"}


def test_admin_routes_need_an_admin(client):
    _login(client, 1)
    res = client.post("/api/admin/attendance", json={"user_id": 1, "date": "2025-03-03"})
    assert res.status_code == 403


def test_admin_marks_attendance(client, world):
    _login(client, 3)
    res = client.post(
        "/api/admin/attendance",
        json={"user_id": 1, "date": "2025-03-03", "check_in": "2025-03-03T10:00:00+05:00", "check_out": "2025-03-03T19:00:00+05:00"},
    )
    assert res.status_code == 201
    body = res.get_json()
    assert body["data"]["status"] == "present"
    assert body["data"]["production_time"] == "9h 0m"


def test_timestamps_without_offset_are_office_wall_clock(client):
    _login(client, 3)
    res = client.post(
        "/api/admin/attendance",
        json={"user_id": 1, "date": "2025-03-03", "check_in": "2025-03-03T10:00:00", "check_out": "2025-03-03T19:00:00"},
    )
    assert res.status_code == 201
    data = res.get_json()["data"]
    assert data["status"] == "present"
    assert data["is_late"] is False
    assert data["check_in"] == "2025-03-03T10:00:00+05:00"


def test_bad_date_is_a_validation_error(client):
    _login(client, 3)
    res = client.post("/api/admin/attendance", json={"user_id": 1, "date": "03/03/2025"})
    assert res.status_code == 400


def test_leave_stats_of_another_user_need_admin(client):
    _login(client, 1)
    assert client.get("/api/leave-stats?user_id=4&year=2025").status_code == 403

    res = client.get("/api/leave-stats?year=2025")
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["remaining_leaves"] == 24
    assert data["leave_breakdown"]["annual"]["allowed"] == 10


def test_unknown_leave_type_is_rejected(client):
    _login(client, 1)
    res = client.post(
        "/api/leaves",
        json={"leave_type": "sabbatical", "start_date": "2025-03-03", "reason": "Taking a long break"},
    )
    assert res.status_code == 400


@pytest.mark.parametrize(
    "method, url, payload",
    [
        ("patch", "/api/admin/attendance/1", {"status": "vacation"}),
        ("post", "/api/admin/attendance", {"user_id": "abc", "date": "2025-03-03"}),
        ("put", "/api/admin/leave-types/general", {"sick": "lots"}),
    ],
)
def test_malformed_admin_input_is_a_validation_error(client, method, url, payload):
    _login(client, 3)
    res = getattr(client, method)(url, json=payload)
    assert res.status_code == 400
    assert res.get_json()["success"] is False


def test_today_follows_the_office_calendar(client, world, monkeypatch):
    # 00:30 in the office is still the previous day in UTC
    monkeypatch.setattr(attendance_controller, "now_local", lambda tz: local(MONDAY, 0, 30))
    world.attendance.insert(AttendanceRecord(attendance_id=0, user_id=1, work_date=MONDAY, status=AttendanceStatus.PRESENT))
    _login(client, 1)

    res = client.get("/api/attendance/today")
    assert res.status_code == 200
    assert res.get_json()["data"]["work_date"] == "2025-03-03"
