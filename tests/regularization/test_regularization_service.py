from __future__ import annotations

from dataclasses import replace
from datetime import time

from attendance_ledger.attendance.model import AttendanceRecord
from attendance_ledger.core.enums import AttendanceStatus, EventCategory, LeaveStatus, LeaveType
from attendance_ledger.office.model import OfficeEvent

from conftest import MONDAY, SATURDAY, TUESDAY, local

REGULARIZABLE = 3  # employee, probationer, team lead


def _open_day(world, user_id=1, hour=10):
    return world.attendance.insert(
        AttendanceRecord(
            attendance_id=0,
            user_id=user_id,
            work_date=MONDAY,
            status=AttendanceStatus.PRESENT,
            check_in=local(MONDAY, hour),
            created_by="User1 Test",
        )
    )


def _event(world, category, title, start_time=None):
    world.events.events.append(
        OfficeEvent(
            event_id=len(world.events.events) + 1,
            title=title,
            category=category,
            date=MONDAY,
            start_time=start_time,
        )
    )


def _unpaid(world, user_id=1):
    return world.ledger.get_stats(user_id, 2025).bucket(LeaveType.UNPAID).taken


def test_default_process_date_is_yesterday(world):
    assert world.regularization.default_process_date(local(TUESDAY, 0, 5)) == MONDAY


def test_non_working_day_is_skipped(world):
    summary = world.regularization.run(SATURDAY)
    assert summary.skipped_reason == "non-working day"
    assert world.attendance.records == {}


def test_missing_attendance_becomes_auto_leave_once(world):
    summary = world.regularization.run(MONDAY)
    assert summary.processed == REGULARIZABLE
    assert summary.errors == 0

    record = world.attendance.get_for_user_and_date(1, MONDAY)
    assert record.status == AttendanceStatus.AUTO_LEAVE
    assert record.check_in is None
    [leave] = world.leaves.for_user(1)
    assert (leave.leave_type, leave.total_days, leave.is_half_day, leave.status) == (
        LeaveType.UNPAID,
        1.0,
        False,
        LeaveStatus.APPROVED,
    )
    assert _unpaid(world) == 1
    assert world.attendance.get_for_user_and_date(3, MONDAY) is None

    again = world.regularization.run(MONDAY)
    assert again.processed == 0
    assert again.skipped == REGULARIZABLE
    assert again.cleaned_up == 0
    assert len(world.leaves.for_user(1)) == 1
    assert len(world.attendance.list_for_date(MONDAY)) == REGULARIZABLE
    assert _unpaid(world) == 1


def test_orphaned_auto_record_is_rebuilt(world):
    world.attendance.insert(
        AttendanceRecord(attendance_id=0, user_id=1, work_date=MONDAY, status=AttendanceStatus.AUTO_LEAVE, created_by="System")
    )
    summary = world.regularization.run(MONDAY)
    assert summary.cleaned_up == 1
    assert len(world.leaves.for_user(1)) == 1
    assert world.attendance.get_for_user_and_date(1, MONDAY).status == AttendanceStatus.AUTO_LEAVE


def test_complete_days_are_left_alone(world):
    record = _open_day(world)
    world.attendance.update(
        replace(record, check_out=local(MONDAY, 19), production_time="9h 0m")
    )
    world.regularization.run(MONDAY)
    assert world.attendance.get_for_user_and_date(1, MONDAY).status == AttendanceStatus.PRESENT
    assert world.leaves.for_user(1) == []


def test_missing_check_out_assumes_five_hours(world):
    _open_day(world)
    world.regularization.run(MONDAY)

    record = world.attendance.get_for_user_and_date(1, MONDAY)
    assert record.status == AttendanceStatus.AUTO_HALF_DAY
    assert record.is_half_day is True
    assert record.check_out == local(MONDAY, 15)
    assert record.production_time == "5h 0m"
    assert _unpaid(world) == 0.5


def test_public_holiday_marks_everyone(world):
    _event(world, EventCategory.PUBLIC_HOLIDAY, "Pakistan Day")
    summary = world.regularization.run(MONDAY)

    assert summary.processed == REGULARIZABLE
    assert "Pakistan Day" in summary.skipped_reason
    for user_id in (1, 2, 4):
        assert world.attendance.get_for_user_and_date(user_id, MONDAY).status == AttendanceStatus.HOLIDAY
    assert world.leaves.leaves == {}


def test_trip_day(world):
    _open_day(world)
    _event(world, EventCategory.TRIP, "Company retreat")
    world.regularization.run(MONDAY)

    assert world.attendance.get_for_user_and_date(1, MONDAY).status == AttendanceStatus.TRIP
    assert world.attendance.get_for_user_and_date(2, MONDAY).status == AttendanceStatus.TRIP
    assert world.leaves.leaves == {}


def test_office_event_checks_out_at_checkout_time(world):
    _open_day(world)
    _event(world, EventCategory.OFFICE_EVENT, "Annual dinner", start_time=time(16, 0))
    world.regularization.run(MONDAY)

    record = world.attendance.get_for_user_and_date(1, MONDAY)
    assert record.status == AttendanceStatus.PRESENT
    assert record.check_out == local(MONDAY, 19)
    assert record.production_time == "9h 0m"
    assert "Annual dinner" in record.analysis
    assert world.leaves.for_user(1) == []


def test_office_event_after_checkout_time_does_not_excuse(world):
    _open_day(world)
    _event(world, EventCategory.OFFICE_EVENT, "Late night launch", start_time=time(20, 0))
    world.regularization.run(MONDAY)

    record = world.attendance.get_for_user_and_date(1, MONDAY)
    assert record.status == AttendanceStatus.AUTO_HALF_DAY
    assert record.check_out == local(MONDAY, 15)
    assert _unpaid(world) == 0.5


def test_one_failing_user_does_not_stop_the_run(world, monkeypatch):
    original = world.leave_service.apply_auto_leave

    def flaky(**kwargs):
        if kwargs["user_id"] == 2:
            raise RuntimeError("ledger unavailable")
        return original(**kwargs)

    monkeypatch.setattr(world.leave_service, "apply_auto_leave", flaky)
    summary = world.regularization.run(MONDAY)

    assert summary.errors == 1
    assert summary.processed == REGULARIZABLE - 1
    assert world.attendance.get_for_user_and_date(2, MONDAY) is None


def test_summary_text(world):
    text = world.regularization.run(MONDAY).as_text()
    assert MONDAY.isoformat() in text
    assert f"Processed: {REGULARIZABLE}" in text
