from __future__ import annotations

from concurrent.futures import Future
from dataclasses import replace
from datetime import date, datetime, time
from types import SimpleNamespace
from typing import Optional

import pytest

from attendance_ledger.attendance.model import AttendanceRecord
from attendance_ledger.attendance.service import AttendanceService
from attendance_ledger.common.datetime_utils import at_local_time
from attendance_ledger.core.enums import EmploymentStatus, Gender, LeaveCategory, RemoteWorkStatus, Role
from attendance_ledger.core.exceptions import LocationNotAllowedError
from attendance_ledger.database.mysql_base import DuplicateRecordError
from attendance_ledger.leave.ledger import LeaveLedger
from attendance_ledger.leave.model import LeaveRecord
from attendance_ledger.leave.service import LeaveService
from attendance_ledger.office.model import OfficeConfig, RemoteWork
from attendance_ledger.office.working_hours import WorkingHoursResolver
from attendance_ledger.regularization.service import RegularizationService
from attendance_ledger.users.model import Actor, User

TZ = "Asia/Karachi"

# 2025-03-03 is a Monday.
MONDAY = date(2025, 3, 3)
TUESDAY = date(2025, 3, 4)
WEDNESDAY = date(2025, 3, 5)
SATURDAY = date(2025, 3, 8)


def local(day: date, hour: int, minute: int = 0) -> datetime:
    return at_local_time(day, time(hour, minute), TZ)


def make_user(user_id: int, **overrides) -> User:
    fields = dict(
        user_id=user_id,
        first_name=f"User{user_id}",
        last_name="Test",
        email=f"user{user_id}@example.com",
        gender=Gender.MALE,
        role=Role.EMPLOYEE,
        designation="Software Engineer",
        employment_status=EmploymentStatus.PERMANENT,
        joining_date=date(2020, 1, 6),
    )
    fields.update(overrides)
    return User(**fields)


class InMemoryUsers:
    def __init__(self, users):
        self.users_by_id = {u.user_id: u for u in users}

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.users_by_id.get(user_id)

    def list_regularizable(self):
        return [
            u
            for u in sorted(self.users_by_id.values(), key=lambda u: u.user_id)
            if u.is_active and u.role in (Role.EMPLOYEE, Role.TEAM_LEAD)
        ]

    def list_active_by_category(self, category: LeaveCategory):
        return [u for u in self.users_by_id.values() if u.is_active and u.leave_category == category]


class InMemoryAttendance:
    def __init__(self):
        self.records: dict[int, AttendanceRecord] = {}
        self._id = 0

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self.records.get(attendance_id)

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        for r in self.records.values():
            if r.user_id == user_id and r.work_date == work_date:
                return r
        return None

    def get_latest_checked_in_since(self, user_id: int, since: datetime) -> Optional[AttendanceRecord]:
        items = [r for r in self.records.values() if r.user_id == user_id and r.check_in is not None and r.check_in >= since]
        items.sort(key=lambda r: r.check_in, reverse=True)
        return items[0] if items else None

    def list_for_date(self, work_date: date):
        return [r for r in self.records.values() if r.work_date == work_date]

    def insert(self, record: AttendanceRecord) -> AttendanceRecord:
        if self.get_for_user_and_date(record.user_id, record.work_date):
            raise DuplicateRecordError("attendance already exists for this user and date")
        self._id += 1
        stored = replace(record, attendance_id=self._id)
        self.records[self._id] = stored
        return stored

    def update(self, record: AttendanceRecord) -> AttendanceRecord:
        assert record.attendance_id in self.records
        self.records[record.attendance_id] = record
        return record

    def delete(self, attendance_id: int) -> bool:
        return self.records.pop(attendance_id, None) is not None


class InMemoryLeaves:
    def __init__(self):
        self.leaves: dict[int, LeaveRecord] = {}
        self._id = 0

    def get_by_id(self, leave_id: int) -> Optional[LeaveRecord]:
        return self.leaves.get(leave_id)

    def create(self, *, user_id, leave_type, start_date, end_date, total_days, is_half_day, status, reason, action_taken_by=None):
        self._id += 1
        leave = LeaveRecord(
            leave_id=self._id,
            user_id=user_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            total_days=total_days,
            is_half_day=is_half_day,
            status=status,
            reason=reason,
            action_taken_by=action_taken_by,
        )
        self.leaves[self._id] = leave
        return leave

    def update(self, leave: LeaveRecord) -> bool:
        if leave.leave_id not in self.leaves:
            return False
        self.leaves[leave.leave_id] = leave
        return True

    def delete(self, leave_id: int) -> bool:
        return self.leaves.pop(leave_id, None) is not None

    def list_overlapping(self, user_id, start, end, *, statuses=None):
        wanted = set(statuses) if statuses is not None else None
        return [
            leave
            for leave in sorted(self.leaves.values(), key=lambda x: x.leave_id)
            if leave.user_id == user_id and leave.overlaps(start, end) and (wanted is None or leave.status in wanted)
        ]

    def for_user(self, user_id: int):
        return [leave for leave in self.leaves.values() if leave.user_id == user_id]


class InMemoryLeaveStats:
    def __init__(self):
        self.rows = {}

    def get(self, user_id: int, year: int):
        return self.rows.get((user_id, year))

    def save(self, stats) -> None:
        self.rows[(stats.user_id, stats.year)] = stats


class FakeOfficeConfigRepo:
    def __init__(self, config: OfficeConfig):
        self.config = config

    def get(self) -> OfficeConfig:
        return self.config

    def update_leave_types(self, category, allowances):
        field = "business_leave_types" if category == LeaveCategory.BUSINESS else "general_leave_types"
        self.config = replace(self.config, **{field: dict(allowances)})
        return self.config


class InMemoryWorkingHours:
    def __init__(self):
        self.by_user = {}

    def get_for_user(self, user_id: int):
        return self.by_user.get(user_id)


class FakeRemoteWork:
    def __init__(self):
        self.entries: list[RemoteWork] = []

    def add(self, user_id: int, start: date, end: date, status=RemoteWorkStatus.APPROVED) -> None:
        self.entries.append(
            RemoteWork(
                remote_work_id=len(self.entries) + 1,
                user_id=user_id,
                start_date=start,
                end_date=end,
                total_days=float((end - start).days + 1),
                status=status,
            )
        )

    def find(self, user_id: int, day: date):
        for e in self.entries:
            if e.user_id == user_id and e.status == RemoteWorkStatus.APPROVED and e.start_date <= day <= e.end_date:
                return e
        return None

    def has_approved(self, user_id: int, day: date) -> bool:
        return self.find(user_id, day) is not None

    def overlapping(self, user_id: int, start: date, end: date):
        return [
            e
            for e in self.entries
            if e.user_id == user_id
            and e.status != RemoteWorkStatus.REJECTED
            and e.start_date <= end
            and e.end_date >= start
        ]


class FakeEvents:
    def __init__(self):
        self.events = []

    def find(self, category, start: date, end: date):
        return [e for e in self.events if e.category == category and e.date <= end and (e.end_date or e.date) >= start]


class RecordingNotifications:
    def __init__(self):
        self.sent = []

    def notify(self, actor_id, target_id, message, *, notify_admins=False, admin_message=None) -> None:
        self.sent.append(
            dict(actor_id=actor_id, target_id=target_id, message=message, notify_admins=notify_admins, admin_message=admin_message)
        )


class RecordingMailer:
    def __init__(self):
        self.sent = []

    def send(self, to, subject, body) -> None:
        self.sent.append((list(to), subject, body))


class FakeLocation:
    def __init__(self, allowed: bool = True):
        self.allowed = allowed
        self.calls = []

    def verify(self, origin_ip, config) -> None:
        self.calls.append(origin_ip)
        if not self.allowed:
            raise LocationNotAllowedError("Unauthorized location. Attendance not allowed.")


class ImmediateExecutor:
    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


@pytest.fixture
def world():
    employee = make_user(1)
    probationer = make_user(2, employment_status=EmploymentStatus.PROBATION, joining_date=date(2025, 1, 6))
    admin = make_user(3, role=Role.ADMIN, first_name="Ada", last_name="Admin")
    bd_lead = make_user(4, role=Role.TEAM_LEAD, gender=Gender.FEMALE, designation="Business Developer")

    users = InMemoryUsers([employee, probationer, admin, bd_lead])
    attendance = InMemoryAttendance()
    leaves = InMemoryLeaves()
    stats = InMemoryLeaveStats()
    office_config = FakeOfficeConfigRepo(OfficeConfig(allowed_ips=("10.0.0.5",)))
    working_hours_repo = InMemoryWorkingHours()
    remote_work = FakeRemoteWork()
    events = FakeEvents()
    notifications = RecordingNotifications()
    location = FakeLocation()
    sleeps = []

    resolver = WorkingHoursResolver(users, working_hours_repo, office_config)
    ledger = LeaveLedger(stats, users, office_config)
    leave_service = LeaveService(
        leaves,
        ledger,
        users,
        attendance,
        remote_work=remote_work,
        office_config=office_config,
        notifications=notifications,
        timezone=TZ,
        executor=ImmediateExecutor(),
    )
    attendance_service = AttendanceService(
        attendance,
        users,
        leave_service,
        working_hours=resolver,
        remote_work=remote_work,
        office_config=office_config,
        notifications=notifications,
        location=location,
        timezone=TZ,
        sleep=sleeps.append,
    )
    regularization = RegularizationService(
        attendance,
        users,
        leave_service,
        events=events,
        working_hours=resolver,
        office_config=office_config,
        notifications=notifications,
        timezone=TZ,
        sleep=sleeps.append,
    )

    return SimpleNamespace(
        employee=employee,
        probationer=probationer,
        admin=admin,
        bd_lead=bd_lead,
        admin_actor=Actor.from_user(admin),
        employee_actor=Actor.from_user(employee),
        users=users,
        attendance=attendance,
        leaves=leaves,
        stats=stats,
        office_config=office_config,
        working_hours_repo=working_hours_repo,
        remote_work=remote_work,
        events=events,
        notifications=notifications,
        location=location,
        sleeps=sleeps,
        resolver=resolver,
        ledger=ledger,
        leave_service=leave_service,
        attendance_service=attendance_service,
        regularization=regularization,
    )
