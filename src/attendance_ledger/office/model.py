from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import Mapping, Optional, Tuple

from ..core.constants import (
    DEFAULT_BUFFER_MINUTES,
    DEFAULT_LEAVE_ALLOWANCES,
    DEFAULT_PERMANENT_ENTITLEMENT,
    DEFAULT_WORKING_DAYS,
)
from ..core.enums import EventCategory, LeaveCategory, LeaveType, RemoteWorkStatus


@dataclass(frozen=True)
class ClockWindow:
    checkin_time: time
    checkout_time: time


@dataclass(frozen=True)
class OfficeConfig:
    """Snapshot of the organization settings an operation runs against."""

    buffer_time_minutes: int = DEFAULT_BUFFER_MINUTES
    working_days: Tuple[int, ...] = DEFAULT_WORKING_DAYS
    enable_ip_check: bool = True
    allowed_ips: Tuple[str, ...] = ()
    general_leave_types: Mapping[LeaveType, int] = field(default_factory=lambda: dict(DEFAULT_LEAVE_ALLOWANCES))
    business_leave_types: Mapping[LeaveType, int] = field(default_factory=lambda: dict(DEFAULT_LEAVE_ALLOWANCES))
    allowed_leave_for_permanent_employees: int = DEFAULT_PERMANENT_ENTITLEMENT
    allowed_leave_for_permanent_business_developers: int = DEFAULT_PERMANENT_ENTITLEMENT
    working_hours: ClockWindow = ClockWindow(time(10, 0), time(19, 0))
    bd_working_hours: ClockWindow = ClockWindow(time(10, 0), time(19, 0))

    def leave_types_for(self, category: LeaveCategory) -> Mapping[LeaveType, int]:
        if category == LeaveCategory.BUSINESS:
            return self.business_leave_types
        return self.general_leave_types

    def permanent_entitlement_for(self, category: LeaveCategory) -> int:
        if category == LeaveCategory.BUSINESS:
            return self.allowed_leave_for_permanent_business_developers
        return self.allowed_leave_for_permanent_employees

    def hours_for(self, category: LeaveCategory) -> ClockWindow:
        return self.bd_working_hours if category == LeaveCategory.BUSINESS else self.working_hours

    def is_working_day(self, day: date) -> bool:
        return day.isoweekday() in self.working_days


@dataclass(frozen=True)
class DaySchedule:
    day: str
    checkin_time: time
    checkout_time: time


@dataclass(frozen=True)
class WorkingHours:
    """Effective wall-clock hours for one user (date parts are irrelevant)."""

    checkin_time: time
    checkout_time: time
    custom_working_hours: Tuple[DaySchedule, ...] = ()
    is_week_custom_working_hours: bool = False
    expiry_date: Optional[date] = None

    def window_for(self, day: date) -> ClockWindow:
        if self.is_week_custom_working_hours:
            name = day.strftime("%A").lower()
            for entry in self.custom_working_hours:
                if entry.day.lower() == name:
                    return ClockWindow(entry.checkin_time, entry.checkout_time)
        return ClockWindow(self.checkin_time, self.checkout_time)


@dataclass(frozen=True)
class OfficeEvent:
    event_id: int
    title: str
    category: EventCategory
    date: date
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    def covers(self, day: date) -> bool:
        return self.date <= day <= (self.end_date or self.date)


@dataclass(frozen=True)
class RemoteWork:
    remote_work_id: int
    user_id: int
    start_date: date
    end_date: date
    total_days: float
    status: RemoteWorkStatus
