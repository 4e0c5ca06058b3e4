from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus, LeaveType


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Marks an admin-edit field the caller did not touch (None means "remove").
UNSET = _Unset()


@dataclass(frozen=True)
class LeaveOverride:
    """Back-reference to the approved leave a check-in overrode."""

    original_leave_id: int
    restored_days: float
    leave_type: LeaveType


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one user's attendance for one calendar day.

    `attendance_id` is 0 until the record has been stored.
    """

    attendance_id: int
    user_id: int
    work_date: date
    status: AttendanceStatus
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    is_late: bool = False
    is_half_day: bool = False
    production_time: Optional[str] = None
    analysis: Optional[str] = None
    leave_override: Optional[LeaveOverride] = None
    action_taken_by: Optional[str] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.check_in is not None and self.check_out is None

    @property
    def is_auto_processed(self) -> bool:
        return self.status.is_auto and self.check_in is None
