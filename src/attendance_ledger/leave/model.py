from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Mapping, Optional, Tuple

from ..core.constants import AUTO_LEAVE_REASON_PATTERN, SYSTEM_ACTOR
from ..core.enums import LeaveStatus, LeaveType

_AUTO_REASON = re.compile(AUTO_LEAVE_REASON_PATTERN, re.IGNORECASE)


@dataclass(frozen=True)
class AttendanceOverride:
    """Audit entry: a check-in happened on a day this leave covered."""

    date: date
    restored_days: float
    created_by: str


@dataclass(frozen=True)
class LeaveRecord:
    leave_id: int
    user_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    total_days: float
    is_half_day: bool
    status: LeaveStatus
    reason: str
    action_taken_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    attendance_overrides: Tuple[AttendanceOverride, ...] = ()

    @property
    def is_auto_generated(self) -> bool:
        return self.action_taken_by == SYSTEM_ACTOR or bool(_AUTO_REASON.search(self.reason or ""))

    @property
    def is_active(self) -> bool:
        return self.status in (LeaveStatus.PENDING, LeaveStatus.APPROVED)

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def overlaps(self, start: date, end: date) -> bool:
        return self.start_date <= end and self.end_date >= start

    def has_override_for(self, day: date) -> bool:
        return any(o.date == day for o in self.attendance_overrides)


@dataclass(frozen=True)
class LeaveBucket:
    allowed: float
    taken: float = 0.0
    remaining: float = 0.0


@dataclass(frozen=True)
class LeaveStats:
    """Per (user, year) ledger."""

    user_id: int
    year: int
    prorated_leave_entitlement: float
    total_taken_leaves: float
    remaining_leaves: float
    leave_breakdown: Mapping[LeaveType, LeaveBucket] = field(default_factory=dict)
    total_restored_leaves: float = 0.0
    last_updated: Optional[datetime] = None

    def bucket(self, leave_type: LeaveType) -> Optional[LeaveBucket]:
        return self.leave_breakdown.get(leave_type)
