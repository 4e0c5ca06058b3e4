from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles; only employees and team leads are regularized."""

    ADMIN = "admin"
    EMPLOYEE = "employee"
    TEAM_LEAD = "teamLead"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class EmploymentStatus(str, Enum):
    PERMANENT = "permanent"
    PROBATION = "probation"
    INTERNSHIP = "internship"


class AttendanceStatus(str, Enum):
    """Per-day attendance status stored in the `attendance` table."""

    PRESENT = "present"
    LATE = "late"
    REMOTE = "remote"
    HALF_DAY = "half-day"
    AUTO_HALF_DAY = "auto-half-day"
    AUTO_LEAVE = "auto-leave"
    LEAVE = "leave"
    EARLY_LEAVE = "early-leave"
    HOLIDAY = "holiday"
    TRIP = "trip"
    CHECKED_OUT = "checked-out"
    AWAITING = "awaiting"

    @property
    def is_auto(self) -> bool:
        return self in (AttendanceStatus.AUTO_LEAVE, AttendanceStatus.AUTO_HALF_DAY)


class LeaveType(str, Enum):
    ANNUAL = "annual"
    CASUAL = "casual"
    DEMISE = "demise"
    HAJJ_UMRAH = "hajj/umrah"
    MARRIAGE = "marriage"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    PROBATION = "probation"
    SICK = "sick"
    UNPAID = "unpaid"


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeaveCategory(str, Enum):
    """Which section of office config a user's allowances come from."""

    GENERAL = "general"
    BUSINESS = "business"


class EventCategory(str, Enum):
    PUBLIC_HOLIDAY = "public-holiday"
    TRIP = "trip"
    OFFICE_EVENT = "office-event"


class RemoteWorkStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
