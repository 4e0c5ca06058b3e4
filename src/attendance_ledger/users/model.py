from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.constants import SYSTEM_ACTOR
from ..core.enums import EmploymentStatus, Gender, LeaveCategory, Role


@dataclass(frozen=True)
class User:
    """Domain entity: an employee as seen by the ledger.

    Read-only here; the users table is owned elsewhere.
    """

    user_id: int
    first_name: str
    last_name: str
    email: str
    gender: Gender
    role: Role
    designation: str
    employment_status: EmploymentStatus
    joining_date: Optional[date] = None
    is_active: bool = True
    is_default_working_hours: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def leave_category(self) -> LeaveCategory:
        if "business" in (self.designation or "").lower():
            return LeaveCategory.BUSINESS
        return LeaveCategory.GENERAL

    @property
    def is_probationary(self) -> bool:
        return self.employment_status in (EmploymentStatus.PROBATION, EmploymentStatus.INTERNSHIP)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation; recorded as `action_taken_by`."""

    user_id: Optional[int]
    name: str
    is_admin: bool = False

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(user_id=user.user_id, name=user.full_name, is_admin=user.is_admin)

    @classmethod
    def system(cls) -> "Actor":
        return cls(user_id=None, name=SYSTEM_ACTOR, is_admin=True)
