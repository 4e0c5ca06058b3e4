from __future__ import annotations

from datetime import date
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import EventCategory, LeaveCategory, LeaveType
from .model import OfficeConfig, OfficeEvent, RemoteWork, WorkingHours


class OfficeConfigRepository(Protocol):
    def get(self) -> OfficeConfig:
        raise NotImplementedError

    def update_leave_types(self, category: LeaveCategory, allowances: Mapping[LeaveType, int]) -> OfficeConfig:
        raise NotImplementedError


class WorkingHoursRepository(Protocol):
    def get_for_user(self, user_id: int) -> Optional[WorkingHours]:
        raise NotImplementedError


class RemoteWorkDirectory(Protocol):
    def has_approved(self, user_id: int, day: date) -> bool:
        raise NotImplementedError

    def find(self, user_id: int, day: date) -> Optional[RemoteWork]:
        """Approved remote work covering `day`, if any."""
        raise NotImplementedError

    def overlapping(self, user_id: int, start: date, end: date) -> Sequence[RemoteWork]:
        """Approved or pending remote work intersecting [start, end]."""
        raise NotImplementedError


class OfficeEventDirectory(Protocol):
    def find(self, category: EventCategory, start: date, end: date) -> Sequence[OfficeEvent]:
        """Events of `category` whose [date, end_date] intersects [start, end]."""
        raise NotImplementedError
