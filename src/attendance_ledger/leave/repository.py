from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import LeaveStatus, LeaveType
from .model import LeaveRecord, LeaveStats


class LeaveRepository(Protocol):
    def get_by_id(self, leave_id: int) -> Optional[LeaveRecord]:
        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        total_days: float,
        is_half_day: bool,
        status: LeaveStatus,
        reason: str,
        action_taken_by: Optional[str] = None,
    ) -> LeaveRecord:
        raise NotImplementedError

    def update(self, leave: LeaveRecord) -> bool:
        """Persist every field of `leave` (matched on leave_id)."""
        raise NotImplementedError

    def delete(self, leave_id: int) -> bool:
        raise NotImplementedError

    def list_overlapping(
        self,
        user_id: int,
        start: date,
        end: date,
        *,
        statuses: Optional[Iterable[LeaveStatus]] = None,
    ) -> Sequence[LeaveRecord]:
        raise NotImplementedError


class LeaveStatsRepository(Protocol):
    def get(self, user_id: int, year: int) -> Optional[LeaveStats]:
        raise NotImplementedError

    def save(self, stats: LeaveStats) -> None:
        """Insert or replace the (user, year) row."""
        raise NotImplementedError
