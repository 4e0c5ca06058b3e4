from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_latest_checked_in_since(self, user_id: int, since: datetime) -> Optional[AttendanceRecord]:
        """Most recent record whose check_in is at or after `since`."""
        raise NotImplementedError

    def list_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def insert(self, record: AttendanceRecord) -> AttendanceRecord:
        """Store a new record; raises DuplicateRecordError if (user, day) exists."""
        raise NotImplementedError

    def update(self, record: AttendanceRecord) -> AttendanceRecord:
        """Replace every field of the stored record with the same attendance_id."""
        raise NotImplementedError

    def delete(self, attendance_id: int) -> bool:
        raise NotImplementedError
