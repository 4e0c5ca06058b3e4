from __future__ import annotations

import time
from dataclasses import replace
from typing import Callable

import structlog

from ..core.exceptions import TransientStoreError
from ..core.constants import UPSERT_RETRY_DELAY_SECONDS
from ..database.mysql_base import DuplicateRecordError
from .model import AttendanceRecord
from .repository import AttendanceRepository

logger = structlog.get_logger(__name__)


def upsert_attendance(
    repo: AttendanceRepository,
    record: AttendanceRecord,
    *,
    retry_delay: float = UPSERT_RETRY_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> AttendanceRecord:
    """Optimistic insert keyed on (user, day), falling back to an in-place update.

    A concurrent writer can create the row between our read and our insert; the
    unique key rejects the loser, which waits once and updates the winner's row.
    """
    if record.attendance_id:
        return repo.update(record)

    existing = repo.get_for_user_and_date(record.user_id, record.work_date)
    if existing:
        return repo.update(replace(record, attendance_id=existing.attendance_id, created_by=existing.created_by))

    try:
        return repo.insert(record)
    except DuplicateRecordError:
        logger.info("attendance.upsert_race", user_id=record.user_id, work_date=str(record.work_date))
        sleep(retry_delay)

    existing = repo.get_for_user_and_date(record.user_id, record.work_date)
    if existing is None:
        raise TransientStoreError("Attendance could not be saved, please retry")
    return repo.update(replace(record, attendance_id=existing.attendance_id, created_by=existing.created_by))
