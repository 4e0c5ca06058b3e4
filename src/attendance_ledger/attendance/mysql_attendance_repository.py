from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import AttendanceStatus, LeaveType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    dumps_json,
    fetchall,
    fetchone,
    from_db_datetime,
    loads_json,
    to_db_datetime,
)
from .model import AttendanceRecord, LeaveOverride
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, user_id, work_date, check_in, check_out, status, is_late, is_half_day,
    production_time, analysis, leave_override, action_taken_by, created_by, updated_by
"""


def _row_to_record(r: Dict[str, Any]) -> AttendanceRecord:
    override = loads_json(r.get("leave_override"))
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        status=AttendanceStatus(r["status"]),
        check_in=from_db_datetime(r.get("check_in")),
        check_out=from_db_datetime(r.get("check_out")),
        is_late=bool(r.get("is_late")),
        is_half_day=bool(r.get("is_half_day")),
        production_time=r.get("production_time"),
        analysis=r.get("analysis"),
        leave_override=(
            LeaveOverride(
                original_leave_id=int(override["original_leave_id"]),
                restored_days=float(override["restored_days"]),
                leave_type=LeaveType(override["leave_type"]),
            )
            if override
            else None
        ),
        action_taken_by=r.get("action_taken_by"),
        created_by=r.get("created_by"),
        updated_by=r.get("updated_by"),
    )


def _override_json(record: AttendanceRecord) -> Optional[str]:
    o = record.leave_override
    if o is None:
        return None
    return dumps_json(
        {"original_leave_id": o.original_leave_id, "restored_days": o.restored_days, "leave_type": o.leave_type.value}
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance WHERE user_id=%s AND work_date=%s",
                (int(user_id), work_date),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_latest_checked_in_since(self, user_id: int, since: datetime) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance
                WHERE user_id=%s AND check_in IS NOT NULL AND check_in>=%s
                ORDER BY check_in DESC
                LIMIT 1
                """,
                (int(user_id), to_db_datetime(since)),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def list_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance WHERE work_date=%s ORDER BY user_id", (work_date,))
            return [_row_to_record(r) for r in fetchall(cur)]

    def insert(self, record: AttendanceRecord) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance(user_id, work_date, check_in, check_out, status, is_late, is_half_day,
                                       production_time, analysis, leave_override, action_taken_by,
                                       created_by, updated_by)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    record.user_id,
                    record.work_date,
                    to_db_datetime(record.check_in),
                    to_db_datetime(record.check_out),
                    record.status.value,
                    int(record.is_late),
                    int(record.is_half_day),
                    record.production_time,
                    record.analysis,
                    _override_json(record),
                    record.action_taken_by,
                    record.created_by,
                    record.updated_by,
                ),
            )
            return replace(record, attendance_id=int(cur.lastrowid))

    def update(self, record: AttendanceRecord) -> AttendanceRecord:
        # A None check_out/production_time is written as NULL, i.e. the value is removed.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET check_in=%s, check_out=%s, status=%s, is_late=%s, is_half_day=%s, production_time=%s,
                    analysis=%s, leave_override=%s, action_taken_by=%s, updated_by=%s
                WHERE attendance_id=%s
                """,
                (
                    to_db_datetime(record.check_in),
                    to_db_datetime(record.check_out),
                    record.status.value,
                    int(record.is_late),
                    int(record.is_half_day),
                    record.production_time,
                    record.analysis,
                    _override_json(record),
                    record.action_taken_by,
                    record.updated_by,
                    record.attendance_id,
                ),
            )
        return record

    def delete(self, attendance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance WHERE attendance_id=%s", (int(attendance_id),))
            return cur.rowcount > 0
