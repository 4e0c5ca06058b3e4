from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, Optional, Sequence

from ..core.enums import LeaveStatus, LeaveType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dumps_json, fetchall, fetchone, loads_json
from .model import AttendanceOverride, LeaveRecord
from .repository import LeaveRepository

_COLUMNS = """
    leave_id, user_id, leave_type, start_date, end_date, total_days, is_half_day,
    status, reason, action_taken_by, rejection_reason, attendance_overrides
"""


def _row_to_leave(row: Dict[str, Any]) -> LeaveRecord:
    overrides = tuple(
        AttendanceOverride(
            date=date.fromisoformat(o["date"]),
            restored_days=float(o["restored_days"]),
            created_by=o.get("created_by") or "",
        )
        for o in loads_json(row.get("attendance_overrides")) or []
    )
    return LeaveRecord(
        leave_id=int(row["leave_id"]),
        user_id=int(row["user_id"]),
        leave_type=LeaveType(row["leave_type"]),
        start_date=row["start_date"],
        end_date=row["end_date"],
        total_days=float(row["total_days"]),
        is_half_day=bool(row["is_half_day"]),
        status=LeaveStatus(row["status"]),
        reason=row["reason"],
        action_taken_by=row.get("action_taken_by"),
        rejection_reason=row.get("rejection_reason"),
        attendance_overrides=overrides,
    )


def _overrides_json(leave: LeaveRecord) -> Optional[str]:
    return dumps_json(
        [
            {"date": o.date.isoformat(), "restored_days": o.restored_days, "created_by": o.created_by}
            for o in leave.attendance_overrides
        ]
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, leave_id: int) -> Optional[LeaveRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM leaves WHERE leave_id=%s", (int(leave_id),))
            row = fetchone(cur)
            return _row_to_leave(row) if row else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leaves(user_id, leave_type, start_date, end_date, total_days,
                                   is_half_day, status, reason, action_taken_by, attendance_overrides)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,'[]')
                """,
                (
                    int(user_id),
                    leave_type.value,
                    start_date,
                    end_date,
                    total_days,
                    int(is_half_day),
                    status.value,
                    reason,
                    action_taken_by,
                ),
            )
            leave_id = int(cur.lastrowid)
        return LeaveRecord(
            leave_id=leave_id,
            user_id=int(user_id),
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            total_days=float(total_days),
            is_half_day=bool(is_half_day),
            status=status,
            reason=reason,
            action_taken_by=action_taken_by,
        )

    def update(self, leave: LeaveRecord) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leaves
                SET leave_type=%s, start_date=%s, end_date=%s, total_days=%s, is_half_day=%s,
                    status=%s, reason=%s, action_taken_by=%s, rejection_reason=%s, attendance_overrides=%s
                WHERE leave_id=%s
                """,
                (
                    leave.leave_type.value,
                    leave.start_date,
                    leave.end_date,
                    leave.total_days,
                    int(leave.is_half_day),
                    leave.status.value,
                    leave.reason,
                    leave.action_taken_by,
                    leave.rejection_reason,
                    _overrides_json(leave),
                    leave.leave_id,
                ),
            )
            return cur.rowcount > 0

    def delete(self, leave_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM leaves WHERE leave_id=%s", (int(leave_id),))
            return cur.rowcount > 0

    def list_overlapping(
        self,
        user_id: int,
        start: date,
        end: date,
        *,
        statuses: Optional[Iterable[LeaveStatus]] = None,
    ) -> Sequence[LeaveRecord]:
        clauses = ["user_id=%s", "start_date<=%s", "end_date>=%s"]
        params: list[object] = [int(user_id), end, start]
        if statuses is not None:
            values = [s.value for s in statuses]
            clauses.append(f"status IN ({', '.join(['%s'] * len(values))})")
            params.extend(values)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM leaves WHERE {' AND '.join(clauses)} ORDER BY start_date, leave_id",
                tuple(params),
            )
            return [_row_to_leave(r) for r in fetchall(cur)]
