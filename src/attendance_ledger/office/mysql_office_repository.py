from __future__ import annotations

from datetime import date
from typing import Any, Dict, Mapping, Optional, Sequence

from ..core.enums import EventCategory, LeaveCategory, LeaveType, RemoteWorkStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dumps_json, fetchall, fetchone, loads_json, normalize_mysql_time
from .model import ClockWindow, DaySchedule, OfficeConfig, OfficeEvent, RemoteWork, WorkingHours
from .repository import OfficeConfigRepository, OfficeEventDirectory, RemoteWorkDirectory, WorkingHoursRepository


def _allowances(raw: Any) -> Dict[LeaveType, int]:
    return {LeaveType(k): int(v) for k, v in (loads_json(raw) or {}).items()}


def _allowed_ips(raw: Any) -> tuple:
    # Stored either as a list or as a {label: ip} map.
    value = loads_json(raw) or []
    if isinstance(value, dict):
        value = list(value.values())
    return tuple(str(v) for v in value)


class MySQLOfficeConfigRepository(OfficeConfigRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self) -> OfficeConfig:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT * FROM office_config ORDER BY config_id LIMIT 1")
            row = fetchone(cur)
        if not row:
            return OfficeConfig()
        return OfficeConfig(
            buffer_time_minutes=int(row["buffer_time_minutes"]),
            working_days=tuple(int(d) for d in loads_json(row["working_days"]) or ()),
            enable_ip_check=bool(row["enable_ip_check"]),
            allowed_ips=_allowed_ips(row["allowed_ips"]),
            general_leave_types=_allowances(row["general_leave_types"]),
            business_leave_types=_allowances(row["business_leave_types"]),
            allowed_leave_for_permanent_employees=int(row["allowed_leave_for_permanent_employees"]),
            allowed_leave_for_permanent_business_developers=int(
                row["allowed_leave_for_permanent_business_developers"]
            ),
            working_hours=ClockWindow(
                normalize_mysql_time(row["checkin_time"]), normalize_mysql_time(row["checkout_time"])
            ),
            bd_working_hours=ClockWindow(
                normalize_mysql_time(row["bd_checkin_time"]), normalize_mysql_time(row["bd_checkout_time"])
            ),
        )

    def update_leave_types(self, category: LeaveCategory, allowances: Mapping[LeaveType, int]) -> OfficeConfig:
        column = "business_leave_types" if category == LeaveCategory.BUSINESS else "general_leave_types"
        payload = dumps_json({LeaveType(k).value: int(v) for k, v in allowances.items()})
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE office_config SET {column}=%s", (payload,))
        return self.get()


class MySQLWorkingHoursRepository(WorkingHoursRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_user(self, user_id: int) -> Optional[WorkingHours]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT checkin_time, checkout_time, custom_working_hours,
                       is_week_custom_working_hours, expiry_date
                FROM working_hours
                WHERE user_id=%s
                """,
                (int(user_id),),
            )
            row = fetchone(cur)
        if not row:
            return None
        custom = tuple(
            DaySchedule(
                day=str(entry["day"]),
                checkin_time=normalize_mysql_time(entry["checkin_time"]),
                checkout_time=normalize_mysql_time(entry["checkout_time"]),
            )
            for entry in loads_json(row.get("custom_working_hours")) or []
        )
        return WorkingHours(
            checkin_time=normalize_mysql_time(row["checkin_time"]),
            checkout_time=normalize_mysql_time(row["checkout_time"]),
            custom_working_hours=custom,
            is_week_custom_working_hours=bool(row.get("is_week_custom_working_hours")),
            expiry_date=row.get("expiry_date"),
        )


def _row_to_remote(row: Dict[str, Any]) -> RemoteWork:
    return RemoteWork(
        remote_work_id=int(row["remote_work_id"]),
        user_id=int(row["user_id"]),
        start_date=row["start_date"],
        end_date=row["end_date"],
        total_days=float(row["total_days"]),
        status=RemoteWorkStatus(row["status"]),
    )


class MySQLRemoteWorkDirectory(RemoteWorkDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def has_approved(self, user_id: int, day: date) -> bool:
        return self.find(user_id, day) is not None

    def find(self, user_id: int, day: date) -> Optional[RemoteWork]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT remote_work_id, user_id, start_date, end_date, total_days, status
                FROM remote_work
                WHERE user_id=%s AND status=%s AND start_date<=%s AND end_date>=%s
                LIMIT 1
                """,
                (int(user_id), RemoteWorkStatus.APPROVED.value, day, day),
            )
            row = fetchone(cur)
            return _row_to_remote(row) if row else None

    def overlapping(self, user_id: int, start: date, end: date) -> Sequence[RemoteWork]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT remote_work_id, user_id, start_date, end_date, total_days, status
                FROM remote_work
                WHERE user_id=%s AND status IN (%s, %s) AND start_date<=%s AND end_date>=%s
                """,
                (int(user_id), RemoteWorkStatus.APPROVED.value, RemoteWorkStatus.PENDING.value, end, start),
            )
            return [_row_to_remote(r) for r in fetchall(cur)]


class MySQLOfficeEventDirectory(OfficeEventDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find(self, category: EventCategory, start: date, end: date) -> Sequence[OfficeEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT event_id, title, category, date, end_date, start_time, end_time
                FROM events
                WHERE category=%s AND date<=%s AND COALESCE(end_date, date)>=%s
                ORDER BY date, start_time
                """,
                (category.value, end, start),
            )
            rows = fetchall(cur)
        return [
            OfficeEvent(
                event_id=int(r["event_id"]),
                title=r["title"],
                category=EventCategory(r["category"]),
                date=r["date"],
                end_date=r.get("end_date"),
                start_time=normalize_mysql_time(r.get("start_time")),
                end_time=normalize_mysql_time(r.get("end_time")),
            )
            for r in rows
        ]
