from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from ..core.enums import EmploymentStatus, Gender, LeaveCategory, Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import User
from .repository import UserRepository

_COLUMNS = """
    user_id, first_name, last_name, email, gender, role, designation,
    employment_status, joining_date, is_active, is_default_working_hours
"""


def _row_to_user(row: Dict[str, Any]) -> User:
    return User(
        user_id=int(row["user_id"]),
        first_name=row["first_name"],
        last_name=row.get("last_name") or "",
        email=row["email"],
        gender=Gender(row.get("gender") or "other"),
        role=Role(row["role"]),
        designation=row.get("designation") or "",
        employment_status=EmploymentStatus(row["employment_status"]),
        joining_date=row.get("joining_date"),
        is_active=bool(row.get("is_active", True)),
        is_default_working_hours=bool(row.get("is_default_working_hours", True)),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def list_regularizable(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM users
                WHERE is_active=1 AND role IN (%s, %s)
                ORDER BY user_id
                """,
                (Role.EMPLOYEE.value, Role.TEAM_LEAD.value),
            )
            return [_row_to_user(r) for r in fetchall(cur)]

    def list_active_by_category(self, category: LeaveCategory) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE is_active=1 ORDER BY user_id")
            users = [_row_to_user(r) for r in fetchall(cur)]
        return [u for u in users if u.leave_category == category]
