from __future__ import annotations

from typing import Optional

from ..core.enums import LeaveType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    dumps_json,
    fetchone,
    from_db_datetime,
    loads_json,
    to_db_datetime,
)
from .model import LeaveBucket, LeaveStats
from .repository import LeaveStatsRepository


class MySQLLeaveStatsRepository(LeaveStatsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, user_id: int, year: int) -> Optional[LeaveStats]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, year, prorated_leave_entitlement, total_taken_leaves, remaining_leaves,
                       leave_breakdown, total_restored_leaves, last_updated
                FROM leave_stats
                WHERE user_id=%s AND year=%s
                """,
                (int(user_id), int(year)),
            )
            row = fetchone(cur)
        if not row:
            return None
        breakdown = {
            LeaveType(k): LeaveBucket(
                allowed=float(v["allowed"]), taken=float(v["taken"]), remaining=float(v["remaining"])
            )
            for k, v in (loads_json(row["leave_breakdown"]) or {}).items()
        }
        return LeaveStats(
            user_id=int(row["user_id"]),
            year=int(row["year"]),
            prorated_leave_entitlement=float(row["prorated_leave_entitlement"]),
            total_taken_leaves=float(row["total_taken_leaves"]),
            remaining_leaves=float(row["remaining_leaves"]),
            leave_breakdown=breakdown,
            total_restored_leaves=float(row["total_restored_leaves"]),
            last_updated=from_db_datetime(row.get("last_updated")),
        )

    def save(self, stats: LeaveStats) -> None:
        breakdown = dumps_json(
            {
                t.value: {"allowed": b.allowed, "taken": b.taken, "remaining": b.remaining}
                for t, b in stats.leave_breakdown.items()
            }
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_stats(user_id, year, prorated_leave_entitlement, total_taken_leaves,
                                        remaining_leaves, leave_breakdown, total_restored_leaves, last_updated)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    prorated_leave_entitlement=VALUES(prorated_leave_entitlement),
                    total_taken_leaves=VALUES(total_taken_leaves),
                    remaining_leaves=VALUES(remaining_leaves),
                    leave_breakdown=VALUES(leave_breakdown),
                    total_restored_leaves=VALUES(total_restored_leaves),
                    last_updated=VALUES(last_updated)
                """,
                (
                    stats.user_id,
                    stats.year,
                    stats.prorated_leave_entitlement,
                    stats.total_taken_leaves,
                    stats.remaining_leaves,
                    breakdown,
                    stats.total_restored_leaves,
                    to_db_datetime(stats.last_updated),
                ),
            )
