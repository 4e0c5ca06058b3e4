from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional

import pytz
import structlog

from ..common.datetime_utils import working_days_by_year
from ..core.enums import LeaveCategory, LeaveType
from ..core.exceptions import NotFoundError, ValidationError
from ..office.repository import OfficeConfigRepository
from ..users.model import User
from ..users.repository import UserRepository
from .entitlement import aggregates, allowed_by_type, build_breakdown, make_bucket, prorated_entitlement
from .model import LeaveRecord, LeaveStats
from .repository import LeaveStatsRepository

logger = structlog.get_logger(__name__)


def year_portions(leave: LeaveRecord) -> Dict[int, float]:
    """Days a leave consumes per calendar year.

    Half-day leaves are never split; single-year leaves use their own total.
    """
    if leave.is_half_day:
        return {leave.start_date.year: 0.5}
    if leave.start_date.year == leave.end_date.year:
        return {leave.start_date.year: float(leave.total_days)}
    return {year: float(days) for year, days in working_days_by_year(leave.start_date, leave.end_date).items()}


class LeaveLedger:
    """Per user/year leave balances with apply/restore/recalculate.

    Mutations are read-modify-write; each call corresponds to one causal event.
    """

    def __init__(self, stats: LeaveStatsRepository, users: UserRepository, office_config: OfficeConfigRepository):
        self._stats = stats
        self._users = users
        self._office_config = office_config

    def _user(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def _now() -> datetime:
        return datetime.now(pytz.UTC)

    def initialize(self, user_id: int, year: int) -> LeaveStats:
        existing = self._stats.get(user_id, year)
        if existing:
            return existing

        user = self._user(user_id)
        config = self._office_config.get()
        entitlement = prorated_entitlement(user, config, year)
        breakdown = build_breakdown(allowed_by_type(user, config, entitlement))
        total_taken, remaining = aggregates(user, breakdown)
        stats = LeaveStats(
            user_id=user_id,
            year=year,
            prorated_leave_entitlement=float(entitlement),
            total_taken_leaves=total_taken,
            remaining_leaves=remaining,
            leave_breakdown=breakdown,
            last_updated=self._now(),
        )
        self._stats.save(stats)
        logger.info("leave.ledger.initialized", user_id=user_id, year=year, entitlement=entitlement)
        return stats

    def get_stats(self, user_id: int, year: int) -> LeaveStats:
        return self.initialize(user_id, year)

    def apply(self, user_id: int, year: int, leave_type: LeaveType, days: float) -> LeaveStats:
        return self._adjust(user_id, year, leave_type, float(days))

    def restore(
        self,
        user_id: int,
        year: int,
        leave_type: LeaveType,
        days: float,
        *,
        count_as_restored: bool = False,
    ) -> LeaveStats:
        return self._adjust(user_id, year, leave_type, -float(days), count_as_restored=count_as_restored)

    def _adjust(
        self,
        user_id: int,
        year: int,
        leave_type: LeaveType,
        delta: float,
        *,
        count_as_restored: bool = False,
    ) -> LeaveStats:
        stats = self.initialize(user_id, year)
        user = self._user(user_id)

        breakdown = dict(stats.leave_breakdown)
        bucket = breakdown.get(leave_type)
        if bucket is None:
            if leave_type != LeaveType.UNPAID:
                raise ValidationError(f"Leave type '{leave_type.value}' is not available for this user")
            bucket = make_bucket(0, 0)

        breakdown[leave_type] = make_bucket(bucket.allowed, bucket.taken + delta)
        total_taken, remaining = aggregates(user, breakdown)
        restored = stats.total_restored_leaves + (-delta if count_as_restored else 0.0)

        updated = replace(
            stats,
            leave_breakdown=breakdown,
            total_taken_leaves=total_taken,
            remaining_leaves=remaining,
            total_restored_leaves=restored,
            last_updated=self._now(),
        )
        self._stats.save(updated)
        logger.info(
            "leave.ledger.adjusted",
            user_id=user_id,
            year=year,
            leave_type=leave_type.value,
            delta=delta,
            taken=breakdown[leave_type].taken,
        )
        return updated

    def apply_leave(self, leave: LeaveRecord) -> None:
        for year, days in year_portions(leave).items():
            if days:
                self.apply(leave.user_id, year, leave.leave_type, days)

    def restore_leave(self, leave: LeaveRecord) -> None:
        for year, days in year_portions(leave).items():
            if days:
                self.restore(leave.user_id, year, leave.leave_type, days)

    def recalculate(self, user_id: int, year: int) -> LeaveStats:
        """Rebuild allowances from the current config; `taken` is preserved."""
        stats = self.initialize(user_id, year)
        user = self._user(user_id)
        config = self._office_config.get()

        entitlement = prorated_entitlement(user, config, year)
        breakdown = build_breakdown(allowed_by_type(user, config, entitlement), stats.leave_breakdown)
        total_taken, remaining = aggregates(user, breakdown)
        updated = replace(
            stats,
            prorated_leave_entitlement=float(entitlement),
            leave_breakdown=breakdown,
            total_taken_leaves=total_taken,
            remaining_leaves=remaining,
            last_updated=self._now(),
        )
        self._stats.save(updated)
        return updated

    def sync_category(self, category: LeaveCategory, year: Optional[int] = None) -> int:
        """Recalculate every active user of `category`. Returns how many were rebuilt.

        A user whose ledger cannot be rebuilt is logged and skipped.
        """
        year = year or self._now().year
        users = self._users.list_active_by_category(category)
        rebuilt = 0
        for user in users:
            try:
                self.recalculate(user.user_id, year)
            except Exception:
                logger.exception("leave.ledger.sync_failed", user_id=user.user_id, category=category.value, year=year)
                continue
            rebuilt += 1
        logger.info("leave.ledger.synced", category=category.value, year=year, users=len(users), rebuilt=rebuilt)
        return rebuilt
