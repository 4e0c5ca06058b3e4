from __future__ import annotations

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Mapping, Optional, Sequence

import structlog

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import iter_weekdays, now_local, to_local
from ..common.validators import require_date_order, require_length_between
from ..core.constants import (
    DEFAULT_TIMEZONE,
    MAX_LEAVE_BACKDATE_DAYS,
    REASON_MAX_LENGTH,
    REASON_MIN_LENGTH,
    SYSTEM_ACTOR,
)
from ..core.enums import AttendanceStatus, LeaveCategory, LeaveStatus, LeaveType
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..notifications.gateway import NotificationGateway, safe_notify
from ..office.repository import OfficeConfigRepository, RemoteWorkDirectory
from ..users.model import Actor
from ..users.repository import UserRepository
from .ledger import LeaveLedger, year_portions
from .model import AttendanceOverride, LeaveRecord
from .repository import LeaveRepository

logger = structlog.get_logger(__name__)

_ACTIVE = (LeaveStatus.PENDING, LeaveStatus.APPROVED)


class LeaveService:
    """Leave applications and every leave mutation the attendance engine needs.

    The ledger is debited when a leave is applied and credited back when it is
    rejected or deleted.
    """

    def __init__(
        self,
        leaves: LeaveRepository,
        ledger: LeaveLedger,
        users: UserRepository,
        attendance: AttendanceRepository,
        *,
        remote_work: RemoteWorkDirectory,
        office_config: OfficeConfigRepository,
        notifications: NotificationGateway,
        timezone: str = DEFAULT_TIMEZONE,
        executor: Optional[Executor] = None,
    ):
        self._leaves = leaves
        self._ledger = ledger
        self._users = users
        self._attendance = attendance
        self._remote_work = remote_work
        self._office_config = office_config
        self._notifications = notifications
        self._tz = timezone
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="leave-sync")

    def _today(self, now: Optional[datetime]) -> date:
        return (to_local(now, self._tz) if now else now_local(self._tz)).date()

    def _get(self, leave_id: int) -> LeaveRecord:
        leave = self._leaves.get_by_id(leave_id)
        if not leave:
            raise NotFoundError("Leave request not found")
        return leave

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can perform this action")

    # ---- applications -------------------------------------------------

    def _validate_shape(
        self,
        *,
        start_date: date,
        end_date: date,
        is_half_day: bool,
        total_days: Optional[float],
        reason: str,
        today: date,
    ) -> float:
        require_date_order(start_date, end_date)
        require_length_between(reason, "Reason", REASON_MIN_LENGTH, REASON_MAX_LENGTH)
        if start_date < today - timedelta(days=MAX_LEAVE_BACKDATE_DAYS):
            raise ValidationError(f"Leave cannot start more than {MAX_LEAVE_BACKDATE_DAYS} days in the past")

        if is_half_day:
            if start_date != end_date:
                raise ValidationError("A half-day leave must start and end on the same date")
            return 0.5

        working_days = sum(1 for _ in iter_weekdays(start_date, end_date))
        if working_days == 0:
            raise ValidationError("Leave must include at least one working day")
        return float(total_days) if total_days is not None else float(working_days)

    def _check_exclusive(self, user_id: int, start: date, end: date, *, exclude_id: Optional[int] = None) -> None:
        for other in self._leaves.list_overlapping(user_id, start, end, statuses=_ACTIVE):
            if other.leave_id != exclude_id and not other.is_auto_generated:
                raise ConflictError("A leave request already exists for the selected dates")
        if self._remote_work.overlapping(user_id, start, end):
            raise ConflictError("Remote work is already requested for the selected dates")

    def _check_balance(self, user_id: int, leave: LeaveRecord) -> None:
        for year, days in year_portions(leave).items():
            stats = self._ledger.initialize(user_id, year)
            if leave.leave_type == LeaveType.UNPAID:
                continue
            bucket = stats.bucket(leave.leave_type)
            if bucket is None:
                raise ValidationError(f"Leave type '{leave.leave_type.value}' is not available for this user")
            if bucket.remaining < days:
                raise ValidationError(
                    f"Insufficient {leave.leave_type.value} leave balance for {year}: "
                    f"{bucket.remaining:g} remaining, {days:g} requested"
                )

    def apply_leave(
        self,
        *,
        user_id: int,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        reason: str,
        actor: Actor,
        is_half_day: bool = False,
        total_days: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> LeaveRecord:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        if actor.user_id != user_id and not actor.is_admin:
            raise AuthorizationError("You can only apply leave for yourself")

        today = self._today(now)
        days = self._validate_shape(
            start_date=start_date,
            end_date=end_date,
            is_half_day=is_half_day,
            total_days=total_days,
            reason=reason,
            today=today,
        )
        self._check_exclusive(user_id, start_date, end_date)

        auto_approve = actor.is_admin and actor.user_id != user_id
        draft = LeaveRecord(
            leave_id=0,
            user_id=user_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            total_days=days,
            is_half_day=is_half_day,
            status=LeaveStatus.APPROVED if auto_approve else LeaveStatus.PENDING,
            reason=reason.strip(),
            action_taken_by=actor.name if auto_approve else None,
        )
        self._check_balance(user_id, draft)

        leave = self._leaves.create(
            user_id=user_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            total_days=days,
            is_half_day=is_half_day,
            status=draft.status,
            reason=draft.reason,
            action_taken_by=draft.action_taken_by,
        )
        self._ledger.apply_leave(leave)
        logger.info("leave.applied", leave_id=leave.leave_id, user_id=user_id, leave_type=leave_type.value, days=days)

        if auto_approve:
            self._apply_approval_effects(leave, actor)
            safe_notify(
                self._notifications,
                actor.user_id,
                user_id,
                f"{actor.name} applied an approved {leave_type.value} leave for you ({start_date} to {end_date}).",
            )
        else:
            safe_notify(
                self._notifications,
                user_id,
                None,
                f"Your {leave_type.value} leave request ({start_date} to {end_date}) was submitted.",
                notify_admins=True,
                admin_message=f"{user.full_name} applied for {days:g} day(s) of {leave_type.value} leave.",
            )
        return leave

    def approve_leave(self, leave_id: int, *, actor: Actor) -> LeaveRecord:
        self._require_admin(actor)
        leave = self._get(leave_id)
        if leave.status != LeaveStatus.PENDING:
            raise ConflictError("Leave request has already been processed")

        approved = replace(leave, status=LeaveStatus.APPROVED, action_taken_by=actor.name)
        self._leaves.update(approved)
        self._apply_approval_effects(approved, actor)
        logger.info("leave.approved", leave_id=leave_id, by=actor.name)
        safe_notify(
            self._notifications,
            actor.user_id,
            leave.user_id,
            f"Your {leave.leave_type.value} leave ({leave.start_date} to {leave.end_date}) was approved.",
        )
        return approved

    def reject_leave(self, leave_id: int, *, rejection_reason: str, actor: Actor) -> LeaveRecord:
        self._require_admin(actor)
        if not rejection_reason or not rejection_reason.strip():
            raise ValidationError("Rejection reason is required")
        leave = self._get(leave_id)
        if leave.status != LeaveStatus.PENDING:
            raise ConflictError("Leave request has already been processed")

        rejected = replace(
            leave,
            status=LeaveStatus.REJECTED,
            rejection_reason=rejection_reason.strip(),
            action_taken_by=actor.name,
        )
        self._leaves.update(rejected)
        self._ledger.restore_leave(leave)
        logger.info("leave.rejected", leave_id=leave_id, by=actor.name)
        safe_notify(
            self._notifications,
            actor.user_id,
            leave.user_id,
            f"Your {leave.leave_type.value} leave ({leave.start_date} to {leave.end_date}) was rejected: "
            f"{rejected.rejection_reason}",
        )
        return rejected

    def edit_leave(
        self,
        leave_id: int,
        *,
        actor: Actor,
        leave_type: Optional[LeaveType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        reason: Optional[str] = None,
        is_half_day: Optional[bool] = None,
        total_days: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> LeaveRecord:
        old = self._get(leave_id)
        if not actor.is_admin and (actor.user_id != old.user_id or old.status != LeaveStatus.PENDING):
            raise AuthorizationError("Only pending leave requests can be edited by their applicant")
        if old.status == LeaveStatus.REJECTED:
            raise ConflictError("A rejected leave request cannot be edited")

        new_half = old.is_half_day if is_half_day is None else is_half_day
        new_start = start_date or old.start_date
        new_end = end_date or (new_start if new_half else old.end_date)
        new_reason = reason if reason is not None else old.reason
        days = self._validate_shape(
            start_date=new_start,
            end_date=new_end,
            is_half_day=new_half,
            total_days=total_days,
            reason=new_reason,
            today=self._today(now),
        )
        self._check_exclusive(old.user_id, new_start, new_end, exclude_id=old.leave_id)

        new = replace(
            old,
            leave_type=leave_type or old.leave_type,
            start_date=new_start,
            end_date=new_end,
            total_days=days,
            is_half_day=new_half,
            reason=new_reason.strip(),
        )

        self._ledger.restore_leave(old)
        try:
            self._check_balance(old.user_id, new)
        except ValidationError:
            self._ledger.apply_leave(old)
            raise
        self._ledger.apply_leave(new)
        self._leaves.update(new)

        if old.status == LeaveStatus.APPROVED:
            self._remove_synthetic_attendance(old)
            self._apply_approval_effects(new, actor)
        logger.info("leave.edited", leave_id=leave_id, by=actor.name)
        return new

    def delete_leave(self, leave_id: int, *, actor: Actor) -> None:
        leave = self._get(leave_id)
        if not actor.is_admin:
            if actor.user_id != leave.user_id:
                raise AuthorizationError("You can only delete your own leave requests")
            if leave.status != LeaveStatus.PENDING:
                raise ConflictError("Only pending leave requests can be deleted")

        if leave.status != LeaveStatus.REJECTED:
            self._ledger.restore_leave(leave)
        if leave.status == LeaveStatus.APPROVED:
            self._remove_synthetic_attendance(leave)
        self._leaves.delete(leave.leave_id)
        logger.info("leave.deleted", leave_id=leave_id, by=actor.name)

    # ---- approval side effects on attendance ---------------------------

    def _apply_approval_effects(self, leave: LeaveRecord, actor: Actor) -> None:
        placeholder = AttendanceStatus.HALF_DAY if leave.is_half_day else AttendanceStatus.LEAVE
        note = f"Approved {leave.leave_type.value} leave."
        for day in iter_weekdays(leave.start_date, leave.end_date):
            self._convert_auto_leaves(leave, day)

            record = self._attendance.get_for_user_and_date(leave.user_id, day)
            if record is None:
                self._attendance.insert(
                    AttendanceRecord(
                        attendance_id=0,
                        user_id=leave.user_id,
                        work_date=day,
                        status=placeholder,
                        is_half_day=leave.is_half_day,
                        analysis=note,
                        action_taken_by=actor.name,
                        created_by=actor.name,
                    )
                )
                continue

            if record.status == AttendanceStatus.AUTO_LEAVE:
                status = placeholder
            elif leave.is_half_day and record.status == AttendanceStatus.AUTO_HALF_DAY:
                status = AttendanceStatus.HALF_DAY
            else:
                continue
            self._attendance.update(
                replace(
                    record,
                    status=status,
                    is_half_day=leave.is_half_day,
                    analysis=f"{note} Replaced {record.status.value}.",
                    updated_by=actor.name,
                )
            )

    def _convert_auto_leaves(self, leave: LeaveRecord, day: date) -> None:
        """Turn system unpaid leaves on `day` into the approved type.

        Their unpaid days go back whatever their half/full shape; the approved
        type was already charged with the genuine leave, so the net effect is
        the approved type alone.
        """
        for auto in self._leaves.list_overlapping(leave.user_id, day, day, statuses=(LeaveStatus.APPROVED,)):
            if auto.leave_id == leave.leave_id or not auto.is_auto_generated:
                continue
            if auto.leave_type != LeaveType.UNPAID:
                continue
            self._ledger.restore_leave(auto)
            self._leaves.update(
                replace(
                    auto,
                    leave_type=leave.leave_type,
                    reason=f"{auto.reason} (converted to approved {leave.leave_type.value} leave)",
                )
            )
            logger.info("leave.auto_converted", leave_id=auto.leave_id, into=leave.leave_id)

    def _remove_synthetic_attendance(self, leave: LeaveRecord) -> None:
        for day in iter_weekdays(leave.start_date, leave.end_date):
            record = self._attendance.get_for_user_and_date(leave.user_id, day)
            if record and record.check_in is None and record.status in (
                AttendanceStatus.LEAVE,
                AttendanceStatus.HALF_DAY,
            ):
                self._attendance.delete(record.attendance_id)

    # ---- operations used by the attendance engine -------------------------

    def apply_auto_leave(
        self,
        *,
        user_id: int,
        day: date,
        days: float,
        reason: str,
        actor_label: str = SYSTEM_ACTOR,
    ) -> LeaveRecord:
        """Create and charge a system unpaid leave at most once per day and shape.

        Safe to call again for the same day: an existing unpaid leave of the same
        half/full shape is returned without touching the ledger.
        """
        is_half_day = days < 1
        for existing in self._leaves.list_overlapping(user_id, day, day, statuses=_ACTIVE):
            if existing.leave_type == LeaveType.UNPAID and existing.is_half_day == is_half_day:
                logger.info("leave.auto_skipped", user_id=user_id, day=str(day), leave_id=existing.leave_id)
                return existing

        leave = self._leaves.create(
            user_id=user_id,
            leave_type=LeaveType.UNPAID,
            start_date=day,
            end_date=day,
            total_days=float(days),
            is_half_day=is_half_day,
            status=LeaveStatus.APPROVED,
            reason=reason,
            action_taken_by=actor_label,
        )
        self._ledger.apply(user_id, day.year, LeaveType.UNPAID, days)
        logger.info("leave.auto_applied", user_id=user_id, day=str(day), days=days, leave_id=leave.leave_id)
        return leave

    def grant_day_leave(self, *, user_id: int, day: date, leave_type: LeaveType, reason: str, actor: Actor) -> LeaveRecord:
        """Approved single-day leave recorded by an admin correction."""
        leave = self._leaves.create(
            user_id=user_id,
            leave_type=leave_type,
            start_date=day,
            end_date=day,
            total_days=1.0,
            is_half_day=False,
            status=LeaveStatus.APPROVED,
            reason=reason,
            action_taken_by=actor.name,
        )
        self._ledger.apply_leave(leave)
        return leave

    def find_half_day_leave(self, user_id: int, day: date) -> Optional[LeaveRecord]:
        for leave in self._leaves.list_overlapping(user_id, day, day, statuses=(LeaveStatus.APPROVED,)):
            if leave.is_half_day:
                return leave
        return None

    def find_full_day_leave(self, user_id: int, day: date) -> Optional[LeaveRecord]:
        for leave in self._leaves.list_overlapping(user_id, day, day, statuses=(LeaveStatus.APPROVED,)):
            if not leave.is_half_day:
                return leave
        return None

    def upgrade_half_day(self, leave: LeaveRecord, *, reason_prefix: str = "Auto-upgraded from half-day") -> LeaveRecord:
        upgraded = replace(leave, is_half_day=False, total_days=1.0, reason=f"{reason_prefix}: {leave.reason}")
        self._leaves.update(upgraded)
        self._ledger.apply(leave.user_id, leave.start_date.year, leave.leave_type, 0.5)
        return upgraded

    def cancel_half_day(self, leave: LeaveRecord) -> None:
        self._leaves.delete(leave.leave_id)
        self._ledger.restore(leave.user_id, leave.start_date.year, leave.leave_type, 0.5)

    def record_attendance_override(self, leave: LeaveRecord, day: date, *, actor: str) -> float:
        """Give back one leave day because the user came to work. Returns days restored."""
        if leave.has_override_for(day):
            return 0.0
        updated = replace(
            leave,
            attendance_overrides=leave.attendance_overrides + (AttendanceOverride(date=day, restored_days=1.0, created_by=actor),),
        )
        self._leaves.update(updated)
        self._ledger.restore(leave.user_id, day.year, leave.leave_type, 1.0, count_as_restored=True)
        return 1.0

    def withdraw_leaves_for_day(self, user_id: int, day: date, *, leave_type: Optional[LeaveType] = None) -> int:
        """Delete the user's single-day leaves on `day`, giving their days back."""
        removed = 0
        for leave in self._leaves.list_overlapping(user_id, day, day, statuses=_ACTIVE):
            if leave.start_date != day or leave.end_date != day:
                continue
            if leave_type is not None and leave.leave_type != leave_type:
                continue
            self._ledger.restore_leave(leave)
            self._leaves.delete(leave.leave_id)
            removed += 1
        return removed

    def leaves_covering(self, user_id: int, day: date) -> Sequence[LeaveRecord]:
        return self._leaves.list_overlapping(user_id, day, day, statuses=_ACTIVE)

    # ---- org-wide allowance changes ------------------------------------

    def update_leave_type_allowances(
        self,
        category: LeaveCategory,
        allowances: Mapping[LeaveType, int],
        *,
        actor: Actor,
        year: Optional[int] = None,
    ) -> Future:
        """Save new allowances and rebuild affected ledgers in the background."""
        self._require_admin(actor)
        for leave_type, value in allowances.items():
            if int(value) < 0:
                raise ValidationError(f"Allowance for '{LeaveType(leave_type).value}' cannot be negative")
        self._office_config.update_leave_types(category, allowances)
        logger.info("leave.allowances_updated", category=category.value, by=actor.name)
        future = self._executor.submit(self._ledger.sync_category, category, year)
        future.add_done_callback(_log_sync_failure)
        return future


def _log_sync_failure(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("leave.allowance_sync_failed", error=str(exc), exc_info=exc)
