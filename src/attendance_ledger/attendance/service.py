from __future__ import annotations

import time
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Tuple

import structlog

from ..common.datetime_utils import (
    at_local_time,
    is_weekend,
    now_local,
    to_local,
    worked_minutes,
)
from ..core.constants import DEFAULT_TIMEZONE, OPEN_ATTENDANCE_WINDOW_HOURS, SYSTEM_ACTOR, UPSERT_RETRY_DELAY_SECONDS
from ..core.enums import AttendanceStatus, LeaveType
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..leave.model import LeaveRecord
from ..leave.service import LeaveService
from ..notifications.gateway import NotificationGateway, safe_notify
from ..office.location import LocationVerifier
from ..office.model import ClockWindow
from ..office.repository import OfficeConfigRepository, RemoteWorkDirectory
from ..office.working_hours import WorkingHoursResolver
from ..users.model import Actor, User
from ..users.repository import UserRepository
from .factory import ClassificationFactory
from .model import UNSET, AttendanceRecord, LeaveOverride
from .repository import AttendanceRepository
from .strategies.base import Classification, ClassificationContext, ClassificationKind
from .upsert import upsert_attendance

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CheckInResult:
    record: AttendanceRecord
    analysis: str
    restored_days: float = 0.0
    override_message: Optional[str] = None


@dataclass(frozen=True)
class Lateness:
    is_late: bool
    minutes_past: int
    late_by: int


def compute_lateness(check_in_local: datetime, window: ClockWindow, buffer_minutes: int, timezone: str) -> Lateness:
    expected = at_local_time(check_in_local.date(), window.checkin_time, timezone)
    minutes_past = int((check_in_local - expected).total_seconds() // 60)
    return Lateness(
        is_late=minutes_past > buffer_minutes,
        minutes_past=minutes_past,
        late_by=max(0, minutes_past - buffer_minutes),
    )


class AttendanceService:
    """Per-day attendance state machine.

    Every transition that changes what a day costs goes through LeaveService,
    which owns the ledger calls.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        leaves: LeaveService,
        *,
        working_hours: WorkingHoursResolver,
        remote_work: RemoteWorkDirectory,
        office_config: OfficeConfigRepository,
        notifications: NotificationGateway,
        location: LocationVerifier,
        classification_factory: ClassificationFactory | None = None,
        timezone: str = DEFAULT_TIMEZONE,
        retry_delay: float = UPSERT_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._attendance = attendance
        self._users = users
        self._leaves = leaves
        self._working_hours = working_hours
        self._remote_work = remote_work
        self._office_config = office_config
        self._notifications = notifications
        self._location = location
        self._factory = classification_factory or ClassificationFactory()
        self._tz = timezone
        self._retry_delay = retry_delay
        self._sleep = sleep

    def _local(self, now: Optional[datetime]) -> datetime:
        return to_local(now, self._tz) if now else now_local(self._tz)

    def _user(self, user_id: int) -> User:
        user = self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def _upsert(self, record: AttendanceRecord) -> AttendanceRecord:
        return upsert_attendance(self._attendance, record, retry_delay=self._retry_delay, sleep=self._sleep)

    def _lateness(self, user_id: int, check_in: datetime, buffer_minutes: int) -> Lateness:
        local = to_local(check_in, self._tz)
        window = self._working_hours.get(user_id, today=local.date()).window_for(local.date())
        return compute_lateness(local, window, buffer_minutes, self._tz)

    def get_record(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        return self._attendance.get_for_user_and_date(user_id, work_date)

    # ---- check-in -----------------------------------------------------

    def check_in(
        self,
        user_id: int,
        *,
        actor: Optional[Actor] = None,
        origin_ip: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CheckInResult:
        now = self._local(now)
        today = now.date()
        if is_weekend(today):
            raise ValidationError("Check-in is not allowed on weekends")

        user = self._user(user_id)
        actor = actor or Actor.from_user(user)

        existing = self._attendance.get_for_user_and_date(user_id, today)
        if existing and existing.check_in is not None:
            raise ConflictError("You have already checked in today")

        config = self._office_config.get()
        is_remote = self._remote_work.has_approved(user_id, today)
        if not is_remote and config.enable_ip_check:
            self._location.verify(origin_ip, config)

        lateness = self._lateness(user_id, now, config.buffer_time_minutes)
        if is_remote:
            analysis = "User checked in remotely."
        elif lateness.is_late:
            analysis = (
                f"User checked in late by {lateness.late_by} minute(s) "
                f"(after buffer time of {config.buffer_time_minutes} mins)."
            )
        else:
            analysis = "User checked in on time within allowed buffer window."

        covering_leave = self._leaves.find_full_day_leave(user_id, today)
        override = None
        if covering_leave is not None:
            override = LeaveOverride(
                original_leave_id=covering_leave.leave_id,
                restored_days=0.0 if covering_leave.has_override_for(today) else 1.0,
                leave_type=covering_leave.leave_type,
            )

        record = AttendanceRecord(
            attendance_id=existing.attendance_id if existing else 0,
            user_id=user_id,
            work_date=today,
            status=AttendanceStatus.REMOTE if is_remote else AttendanceStatus.PRESENT,
            check_in=now,
            is_late=lateness.is_late,
            analysis=analysis,
            leave_override=override,
            action_taken_by=actor.name,
            created_by=existing.created_by if existing else actor.name,
            updated_by=actor.name,
        )
        record = self._upsert(record)
        restored, override_message = self._override_leave(user, covering_leave, today, actor)
        logger.info(
            "attendance.check_in",
            user_id=user_id,
            work_date=str(today),
            status=record.status.value,
            is_late=record.is_late,
            restored_days=restored,
        )
        safe_notify(self._notifications, user_id, user_id, f"Checked in at {now:%H:%M}. {analysis}")
        return CheckInResult(record=record, analysis=analysis, restored_days=restored, override_message=override_message)

    def _override_leave(
        self, user: User, leave: Optional[LeaveRecord], day: date, actor: Actor
    ) -> Tuple[float, Optional[str]]:
        """Give the leave day back once the check-in is stored."""
        if leave is None:
            return 0.0, None

        restored = self._leaves.record_attendance_override(leave, day, actor=actor.name)
        if restored:
            message = f"Checked in during approved {leave.leave_type.value} leave; {restored:g} day restored."
            safe_notify(
                self._notifications,
                user.user_id,
                user.user_id,
                message,
                notify_admins=True,
                admin_message=f"{user.full_name} checked in during approved {leave.leave_type.value} leave on {day}.",
            )
        else:
            message = "Attendance already marked for this leave day."
        return restored, message

    # ---- check-out ----------------------------------------------------

    def check_out(
        self,
        user_id: int,
        *,
        actor: Optional[Actor] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        now = self._local(now)
        user = self._user(user_id)
        actor = actor or Actor.from_user(user)

        since = now - timedelta(hours=OPEN_ATTENDANCE_WINDOW_HOURS)
        record = self._attendance.get_latest_checked_in_since(user_id, since)
        if record is None:
            raise NotFoundError("User has not checked in.")
        if record.check_out is not None:
            raise ConflictError("User has already checked out.")

        minutes = worked_minutes(record.check_in, now)
        half_day_leave = self._leaves.find_half_day_leave(user_id, record.work_date)
        context = ClassificationContext(
            has_half_day_leave=half_day_leave is not None,
            was_remote=record.status == AttendanceStatus.REMOTE,
            is_late=record.is_late,
        )
        decision = self._factory.classify(minutes, context)
        self._apply_decision(
            user,
            record.work_date,
            decision,
            half_day_leave,
            reason_prefix="Auto-applied",
            actor_label=SYSTEM_ACTOR,
        )

        updated = replace(
            record,
            check_out=now,
            production_time=decision.production_time,
            status=decision.status,
            is_half_day=decision.is_half_day,
            analysis=f"{record.analysis or ''} {decision.analysis}".strip(),
            updated_by=actor.name,
        )
        updated = self._attendance.update(updated)
        logger.info(
            "attendance.check_out",
            user_id=user_id,
            work_date=str(record.work_date),
            worked_minutes=minutes,
            kind=decision.kind.value,
            status=decision.status.value,
        )
        self._notify_decision(user, record.work_date, decision)
        return updated

    def _apply_decision(
        self,
        user: User,
        day: date,
        decision: Classification,
        half_day_leave: Optional[LeaveRecord],
        *,
        reason_prefix: str,
        actor_label: str,
    ) -> None:
        if decision.kind == ClassificationKind.FULL_DAY_ABSENCE:
            if half_day_leave is not None:
                self._leaves.upgrade_half_day(half_day_leave)
            else:
                self._leaves.apply_auto_leave(
                    user_id=user.user_id,
                    day=day,
                    days=1.0,
                    reason=f"{reason_prefix}: Worked less than 4.5 hours",
                    actor_label=actor_label,
                )
        elif decision.kind == ClassificationKind.HALF_DAY:
            if half_day_leave is None:
                self._leaves.apply_auto_leave(
                    user_id=user.user_id,
                    day=day,
                    days=0.5,
                    reason=f"{reason_prefix}: Worked less than 6.5 hours",
                    actor_label=actor_label,
                )
        elif half_day_leave is not None:
            # Enough hours were worked; the half-day leave is no longer needed.
            self._leaves.cancel_half_day(half_day_leave)

    def _notify_decision(self, user: User, day: date, decision: Classification) -> None:
        message = f"Checked out for {day}: {decision.analysis}"
        charged = decision.leave_days > 0
        safe_notify(
            self._notifications,
            user.user_id,
            user.user_id,
            message,
            notify_admins=charged,
            admin_message=f"{user.full_name}: {decision.analysis}" if charged else None,
        )

    # ---- admin corrections -------------------------------------------

    def admin_mark(
        self,
        user_id: int,
        work_date: date,
        *,
        actor: Actor,
        check_in: Optional[datetime] = None,
        check_out: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can mark attendance")
        if work_date > self._local(now).date():
            raise ValidationError("Attendance cannot be marked for a future date")
        user = self._user(user_id)

        self._leaves.withdraw_leaves_for_day(user_id, work_date)
        existing = self._attendance.get_for_user_and_date(user_id, work_date)
        record = self._derive(user, work_date, check_in, check_out, actor=actor, base=existing)
        record = self._upsert(record)
        logger.info("attendance.admin_mark", user_id=user_id, work_date=str(work_date), status=record.status.value, by=actor.name)
        return record

    def admin_edit(
        self,
        attendance_id: int,
        *,
        actor: Actor,
        check_in=UNSET,
        check_out=UNSET,
        status: Optional[AttendanceStatus] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        """Correct a stored day. Passing None for a time removes it; UNSET keeps it."""
        if not actor.is_admin:
            raise AuthorizationError("Only admins can edit attendance")
        record = self._attendance.get_by_id(attendance_id)
        if record is None:
            raise NotFoundError("Attendance record not found")
        if record.work_date > self._local(now).date():
            raise ValidationError("Attendance cannot be edited for a future date")
        user = self._user(record.user_id)

        new_in = record.check_in if check_in is UNSET else check_in
        new_out = record.check_out if check_out is UNSET else check_out

        if record.check_out is not None and new_out is None:
            self._leaves.withdraw_leaves_for_day(record.user_id, record.work_date, leave_type=LeaveType.UNPAID)
        self._leaves.withdraw_leaves_for_day(record.user_id, record.work_date)

        if status == AttendanceStatus.LEAVE:
            new_in = new_out = None

        derived = self._derive(user, record.work_date, new_in, new_out, actor=actor, base=record)
        derived = self._attendance.update(derived)
        logger.info("attendance.admin_edit", attendance_id=attendance_id, status=derived.status.value, by=actor.name)
        return derived

    def _derive(
        self,
        user: User,
        day: date,
        check_in: Optional[datetime],
        check_out: Optional[datetime],
        *,
        actor: Actor,
        base: Optional[AttendanceRecord],
    ) -> AttendanceRecord:
        if check_out is not None and check_in is None:
            raise ValidationError("Check-out requires a check-in")
        if check_in is not None and check_out is not None and check_out < check_in:
            raise ValidationError("Check-out cannot be before check-in")

        config = self._office_config.get()
        is_late = False
        is_half_day = False
        production_time = None

        if check_in is not None:
            lateness = self._lateness(user.user_id, check_in, config.buffer_time_minutes)
            is_late = lateness.is_late

        if check_in is not None and check_out is not None:
            minutes = worked_minutes(check_in, check_out)
            decision = self._factory.classify(minutes, ClassificationContext(is_late=is_late, admin_variant=True))
            self._apply_decision(user, day, decision, None, reason_prefix="Admin edit", actor_label=actor.name)
            status = decision.status
            is_half_day = decision.is_half_day
            production_time = decision.production_time
            analysis = f"Admin edit by {actor.name}. {decision.analysis}"
        elif check_in is not None:
            status = AttendanceStatus.LATE if is_late else AttendanceStatus.PRESENT
            analysis = f"Admin edit by {actor.name}. Check-in recorded without check-out."
        else:
            leave_type = LeaveType.PROBATION if user.is_probationary else LeaveType.ANNUAL
            self._leaves.grant_day_leave(
                user_id=user.user_id,
                day=day,
                leave_type=leave_type,
                reason=f"Admin edit: marked as leave by {actor.name}",
                actor=actor,
            )
            status = AttendanceStatus.LEAVE
            analysis = f"Admin edit by {actor.name}. Marked as {leave_type.value} leave."

        if self._remote_work.has_approved(user.user_id, day):
            status = AttendanceStatus.REMOTE

        fields = dict(
            status=status,
            check_in=check_in,
            check_out=check_out,
            is_late=is_late,
            is_half_day=is_half_day,
            production_time=production_time,
            analysis=analysis,
            action_taken_by=actor.name,
            updated_by=actor.name,
        )
        if base is not None:
            return replace(base, **fields)
        return AttendanceRecord(attendance_id=0, user_id=user.user_id, work_date=day, created_by=actor.name, **fields)
