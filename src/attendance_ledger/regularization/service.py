from __future__ import annotations

import time
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence

import structlog

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..attendance.upsert import upsert_attendance
from ..common.datetime_utils import (
    at_local_time,
    format_clock,
    format_duration,
    now_local,
    parse_clock,
    to_local,
    worked_minutes,
)
from ..core.constants import (
    ASSUMED_SHIFT_HOURS,
    DEFAULT_CHECKOUT_FALLBACK,
    DEFAULT_TIMEZONE,
    SYNTHETIC_SHIFT_HOURS,
    SYSTEM_ACTOR,
    UPSERT_RETRY_DELAY_SECONDS,
)
from ..core.enums import AttendanceStatus, EventCategory
from ..core.exceptions import DomainError
from ..leave.service import LeaveService
from ..notifications.gateway import NotificationGateway, safe_notify
from ..office.model import OfficeEvent
from ..office.repository import OfficeConfigRepository, OfficeEventDirectory
from ..office.working_hours import WorkingHoursResolver
from ..users.model import User
from ..users.repository import UserRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RegularizationSummary:
    process_date: date
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    cleaned_up: int = 0
    skipped_reason: Optional[str] = None

    def as_text(self) -> str:
        lines = [f"Attendance regularization for {self.process_date.isoformat()}"]
        if self.skipped_reason:
            lines.append(f"Skipped: {self.skipped_reason}")
        lines += [
            f"Processed: {self.processed}",
            f"Skipped: {self.skipped}",
            f"Errors: {self.errors}",
            f"Orphaned records removed: {self.cleaned_up}",
        ]
        return "\n".join(lines)


class RegularizationService:
    """Closes out one past day for every active employee and team lead.

    Running it twice for the same day changes nothing the second time: days
    already closed are skipped and auto leaves are guarded by existence.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        leaves: LeaveService,
        *,
        events: OfficeEventDirectory,
        working_hours: WorkingHoursResolver,
        office_config: OfficeConfigRepository,
        notifications: NotificationGateway,
        timezone: str = DEFAULT_TIMEZONE,
        retry_delay: float = UPSERT_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._attendance = attendance
        self._users = users
        self._leaves = leaves
        self._events = events
        self._working_hours = working_hours
        self._office_config = office_config
        self._notifications = notifications
        self._tz = timezone
        self._retry_delay = retry_delay
        self._sleep = sleep

    def default_process_date(self, now: Optional[datetime] = None) -> date:
        local = to_local(now, self._tz) if now else now_local(self._tz)
        return local.date() - timedelta(days=1)

    def _save(self, record: AttendanceRecord) -> AttendanceRecord:
        return upsert_attendance(self._attendance, record, retry_delay=self._retry_delay, sleep=self._sleep)

    def run(self, process_date: Optional[date] = None, *, now: Optional[datetime] = None) -> RegularizationSummary:
        day = process_date or self.default_process_date(now)
        log = logger.bind(process_date=day.isoformat())

        config = self._office_config.get()
        if not config.is_working_day(day):
            log.info("regularization.skipped", reason="non-working day")
            return RegularizationSummary(process_date=day, skipped_reason="non-working day")

        cleaned = self._cleanup(day)
        users = self._users.list_regularizable()

        holidays = self._events.find(EventCategory.PUBLIC_HOLIDAY, day, day)
        if holidays:
            created = self._mark_holiday(day, holidays[0], users)
            log.info("regularization.holiday", title=holidays[0].title, created=created)
            return RegularizationSummary(
                process_date=day,
                processed=created,
                skipped=len(users) - created,
                cleaned_up=cleaned,
                skipped_reason=f"public holiday: {holidays[0].title}",
            )

        trip = _first(self._events.find(EventCategory.TRIP, day, day))
        office_event = _first(self._events.find(EventCategory.OFFICE_EVENT, day, day))

        processed = skipped = errors = 0
        for user in users:
            try:
                if self._regularize_user(user, day, trip, office_event):
                    processed += 1
                else:
                    skipped += 1
            except DomainError as e:
                errors += 1
                log.warning("regularization.user_failed", user_id=user.user_id, error=str(e))
            except Exception:
                errors += 1
                log.exception("regularization.user_failed", user_id=user.user_id)

        summary = RegularizationSummary(
            process_date=day, processed=processed, skipped=skipped, errors=errors, cleaned_up=cleaned
        )
        log.info("regularization.completed", processed=processed, skipped=skipped, errors=errors, cleaned_up=cleaned)
        return summary

    def _cleanup(self, day: date) -> int:
        """Drop auto records whose leave never got written (a run that died halfway)."""
        removed = 0
        for record in self._attendance.list_for_date(day):
            if not record.is_auto_processed:
                continue
            if self._leaves.leaves_covering(record.user_id, day):
                continue
            self._attendance.delete(record.attendance_id)
            removed += 1
            logger.info("regularization.orphan_removed", user_id=record.user_id, process_date=day.isoformat())
        return removed

    def _mark_holiday(self, day: date, holiday: OfficeEvent, users: Sequence[User]) -> int:
        created = 0
        for user in users:
            if self._attendance.get_for_user_and_date(user.user_id, day):
                continue
            self._save(
                AttendanceRecord(
                    attendance_id=0,
                    user_id=user.user_id,
                    work_date=day,
                    status=AttendanceStatus.HOLIDAY,
                    analysis=f"Public holiday: {holiday.title}. System auto-marked as holiday.",
                    action_taken_by=SYSTEM_ACTOR,
                    created_by=SYSTEM_ACTOR,
                )
            )
            created += 1
        return created

    def _regularize_user(
        self,
        user: User,
        day: date,
        trip: Optional[OfficeEvent],
        office_event: Optional[OfficeEvent],
    ) -> bool:
        """Returns True when the user's day was changed."""
        record = self._attendance.get_for_user_and_date(user.user_id, day)

        if record is not None and record.is_auto_processed:
            return False

        if record is None:
            if trip is not None:
                self._save(self._new_record(user, day, AttendanceStatus.TRIP, f"Company trip: {trip.title}."))
            else:
                self._handle_missing_attendance(user, day)
            return True

        if record.check_in is not None and record.check_out is None:
            if trip is not None:
                self._attendance.update(
                    replace(record, status=AttendanceStatus.TRIP, analysis=f"Company trip: {trip.title}.", updated_by=SYSTEM_ACTOR)
                )
            elif office_event is not None:
                self._handle_office_event(user, record, office_event)
            else:
                self._handle_missing_checkout(user, record)
            return True

        # Complete day, or a placeholder such as leave/holiday without a check-in.
        return False

    @staticmethod
    def _new_record(user: User, day: date, status: AttendanceStatus, analysis: str) -> AttendanceRecord:
        return AttendanceRecord(
            attendance_id=0,
            user_id=user.user_id,
            work_date=day,
            status=status,
            analysis=analysis,
            action_taken_by=SYSTEM_ACTOR,
            created_by=SYSTEM_ACTOR,
            updated_by=SYSTEM_ACTOR,
        )

    def _handle_missing_attendance(self, user: User, day: date) -> None:
        self._leaves.apply_auto_leave(
            user_id=user.user_id,
            day=day,
            days=1.0,
            reason="Auto-generated: No check-in recorded",
        )
        self._save(
            self._new_record(
                user,
                day,
                AttendanceStatus.AUTO_LEAVE,
                "No check-in recorded. System auto-marked as unpaid leave.",
            )
        )
        safe_notify(
            self._notifications,
            None,
            user.user_id,
            f"No check-in was recorded on {day}. The day was marked as unpaid leave.",
            notify_admins=True,
            admin_message=f"{user.full_name} had no check-in on {day}; unpaid leave applied.",
        )

    def _handle_missing_checkout(self, user: User, record: AttendanceRecord) -> None:
        check_out = record.check_in + timedelta(hours=ASSUMED_SHIFT_HOURS)
        self._leaves.apply_auto_leave(
            user_id=user.user_id,
            day=record.work_date,
            days=0.5,
            reason="Auto-generated: No check-out, 5-hour shift assumed",
        )
        self._attendance.update(
            replace(
                record,
                check_out=check_out,
                production_time=format_duration(ASSUMED_SHIFT_HOURS * 60),
                status=AttendanceStatus.AUTO_HALF_DAY,
                is_half_day=True,
                analysis="No check-out recorded. System assumed 5-hour shift and marked as half-day.",
                updated_by=SYSTEM_ACTOR,
            )
        )
        safe_notify(
            self._notifications,
            None,
            user.user_id,
            f"No check-out was recorded on {record.work_date}. The day was marked as half-day.",
            notify_admins=True,
            admin_message=f"{user.full_name} had no check-out on {record.work_date}; half-day unpaid leave applied.",
        )

    def _checkout_time(self, user: User, day: date) -> datetime:
        try:
            window = self._working_hours.get(user.user_id, today=day).window_for(day)
            clock = window.checkout_time
        except DomainError as e:
            logger.warning("regularization.checkout_time_fallback", user_id=user.user_id, error=str(e))
            clock = parse_clock(DEFAULT_CHECKOUT_FALLBACK)
        return at_local_time(day, clock, self._tz)

    def _handle_office_event(self, user: User, record: AttendanceRecord, event: OfficeEvent) -> None:
        day = record.work_date
        checkout = self._checkout_time(user, day)

        if event.start_time is not None and at_local_time(day, event.start_time, self._tz) >= checkout:
            # The event only starts after the user's day ends; it does not explain the missing check-out.
            self._handle_missing_checkout(user, record)
            return

        check_in = to_local(record.check_in, self._tz)
        if checkout < check_in:
            checkout = check_in + timedelta(hours=SYNTHETIC_SHIFT_HOURS)
        minutes = worked_minutes(check_in, checkout)
        credited = format_duration(minutes)

        self._attendance.update(
            replace(
                record,
                check_out=checkout,
                production_time=credited,
                status=AttendanceStatus.PRESENT,
                analysis=(
                    f'Auto-checkout at {format_clock(checkout)} (user\'s checkout time) due to office event '
                    f'"{event.title}". Credited {credited}.'
                ),
                updated_by=SYSTEM_ACTOR,
            )
        )
        safe_notify(
            self._notifications,
            None,
            user.user_id,
            f'You were checked out at {format_clock(checkout)} on {day} because of "{event.title}". Credited {credited}.',
            notify_admins=True,
            admin_message=f'{user.full_name} auto-checked out for "{event.title}" on {day}; credited {credited}.',
        )


def _first(events: Sequence[OfficeEvent]) -> Optional[OfficeEvent]:
    return events[0] if events else None
