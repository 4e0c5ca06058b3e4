from __future__ import annotations

from ...common.datetime_utils import format_duration
from ...core.enums import AttendanceStatus
from .base import Classification, ClassificationContext, ClassificationKind, WorkedDurationStrategy


class FullDayAbsenceStrategy(WorkedDurationStrategy):
    """Under 4.5 hours: the day counts as a full day of leave."""

    def classify(self, worked_minutes: int, context: ClassificationContext) -> Classification:
        worked = format_duration(worked_minutes)
        if context.has_half_day_leave:
            analysis = f"Worked {worked}, less than 4.5 hours. Approved half-day leave upgraded to a full day."
            leave_days = 0.5
        else:
            analysis = f"Worked {worked}, less than 4.5 hours. Marked as unpaid leave."
            leave_days = 1.0
        return Classification(
            kind=ClassificationKind.FULL_DAY_ABSENCE,
            status=AttendanceStatus.AUTO_LEAVE,
            worked_minutes=worked_minutes,
            leave_days=leave_days,
            analysis=analysis,
        )
