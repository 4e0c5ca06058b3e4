from __future__ import annotations

from ...common.datetime_utils import format_duration
from ...core.enums import AttendanceStatus
from .base import Classification, ClassificationContext, ClassificationKind, WorkedDurationStrategy


class HalfDayStrategy(WorkedDurationStrategy):
    """4.5 to 6.5 hours: half a day, covered by an approved half-day leave if there is one."""

    def classify(self, worked_minutes: int, context: ClassificationContext) -> Classification:
        worked = format_duration(worked_minutes)
        if context.has_half_day_leave:
            return Classification(
                kind=ClassificationKind.HALF_DAY,
                status=AttendanceStatus.HALF_DAY,
                worked_minutes=worked_minutes,
                is_half_day=True,
                analysis=f"Worked {worked}. Covered by approved half-day leave.",
            )
        return Classification(
            kind=ClassificationKind.HALF_DAY,
            status=AttendanceStatus.AUTO_HALF_DAY,
            worked_minutes=worked_minutes,
            leave_days=0.5,
            is_half_day=True,
            analysis=f"Worked {worked}, less than 6.5 hours. Marked as unpaid half-day.",
        )
